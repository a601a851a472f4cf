"""Configuration subsystem for lldap.

Public API::

    from lldap.config import init, get_config, RunOpts

    # At startup (CLI only):
    init(RunOpts(...))

    # Everywhere else:
    cfg = get_config()
    port = cfg.ldap_port
    keys = cfg.get_server_keys()
"""

from lldap.config.diagnostics import Diagnostic, check_insecure_defaults, emit_diagnostics
from lldap.config.errors import ConfigError, ConfigParseError, KeyFileError
from lldap.config.lldap_config import get_config, init
from lldap.config.overrides import (
    GeneralConfigOpts,
    RunOpts,
    SmtpOpts,
    TestEmailOpts,
    override_config,
)
from lldap.config.server_key import get_server_setup
from lldap.config.settings import (
    Configuration,
    DraftConfiguration,
    Mailbox,
    MailOptions,
    assemble,
    default_config_data,
)
from lldap.config.sources import resolve_layers

__all__ = [
    "ConfigError",
    "ConfigParseError",
    # Core
    "Configuration",
    "Diagnostic",
    "DraftConfiguration",
    # Overrides
    "GeneralConfigOpts",
    "KeyFileError",
    "MailOptions",
    "Mailbox",
    "RunOpts",
    "SmtpOpts",
    "TestEmailOpts",
    "assemble",
    "check_insecure_defaults",
    "default_config_data",
    "emit_diagnostics",
    "get_config",
    "get_server_setup",
    "init",
    "override_config",
    "resolve_layers",
]

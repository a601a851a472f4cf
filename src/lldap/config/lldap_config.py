"""Startup configuration resolution for lldap.

Lifecycle::

    # 1. The CLI resolves the configuration (once, at startup)
    config = init(RunOpts(...))

    # 2. Any module retrieves it afterwards
    from lldap.config import get_config
    get_config().http_port

Resolution order is fixed: defaults, TOML file, ``LLDAP_*`` environment
variables, then the command's overrides.  Key material is loaded (or
generated) only after the overrides, from the final ``key_file``.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from typing import TextIO

from lldap.config.diagnostics import check_insecure_defaults, emit_diagnostics
from lldap.config.overrides import RunOpts, TestEmailOpts, general_config, override_config
from lldap.config.settings import Configuration, assemble
from lldap.config.sources import resolve_layers
from lldap.logging import redact_secrets

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singleton reference
# ---------------------------------------------------------------------------
_instance: Configuration | None = None


def get_config() -> Configuration:
    """Return the resolved configuration.

    Raises :class:`RuntimeError` if :func:`init` has not run yet.
    """
    if _instance is None:
        msg = "Configuration not initialised. Call init() before get_config()."
        raise RuntimeError(msg)
    return _instance


def reset() -> None:
    """Forget the resolved configuration -- testing only."""
    global _instance  # noqa: PLW0603
    _instance = None


def init(
    overrides: RunOpts | TestEmailOpts,
    *,
    environ: Mapping[str, str] | None = None,
    stream: TextIO | None = None,
) -> Configuration:
    """Resolve, assemble and publish the server configuration.

    Parameters
    ----------
    overrides:
        Options of the command being run.
    environ:
        Environment to read ``LLDAP_*`` variables from; defaults to
        :data:`os.environ`.
    stream:
        Where startup notices and diagnostics are printed; defaults
        to stdout.

    Raises
    ------
    ConfigError
        On any parse or key file failure.  Nothing is published.

    """
    global _instance  # noqa: PLW0603

    out = sys.stdout if stream is None else stream
    config_file = general_config(overrides).config_file
    print(f"Loading configuration from {config_file}", file=out)

    draft = resolve_layers(config_file, environ)
    draft = override_config(overrides, draft)
    if draft.verbose:
        dump = json.dumps(redact_secrets(draft.to_dict()), indent=2)
        print(f"Configuration: {dump}", file=out)

    config = assemble(draft)
    emit_diagnostics(check_insecure_defaults(config.settings), out)

    log.debug("Configuration resolved (key_file=%s)", config.key_file)
    _instance = config
    return config

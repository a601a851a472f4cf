"""Command-line overrides applied on top of the resolved draft.

Each option group is a frozen dataclass whose fields are ``None`` when
the user did not pass the option.  :func:`override_config` dispatches
on the group type and returns a new draft; absent values keep the
value from the lower layers.

Application order inside a command group is fixed: general options
first, then ports, then mail settings.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from functools import singledispatch

from lldap.config.settings import DraftConfiguration, Mailbox

DEFAULT_CONFIG_FILE = "lldap_config.toml"


@dataclass(frozen=True)
class GeneralConfigOpts:
    """Options shared by every command."""

    verbose: bool = False
    config_file: str = DEFAULT_CONFIG_FILE
    key_file: str | None = None


@dataclass(frozen=True)
class SmtpOpts:
    smtp_from: Mailbox | None = None
    smtp_reply_to: Mailbox | None = None
    smtp_server: str | None = None
    smtp_port: int | None = None
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_tls_required: bool | None = None


@dataclass(frozen=True)
class RunOpts:
    """Options of the ``run`` command."""

    general_config: GeneralConfigOpts = field(default_factory=GeneralConfigOpts)
    ldap_port: int | None = None
    ldaps_port: int | None = None
    http_port: int | None = None
    smtp_opts: SmtpOpts = field(default_factory=SmtpOpts)


@dataclass(frozen=True)
class TestEmailOpts:
    """Options of the ``send_test_email`` command."""

    __test__ = False  # not a pytest test class

    general_config: GeneralConfigOpts = field(default_factory=GeneralConfigOpts)
    to: Mailbox | None = None
    smtp_opts: SmtpOpts = field(default_factory=SmtpOpts)


def general_config(opts: RunOpts | TestEmailOpts) -> GeneralConfigOpts:
    return opts.general_config


def _present(**values: object) -> dict[str, object]:
    return {k: v for k, v in values.items() if v is not None}


def override_config(source: object, draft: DraftConfiguration) -> DraftConfiguration:
    """Apply *source* onto *draft* and return the updated draft.

    Only a :class:`DraftConfiguration` is accepted: an assembled
    configuration already holds the key material of its ``key_file``.
    """
    if not isinstance(draft, DraftConfiguration):
        msg = f"overrides apply to a DraftConfiguration, not {type(draft).__name__}"
        raise TypeError(msg)
    return _apply(source, draft)


@singledispatch
def _apply(source: object, draft: DraftConfiguration) -> DraftConfiguration:
    msg = f"unsupported override source: {type(source).__name__}"
    raise TypeError(msg)


@_apply.register
def _(source: GeneralConfigOpts, draft: DraftConfiguration) -> DraftConfiguration:
    changes = _present(key_file=source.key_file)
    # Plain flag: can switch verbosity on, never off.
    if source.verbose:
        changes["verbose"] = True
    return replace(draft, **changes) if changes else draft


@_apply.register
def _(source: SmtpOpts, draft: DraftConfiguration) -> DraftConfiguration:
    changes = _present(
        from_=source.smtp_from,
        reply_to=source.smtp_reply_to,
        server=source.smtp_server,
        port=source.smtp_port,
        user=source.smtp_user,
        password=source.smtp_password,
        tls_required=source.smtp_tls_required,
    )
    if not changes:
        return draft
    return replace(draft, smtp_options=replace(draft.smtp_options, **changes))


@_apply.register
def _(source: RunOpts, draft: DraftConfiguration) -> DraftConfiguration:
    draft = _apply(source.general_config, draft)
    changes = _present(
        ldap_port=source.ldap_port,
        ldaps_port=source.ldaps_port,
        http_port=source.http_port,
    )
    if changes:
        draft = replace(draft, **changes)
    return _apply(source.smtp_opts, draft)


@_apply.register
def _(source: TestEmailOpts, draft: DraftConfiguration) -> DraftConfiguration:
    draft = _apply(source.general_config, draft)
    return _apply(source.smtp_opts, draft)

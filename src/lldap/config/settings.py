"""Typed, frozen dataclasses for the server configuration.

This module is the **single source of truth** for default values.
The bundled JSON schema describes types only; the builders here are
what the application actually reads.

Two stages exist:

* :class:`DraftConfiguration` -- every setting, no key material.
  Produced by the layered resolver and refined by overrides.
* :class:`Configuration` -- a draft plus the mandatory
  :class:`~lldap.auth.opaque.ServerSetup`.  Only :func:`assemble`
  creates one, and it cannot be constructed without key material.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from email.utils import formataddr, parseaddr
from typing import TYPE_CHECKING, Any

from lldap.config.server_key import get_server_setup

if TYPE_CHECKING:
    from lldap.auth.opaque import KeyPair, ServerSetup

DEFAULT_JWT_SECRET = "secretjwtsecret"
DEFAULT_ADMIN_PASSWORD = "password"
DEFAULT_KEY_FILE = "server_key"

# ---------------------------------------------------------------------------
# Mail
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Mailbox:
    """An email identity: optional display name plus address."""

    name: str
    email: str

    @classmethod
    def parse(cls, value: str) -> Mailbox:
        """Parse ``"Name <user@host>"`` or ``"user@host"``.

        Raises :class:`ValueError` when no address can be found.
        """
        name, addr = parseaddr(value)
        if not addr or "@" not in addr:
            msg = f"invalid mailbox {value!r}"
            raise ValueError(msg)
        return cls(name=name, email=addr)

    def __str__(self) -> str:
        return formataddr((self.name, self.email))


@dataclass(frozen=True)
class MailOptions:
    """Outbound mail settings used for password reset emails."""

    enable_password_reset: bool
    from_: Mailbox | None
    reply_to: Mailbox | None
    server: str
    port: int
    user: str
    password: str
    tls_required: bool


def _default_smtp_options() -> dict[str, Any]:
    return {
        "enable_password_reset": False,
        "from": None,
        "reply_to": None,
        "server": "localhost",
        "port": 587,
        "user": "admin",
        "password": "",
        "tls_required": True,
    }


def _build_mailbox(value: Mailbox | str | None) -> Mailbox | None:
    if value is None or isinstance(value, Mailbox):
        return value
    return Mailbox.parse(value)


def _build_smtp_options(data: dict | None) -> MailOptions:
    d = data or {}
    defaults = _default_smtp_options()
    return MailOptions(
        enable_password_reset=d.get("enable_password_reset", defaults["enable_password_reset"]),
        from_=_build_mailbox(d.get("from")),
        reply_to=_build_mailbox(d.get("reply_to")),
        server=d.get("server", defaults["server"]),
        port=d.get("port", defaults["port"]),
        user=d.get("user", defaults["user"]),
        password=d.get("password", defaults["password"]),
        tls_required=d.get("tls_required", defaults["tls_required"]),
    )


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


def default_config_data() -> dict[str, Any]:
    """Return a fresh dict holding the default for every setting."""
    return {
        "ldap_port": 3890,
        "ldaps_port": 6360,
        "http_port": 17170,
        "jwt_secret": DEFAULT_JWT_SECRET,
        "ldap_base_dn": "dc=example,dc=com",
        "ldap_user_dn": "admin",
        "ldap_user_pass": DEFAULT_ADMIN_PASSWORD,
        "database_url": "sqlite://users.db?mode=rwc",
        "verbose": False,
        "key_file": DEFAULT_KEY_FILE,
        "smtp_options": _default_smtp_options(),
    }


# ---------------------------------------------------------------------------
# Draft and final configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DraftConfiguration:
    """All settings, before key material is attached."""

    ldap_port: int
    ldaps_port: int
    http_port: int
    jwt_secret: str
    ldap_base_dn: str
    ldap_user_dn: str
    ldap_user_pass: str
    database_url: str
    verbose: bool
    key_file: str
    smtp_options: MailOptions

    def to_dict(self) -> dict[str, Any]:
        """Plain-data view of the settings (mailboxes as strings)."""
        smtp = self.smtp_options
        return {
            "ldap_port": self.ldap_port,
            "ldaps_port": self.ldaps_port,
            "http_port": self.http_port,
            "jwt_secret": self.jwt_secret,
            "ldap_base_dn": self.ldap_base_dn,
            "ldap_user_dn": self.ldap_user_dn,
            "ldap_user_pass": self.ldap_user_pass,
            "database_url": self.database_url,
            "verbose": self.verbose,
            "key_file": self.key_file,
            "smtp_options": {
                "enable_password_reset": smtp.enable_password_reset,
                "from": str(smtp.from_) if smtp.from_ else None,
                "reply_to": str(smtp.reply_to) if smtp.reply_to else None,
                "server": smtp.server,
                "port": smtp.port,
                "user": smtp.user,
                "password": smtp.password,
                "tls_required": smtp.tls_required,
            },
        }


_SETTING_NAMES = frozenset(f.name for f in fields(DraftConfiguration))


@dataclass(frozen=True)
class Configuration:
    """The resolved, immutable server configuration.

    Wraps the final draft together with the key material loaded from
    its ``key_file``.  ``server_setup`` is a required argument, so every
    instance carries key material.  It is never part of the serialized
    settings.

    Settings are read through attribute access (``config.http_port``).
    This is not a :class:`DraftConfiguration`, so overrides cannot be
    applied to it after the key material is attached.
    """

    settings: DraftConfiguration
    server_setup: ServerSetup = field(repr=False)

    def __getattr__(self, name: str) -> Any:  # noqa: ANN401
        if name in _SETTING_NAMES:
            return getattr(self.settings, name)
        msg = f"{type(self).__name__!r} object has no attribute {name!r}"
        raise AttributeError(msg)

    def to_dict(self) -> dict[str, Any]:
        return self.settings.to_dict()

    def get_server_setup(self) -> ServerSetup:
        return self.server_setup

    def get_server_keys(self) -> KeyPair:
        return self.server_setup.keypair


def build_draft(data: dict) -> DraftConfiguration:
    """Build a typed draft from merged, schema-validated raw data.

    Missing keys fall back to :func:`default_config_data`.  Raises
    :class:`ValueError` for an unparseable mailbox.
    """
    defaults = default_config_data()

    def get(key: str) -> Any:  # noqa: ANN401
        return data.get(key, defaults[key])

    return DraftConfiguration(
        ldap_port=get("ldap_port"),
        ldaps_port=get("ldaps_port"),
        http_port=get("http_port"),
        jwt_secret=get("jwt_secret"),
        ldap_base_dn=get("ldap_base_dn"),
        ldap_user_dn=get("ldap_user_dn"),
        ldap_user_pass=get("ldap_user_pass"),
        database_url=get("database_url"),
        verbose=get("verbose"),
        key_file=get("key_file"),
        smtp_options=_build_smtp_options(data.get("smtp_options")),
    )


def default_draft() -> DraftConfiguration:
    return build_draft(default_config_data())


def assemble(draft: DraftConfiguration) -> Configuration:
    """Attach key material from the draft's final ``key_file``.

    The key file is resolved exactly once here.  Any
    :class:`~lldap.config.errors.KeyFileError` propagates unchanged.
    """
    server_setup = get_server_setup(draft.key_file)
    return Configuration(settings=draft, server_setup=server_setup)

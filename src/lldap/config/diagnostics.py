"""Startup diagnostics for insecure settings left at their defaults."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, TextIO

from lldap.config.settings import DEFAULT_ADMIN_PASSWORD, DEFAULT_JWT_SECRET

if TYPE_CHECKING:
    from collections.abc import Iterable

    from lldap.config.settings import DraftConfiguration

DEFAULT_JWT_SECRET_WARNING = (
    "WARNING: Default JWT secret used! This is highly unsafe and can allow "
    "attackers to log in as admin."
)
DEFAULT_ADMIN_PASSWORD_WARNING = "WARNING: Unsecure default admin password is used."


@dataclass(frozen=True)
class Diagnostic:
    code: str
    message: str


def check_insecure_defaults(config: DraftConfiguration) -> list[Diagnostic]:
    """Return one diagnostic per insecure default still in effect."""
    diagnostics: list[Diagnostic] = []
    if config.jwt_secret == DEFAULT_JWT_SECRET:
        diagnostics.append(Diagnostic("default_jwt_secret", DEFAULT_JWT_SECRET_WARNING))
    if config.ldap_user_pass == DEFAULT_ADMIN_PASSWORD:
        diagnostics.append(
            Diagnostic("default_admin_password", DEFAULT_ADMIN_PASSWORD_WARNING),
        )
    return diagnostics


def emit_diagnostics(
    diagnostics: Iterable[Diagnostic],
    stream: TextIO | None = None,
) -> None:
    """Print each diagnostic on its own line (stdout by default)."""
    out = sys.stdout if stream is None else stream
    for diagnostic in diagnostics:
        print(diagnostic.message, file=out)

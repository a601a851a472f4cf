"""Exceptions raised while resolving the server configuration.

Every error here is fatal for startup; the CLI reports it on stderr
and exits non-zero.
"""

from __future__ import annotations


class ConfigError(Exception):
    """Base class for configuration resolution failures."""


class ConfigParseError(ConfigError):
    """A configuration source could not be parsed or typed.

    Parameters
    ----------
    detail:
        Human-readable description of the failure.
    source:
        The offending source (file path or environment variable name).
    field:
        Dotted path of the offending field, when known.

    """

    def __init__(self, detail: str, *, source: str, field: str | None = None) -> None:
        self.detail = detail
        self.source = source
        self.field = field
        where = f"{source}, field '{field}'" if field else source
        super().__init__(f"{detail} ({where})")


class KeyFileError(ConfigError):
    """The server key file could not be read, parsed or written."""

    def __init__(self, path: str, action: str, detail: str) -> None:
        self.path = path
        self.action = action
        self.detail = detail
        super().__init__(f"Could not {action} key file `{path}`: {detail}")

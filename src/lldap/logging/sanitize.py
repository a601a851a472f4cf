"""Secret redaction for log and console output.

Provides :func:`redact_secrets` which masks passwords and signing
secrets in configuration dumps before they are printed.
"""

from __future__ import annotations

from typing import Any

REDACTED = "[REDACTED]"

# Keys whose values are credentials, at any nesting level
SECRET_KEYS = frozenset({"jwt_secret", "ldap_user_pass", "password"})


def redact_secrets(data: Any) -> Any:  # noqa: ANN401
    """Recursively replace secret values in *data* with ``[REDACTED]``.

    Empty secrets are left as-is so an unset password stays visible.
    """
    if isinstance(data, dict):
        return {
            k: REDACTED if k in SECRET_KEYS and data[k] else redact_secrets(data[k])
            for k in data
        }

    if isinstance(data, (list, tuple)):
        return type(data)(redact_secrets(item) for item in data)

    return data

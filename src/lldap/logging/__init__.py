"""Logging subsystem for lldap.

Public API::

    from lldap.logging import configure_logging, redact_secrets

    configure_logging(verbose=config.verbose)
"""

from lldap.logging.sanitize import redact_secrets
from lldap.logging.setup import configure_logging

__all__ = ["configure_logging", "redact_secrets"]

"""Authentication primitives used by the lldap server."""

from lldap.auth.opaque import KeyPair, ServerSetup, ServerSetupDeserializeError

__all__ = ["KeyPair", "ServerSetup", "ServerSetupDeserializeError"]

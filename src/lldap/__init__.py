"""lldap - light LDAP server for authentication."""

__version__ = "0.4.0"

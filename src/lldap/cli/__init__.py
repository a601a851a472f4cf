"""Command-line interface for lldap."""

"""Allow ``python -m lldap``."""

from lldap.cli.main import main

main()

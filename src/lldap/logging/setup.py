"""Logging configuration for lldap.

Provides a human-readable console formatter and a one-call
``configure_logging`` that installs it on the ``lldap`` logger
hierarchy once the configuration has been resolved.
"""

from __future__ import annotations

import logging
import sys


class TextFormatter(logging.Formatter):
    """Human-readable formatter for console use."""

    _FMT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

    def __init__(self) -> None:
        super().__init__(fmt=self._FMT, datefmt="%Y-%m-%d %H:%M:%S")


def configure_logging(*, verbose: bool = False) -> logging.Logger:
    """Configure the ``lldap`` logger hierarchy.

    Replaces any bootstrap handlers with a single stderr handler.
    ``verbose`` lowers the level to DEBUG.

    Returns the ``lldap`` logger.
    """
    root = logging.getLogger("lldap")
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.handlers.clear()
    root.propagate = False

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(TextFormatter())
    root.addHandler(console)

    return root

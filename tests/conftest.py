"""Root conftest for the lldap test suite."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Make ``src/`` importable without installing the package
# ---------------------------------------------------------------------------
_SRC = str(Path(__file__).resolve().parent.parent / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)


# ---------------------------------------------------------------------------
# Isolation -- autouse so every test gets a fresh slate
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def isolated_workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run each test in its own directory with no ``LLDAP_*`` variables.

    The default key file path is relative, so a stray ``server_key``
    can only ever land in the test's temporary directory.
    """
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("LLDAP_"):
            monkeypatch.delenv(name)
    return tmp_path


@pytest.fixture(autouse=True)
def fresh_config():
    """Reset the configuration singleton before and after every test."""
    from lldap.config.lldap_config import reset

    reset()
    yield
    reset()


@pytest.fixture(autouse=True)
def restore_lldap_logger():
    """Undo ``configure_logging`` so caplog keeps seeing ``lldap`` records."""
    logger = logging.getLogger("lldap")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


@pytest.fixture()
def write_config(tmp_path: Path):
    """Return a callable writing TOML text to ``lldap_config.toml``."""

    def _write(text: str, name: str = "lldap_config.toml") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write

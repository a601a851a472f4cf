"""Load or create the OPAQUE server setup stored in the key file.

The key file holds the serialized :class:`~lldap.auth.opaque.ServerSetup`.
When it exists it is read and parsed; when it does not, a fresh setup
is generated and persisted so that later starts reuse the same keys.

Generation is not idempotent: each call against a missing path creates
an unrelated setup.  Callers must only invoke :func:`get_server_setup`
once the key file path is final.
"""

from __future__ import annotations

import contextlib
import logging
import os
import stat
from pathlib import Path

from lldap.auth.opaque import ServerSetup, ServerSetupDeserializeError
from lldap.config.errors import KeyFileError

log = logging.getLogger(__name__)

_KEY_FILE_MODE = 0o600


def get_server_setup(file_path: str) -> ServerSetup:
    """Return the server setup stored at *file_path*, creating it if absent.

    Raises
    ------
    KeyFileError
        If the file cannot be read, does not contain a valid setup, or
        a newly generated setup cannot be written.

    """
    path = Path(file_path)
    if path.exists():
        return _load(path)
    return _generate(path)


def _load(path: Path) -> ServerSetup:
    if not path.is_file():
        raise KeyFileError(str(path), "read", "not a regular file")
    try:
        data = path.read_bytes()
    except (OSError, ValueError) as exc:
        raise KeyFileError(str(path), "read", _reason(exc)) from exc

    try:
        setup = ServerSetup.deserialize(data)
    except ServerSetupDeserializeError as exc:
        raise KeyFileError(str(path), "deserialize", str(exc)) from exc

    _check_key_permissions(path)
    log.debug("Loaded server setup from %s", path)
    return setup


def _generate(path: Path) -> ServerSetup:
    setup = ServerSetup.generate()
    data = setup.serialize()

    # O_EXCL: never clobber a key file that appeared in the meantime.
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, _KEY_FILE_MODE)
    except (OSError, ValueError) as exc:
        raise KeyFileError(
            str(path),
            "write",
            _reason(exc),
        ) from exc

    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
    except OSError as exc:
        with contextlib.suppress(OSError):
            path.unlink()
        raise KeyFileError(
            str(path),
            "write",
            _reason(exc),
        ) from exc

    log.warning("Generated a new server setup and saved it to %s", path)
    return setup


def _check_key_permissions(path: Path) -> None:
    """Warn if the key file is readable or writable by group or others."""
    try:
        mode = path.stat().st_mode
    except OSError:
        return  # best-effort
    if mode & (stat.S_IRGRP | stat.S_IROTH | stat.S_IWGRP | stat.S_IWOTH):
        log.warning(
            "Key file '%s' has overly permissive permissions (mode=%o). "
            "Recommend chmod 600.",
            path,
            stat.S_IMODE(mode),
        )


def _reason(exc: OSError | ValueError) -> str:
    # ValueError: the path itself is unusable (e.g. an embedded NUL byte).
    return getattr(exc, "strerror", None) or str(exc)

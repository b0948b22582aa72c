"""Shared helpers: config directory resolution and atomic file writes."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

_DEFAULT_DIR_NAME = ".podstart"


def podstart_dir() -> Path:
    """Resolve the podstart config directory.

    ``$PODSTART_DIR`` wins; otherwise ``~/.podstart``.
    """
    env_dir = os.environ.get("PODSTART_DIR", "").strip()
    if env_dir:
        return Path(os.path.expanduser(env_dir))
    return Path.home() / _DEFAULT_DIR_NAME


def atomic_write_text(path: Path, content: str, mode: int | None = None) -> None:
    """Write *content* to *path* via a temp file + rename.

    Readers never observe a half-written file, and an interrupted write
    leaves the previous content in place.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        if mode is not None:
            tmp_path.chmod(mode)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def write_if_changed(path: Path, content: str) -> bool:
    """Atomically write *content* unless the file already holds it.

    Returns:
        True if the file was (re)written, False if it was already current.
    """
    try:
        if path.read_text(encoding="utf-8") == content:
            return False
    except (FileNotFoundError, UnicodeDecodeError):
        pass
    atomic_write_text(path, content)
    return True

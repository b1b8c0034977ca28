"""Filesystem helpers."""

from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path


def ensure_parent(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def atomic_write_text(path: Path, data: str, *, private: bool = False) -> None:
    """Write ``data`` next to ``path`` and swap it into place.

    An existing file keeps its permission bits unless ``private`` is set.
    """
    ensure_parent(path)
    previous_mode = stat.S_IMODE(path.stat().st_mode) if path.exists() else None
    with tempfile.NamedTemporaryFile(
        "w", delete=False, dir=str(path.parent), encoding="utf-8"
    ) as tmp:
        tmp.write(data)
        tmp_path = Path(tmp.name)
    tmp_path.replace(path)
    if os.name == "nt":
        return
    if private:  # state holds API keys
        os.chmod(path, 0o600)
    elif previous_mode is not None:
        os.chmod(path, previous_mode)

"""Filesystem-backed note storage rooted at a single folder."""

from __future__ import annotations

from pathlib import Path, PurePosixPath

from ..utils.file_helper import atomic_write_text


class Vault:
    """Resolves vault-relative paths and reads/writes notes beneath ``root``.

    Paths handed out by the vault are POSIX-style and relative to ``root``;
    they are the keys used for the post mapping table.
    """

    def __init__(self, root: Path) -> None:
        self._root = root.resolve()

    def relative_path(self, path: Path | str) -> str:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self._root / candidate
        try:
            relative = candidate.resolve().relative_to(self._root)
        except ValueError as exc:
            raise ValueError(f"{path} is outside the vault at {self._root}") from exc
        return relative.as_posix()

    def absolute(self, vault_path: str) -> Path:
        return self._root.joinpath(*PurePosixPath(vault_path).parts)

    def _contained(self, vault_path: str) -> Path | None:
        normalized = vault_path.strip().lstrip("/")
        if not normalized:
            return None
        candidate = self.absolute(normalized)
        try:
            candidate.resolve().relative_to(self._root)
        except ValueError:
            return None
        return candidate

    def exists(self, vault_path: str) -> bool:
        """True when anything, file or folder, sits at ``vault_path`` inside the vault."""
        candidate = self._contained(vault_path)
        return candidate is not None and candidate.exists()

    def get_file(self, vault_path: str) -> Path | None:
        """Return the file at ``vault_path`` when it exists and is a regular file."""
        candidate = self._contained(vault_path)
        return candidate if candidate is not None and candidate.is_file() else None

    def read_text(self, vault_path: str) -> str:
        return self.absolute(vault_path).read_text(encoding="utf-8")

    def read_bytes(self, vault_path: str) -> bytes:
        return self.absolute(vault_path).read_bytes()

    def write_text(self, vault_path: str, data: str) -> None:
        atomic_write_text(self.absolute(vault_path), data)

    def size(self, vault_path: str) -> int:
        return self.absolute(vault_path).stat().st_size


__all__ = ["Vault"]

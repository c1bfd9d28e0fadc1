"""File-system view of a vault."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Union

from vaultsync.models import VaultStat
from vaultsync.util.time import epoch_ms

logger = logging.getLogger(__name__)

VAULT_TRASH_DIR: str = ".trash"


class Vault:
    """
    A directory tree addressed by vault-relative POSIX paths ("notes/a.md").

    The vault itself has no notion of sync; it is the local side the manager
    reads from and writes to.
    """

    def __init__(self, root: Union[str, os.PathLike[str]]) -> None:
        self.root = Path(root)

    def _abs(self, path: str) -> Path:
        return self.root.joinpath(*path.split("/"))

    def list_files(self) -> list[str]:
        """All regular files, as sorted relative POSIX paths."""
        if not self.root.is_dir():
            return []
        files = [
            p.relative_to(self.root).as_posix()
            for p in self.root.rglob("*")
            if p.is_file()
        ]
        files.sort()
        return files

    def exists(self, path: str) -> bool:
        return self._abs(path).exists()

    def stat(self, path: str) -> VaultStat:
        st = self._abs(path).stat()
        return VaultStat(mtime=epoch_ms(st.st_mtime), size=st.st_size)

    def read_text(self, path: str) -> str:
        # newline="": line endings stay byte-exact
        with open(self._abs(path), encoding="utf-8", newline="") as fh:
            return fh.read()

    def read_bytes(self, path: str) -> bytes:
        return self._abs(path).read_bytes()

    def write_text(self, path: str, content: str) -> None:
        target = self._abs(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)

    def write_bytes(self, path: str, content: bytes) -> None:
        target = self._abs(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)

    def mkdir(self, path: str) -> None:
        self._abs(path).mkdir(parents=True, exist_ok=True)

    def trash(self, path: str) -> str:
        """
        Move a file into the vault's `.trash/` folder.

        Returns:
            The vault-relative path the file was moved to. A numeric suffix is
            added when that name is already taken.
        """
        source = self._abs(path)
        base = f"{VAULT_TRASH_DIR}/{path}"
        dest_rel = base
        n = 1
        while self._abs(dest_rel).exists():
            stem, dot, ext = base.rpartition(".")
            dest_rel = f"{stem} {n}.{ext}" if dot and "/" not in ext else f"{base} {n}"
            n += 1

        dest = self._abs(dest_rel)
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source), str(dest))
        logger.debug("Moved %s to %s", path, dest_rel)
        return dest_rel

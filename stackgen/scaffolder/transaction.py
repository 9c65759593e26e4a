"""File-operation ledger with rollback for one generation run.

Writers call ``before_write`` ahead of touching a file and ``record_dir``
for directories they bring into existence.  On failure ``rollback`` removes
what the run created and puts overwritten files back; on success ``commit``
forgets the ledger.
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path
from typing import Any

from stackgen.utils import console, print_warning


class FileTransaction:
    """Tracks created files, created directories and pre-write snapshots.

    Snapshots are kept in memory, so no ``.backup`` files are left in the
    project.  Only the first snapshot of a path counts: a file written twice
    in one run is restored to what it held before the run.
    """

    def __init__(self) -> None:
        self.created_files: list[Path] = []
        self.created_dirs: list[Path] = []
        self.snapshots: dict[Path, bytes] = {}

    # -- Recording -------------------------------------------------------

    def before_write(self, path: str | Path) -> None:
        """Record *path* ahead of a write, with any parent directories the
        write will create."""
        target = Path(path)
        if target in self.snapshots or target in self.created_files:
            return
        if target.is_file():
            self.snapshots[target] = target.read_bytes()
            return

        missing: list[Path] = []
        parent = target.parent
        while not parent.exists() and parent != parent.parent:
            missing.append(parent)
            parent = parent.parent
        for directory in reversed(missing):
            self.record_dir(directory)
        self.created_files.append(target)

    def record_dir(self, path: str | Path) -> None:
        """Record a directory this run is about to create.

        A directory that already exists is ignored; rollback never removes
        anything the run did not create.
        """
        target = Path(path)
        if not target.exists() and target not in self.created_dirs:
            self.created_dirs.append(target)

    # -- Outcome ---------------------------------------------------------

    def commit(self) -> None:
        self.created_files.clear()
        self.created_dirs.clear()
        self.snapshots.clear()

    async def rollback(self, verbose: bool = True) -> dict[str, Any]:
        """Undo the recorded work, newest first.

        Individual failures are collected rather than raised so one stuck
        path does not stop the rest of the rollback.

        Returns:
            ``{"removed", "restored", "errors"}``.
        """
        summary = await asyncio.to_thread(self._undo)
        if verbose:
            console.print(
                f"  [yellow]Rolled back:[/yellow] {summary['removed']} removed, "
                f"{summary['restored']} restored"
            )
            for error in summary["errors"]:
                print_warning(f"  {error}")
        self.commit()
        return summary

    def _undo(self) -> dict[str, Any]:
        removed = restored = 0
        errors: list[str] = []

        for path in reversed(self.created_files):
            try:
                if path.is_file():
                    path.unlink()
                    removed += 1
            except OSError as exc:
                errors.append(f"Failed to remove {path}: {exc}")

        for path, content in self.snapshots.items():
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(content)
                restored += 1
            except OSError as exc:
                errors.append(f"Failed to restore {path}: {exc}")

        for path in reversed(self.created_dirs):
            if not path.exists():
                continue
            try:
                shutil.rmtree(path)
                removed += 1
            except OSError as exc:
                errors.append(f"Failed to remove directory {path}: {exc}")

        return {"removed": removed, "restored": restored, "errors": errors}

    def get_summary(self) -> dict[str, int]:
        return {
            "created_files": len(self.created_files),
            "created_dirs": len(self.created_dirs),
            "modified_files": len(self.snapshots),
        }

from __future__ import annotations

import os
from pathlib import Path

from mirrorsync import fs_attributes
from mirrorsync.reporting import RunContext


class ReplicaCleaner:
    """Empties an existing replica root before it is mirrored again."""

    def __init__(self, context: RunContext) -> None:
        self._ctx = context

    def clean(self, replica_root: Path) -> None:
        entries = self._enumerate(replica_root)

        # Removing a child needs a writable parent, so every flag is cleared
        # top-down before anything is deleted bottom-up.
        for path in [replica_root, *(entry_path for entry_path, _ in entries)]:
            # chmod follows links and would unlock whatever they point at.
            if path.is_symlink():
                continue
            try:
                fs_attributes.clear_read_only(path)
            except OSError as exc:
                self._ctx.logger.debug("Could not clear read-only on %s: %s", path, exc)

        for path, is_dir in reversed(entries):
            if self._delete(path, is_dir):
                self._ctx.stats.entries_deleted += 1

    def _enumerate(self, replica_root: Path) -> list[tuple[Path, bool]]:
        entries: list[tuple[Path, bool]] = []

        def on_error(exc: OSError) -> None:
            self._ctx.warning("Could not list replica directory %s: %s", exc.filename, exc.strerror)

        for root_str, dirs, files in os.walk(replica_root, topdown=True, onerror=on_error):
            root = Path(root_str)
            for dir_name in dirs:
                dir_path = root / dir_name
                # A symlink to a directory is removed as a link, never descended.
                entries.append((dir_path, not dir_path.is_symlink()))
            for file_name in files:
                entries.append((root / file_name, False))
        return entries

    def _delete(self, path: Path, is_dir: bool) -> bool:
        delay = self._ctx.config.cleanup_retry_delay_seconds
        try:
            self._remove(path, is_dir)
        except FileNotFoundError:
            return False
        except OSError as exc:
            self._ctx.info("Delete of %s failed (%s), retrying in %ss", path, exc, delay)
            self._ctx.sleep(delay)
            try:
                self._remove(path, is_dir)
            except FileNotFoundError:
                return False
            except OSError as retry_exc:
                self._ctx.warning("Could not delete %s: %s", path, retry_exc)
                return False

        self._ctx.info("Deleted: %s", path)
        return True

    @staticmethod
    def _remove(path: Path, is_dir: bool) -> None:
        if is_dir:
            path.rmdir()
        else:
            path.unlink()

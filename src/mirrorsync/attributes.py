from __future__ import annotations

from pathlib import Path

from mirrorsync import fs_attributes
from mirrorsync.models import FileSystemEntry
from mirrorsync.reporting import RunContext


class AttributeReplicator:
    """Copies timestamps, read-only state and optionally the ACL onto a replica entry.

    Directories also get the source's attribute bits. Files only get the
    read-only flag and timestamps. Failures are counted as warnings and
    never propagate.
    """

    def __init__(self, context: RunContext) -> None:
        self._ctx = context

    def replicate(self, source: FileSystemEntry | Path, target: Path) -> bool:
        source_path = source.path if isinstance(source, FileSystemEntry) else source
        try:
            entry = source if isinstance(source, FileSystemEntry) else FileSystemEntry.capture(source)
            # A read-only target rejects attribute and timestamp writes.
            with fs_attributes.read_only_cleared(target, reapply=entry.read_only):
                if entry.is_dir:
                    fs_attributes.apply_attribute_bits(target, entry.attributes)
                fs_attributes.set_timestamps(
                    target,
                    accessed_ns=entry.accessed_ns,
                    modified_ns=entry.modified_ns,
                    created_ns=entry.created_ns,
                )
                if self._ctx.config.ntfs_permissions:
                    self._replicate_permissions(entry.path, target)
        except Exception as exc:
            self._ctx.warning("Attributes not replicated %s -> %s: %s", source_path, target, exc)
            return False

        self._ctx.info("Attributes replicated: %s", target)
        return True

    def _replicate_permissions(self, source: Path, target: Path) -> bool:
        try:
            descriptor = fs_attributes.read_security_descriptor(source)
            fs_attributes.apply_security_descriptor(target, descriptor)
        except Exception as exc:
            self._ctx.warning("Permissions not replicated %s -> %s: %s", source, target, exc)
            return False
        return True

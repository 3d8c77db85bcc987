from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import os
from pathlib import Path

from mirrorsync import fs_attributes


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


class CopyState(str, Enum):
    PENDING = "pending"
    COPYING = "copying"
    VERIFIED = "verified"
    HASH_MISMATCH = "hash-mismatch"
    COPY_ERROR = "copy-error"
    ABANDONED = "abandoned"


@dataclass(slots=True, frozen=True)
class FileSystemEntry:
    path: Path
    kind: EntryKind
    created_ns: int | None
    modified_ns: int
    accessed_ns: int
    read_only: bool
    attributes: int

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    @classmethod
    def capture(cls, path: Path) -> "FileSystemEntry":
        st = os.stat(path)
        kind = EntryKind.DIRECTORY if fs_attributes.is_dir_stat(st) else EntryKind.FILE
        return cls(
            path=path,
            kind=kind,
            created_ns=fs_attributes.creation_time_ns(st),
            modified_ns=st.st_mtime_ns,
            accessed_ns=st.st_atime_ns,
            read_only=fs_attributes.stat_is_read_only(st),
            attributes=fs_attributes.attribute_bits(st),
        )


@dataclass(slots=True, frozen=True)
class PathPair:
    source: Path
    target: Path


@dataclass(slots=True)
class RunCounters:
    errors: int = 0
    warnings: int = 0

    @property
    def clean(self) -> bool:
        return self.errors == 0 and self.warnings == 0


@dataclass(slots=True)
class RetryState:
    attempt: int = 0
    succeeded: bool = False
    state: CopyState = CopyState.PENDING


@dataclass(slots=True)
class MirrorStats:
    files_copied: int = 0
    files_failed: int = 0
    directories_created: int = 0
    entries_deleted: int = 0
    entries_skipped: int = 0

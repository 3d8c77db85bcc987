from __future__ import annotations

from pathlib import Path


EXIT_SAME_PATH = 100
EXIT_SOURCE_MISSING = 101
EXIT_REPLICA_CREATE_FAILED = 102


class SyncSetupError(Exception):
    """Raised before mirroring starts when the run cannot proceed at all."""

    exit_code = 1


class SamePathError(SyncSetupError):
    exit_code = EXIT_SAME_PATH

    def __init__(self, path: Path) -> None:
        super().__init__(f"Source and replica are the same path: {path}")
        self.path = path


class SourceMissingError(SyncSetupError):
    exit_code = EXIT_SOURCE_MISSING

    def __init__(self, path: Path) -> None:
        super().__init__(f"Source directory does not exist or is not a directory: {path}")
        self.path = path


class ReplicaCreateError(SyncSetupError):
    exit_code = EXIT_REPLICA_CREATE_FAILED

    def __init__(self, path: Path, reason: object) -> None:
        super().__init__(f"Replica directory could not be created: {path} ({reason})")
        self.path = path


class SourceInsideReplicaError(SyncSetupError):
    exit_code = EXIT_SAME_PATH

    def __init__(self, source: Path, replica: Path) -> None:
        super().__init__(f"Source {source} is inside replica {replica}; cleaning would delete it")
        self.path = source
        self.replica = replica

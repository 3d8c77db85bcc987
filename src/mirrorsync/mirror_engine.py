from __future__ import annotations

import os
from pathlib import Path

from mirrorsync.attributes import AttributeReplicator
from mirrorsync.cleaner import ReplicaCleaner
from mirrorsync.config import SyncConfig
from mirrorsync.copier import CopyVerifier
from mirrorsync.errors import ReplicaCreateError, SamePathError, SourceInsideReplicaError, SourceMissingError
from mirrorsync.ignore_engine import IgnoreEngine, build_ignore_engine
from mirrorsync.models import PathPair
from mirrorsync.reporting import RunContext


def _normalized(path: Path) -> str:
    return os.path.normcase(str(path.resolve()))


def validate_paths(source_root: Path, replica_root: Path) -> None:
    if _normalized(source_root) == _normalized(replica_root):
        raise SamePathError(source_root)

    if Path(_normalized(source_root)).is_relative_to(Path(_normalized(replica_root))):
        raise SourceInsideReplicaError(source_root, replica_root)

    if not source_root.exists() or not source_root.is_dir():
        raise SourceMissingError(source_root)


def prepare_replica(replica_root: Path, context: RunContext) -> None:
    if replica_root.is_dir():
        context.info("Cleaning replica: %s", replica_root)
        ReplicaCleaner(context).clean(replica_root)
        return

    try:
        replica_root.mkdir(parents=True)
    except OSError as exc:
        raise ReplicaCreateError(replica_root, exc) from exc
    context.info("Created replica: %s", replica_root)


class TreeMirror:
    """Rebuilds the source tree under the replica root.

    Files are copied and verified as they are found. Directory attributes
    are collected during the walk and applied only after every file is in
    place, since writing into a directory changes its timestamps.
    """

    def __init__(
        self,
        context: RunContext,
        copier: CopyVerifier,
        replicator: AttributeReplicator,
        ignore_engine: IgnoreEngine | None = None,
    ) -> None:
        self._ctx = context
        self._copier = copier
        self._replicator = replicator
        self._ignore = ignore_engine or IgnoreEngine([])

    def run(self, source_root: Path, replica_root: Path) -> list[PathPair]:
        directories = self.copy_tree(source_root, replica_root)
        self.apply_directory_attributes(directories)
        return directories

    def copy_tree(self, source_root: Path, replica_root: Path) -> list[PathPair]:
        directories: list[PathPair] = []
        nested_replica = self._nested_replica(source_root, replica_root)

        def on_error(exc: OSError) -> None:
            self._ctx.error("Could not read source directory %s: %s", exc.filename, exc.strerror)

        for root_str, dirs, files in os.walk(source_root, topdown=True, onerror=on_error):
            root = Path(root_str)

            kept_dirs: list[str] = []
            for dir_name in sorted(dirs):
                source_dir = root / dir_name
                try:
                    if nested_replica is not None and _normalized(source_dir) == nested_replica:
                        continue
                    rel_path = source_dir.relative_to(source_root)
                    if self._ignore.is_ignored(rel_path, is_dir=True):
                        self._ctx.stats.entries_skipped += 1
                        continue

                    target_dir = replica_root / rel_path
                    if not target_dir.is_dir():
                        target_dir.mkdir()
                        self._ctx.stats.directories_created += 1
                        self._ctx.info("Created directory: %s", target_dir)
                    directories.append(PathPair(source=source_dir, target=target_dir))
                    kept_dirs.append(dir_name)
                except Exception as exc:
                    self._ctx.error("Failed to mirror directory %s: %s", source_dir, exc)
            dirs[:] = kept_dirs

            for file_name in sorted(files):
                source_file = root / file_name
                try:
                    rel_path = source_file.relative_to(source_root)
                    if self._ignore.is_ignored(rel_path):
                        self._ctx.stats.entries_skipped += 1
                        continue
                    self._copier.copy(source_file, replica_root / rel_path)
                except Exception as exc:
                    self._ctx.error("Failed to mirror file %s: %s", source_file, exc)

        return directories

    def apply_directory_attributes(self, directories: list[PathPair]) -> None:
        for pair in directories:
            self._replicator.replicate(pair.source, pair.target)

    @staticmethod
    def _nested_replica(source_root: Path, replica_root: Path) -> str | None:
        replica = Path(_normalized(replica_root))
        if replica.is_relative_to(Path(_normalized(source_root))):
            return str(replica)
        return None


def synchronize(config: SyncConfig, context: RunContext | None = None) -> RunContext:
    """Make ``config.replica`` an exact copy of ``config.source``.

    Raises a :class:`~mirrorsync.errors.SyncSetupError` subclass when the
    run cannot start. Everything after that is reported through the
    context's counters instead of exceptions.
    """
    ctx = context or RunContext(config=config)

    validate_paths(config.source, config.replica)
    prepare_replica(config.replica, ctx)

    replicator = AttributeReplicator(ctx)
    mirror = TreeMirror(
        ctx,
        copier=CopyVerifier(ctx, replicator),
        replicator=replicator,
        ignore_engine=build_ignore_engine(config.excludes),
    )
    ctx.info("Mirroring %s -> %s", config.source, config.replica)
    mirror.run(config.source, config.replica)
    return ctx

from __future__ import annotations

import os
from pathlib import Path
import shutil
import tempfile
from typing import Callable

from mirrorsync import fs_attributes
from mirrorsync.attributes import AttributeReplicator
from mirrorsync.hashing import hash_file
from mirrorsync.models import CopyState, RetryState
from mirrorsync.reporting import RunContext


CopyFunc = Callable[[Path, Path], None]
HashFunc = Callable[[Path], str]


def safe_copy(source_file: Path, destination_file: Path) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=str(destination_file.parent), prefix=".mirrorsync-", suffix=".tmp")
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        shutil.copyfile(source_file, tmp_path)
        tmp_path.replace(destination_file)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    # Mode and times are copied after the rename so a read-only source never
    # leaves behind a temp file that cannot be deleted.
    shutil.copystat(source_file, destination_file)


class CopyVerifier:
    """Copies one file and proves the copy by comparing content hashes.

    Each file gets up to ``max_retries`` attempts. A hash mismatch is a
    warning, a failed copy or hash is an error, and both back off for a
    random number of seconds before the next attempt. No backoff follows
    the final attempt, since nothing is retried after it. A file that never
    verifies is abandoned with one final error; the caller moves on.
    """

    def __init__(
        self,
        context: RunContext,
        replicator: AttributeReplicator,
        copy_file: CopyFunc = safe_copy,
        hasher: HashFunc = hash_file,
    ) -> None:
        self._ctx = context
        self._replicator = replicator
        self._copy_file = copy_file
        self._hasher = hasher

    def copy(self, source: Path, target: Path) -> RetryState:
        max_retries = self._ctx.config.max_retries
        retry = RetryState()

        for attempt in range(max_retries):
            retry.attempt = attempt
            retry.state = CopyState.COPYING
            has_next = attempt + 1 < max_retries

            try:
                self._prepare_target(target)
                self._copy_file(source, target)
                source_hash = self._hasher(source)
                target_hash = self._hasher(target)
            except Exception as exc:
                retry.state = CopyState.COPY_ERROR
                self._ctx.error("Copy attempt %s/%s failed for %s: %s", attempt + 1, max_retries, source, exc)
                if has_next:
                    self._ctx.backoff()
                retry.state = CopyState.PENDING
                continue

            if source_hash == target_hash:
                retry.state = CopyState.VERIFIED
                retry.succeeded = True
                self._ctx.stats.files_copied += 1
                self._ctx.success("Copied and verified: %s", target)
                self._replicator.replicate(source, target)
                return retry

            retry.state = CopyState.HASH_MISMATCH
            if has_next:
                self._ctx.backoff()
            self._discard(target)
            self._ctx.warning(
                "Hash mismatch for %s (attempt %s/%s): %s != %s",
                target,
                attempt + 1,
                max_retries,
                source_hash,
                target_hash,
            )
            retry.state = CopyState.PENDING

        retry.state = CopyState.ABANDONED
        self._ctx.stats.files_failed += 1
        self._ctx.error("FAILED after %s attempts: %s", max_retries, source)
        return retry

    @staticmethod
    def _prepare_target(target: Path) -> None:
        if target.exists():
            fs_attributes.clear_read_only(target)

    def _discard(self, target: Path) -> None:
        try:
            if target.exists():
                fs_attributes.clear_read_only(target)
            target.unlink(missing_ok=True)
        except OSError as exc:
            self._ctx.warning("Could not remove unverified copy %s: %s", target, exc)

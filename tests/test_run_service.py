from pathlib import Path
import shutil

from mirrorsync.config import SyncConfig
from mirrorsync.errors import EXIT_REPLICA_CREATE_FAILED, EXIT_SAME_PATH, EXIT_SOURCE_MISSING
from mirrorsync.run_service import (
    EXIT_COMPLETED_WITH_ISSUES,
    EXIT_GENERAL_ERROR,
    EXIT_INVALID_CONFIG,
    EXIT_SUCCESS,
    run_jobs,
    run_sync,
)


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _no_sleep(_: float) -> None:
    return None


def test_run_sync_succeeds_with_clean_counters(tmp_path: Path) -> None:
    source = tmp_path / "source"
    replica = tmp_path / "replica"
    _write(source / "a.txt", "hello")
    _write(source / "sub" / "b.txt", "world")
    replica.mkdir()

    exit_code, summary = run_sync(SyncConfig(source=source, replica=replica, max_retries=3), sleep=_no_sleep)

    assert exit_code == EXIT_SUCCESS
    assert summary.errors == 0
    assert summary.warnings == 0
    assert summary.files_copied == 2
    assert (replica / "sub" / "b.txt").read_text(encoding="utf-8") == "world"


def test_identical_paths_are_fatal_without_side_effects(tmp_path: Path) -> None:
    folder = tmp_path / "folder"
    _write(folder / "precious.txt", "keep me")

    exit_code, summary = run_sync(SyncConfig(source=folder, replica=folder), sleep=_no_sleep)

    assert exit_code == EXIT_SAME_PATH
    assert summary.fatal is True
    assert (folder / "precious.txt").read_text(encoding="utf-8") == "keep me"


def test_missing_source_is_fatal(tmp_path: Path) -> None:
    replica = tmp_path / "replica"

    exit_code, summary = run_sync(SyncConfig(source=tmp_path / "missing", replica=replica), sleep=_no_sleep)

    assert exit_code == EXIT_SOURCE_MISSING
    assert summary.fatal is True
    assert not replica.exists()


def test_replica_creation_failure_is_fatal(tmp_path: Path) -> None:
    source = tmp_path / "source"
    _write(source / "a.txt", "hello")
    blocker = tmp_path / "blocker"
    blocker.write_text("file in the way", encoding="utf-8")

    exit_code, _ = run_sync(SyncConfig(source=source, replica=blocker / "replica"), sleep=_no_sleep)

    assert exit_code == EXIT_REPLICA_CREATE_FAILED


def test_unreadable_file_completes_with_issues(tmp_path: Path, monkeypatch) -> None:
    source = tmp_path / "source"
    replica = tmp_path / "replica"
    _write(source / "good.txt", "fine")
    _write(source / "unreadable.txt", "secret")
    real_copyfile = shutil.copyfile

    def failing_copyfile(src, dst, *args, **kwargs):
        if Path(src).name == "unreadable.txt":
            raise PermissionError(f"Permission denied: {src}")
        return real_copyfile(src, dst, *args, **kwargs)

    monkeypatch.setattr(shutil, "copyfile", failing_copyfile)
    sleeps: list[float] = []

    exit_code, summary = run_sync(SyncConfig(source=source, replica=replica, max_retries=3), sleep=sleeps.append)

    assert exit_code == EXIT_COMPLETED_WITH_ISSUES
    assert summary.errors >= 4
    assert summary.files_failed == 1
    assert summary.files_copied == 1
    assert not (replica / "unreadable.txt").exists()
    assert list(replica.glob(".mirrorsync-*")) == []
    assert (replica / "good.txt").read_text(encoding="utf-8") == "fine"
    assert len(sleeps) == 2


def test_unexpected_failure_maps_to_general_error(tmp_path: Path, monkeypatch) -> None:
    source = tmp_path / "source"
    source.mkdir()

    def explode(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr("mirrorsync.run_service.synchronize", explode)

    exit_code, summary = run_sync(SyncConfig(source=source, replica=tmp_path / "replica"), sleep=_no_sleep)

    assert exit_code == EXIT_GENERAL_ERROR
    assert summary.fatal is True


def test_run_jobs_runs_every_job_and_reports_worst_exit_code(tmp_path: Path) -> None:
    good_source = tmp_path / "good"
    _write(good_source / "a.txt", "1")

    config_file = tmp_path / "cfg.yaml"
    config_file.write_text(
        f"""
jobs:
  - name: good
    source: {good_source.as_posix()}
    replica: {(tmp_path / 'good-replica').as_posix()}
  - name: missing
    source: {(tmp_path / 'missing').as_posix()}
    replica: {(tmp_path / 'missing-replica').as_posix()}
""".strip(),
        encoding="utf-8",
    )

    exit_code, results = run_jobs(config_file, sleep=_no_sleep)

    assert exit_code == EXIT_SOURCE_MISSING
    assert [(result.name, result.exit_code) for result in results] == [
        ("good", EXIT_SUCCESS),
        ("missing", EXIT_SOURCE_MISSING),
    ]
    assert (tmp_path / "good-replica" / "a.txt").exists()


def test_run_jobs_rejects_invalid_config(tmp_path: Path) -> None:
    config_file = tmp_path / "cfg.yaml"
    config_file.write_text("jobs: []\n", encoding="utf-8")

    exit_code, results = run_jobs(config_file, sleep=_no_sleep)

    assert exit_code == EXIT_INVALID_CONFIG
    assert results == []


def test_source_inside_replica_is_fatal_and_source_survives(tmp_path: Path) -> None:
    replica = tmp_path / "replica"
    source = replica / "data"
    _write(source / "precious.txt", "keep me")
    _write(replica / "stray.txt", "untouched")

    exit_code, summary = run_sync(SyncConfig(source=source, replica=replica), sleep=_no_sleep)

    assert exit_code == EXIT_SAME_PATH
    assert summary.fatal is True
    assert (source / "precious.txt").read_text(encoding="utf-8") == "keep me"
    assert (replica / "stray.txt").exists()

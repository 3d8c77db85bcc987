from pathlib import Path

import pytest

from mirrorsync.config import DEFAULT_MAX_RETRIES, AppConfig, JobConfig, SyncConfig, get_job, load_config


def test_load_config_reads_yaml_jobs_with_defaults(tmp_path: Path) -> None:
    config_file = tmp_path / "mirror-sync.yaml"
    config_file.write_text(
        """
jobs:
  - name: documents
    source: D:/Data/Documents
    replica: //nas/backup/Documents
    maxRetries: 3
    ntfsPermissions: true
    excludes: ["*.tmp", "Thumbs.db"]
  - name: photos
    source: D:/Data/Photos
    replica: E:/Mirror/Photos
""".strip(),
        encoding="utf-8",
    )

    loaded = load_config(config_file)

    assert [job.name for job in loaded.jobs] == ["documents", "photos"]
    documents = loaded.jobs[0].sync
    assert documents.source == Path("D:/Data/Documents")
    assert documents.max_retries == 3
    assert documents.ntfs_permissions is True
    assert documents.excludes == ["*.tmp", "Thumbs.db"]

    photos = loaded.jobs[1].sync
    assert photos.max_retries == DEFAULT_MAX_RETRIES
    assert photos.ntfs_permissions is False
    assert photos.verbose_log is False
    assert photos.excludes == []


def test_load_config_reads_json(tmp_path: Path) -> None:
    config_file = tmp_path / "mirror-sync.json"
    config_file.write_text(
        '{"jobs": [{"name": "j", "source": "C:/src", "replica": "C:/dst", "verboseLog": true}]}',
        encoding="utf-8",
    )

    loaded = load_config(config_file)

    assert loaded.jobs[0].sync.replica == Path("C:/dst")
    assert loaded.jobs[0].sync.verbose_log is True


@pytest.mark.parametrize(
    ("job_body", "message"),
    [
        ("    source: C:/src\n    replica: C:/dst\n    maxRetries: 0", "maxRetries must be a positive integer"),
        ("    source: C:/src\n    replica: C:/dst\n    ntfsPermissions: yes-please", "ntfsPermissions must be a boolean"),
        ("    replica: C:/dst", "source must be a non-empty string path"),
        ("    source: C:/src\n    replica: C:/dst\n    excludes: '*.tmp'", "excludes must be a list of strings"),
    ],
)
def test_load_config_rejects_invalid_fields(tmp_path: Path, job_body: str, message: str) -> None:
    config_file = tmp_path / "cfg.yaml"
    config_file.write_text(f"jobs:\n  - name: j\n{job_body}\n", encoding="utf-8")

    with pytest.raises(ValueError, match=message):
        load_config(config_file)


def test_load_config_rejects_duplicate_job_names(tmp_path: Path) -> None:
    config_file = tmp_path / "cfg.yaml"
    config_file.write_text(
        """
jobs:
  - name: j
    source: C:/a
    replica: C:/b
  - name: j
    source: C:/c
    replica: C:/d
""".strip(),
        encoding="utf-8",
    )

    with pytest.raises(ValueError, match="Duplicate job name: j"):
        load_config(config_file)


def test_get_job_filters_by_name() -> None:
    config = AppConfig(
        jobs=[
            JobConfig(name="a", sync=SyncConfig(source=Path("a"), replica=Path("a2"))),
            JobConfig(name="b", sync=SyncConfig(source=Path("b"), replica=Path("b2"))),
        ]
    )

    assert [job.name for job in get_job(config, "b")] == ["b"]
    assert len(get_job(config, None)) == 2
    with pytest.raises(ValueError, match="No job named 'c' found"):
        get_job(config, "c")


def test_sync_config_rejects_non_positive_retries() -> None:
    with pytest.raises(ValueError):
        SyncConfig(source=Path("a"), replica=Path("b"), max_retries=0)

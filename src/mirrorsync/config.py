from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import json
import yaml


DEFAULT_MAX_RETRIES = 5
BACKOFF_MIN_SECONDS = 1
BACKOFF_MAX_SECONDS = 3
CLEANUP_RETRY_DELAY_SECONDS = 2


@dataclass(slots=True)
class SyncConfig:
    source: Path
    replica: Path
    max_retries: int = DEFAULT_MAX_RETRIES
    ntfs_permissions: bool = False
    verbose_log: bool = False
    excludes: list[str] = field(default_factory=list)
    backoff_min_seconds: int = BACKOFF_MIN_SECONDS
    backoff_max_seconds: int = BACKOFF_MAX_SECONDS
    cleanup_retry_delay_seconds: float = CLEANUP_RETRY_DELAY_SECONDS

    def __post_init__(self) -> None:
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int) or self.max_retries < 1:
            raise ValueError(f"max_retries must be a positive integer, got {self.max_retries!r}")
        if self.backoff_min_seconds > self.backoff_max_seconds:
            raise ValueError("backoff_min_seconds must not exceed backoff_max_seconds")


@dataclass(slots=True)
class JobConfig:
    name: str
    sync: SyncConfig


@dataclass(slots=True)
class AppConfig:
    jobs: list[JobConfig]


def _as_path(value: Any, field_name: str) -> Path:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a non-empty string path")
    return Path(value).expanduser()


def _as_bool(value: Any, field_name: str, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    raise ValueError(f"{field_name} must be a boolean")


def _as_positive_int(value: Any, field_name: str, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"{field_name} must be a positive integer")
    return value


def _as_list_of_strings(value: Any, field_name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or any(not isinstance(item, str) for item in value):
        raise ValueError(f"{field_name} must be a list of strings")
    return [item for item in value if item.strip()]


def _load_raw_config(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise ValueError(f"Config file does not exist: {config_path}")

    suffix = config_path.suffix.lower()
    text = config_path.read_text(encoding="utf-8")
    if suffix in {".yml", ".yaml"}:
        loaded = yaml.safe_load(text)
    elif suffix == ".json":
        loaded = json.loads(text)
    else:
        raise ValueError("Config file must be .yaml/.yml or .json")

    if not isinstance(loaded, dict):
        raise ValueError("Config root must be an object")
    return loaded


def load_config(config_path: Path) -> AppConfig:
    raw = _load_raw_config(config_path)
    raw_jobs = raw.get("jobs")
    if not isinstance(raw_jobs, list) or not raw_jobs:
        raise ValueError("Config must contain non-empty 'jobs' list")

    jobs: list[JobConfig] = []
    names: set[str] = set()

    for index, raw_job in enumerate(raw_jobs):
        if not isinstance(raw_job, dict):
            raise ValueError(f"jobs[{index}] must be an object")

        name = raw_job.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"jobs[{index}].name must be a non-empty string")
        if name in names:
            raise ValueError(f"Duplicate job name: {name}")
        names.add(name)

        sync = SyncConfig(
            source=_as_path(raw_job.get("source"), f"jobs[{index}].source"),
            replica=_as_path(raw_job.get("replica"), f"jobs[{index}].replica"),
            max_retries=_as_positive_int(
                raw_job.get("maxRetries"), f"jobs[{index}].maxRetries", default=DEFAULT_MAX_RETRIES
            ),
            ntfs_permissions=_as_bool(
                raw_job.get("ntfsPermissions"), f"jobs[{index}].ntfsPermissions", default=False
            ),
            verbose_log=_as_bool(raw_job.get("verboseLog"), f"jobs[{index}].verboseLog", default=False),
            excludes=_as_list_of_strings(raw_job.get("excludes"), f"jobs[{index}].excludes"),
        )
        jobs.append(JobConfig(name=name, sync=sync))

    return AppConfig(jobs=jobs)


def get_job(config: AppConfig, job_name: str | None) -> list[JobConfig]:
    if not job_name:
        return config.jobs
    matched = [job for job in config.jobs if job.name == job_name]
    if not matched:
        raise ValueError(f"No job named '{job_name}' found")
    return matched

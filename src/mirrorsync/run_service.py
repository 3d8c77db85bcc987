from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import random
import time
from typing import Callable

from mirrorsync.config import SyncConfig, get_job, load_config
from mirrorsync.errors import SyncSetupError
from mirrorsync.mirror_engine import synchronize
from mirrorsync.reporting import LOGGER_NAME, RunContext


EXIT_SUCCESS = 0
EXIT_COMPLETED_WITH_ISSUES = 1
EXIT_INVALID_CONFIG = 3
EXIT_GENERAL_ERROR = 110


@dataclass(slots=True)
class RunSummary:
    errors: int = 0
    warnings: int = 0
    files_copied: int = 0
    files_failed: int = 0
    directories_created: int = 0
    entries_deleted: int = 0
    entries_skipped: int = 0
    fatal: bool = False

    def absorb(self, context: RunContext) -> None:
        self.errors += context.counters.errors
        self.warnings += context.counters.warnings
        self.files_copied += context.stats.files_copied
        self.files_failed += context.stats.files_failed
        self.directories_created += context.stats.directories_created
        self.entries_deleted += context.stats.entries_deleted
        self.entries_skipped += context.stats.entries_skipped


@dataclass(slots=True)
class JobResult:
    name: str
    config: SyncConfig
    exit_code: int
    summary: RunSummary


def run_sync(
    config: SyncConfig,
    sleep: Callable[[float], None] = time.sleep,
    rng: random.Random | None = None,
    logger: logging.Logger | None = None,
) -> tuple[int, RunSummary]:
    log = logger or logging.getLogger(f"{LOGGER_NAME}.run")
    context = RunContext(config=config, sleep=sleep, rng=rng or random.Random())
    summary = RunSummary()

    try:
        synchronize(config, context)
    except SyncSetupError as exc:
        log.error("%s", exc)
        summary.absorb(context)
        summary.fatal = True
        return exc.exit_code, summary
    except Exception as exc:
        log.exception("Unexpected error while mirroring %s: %s", config.source, exc)
        summary.absorb(context)
        summary.fatal = True
        return EXIT_GENERAL_ERROR, summary

    summary.absorb(context)
    if context.counters.clean:
        return EXIT_SUCCESS, summary

    log.warning(
        "%s -> %s finished with %s error(s) and %s warning(s)",
        config.source,
        config.replica,
        summary.errors,
        summary.warnings,
    )
    return EXIT_COMPLETED_WITH_ISSUES, summary


def run_jobs(
    config_path: Path,
    job_name: str | None = None,
    verbose: bool = False,
    sleep: Callable[[float], None] = time.sleep,
    logger: logging.Logger | None = None,
) -> tuple[int, list[JobResult]]:
    log = logger or logging.getLogger(f"{LOGGER_NAME}.run")

    try:
        config = load_config(config_path)
        jobs = get_job(config, job_name)
    except Exception as exc:
        log.error("Invalid config: %s", exc)
        return EXIT_INVALID_CONFIG, []

    results: list[JobResult] = []
    for job in jobs:
        if verbose:
            job.sync.verbose_log = True
        exit_code, summary = run_sync(job.sync, sleep=sleep, logger=log)
        results.append(JobResult(name=job.name, config=job.sync, exit_code=exit_code, summary=summary))

    return max(result.exit_code for result in results), results

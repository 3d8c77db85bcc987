from __future__ import annotations

from dataclasses import dataclass, field
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import random
import time
from typing import Callable, TextIO

from mirrorsync.config import SyncConfig
from mirrorsync.models import MirrorStats, RunCounters


SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

LOGGER_NAME = "mirrorsync"
LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


@dataclass(slots=True)
class RunContext:
    """State shared by every component during one synchronization run.

    Warnings and errors go through here so the counters always agree with
    the log. Info and success lines are dropped unless ``verbose_log`` is set.
    """

    config: SyncConfig
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(f"{LOGGER_NAME}.sync"))
    counters: RunCounters = field(default_factory=RunCounters)
    stats: MirrorStats = field(default_factory=MirrorStats)
    sleep: Callable[[float], None] = time.sleep
    rng: random.Random = field(default_factory=random.Random)

    def info(self, message: str, *args: object) -> None:
        if self.config.verbose_log:
            self.logger.info(message, *args)

    def success(self, message: str, *args: object) -> None:
        if self.config.verbose_log:
            self.logger.log(SUCCESS, message, *args)

    def warning(self, message: str, *args: object) -> None:
        self.counters.warnings += 1
        self.logger.warning(message, *args)

    def error(self, message: str, *args: object) -> None:
        self.counters.errors += 1
        self.logger.error(message, *args)

    def backoff(self) -> int:
        seconds = self.rng.randint(self.config.backoff_min_seconds, self.config.backoff_max_seconds)
        self.sleep(seconds)
        return seconds


def configure_logging(
    log_file: Path | None = None,
    stream: TextIO | None = None,
    level: int = logging.INFO,
) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(stream)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger

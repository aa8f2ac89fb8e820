"""Logging configuration derived from the verbosity flags."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

LOGGER_NAME = "depotctl"
CONSOLE_FORMAT = "depotctl: %(levelname)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(process)d] %(message)s"


@dataclass(frozen=True)
class LogConfig:
    level: int = logging.WARNING
    diagnostic_log: Path | None = None

    @classmethod
    def from_flags(
        cls,
        *,
        quiet: bool = False,
        verbose: bool = False,
        debug: bool = False,
        diagnostic_log: Path | None = None,
    ) -> "LogConfig":
        if debug:
            level = logging.DEBUG
        elif verbose:
            level = logging.INFO
        elif quiet:
            level = logging.ERROR
        else:
            level = logging.WARNING
        return cls(level=level, diagnostic_log=diagnostic_log)

    @property
    def debug(self) -> bool:
        return self.level <= logging.DEBUG


def configure_logging(config: LogConfig) -> logging.Logger:
    """Attach console and diagnostic-file handlers to the package logger."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    console = logging.StreamHandler()
    console.setLevel(config.level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console)

    if config.diagnostic_log is not None:
        try:
            config.diagnostic_log.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(config.diagnostic_log, encoding="utf-8")
        except OSError as exc:
            logger.debug("diagnostic log unavailable at %s: %s", config.diagnostic_log, exc)
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
            logger.addHandler(file_handler)
    return logger


__all__ = ["LogConfig", "configure_logging"]

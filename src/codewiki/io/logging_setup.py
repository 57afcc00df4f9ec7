"""Logging bootstrap for codewiki.

// [LAW:single-enforcer] Handlers are attached to the "codewiki" logger here only;
// every module logs through logging.getLogger(__name__) and propagates to it.

Level and file come from CODEWIKI_LOG_LEVEL and CODEWIKI_LOG_FILE, or
CODEWIKI_LOG_DIR/codewiki.log, defaulting to the wiki's data directory.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Mapping, Optional

from codewiki.settings import DATA_HOME

ROOT_LOGGER = "codewiki"
LOG_FILE_NAME = "codewiki.log"


@dataclass(frozen=True)
class LoggingRuntime:
    level: int
    file_path: str


_RUNTIME: LoggingRuntime | None = None


def resolve(environ: Optional[Mapping[str, str]] = None) -> LoggingRuntime:
    """Work out level and log file without touching any logger."""
    env = os.environ if environ is None else environ
    level = logging.getLevelName(env.get("CODEWIKI_LOG_LEVEL", "INFO").strip().upper())
    if not isinstance(level, int):
        level = logging.INFO
    file_path = env.get("CODEWIKI_LOG_FILE") or os.path.join(
        env.get("CODEWIKI_LOG_DIR") or os.path.join(DATA_HOME, "logs"), LOG_FILE_NAME
    )
    return LoggingRuntime(level=level, file_path=file_path)


def configure(environ: Optional[Mapping[str, str]] = None) -> LoggingRuntime:
    """Attach stderr and rotating-file handlers to the codewiki logger.

    Idempotent: repeated calls return the runtime from the first call.
    """
    global _RUNTIME
    if _RUNTIME is not None:
        return _RUNTIME

    runtime = resolve(environ)
    Path(runtime.file_path).parent.mkdir(parents=True, exist_ok=True)

    stream = logging.StreamHandler()
    stream.setFormatter(logging.Formatter("[%(name)s] %(levelname)s %(message)s"))

    rotating = RotatingFileHandler(
        runtime.file_path, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    rotating.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(runtime.level)
    logger.propagate = False
    for handler in (stream, rotating):
        logger.addHandler(handler)

    _RUNTIME = runtime
    return _RUNTIME


def reset() -> None:
    """Detach the handlers configure() attached and forget the runtime."""
    global _RUNTIME
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    _RUNTIME = None

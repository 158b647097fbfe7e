import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fbr_engine.core.config import settings

LOG_DIR = Path("logs")
LOG_FILE = LOG_DIR / "fbr_engine.log"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"

# Loggers that keep their own handlers instead of propagating to root
TAKEN_OVER_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error")
# Per-request INFO chatter
QUIET_LOGGERS = ("httpx", "httpcore")


def _resolve_level(level: str | None) -> tuple[str, int]:
    level_name = (level or settings.log_level).upper()
    numeric = logging.getLevelName(level_name)
    return level_name, numeric if isinstance(numeric, int) else logging.INFO


def _build_handlers(log_level: int) -> list[logging.Handler]:
    LOG_DIR.mkdir(exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT)

    file_handler = RotatingFileHandler(LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8")
    console_handler = logging.StreamHandler(sys.stdout)
    for handler in (file_handler, console_handler):
        handler.setFormatter(formatter)
        handler.setLevel(log_level)
    return [file_handler, console_handler]


def setup_logging(level: str | None = None) -> None:
    """Send every log record to stdout and to a rotating file under ``logs/``."""

    level_name, log_level = _resolve_level(level)
    handlers = _build_handlers(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = list(handlers)

    for logger_name in TAKEN_OVER_LOGGERS:
        server_logger = logging.getLogger(logger_name)
        server_logger.handlers = list(handlers)
        server_logger.propagate = False

    for logger_name in QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.info("Logging initialized (level=%s, file=%s)", level_name, LOG_FILE.absolute())

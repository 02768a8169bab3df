"""Logging configuration with Betterstack support."""
import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from logtail import LogtailHandler

from wa_webhook import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _resolve_level(level: Optional[str]) -> int:
    return getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)


def setup_logging(level: Optional[str] = None, log_file: str = "webhook.log") -> logging.Logger:
    """Configure root handlers once and return the package logger.

    Calling again (the admin CLI does, to lower console noise) replaces the
    handlers instead of stacking duplicates.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(_resolve_level(level))
    root_logger.handlers = []
    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(_resolve_level(level))
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Delivery history is always kept on disk at INFO, whatever the console level
    file_handler = RotatingFileHandler(
        settings.LOGS_DIR / log_file, maxBytes=10 * 1024 * 1024, backupCount=5
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    if settings.BETTERSTACK_SOURCE_TOKEN:
        try:
            handler_kwargs = {"source_token": settings.BETTERSTACK_SOURCE_TOKEN}
            if settings.BETTERSTACK_INGEST_HOST:
                handler_kwargs["host"] = settings.BETTERSTACK_INGEST_HOST
            betterstack_handler = LogtailHandler(**handler_kwargs)
            betterstack_handler.setLevel(logging.DEBUG)
            betterstack_handler.setFormatter(formatter)
            root_logger.addHandler(betterstack_handler)
            host_info = settings.BETTERSTACK_INGEST_HOST or "default (in.logs.betterstack.com)"
            root_logger.info(f"BetterStack logging enabled (host: {host_info})")
        except Exception as e:
            root_logger.warning(f"Failed to initialize BetterStack logging: {e}")

    for noisy in ("urllib3", "redis", "psycopg2"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    return logging.getLogger("wa_webhook")


logger = setup_logging()

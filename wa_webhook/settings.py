"""Configuration for the WhatsApp gateway webhook relay."""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Base paths
BASE_DIR = Path(__file__).resolve().parent.parent
LOGS_DIR = Path(os.getenv("LOGS_DIR", str(BASE_DIR / "logs")))
LOGS_DIR.mkdir(parents=True, exist_ok=True)

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
BETTERSTACK_SOURCE_TOKEN = os.getenv("BETTERSTACK_SOURCE_TOKEN")
BETTERSTACK_INGEST_HOST = os.getenv("BETTERSTACK_INGEST_HOST")

# Sink
DEFAULT_WEBHOOK_URL = "http://localhost:3000/api/v1/webhook/incoming"
WEBHOOK_URL = os.getenv("WEBHOOK_URL")
WEBHOOK_SOURCE = os.getenv("WEBHOOK_SOURCE", "wa-gateway")
WEBHOOK_TIMEOUT = float(os.getenv("WEBHOOK_TIMEOUT", "10"))  # seconds per POST

# Delivery worker
WEBHOOK_MAX_RETRIES = int(os.getenv("WEBHOOK_MAX_RETRIES", "3"))
WEBHOOK_RETRY_DELAY = float(os.getenv("WEBHOOK_RETRY_DELAY", "5"))  # seconds
WEBHOOK_POLL_INTERVAL = float(os.getenv("WEBHOOK_POLL_INTERVAL", "0.1"))  # seconds between pops

# Queue identities
WEBHOOK_QUEUE_KEY = os.getenv("WEBHOOK_QUEUE_KEY", "wa:webhook:queue")
WEBHOOK_FAILED_KEY = os.getenv("WEBHOOK_FAILED_KEY", "wa:webhook:failed")

# Queue storage
QUEUE_BACKENDS = ("spool", "redis", "postgres")
QUEUE_BACKEND = os.getenv("QUEUE_BACKEND", "spool").lower()
SPOOL_BASE_DIR = Path(os.getenv("SPOOL_BASE_DIR", str(BASE_DIR / "spool")))
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379")
DATABASE_URL = os.getenv("DATABASE_URL")

# Connection heartbeat
HEARTBEAT_INTERVAL = int(os.getenv("HEARTBEAT_INTERVAL", "60"))  # seconds


def get_webhook_url() -> str:
    """Return the configured sink URL, falling back to the local default."""
    return WEBHOOK_URL or DEFAULT_WEBHOOK_URL


def validate_config():
    """Validate configuration."""
    errors = []

    if WEBHOOK_MAX_RETRIES < 1:
        errors.append(f"WEBHOOK_MAX_RETRIES must be >= 1: {WEBHOOK_MAX_RETRIES}")

    for name in ("WEBHOOK_RETRY_DELAY", "WEBHOOK_TIMEOUT", "WEBHOOK_POLL_INTERVAL", "HEARTBEAT_INTERVAL"):
        value = globals()[name]
        if value <= 0:
            errors.append(f"{name} must be positive: {value}")

    if QUEUE_BACKEND not in QUEUE_BACKENDS:
        errors.append(f"QUEUE_BACKEND must be one of {', '.join(QUEUE_BACKENDS)}: {QUEUE_BACKEND}")
    elif QUEUE_BACKEND == "postgres" and not DATABASE_URL:
        errors.append("DATABASE_URL is required for the postgres queue backend")
    elif QUEUE_BACKEND == "spool":
        try:
            SPOOL_BASE_DIR.mkdir(parents=True, exist_ok=True)
        except Exception as e:
            errors.append(f"Cannot create SPOOL_BASE_DIR: {e}")

    if WEBHOOK_QUEUE_KEY == WEBHOOK_FAILED_KEY:
        errors.append("WEBHOOK_QUEUE_KEY and WEBHOOK_FAILED_KEY must differ")

    if errors:
        raise ValueError("Config errors:\n  " + "\n  ".join(errors))

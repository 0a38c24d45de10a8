"""
Logging configuration.

Messages pass through ``SecretRedactingFilter`` so the cron secret and
the partner token are replaced even when an interpolated exception
message carries one. Tracebacks are not rewritten.
"""

import logging
import sys
from core.config import settings
from core.security import configured_secrets, redact


class SecretRedactingFilter(logging.Filter):
    """Replace configured credentials in the rendered message"""

    def filter(self, record: logging.LogRecord) -> bool:
        secrets = configured_secrets()
        if secrets:
            message = record.getMessage()
            cleaned = redact(message, secrets)
            if cleaned != message:
                record.msg = cleaned
                record.args = None
        return True


def setup_logging():
    """Configure application logging"""

    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(SecretRedactingFilter())

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[handler]
    )

    # Per-statement and per-request noise
    for name in ("sqlalchemy.engine", "sqlalchemy.pool", "httpx", "apscheduler"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured at {settings.LOG_LEVEL} level ({settings.ENVIRONMENT})")

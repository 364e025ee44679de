"""
Logging setup shared by the API and the scripts.
"""

import logging

from karirkit.core.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def configure_logging(level: str = None) -> None:
    """Install a single stream handler on the root logger (idempotent)."""
    global _configured
    if _configured:
        return

    level = (level or get_settings().log_level).upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)

    # pymongo heartbeat logs are noisy at DEBUG
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    _configured = True

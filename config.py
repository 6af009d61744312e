"""
config.py
Environment-driven settings and logging setup.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


@dataclass(frozen=True)
class Settings:
    db_path: Path
    log_level: str
    default_admin_email: str
    default_admin_password: str
    rows_per_page_options: tuple[int, ...] = (10, 25, 50)
    currency_symbol: str = "₹"


def get_settings() -> Settings:
    db_path = os.getenv("EKADASHI_DB_PATH") or str(Path(__file__).with_name("ekadashi.db"))
    return Settings(
        db_path=Path(db_path),
        log_level=os.getenv("EKADASHI_LOG_LEVEL", "INFO").upper(),
        default_admin_email=os.getenv("EKADASHI_ADMIN_EMAIL", "admin@example.org"),
        default_admin_password=os.getenv("EKADASHI_ADMIN_PASSWORD", "admin123"),
    )


def configure_logging(level: str = "INFO") -> None:
    """
    Attach a single stream handler to the root logger.
    Streamlit re-executes the script on every interaction, so repeated calls must be no-ops.
    """
    global _configured
    root = logging.getLogger()
    if _configured:
        root.setLevel(level)
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)
    _configured = True

"""
Runtime configuration.

Values come from the environment (a local ``.env`` file is loaded first),
with development defaults for everything.
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()


def _to_float(val, default: float) -> float:
    try:
        return float(val) if val is not None else default
    except ValueError:
        return default


class Settings:
    # Base URL of the REST backend, including the /api prefix
    API_URL = os.environ.get("BUSNET_API_URL", "http://localhost:3001/api")

    # SQLite by default (can be changed to PostgreSQL, MySQL, etc.)
    DATABASE_URL = os.environ.get("BUSNET_DATABASE_URL", "sqlite:///./busnet.db")

    REQUEST_TIMEOUT = _to_float(os.environ.get("BUSNET_REQUEST_TIMEOUT"), 10.0)

    # Which binding the data store talks to: "rest" or "database"
    BACKEND = os.environ.get("BUSNET_BACKEND", "rest").strip().lower()

    LOG_LEVEL = os.environ.get("BUSNET_LOG_LEVEL", "INFO").upper()


settings = Settings()


def configure_logging(level: str = None):
    """Set up root logging for scripts and the API server."""
    logging.basicConfig(
        level=level or settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

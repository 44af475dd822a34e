"""
Runtime configuration for the Sheets MCP server.

Settings are read from the environment (and an optional .env file) once at
startup and passed explicitly to the app, the credential provider and the tools.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

import dotenv

logger = logging.getLogger(__name__)

REQUIRED_ENV = ("GCP_SERVICE_ACCOUNT_EMAIL", "GCP_PROJECT_ID", "DRIVE_FOLDER_ID")

DEFAULT_PORT = 8080

# Names accepted by both logging and uvicorn
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def _getenv(key: str, default: Optional[str] = None) -> Optional[str]:
    """Read an environment variable, treating empty strings as unset."""
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    return value.strip()


@dataclass(frozen=True)
class Settings:
    """Server settings. Immutable once loaded."""
    service_account_email: Optional[str] = None
    project_id: Optional[str] = None
    drive_folder_id: Optional[str] = None
    service_account_file: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    api_key: Optional[str] = None
    log_level: str = "INFO"

    def missing_required(self) -> list:
        """Names of required environment variables that are not set."""
        values = {
            "GCP_SERVICE_ACCOUNT_EMAIL": self.service_account_email,
            "GCP_PROJECT_ID": self.project_id,
            "DRIVE_FOLDER_ID": self.drive_folder_id,
        }
        return [key for key in REQUIRED_ENV if not values[key]]

    def warn_missing(self) -> None:
        """Log a warning for each missing required setting. Never fatal."""
        for key in self.missing_required():
            logger.warning(f"Missing {key}. Set it for full functionality.")


def load_settings() -> Settings:
    """
    Build Settings from the process environment.

    Loads a .env file first if one is present. Raises ValueError if PORT is
    not an integer or LOG_LEVEL is not a known level name.
    """
    dotenv.load_dotenv()

    port_raw = _getenv("PORT", str(DEFAULT_PORT))
    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer, got {port_raw!r}")

    log_level = _getenv("LOG_LEVEL", "INFO").upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {log_level!r}")

    return Settings(
        service_account_email=_getenv("GCP_SERVICE_ACCOUNT_EMAIL"),
        project_id=_getenv("GCP_PROJECT_ID"),
        drive_folder_id=_getenv("DRIVE_FOLDER_ID"),
        service_account_file=_getenv("GOOGLE_SERVICE_ACCOUNT_FILE"),
        host=_getenv("HOST", "0.0.0.0"),
        port=port,
        api_key=_getenv("MCP_API_KEY"),
        log_level=log_level,
    )

"""
Google API client provider.

Builds the Sheets v4 and Drive v3 discovery clients on first use and shares
them with every later caller. Initialization is single-flight: callers that
arrive while authentication is in progress await the same pending attempt.
A failed attempt is not remembered, so the next call tries again.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Optional

import google.auth
from google.oauth2 import service_account
from googleapiclient.discovery import build

from .config import Settings

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/spreadsheets",
]


@dataclass(frozen=True)
class GoogleClients:
    """Authenticated discovery clients shared by all tool calls."""
    sheets: Any
    drive: Any


def build_google_clients(settings: Settings) -> GoogleClients:
    """
    Authenticate and build the Sheets and Drive clients. Blocking.

    Uses the service account key file from GOOGLE_SERVICE_ACCOUNT_FILE if it
    exists, otherwise falls back to Application Default Credentials.
    """
    key_file = settings.service_account_file
    if key_file and os.path.exists(key_file):
        credentials = service_account.Credentials.from_service_account_file(
            key_file, scopes=SCOPES
        )
        logger.info(f"Using service account credentials from {key_file}")
    else:
        if key_file:
            logger.warning(f"Service account file {key_file} not found, using default credentials")
        credentials, _ = google.auth.default(
            scopes=SCOPES, quota_project_id=settings.project_id
        )
        logger.info("Using Application Default Credentials")

    if settings.service_account_email:
        logger.info(f"Expected service account: {settings.service_account_email}")

    return GoogleClients(
        sheets=build("sheets", "v4", credentials=credentials, cache_discovery=False),
        drive=build("drive", "v3", credentials=credentials, cache_discovery=False),
    )


class CredentialProvider:
    """Lazily creates and memoizes one GoogleClients instance."""

    def __init__(
        self,
        settings: Settings,
        factory: Optional[Callable[[Settings], GoogleClients]] = None,
    ):
        self.settings = settings
        self._factory = factory or build_google_clients
        self._clients: Optional[GoogleClients] = None
        self._pending: Optional[asyncio.Future] = None

    @property
    def initialized(self) -> bool:
        return self._clients is not None

    async def get_clients(self) -> GoogleClients:
        """
        Return the shared clients, authenticating on first use.

        Raises:
            Whatever the factory raised, to every caller awaiting that attempt.
        """
        if self._clients is not None:
            return self._clients

        if self._pending is not None and self._pending.done():
            # Settled while nobody was waiting on it
            if not self._pending.cancelled() and self._pending.exception() is None:
                self._clients = self._pending.result()
                return self._clients
            self._pending = None

        if self._pending is None:
            self._pending = asyncio.ensure_future(self._initialize())
        pending = self._pending

        try:
            # Shielded so a cancelled caller does not abort the shared attempt
            clients = await asyncio.shield(pending)
        except asyncio.CancelledError:
            raise
        except Exception:
            if self._pending is pending:
                self._pending = None
            raise

        self._clients = clients
        return clients

    async def _initialize(self) -> GoogleClients:
        logger.info("Initializing Google API clients")
        loop = asyncio.get_event_loop()
        try:
            clients = await loop.run_in_executor(None, self._factory, self.settings)
        except Exception as e:
            logger.error(f"Failed to initialize Google API clients: {e}")
            raise
        logger.info("✅ Google API clients initialized")
        return clients

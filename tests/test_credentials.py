"""
Tests for the Google credential provider.

Tests cover:
- Single-flight initialization under concurrent first calls
- Memoization of the shared clients
- Failed attempts are not cached
- Client construction from a key file or Application Default Credentials
"""

import asyncio
import threading
import time
from unittest.mock import MagicMock, patch

import pytest

from sheets_mcp.config import Settings
from sheets_mcp.credentials import SCOPES, CredentialProvider, GoogleClients, build_google_clients


def _slow_factory(result, calls, delay=0.05):
    lock = threading.Lock()

    def factory(settings):
        with lock:
            calls.append(settings)
        time.sleep(delay)
        if isinstance(result, Exception):
            raise result
        return result

    return factory


@pytest.mark.asyncio
async def test_concurrent_first_calls_authenticate_once(settings, google_clients):
    calls = []
    provider = CredentialProvider(settings, factory=_slow_factory(google_clients, calls))

    first, second = await asyncio.gather(provider.get_clients(), provider.get_clients())

    assert len(calls) == 1
    assert first is second is google_clients
    assert provider.initialized


@pytest.mark.asyncio
async def test_clients_are_memoized(provider, client_factory, google_clients):
    assert await provider.get_clients() is google_clients
    assert await provider.get_clients() is google_clients
    client_factory.assert_called_once()


@pytest.mark.asyncio
async def test_failure_reaches_every_waiter_once(settings):
    calls = []
    provider = CredentialProvider(settings, factory=_slow_factory(RuntimeError("auth rejected"), calls))

    results = await asyncio.gather(provider.get_clients(), provider.get_clients(), return_exceptions=True)

    assert len(calls) == 1
    assert all(isinstance(r, RuntimeError) and str(r) == "auth rejected" for r in results)
    assert not provider.initialized


@pytest.mark.asyncio
async def test_failed_attempt_is_retried(settings, google_clients):
    factory = MagicMock(side_effect=[RuntimeError("transient"), google_clients])
    provider = CredentialProvider(settings, factory=factory)

    with pytest.raises(RuntimeError, match="transient"):
        await provider.get_clients()

    assert await provider.get_clients() is google_clients
    assert factory.call_count == 2


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_abort_initialization(settings, google_clients):
    calls = []
    provider = CredentialProvider(settings, factory=_slow_factory(google_clients, calls, delay=0.1))

    waiter = asyncio.ensure_future(provider.get_clients())
    await asyncio.sleep(0.01)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    assert await provider.get_clients() is google_clients
    assert len(calls) == 1


@patch("sheets_mcp.credentials.build")
@patch("google.auth.default")
def test_build_with_default_credentials(mock_default, mock_build, settings):
    creds = MagicMock()
    mock_default.return_value = (creds, "test-project")
    mock_build.side_effect = lambda service, version, **kwargs: f"{service}-{version}"

    clients = build_google_clients(settings)

    mock_default.assert_called_once_with(scopes=SCOPES, quota_project_id="test-project")
    assert clients == GoogleClients(sheets="sheets-v4", drive="drive-v3")
    for call in mock_build.call_args_list:
        assert call.kwargs["credentials"] is creds


@patch("sheets_mcp.credentials.build")
@patch("sheets_mcp.credentials.service_account.Credentials.from_service_account_file")
@patch("google.auth.default")
def test_build_with_service_account_file(mock_default, mock_from_file, mock_build, tmp_path):
    key_file = tmp_path / "sa.json"
    key_file.write_text("{}")
    settings = Settings(service_account_file=str(key_file))

    build_google_clients(settings)

    mock_from_file.assert_called_once_with(str(key_file), scopes=SCOPES)
    mock_default.assert_not_called()
    assert mock_build.call_count == 2


def test_scopes_cover_drive_and_sheets():
    assert SCOPES == [
        "https://www.googleapis.com/auth/drive",
        "https://www.googleapis.com/auth/spreadsheets",
    ]

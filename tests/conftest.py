"""Shared fixtures: settings, fake Google clients and a credential provider around them."""

from unittest.mock import MagicMock

import pytest

from sheets_mcp.config import Settings
from sheets_mcp.credentials import CredentialProvider, GoogleClients
from sheets_mcp.handlers.tools import ToolContext

FOLDER_ID = "folder-123"


@pytest.fixture
def settings():
    return Settings(
        service_account_email="sheets-bot@test-project.iam.gserviceaccount.com",
        project_id="test-project",
        drive_folder_id=FOLDER_ID,
    )


@pytest.fixture
def settings_no_folder():
    return Settings(project_id="test-project")


@pytest.fixture
def google_clients():
    """Sheets and Drive discovery clients replaced by MagicMocks."""
    return GoogleClients(sheets=MagicMock(), drive=MagicMock())


@pytest.fixture
def client_factory(google_clients):
    return MagicMock(return_value=google_clients)


@pytest.fixture
def provider(settings, client_factory):
    return CredentialProvider(settings, factory=client_factory)


@pytest.fixture
def ctx(settings, provider):
    return ToolContext(settings=settings, credentials=provider)


@pytest.fixture
def ctx_no_folder(settings_no_folder, client_factory):
    return ToolContext(
        settings=settings_no_folder,
        credentials=CredentialProvider(settings_no_folder, factory=client_factory),
    )

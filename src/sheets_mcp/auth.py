"""
Authentication for MCP Server

Provides optional API key authentication for the MCP endpoints.
"""

from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyHeader
from typing import Optional

# API Key header name
API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_api_key(request: Request) -> Optional[str]:
    """Get the configured API key from the app settings."""
    settings = getattr(request.app.state, "settings", None)
    return settings.api_key if settings is not None else None


def verify_api_key(request: Request, api_key: Optional[str] = Security(API_KEY_HEADER)) -> str:
    """
    Verify API key from request header.

    Args:
        request: Incoming request, used to reach the app settings
        api_key: API key from X-API-Key header

    Returns:
        The verified API key

    Raises:
        HTTPException: If API key is missing or invalid
    """
    expected_key = get_api_key(request)

    # If no API key is configured, allow all requests (development mode)
    if expected_key is None:
        return "dev-mode"

    if api_key is None:
        raise HTTPException(
            status_code=401,
            detail="Missing API key. Please provide X-API-Key header."
        )

    if api_key != expected_key:
        raise HTTPException(
            status_code=403,
            detail="Invalid API key."
        )

    return api_key

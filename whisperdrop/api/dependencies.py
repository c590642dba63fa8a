"""
FastAPI dependency injection.

The storage client and URL issuer are built once in the application
lifespan and kept on app.state; these dependencies hand them to route
handlers. Tests can replace any of them through app.dependency_overrides.
"""

import logging
from typing import Annotated

from fastapi import Depends, Request

from ..bootstrap import CorsStatus
from ..config.settings import Settings
from ..core.storage.client import ObjectStoreClient
from ..core.storage.issuer import UrlIssuer

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage_client(request: Request) -> ObjectStoreClient:
    """Process-wide storage client; signing holds no per-request state."""
    return request.app.state.storage_client


def get_url_issuer(
    settings: Annotated[Settings, Depends(get_app_settings)],
    client: Annotated[ObjectStoreClient, Depends(get_storage_client)],
) -> UrlIssuer:
    return UrlIssuer(client, expiry_seconds=settings.url_expiry_seconds)


def get_cors_status(request: Request) -> CorsStatus:
    return getattr(request.app.state, "cors_status", CorsStatus(state="skipped"))


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

SettingsDep = Annotated[Settings, Depends(get_app_settings)]
StorageClientDep = Annotated[ObjectStoreClient, Depends(get_storage_client)]
UrlIssuerDep = Annotated[UrlIssuer, Depends(get_url_issuer)]
CorsStatusDep = Annotated[CorsStatus, Depends(get_cors_status)]

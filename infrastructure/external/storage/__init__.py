"""Drive client entry point and lifecycle management."""
from typing import Optional

from core.config import settings
from core.logging_config import get_logger
from .config import DriveConfig
from .exceptions import (
    AuthenticationError,
    BackendErrorKind,
    ConfigurationError,
    FatalBackendError,
    RemoteItemNotFoundError,
    StorageError,
    TransientBackendError,
)
from .models import ChunkUploadResult, DriveItem
from .providers.onedrive import OneDriveClient

logger = get_logger(__name__)

# Global drive client instance
_drive_client: Optional[OneDriveClient] = None


def get_drive_config() -> DriveConfig:
    """Assemble DriveConfig from core.config.settings.

    Raises:
        ConfigurationError: required ONEDRIVE__* settings are empty
    """
    missing = settings.missing_onedrive_settings()
    if missing:
        raise ConfigurationError(
            "Server misconfigured: missing OneDrive settings",
            body={"missing": missing},
        )

    od = settings.onedrive
    up = settings.upload
    return DriveConfig(
        client_id=od.client_id,
        client_secret=od.client_secret,
        tenant_id=od.tenant_id,
        user_email=od.user_email,
        storage_path=od.storage_path,
        cache_path=od.cache_path,
        oauth_host=od.oauth_host,
        api_host=od.api_host,
        download_host=od.download_host,
        token_safety_margin=od.token_safety_margin,
        timeout=od.timeout,
        chunk_max_retries=up.chunk_max_retries,
        chunk_initial_delay=up.chunk_initial_delay,
        chunk_max_delay=up.chunk_max_delay,
    )


async def init_drive_client() -> None:
    """Create the shared drive client if the drive is configured."""
    global _drive_client

    if _drive_client is not None:
        logger.warning("Drive client already initialized")
        return

    missing = settings.missing_onedrive_settings()
    if missing:
        logger.warning("Drive client not configured", missing=missing)
        return

    _drive_client = OneDriveClient(get_drive_config())
    logger.info("Drive client initialized", user=settings.onedrive.user_email)


def get_drive_client() -> Optional[OneDriveClient]:
    return _drive_client


async def shutdown_drive_client() -> None:
    """Close the shared HTTP client."""
    global _drive_client

    if _drive_client is None:
        return
    try:
        await _drive_client.close()
        logger.info("Drive client shutdown")
    finally:
        _drive_client = None


async def get_drive() -> OneDriveClient:
    """FastAPI dependency for the drive client.

    Builds the client lazily when settings were provided after startup.
    """
    global _drive_client

    if _drive_client is None:
        _drive_client = OneDriveClient(get_drive_config())
    return _drive_client


__all__ = [
    # Lifecycle
    "init_drive_client",
    "get_drive_client",
    "shutdown_drive_client",
    "get_drive",
    "get_drive_config",
    # Types
    "DriveConfig",
    "OneDriveClient",
    "DriveItem",
    "ChunkUploadResult",
    # Exceptions
    "StorageError",
    "BackendErrorKind",
    "ConfigurationError",
    "AuthenticationError",
    "TransientBackendError",
    "FatalBackendError",
    "RemoteItemNotFoundError",
]

"""
API依赖项 - 上传鉴权与服务装配
"""
import hmac
import re
from typing import Optional

from fastapi import Depends, Header

from application.ports.storage import DrivePort
from application.services.folder_service import FolderApplicationService
from application.services.session_token_service import SessionTokenService
from application.services.upload_service import UploadApplicationService
from core.config import settings
from domain.common.exceptions import ServerMisconfiguredException, UploadUnauthorizedException
from infrastructure.adapters.storage_port import OneDrivePortAdapter
from infrastructure.external.storage import OneDriveClient, get_drive
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork

_BEARER = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


def normalize_token_value(value: Optional[str]) -> Optional[str]:
    """Trim and drop an optional ``Bearer`` prefix."""
    if not value:
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    match = _BEARER.match(trimmed)
    if match:
        return match.group(1).strip() or None
    return trimmed


def get_upload_secret() -> Optional[str]:
    return normalize_token_value(settings.UPLOAD_TOKEN)


def _matches(candidate: Optional[str], expected: str) -> bool:
    if candidate is None:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


async def require_upload_authorization(
    authorization: Optional[str] = Header(None),
    x_authorization: Optional[str] = Header(None),
) -> None:
    """接受 ``Authorization: Bearer <token>`` 或 ``X-Authorization: <token>``"""
    expected = get_upload_secret()
    if not expected:
        raise ServerMisconfiguredException("UPLOAD_TOKEN is empty")

    if _matches(normalize_token_value(authorization), expected) or _matches(
        normalize_token_value(x_authorization), expected
    ):
        return
    raise UploadUnauthorizedException()


async def require_drive_settings() -> None:
    missing = settings.missing_onedrive_settings()
    if missing:
        raise ServerMisconfiguredException("missing OneDrive settings", missing=missing)


def get_session_token_service() -> Optional[SessionTokenService]:
    secret = get_upload_secret()
    if not secret:
        return None
    return SessionTokenService(secret, max_age_ms=settings.upload.max_session_age_seconds * 1000)


async def get_drive_port(client: OneDriveClient = Depends(get_drive)) -> DrivePort:
    return OneDrivePortAdapter(client)


async def get_upload_service(
    drive: DrivePort = Depends(get_drive_port),
    tokens: Optional[SessionTokenService] = Depends(get_session_token_service),
) -> UploadApplicationService:
    return UploadApplicationService(
        uow_factory=SQLAlchemyUnitOfWork,
        drive=drive,
        tokens=tokens,
        upload_settings=settings.upload,
    )


def get_folder_service() -> FolderApplicationService:
    return FolderApplicationService(uow_factory=SQLAlchemyUnitOfWork)

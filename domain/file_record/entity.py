"""Domain entity representing a catalogued file stored on the drive."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from domain.common.exceptions import DomainValidationException


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class FileRecord:
    """Catalog row for a file whose bytes live on the remote drive.

    ``id`` is chosen by the uploader (a generated UUID for regular uploads,
    the cache key for hidden cache entries) and doubles as the primary key.
    """

    id: str
    file_name: str
    file_size: int = 0
    mime_type: Optional[str] = None
    folder_id: Optional[str] = None
    hidden: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.id:
            raise DomainValidationException("file id is required", field="id")
        if self.file_size < 0:
            raise DomainValidationException(
                "file size cannot be negative",
                field="file_size",
                details={"file_size": self.file_size},
            )
        self.created_at = _ensure_utc(self.created_at)
        self.updated_at = _ensure_utc(self.updated_at)

"""Value objects describing an in-flight resumable upload.

Nothing here is persisted: the descriptor travels inside a signed token held
by the caller between chunk requests.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class UploadSessionDescriptor:
    """Everything needed to resume an upload, sealed into the upload token."""

    upload_url: str
    file_size: int
    filename: str
    file_id: str
    exp: int  # epoch milliseconds
    mime_type: Optional[str] = None
    folder_path: Optional[str] = None
    hidden: bool = False

    def to_payload(self) -> dict[str, Any]:
        """Serialize with a fixed key order so signatures stay stable."""
        return {
            "uploadUrl": self.upload_url,
            "fileSize": self.file_size,
            "filename": self.filename,
            "mimeType": self.mime_type,
            "fileId": self.file_id,
            "folderPath": self.folder_path,
            "hidden": self.hidden,
            "exp": self.exp,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "UploadSessionDescriptor":
        return cls(
            upload_url=payload["uploadUrl"],
            file_size=payload["fileSize"],
            filename=payload["filename"],
            file_id=payload["fileId"],
            exp=payload["exp"],
            mime_type=payload.get("mimeType"),
            folder_path=payload.get("folderPath"),
            hidden=bool(payload.get("hidden", False)),
        )


@dataclass(frozen=True)
class ContentRange:
    """Inclusive byte span ``start..end`` of a ``total``-byte payload."""

    start: int
    end: int
    total: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def is_final(self) -> bool:
        return self.end + 1 == self.total

    def header_value(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.total}"

"""Application-owned drive port abstraction (hexagonal architecture).

Defines the minimal methods needed by the upload use cases so that the
application layer does not depend on the Graph client directly.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol, runtime_checkable


class StorageArea(str, Enum):
    """Where on the drive an object lives."""

    FILES = "files"
    CACHE = "cache"


@dataclass
class RemoteFile:
    name: str
    size: int
    mime_type: Optional[str] = None
    remote_id: Optional[str] = None


@dataclass
class ChunkOutcome:
    done: bool
    next_expected_ranges: list[str] = field(default_factory=list)
    file: Optional[RemoteFile] = None


@runtime_checkable
class DrivePort(Protocol):
    async def open_upload_session(self, name: str, *, area: StorageArea = StorageArea.FILES) -> str: ...

    async def upload_chunk(
        self,
        upload_url: str,
        data: bytes,
        start: int,
        end: int,
        total: int,
    ) -> ChunkOutcome: ...

    async def upload_file(
        self,
        name: str,
        data: bytes,
        *,
        area: StorageArea = StorageArea.FILES,
    ) -> RemoteFile: ...

    async def delete_file(self, name: str, *, area: StorageArea = StorageArea.FILES) -> bool: ...

    async def download_url(self, name: str, *, area: StorageArea = StorageArea.FILES) -> Optional[str]: ...

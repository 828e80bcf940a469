"""Repository abstraction for the file catalog."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from .entity import FileRecord


class FileRecordRepository(ABC):
    """Contract for persisting and querying catalog records."""

    @abstractmethod
    async def insert(self, record: FileRecord) -> FileRecord:
        """Insert a new record; raises on primary key conflict."""
        ...

    @abstractmethod
    async def insert_or_update(self, record: FileRecord) -> FileRecord:
        """Insert, or on id conflict update size and timestamp only."""
        ...

    @abstractmethod
    async def get_by_id(self, file_id: str) -> Optional[FileRecord]:
        ...

    @abstractmethod
    async def get_hidden(self, file_id: str) -> Optional[FileRecord]:
        ...

    @abstractmethod
    async def delete(self, file_id: str) -> bool:
        """Remove the record; returns False when nothing matched."""
        ...

    @abstractmethod
    async def list_hidden_ids(self, *, prefix: str = "") -> list[str]:
        ...

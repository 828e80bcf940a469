"""Repository abstraction for folders."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from .entity import Folder


class FolderRepository(ABC):

    @abstractmethod
    async def create(self, folder: Folder) -> Folder:
        """Raises FolderAlreadyExistsException when the sibling name is taken."""
        ...

    @abstractmethod
    async def get_child(self, name: str, parent_id: Optional[str]) -> Optional[Folder]:
        """Find the folder called ``name`` directly under ``parent_id`` (None = root)."""
        ...

    @abstractmethod
    async def get_by_id(self, folder_id: str) -> Optional[Folder]:
        ...

    @abstractmethod
    async def list_children(self, parent_id: Optional[str]) -> list[Folder]:
        """Direct children of ``parent_id`` ordered by name."""
        ...

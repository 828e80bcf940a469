"""Folder catalog: path resolution for uploads plus list/create."""
from __future__ import annotations

import uuid
from typing import Callable, Optional

from application.dto import FolderDTO
from application.utils.storage import split_folder_path
from core.logging_config import get_logger
from domain.common.exceptions import (
    DomainValidationException,
    FolderAlreadyExistsException,
    FolderNotFoundException,
)
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.folder import Folder

logger = get_logger(__name__)

ROOT_ALIASES = ("", "null")


def _parent_or_root(parent_id: Optional[str]) -> Optional[str]:
    if parent_id is None or parent_id.strip() in ROOT_ALIASES:
        return None
    return parent_id.strip()


class FolderApplicationService:
    def __init__(self, uow_factory: Callable[..., AbstractUnitOfWork]):
        self._uow_factory = uow_factory

    async def get_or_create_by_path(self, path: Optional[str]) -> Optional[str]:
        """Walk ``path`` from the root, creating missing levels.

        Returns the leaf folder id, or None when the path has no segments.
        """
        segments = split_folder_path(path)
        if not segments:
            return None
        try:
            return await self._walk(segments)
        except FolderAlreadyExistsException:
            # 并发请求抢先建了同名目录，事务已回滚，重新解析一次
            logger.info("folder_path_conflict", path=path)
            return await self._walk(segments)

    async def _walk(self, segments: list[str]) -> Optional[str]:
        async with self._uow_factory() as uow:
            repo = uow.folder_repository
            parent_id: Optional[str] = None
            for name in segments:
                existing = await repo.get_child(name, parent_id)
                if existing is not None:
                    parent_id = existing.id
                    continue
                created = await repo.create(Folder(id=str(uuid.uuid4()), name=name, parent_id=parent_id))
                logger.info("folder_created", folder_id=created.id, name=name, parent_id=parent_id)
                parent_id = created.id
            return parent_id

    async def list_children(self, parent_id: Optional[str] = None) -> list[FolderDTO]:
        async with self._uow_factory(readonly=True) as uow:
            folders = await uow.folder_repository.list_children(_parent_or_root(parent_id))
        return [FolderDTO.model_validate(f) for f in folders]

    async def create_folder(self, name: Optional[str], parent_id: Optional[str] = None) -> FolderDTO:
        clean = (name or "").strip()
        if not clean:
            raise DomainValidationException("name is required", field="name")
        if "/" in clean:
            raise DomainValidationException("folder name cannot contain '/'", field="name")
        parent = _parent_or_root(parent_id)

        async with self._uow_factory() as uow:
            repo = uow.folder_repository
            if parent is not None and await repo.get_by_id(parent) is None:
                raise FolderNotFoundException(parent)
            if await repo.get_child(clean, parent) is not None:
                raise FolderAlreadyExistsException(clean, parent)
            created = await repo.create(Folder(id=str(uuid.uuid4()), name=clean, parent_id=parent))

        logger.info("folder_created", folder_id=created.id, name=clean, parent_id=parent)
        return FolderDTO.model_validate(created)

"""SQLAlchemy-backed repository for folders."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from domain.common.exceptions import FolderAlreadyExistsException
from domain.folder import Folder, FolderRepository
from infrastructure.models.folder import FolderModel


def _under(query, parent_id: Optional[str]):
    if parent_id is None:
        return query.where(FolderModel.parent_id.is_(None))
    return query.where(FolderModel.parent_id == parent_id)


class SQLAlchemyFolderRepository(FolderRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: FolderModel) -> Folder:
        return Folder(
            id=model.id,
            name=model.name,
            parent_id=model.parent_id,
            created_at=model.created_at,
        )

    async def create(self, folder: Folder) -> Folder:
        model = FolderModel(id=folder.id, name=folder.name, parent_id=folder.parent_id)
        self.session.add(model)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise FolderAlreadyExistsException(folder.name, folder.parent_id) from exc
        await self.session.refresh(model)
        return self._to_entity(model)

    async def get_by_id(self, folder_id: str) -> Optional[Folder]:
        result = await self.session.execute(select(FolderModel).where(FolderModel.id == folder_id))
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_child(self, name: str, parent_id: Optional[str]) -> Optional[Folder]:
        query = _under(select(FolderModel).where(FolderModel.name == name), parent_id)
        result = await self.session.execute(query.limit(1))
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_children(self, parent_id: Optional[str]) -> list[Folder]:
        query = _under(select(FolderModel), parent_id).order_by(FolderModel.name.asc())
        result = await self.session.execute(query)
        return [self._to_entity(m) for m in result.scalars().all()]

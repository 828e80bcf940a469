"""SQLAlchemy-backed repository for the file catalog."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from domain.common.exceptions import FileRecordAlreadyExistsException
from domain.file_record import FileRecord, FileRecordRepository
from infrastructure.models.file_record import FileModel

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class SQLAlchemyFileRecordRepository(FileRecordRepository):
    """Persist catalog records using SQLAlchemy ORM."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: FileModel) -> FileRecord:
        return FileRecord(
            id=model.id,
            file_name=model.file_name,
            file_size=model.file_size,
            mime_type=model.mime_type,
            folder_id=model.folder_id,
            hidden=bool(model.hidden),
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    @staticmethod
    def _values(record: FileRecord) -> dict:
        now = datetime.now(timezone.utc)
        return {
            "id": record.id,
            "file_name": record.file_name,
            "file_size": record.file_size,
            "mime_type": record.mime_type,
            "folder_id": record.folder_id,
            "hidden": record.hidden,
            "created_at": record.created_at or now,
            "updated_at": record.updated_at or now,
        }

    async def _get_model(self, file_id: str) -> Optional[FileModel]:
        result = await self.session.execute(
            select(FileModel).where(FileModel.id == file_id)
        )
        return result.scalar_one_or_none()

    async def insert(self, record: FileRecord) -> FileRecord:
        model = FileModel(**self._values(record))
        self.session.add(model)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise FileRecordAlreadyExistsException(record.id) from exc
        await self.session.refresh(model)
        return self._to_entity(model)

    async def insert_or_update(self, record: FileRecord) -> FileRecord:
        values = self._values(record)
        dialect = self.session.bind.dialect.name if self.session.bind else ""
        insert_fn = _UPSERT_DIALECTS.get(dialect)

        if insert_fn is not None:
            stmt = insert_fn(FileModel).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[FileModel.id],
                set_={
                    "file_size": values["file_size"],
                    "updated_at": values["updated_at"],
                },
            )
            await self.session.execute(stmt)
            # 绕过 identity map 中可能已缓存的旧对象
            result = await self.session.execute(
                select(FileModel)
                .where(FileModel.id == record.id)
                .execution_options(populate_existing=True)
            )
            return self._to_entity(result.scalar_one())

        model = await self._get_model(record.id)
        if model is None:
            return await self.insert(record)
        model.file_size = values["file_size"]
        model.updated_at = values["updated_at"]
        await self.session.flush()
        await self.session.refresh(model)
        return self._to_entity(model)

    async def get_by_id(self, file_id: str) -> Optional[FileRecord]:
        model = await self._get_model(file_id)
        return self._to_entity(model) if model else None

    async def get_hidden(self, file_id: str) -> Optional[FileRecord]:
        result = await self.session.execute(
            select(FileModel).where(FileModel.id == file_id, FileModel.hidden.is_(True))
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def delete(self, file_id: str) -> bool:
        model = await self._get_model(file_id)
        if model is None:
            return False
        await self.session.delete(model)
        await self.session.flush()
        return True

    async def list_hidden_ids(self, *, prefix: str = "") -> list[str]:
        query = select(FileModel.id).where(FileModel.hidden.is_(True))
        if prefix:
            query = query.where(FileModel.id.startswith(prefix, autoescape=True))
        query = query.order_by(FileModel.updated_at.desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

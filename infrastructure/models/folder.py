"""Folder database model."""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, text
from sqlalchemy.sql import func

from .base import Base


class FolderModel(Base):
    """ORM mapping for the folders table."""

    __tablename__ = "folders"
    __table_args__ = (
        Index("ix_folders_parent_name", "parent_id", "name", unique=True),
        # NULL 不参与唯一约束，根目录单独建部分索引
        Index(
            "ix_folders_root_name",
            "name",
            unique=True,
            sqlite_where=text("parent_id IS NULL"),
            postgresql_where=text("parent_id IS NULL"),
        ),
    )

    id = Column(String(36), primary_key=True, comment="目录ID（UUID）")
    name = Column(String(255), nullable=False, comment="目录名")
    parent_id = Column(
        String(36),
        ForeignKey("folders.id", ondelete="CASCADE"),
        nullable=True,
        comment="父目录ID（为空表示根）",
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        comment="创建时间",
    )

    def __repr__(self) -> str:
        return f"<FolderModel(id='{self.id}', name='{self.name}', parent_id={self.parent_id!r})>"

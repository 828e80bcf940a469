"""Catalog database model definitions."""
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    text,
)
from sqlalchemy.sql import func

from .base import Base


class FileModel(Base):
    """ORM mapping for the files table."""

    __tablename__ = "files"
    __table_args__ = (
        Index("ix_files_created_at", "created_at"),
        Index("ix_files_hidden_updated", "hidden", "updated_at"),
        {
            "comment": "文件目录表，记录已上传到远端网盘的文件",
        },
    )

    id = Column(
        String(255),
        primary_key=True,
        comment="文件ID（UUID 或缓存键）",
    )
    file_name = Column(
        String(255),
        nullable=False,
        comment="文件名",
    )
    file_size = Column(
        BigInteger,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="文件大小（字节）",
    )
    mime_type = Column(
        String(100),
        nullable=True,
        comment="MIME类型",
    )
    folder_id = Column(
        String(36),
        ForeignKey("folders.id", ondelete="SET NULL"),
        nullable=True,
        comment="所属目录ID（可为空，表示根目录）",
    )
    hidden = Column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("0"),
        comment="是否为隐藏的缓存条目",
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        comment="创建时间",
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        onupdate=func.now(),
        comment="更新时间",
    )

    def __repr__(self) -> str:
        return (
            "<FileModel(id='{id}', file_name='{file_name}', size={size}, hidden={hidden})>"
        ).format(
            id=self.id,
            file_name=self.file_name,
            size=self.file_size,
            hidden=self.hidden,
        )

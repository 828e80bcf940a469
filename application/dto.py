"""
数据传输对象（DTO）- 应用层与表现层之间的数据传输
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_serializer
from pydantic.alias_generators import to_camel


class DTOBase(BaseModel):
    """Base DTO: unify datetime serialization to UTC-Z for all subclasses."""

    @model_serializer(mode="wrap")
    def _serialize_model(self, handler):  # type: ignore[override]
        data = handler(self)

        def convert(value):
            if isinstance(value, datetime):
                ts = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
                s = ts.astimezone(timezone.utc).isoformat()
                return s.replace("+00:00", "Z")
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, tuple):
                return tuple(convert(v) for v in value)
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(data)


class CamelDTO(DTOBase):
    """Wire DTOs use camelCase field names (``fileSize``, ``uploadId`` ...)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class UploadInitRequestDTO(CamelDTO):
    """开启分片上传会话"""
    filename: Optional[str] = Field(None, description="目标文件名，不能包含 '/'")
    file_size: Optional[int] = Field(None, description="文件总字节数")
    mime_type: Optional[str] = None
    folder_path: Optional[str] = Field(None, description="逻辑目录路径，如 a/b/c")
    chunk_multiplier: Optional[float] = Field(None, allow_inf_nan=False, description="分片大小 = floor(multiplier) × 320 KiB")


class CacheInitRequestDTO(CamelDTO):
    """开启缓存条目的分片上传会话"""
    key: Optional[str] = None
    file_size: Optional[int] = None
    chunk_multiplier: Optional[float] = Field(None, allow_inf_nan=False)


class FolderCreateRequestDTO(CamelDTO):
    name: Optional[str] = None
    parent_id: Optional[str] = Field(None, description="父目录ID，为空表示根目录")


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class FileRecordDTO(DTOBase):
    """目录记录"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    file_name: str
    file_size: int
    mime_type: Optional[str] = None
    folder_id: Optional[str] = None
    hidden: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UploadSessionDTO(CamelDTO):
    upload_id: str
    filename: str
    file_size: int
    chunk_size: int
    expires_at: int = Field(..., description="过期时间（毫秒时间戳）")


class CacheSessionDTO(CamelDTO):
    upload_id: str
    key: str
    file_size: int
    chunk_size: int
    expires_at: int


class ChunkResultDTO(CamelDTO):
    """分片提交结果：未完成时带 nextExpectedRanges，完成时带文件记录"""
    done: bool
    next_expected_ranges: Optional[list[str]] = None
    file_id: Optional[str] = None
    size: Optional[int] = None
    file: Optional[FileRecordDTO] = None


class CacheEntryDTO(CamelDTO):
    key: str
    size: int


class CacheDeletedDTO(CamelDTO):
    deleted: str


class FolderDTO(DTOBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    parent_id: Optional[str] = None
    created_at: Optional[datetime] = None
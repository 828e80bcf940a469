"""Application layer orchestration for resumable uploads (application/services).

Upload progress never lives on this server: each session is a signed token
held by the caller, see ``session_token_service``.
"""
from __future__ import annotations

import time
import uuid
from typing import Callable, Optional

from application.dto import (
    CacheDeletedDTO,
    CacheEntryDTO,
    CacheSessionDTO,
    ChunkResultDTO,
    FileRecordDTO,
    UploadSessionDTO,
)
from application.ports.storage import DrivePort, RemoteFile, StorageArea
from application.services.folder_service import FolderApplicationService
from application.services.session_token_service import SessionTokenService
from application.utils.content_range import parse_content_range
from application.utils.storage import guess_content_type
from core.config import UploadSettings
from core.logging_config import get_logger
from domain.common.exceptions import (
    DomainValidationException,
    DownloadUnavailableException,
    FileRecordAlreadyExistsException,
    FileRecordNotFoundException,
    InvalidContentRangeException,
    RangeMismatchException,
    ServerMisconfiguredException,
    UploadSessionInvalidException,
)
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.file_record import FileRecord
from domain.upload import UploadSessionDescriptor
from infrastructure.external.storage.utils import normalize_payload, resolve_chunk_size

logger = get_logger(__name__)

CACHE_MIME_TYPE = "application/octet-stream"


def _require_name(value: Optional[str], field: str) -> str:
    name = (value or "").strip()
    if not name:
        raise DomainValidationException(f"{field} is required", field=field)
    if "/" in name:
        raise DomainValidationException(f"{field} cannot contain '/'", field=field)
    return name


def _require_size(value: Optional[int]) -> int:
    if value is None or value <= 0:
        raise DomainValidationException(
            "fileSize is invalid",
            field="fileSize",
            details={"file_size": value},
        )
    return int(value)


def _clean(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


class UploadApplicationService:
    """Open upload sessions, ingest chunks and keep the catalog in sync."""

    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        drive: DrivePort,
        tokens: Optional[SessionTokenService],
        upload_settings: Optional[UploadSettings] = None,
        folders: Optional[FolderApplicationService] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._uow_factory = uow_factory
        self._drive = drive
        self._tokens = tokens
        self._settings = upload_settings or UploadSettings()
        self._folders = folders or FolderApplicationService(uow_factory)
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    @property
    def tokens(self) -> SessionTokenService:
        if self._tokens is None:
            raise ServerMisconfiguredException("UPLOAD_TOKEN is empty")
        return self._tokens

    def resolve_chunk_size(self, multiplier: Optional[float]) -> int:
        return resolve_chunk_size(
            multiplier,
            base=self._settings.chunk_base,
            default_multiplier=self._settings.default_chunk_multiplier,
            max_bytes=self._settings.max_chunk_bytes,
        )

    # ------------------------------------------------------------------
    # Session open
    # ------------------------------------------------------------------
    async def _mint(
        self,
        *,
        remote_name: str,
        area: StorageArea,
        file_size: int,
        filename: str,
        file_id: str,
        mime_type: Optional[str] = None,
        folder_path: Optional[str] = None,
    ) -> tuple[str, int]:
        upload_url = await self._drive.open_upload_session(remote_name, area=area)
        expires_at = self.tokens.expiry_from(self._now_ms())
        descriptor = UploadSessionDescriptor(
            upload_url=upload_url,
            file_size=file_size,
            filename=filename,
            file_id=file_id,
            exp=expires_at,
            mime_type=mime_type,
            folder_path=folder_path,
            hidden=area is StorageArea.CACHE,
        )
        return self.tokens.create(descriptor), expires_at

    async def open_session(
        self,
        *,
        filename: Optional[str],
        file_size: Optional[int],
        mime_type: Optional[str] = None,
        folder_path: Optional[str] = None,
        chunk_multiplier: Optional[float] = None,
    ) -> UploadSessionDTO:
        name = _require_name(filename, "filename")
        size = _require_size(file_size)
        chunk_size = self.resolve_chunk_size(chunk_multiplier)
        file_id = str(uuid.uuid4())

        upload_id, expires_at = await self._mint(
            remote_name=name,
            area=StorageArea.FILES,
            file_size=size,
            filename=name,
            file_id=file_id,
            mime_type=_clean(mime_type),
            folder_path=_clean(folder_path),
        )
        logger.info("upload_session_opened", file_id=file_id, filename=name, file_size=size, chunk_size=chunk_size)
        return UploadSessionDTO(
            upload_id=upload_id,
            filename=name,
            file_size=size,
            chunk_size=chunk_size,
            expires_at=expires_at,
        )

    async def open_cache_session(
        self,
        *,
        key: Optional[str],
        file_size: Optional[int],
        chunk_multiplier: Optional[float] = None,
    ) -> CacheSessionDTO:
        cache_key = _require_name(key, "key")
        size = _require_size(file_size)
        chunk_size = self.resolve_chunk_size(chunk_multiplier)

        upload_id, expires_at = await self._mint(
            remote_name=cache_key,
            area=StorageArea.CACHE,
            file_size=size,
            filename=cache_key,
            file_id=cache_key,
        )
        logger.info("cache_session_opened", key=cache_key, file_size=size, chunk_size=chunk_size)
        return CacheSessionDTO(
            upload_id=upload_id,
            key=cache_key,
            file_size=size,
            chunk_size=chunk_size,
            expires_at=expires_at,
        )

    # ------------------------------------------------------------------
    # Chunk ingest
    # ------------------------------------------------------------------
    async def submit_chunk(
        self,
        *,
        upload_id: Optional[str],
        content_range: Optional[str],
        body: bytes,
    ) -> ChunkResultDTO:
        """Validate one chunk against its session token and forward it.

        All validation happens before the drive is contacted.
        """
        if not upload_id:
            raise UploadSessionInvalidException("Missing x-upload-id header")
        session = self.tokens.verify(upload_id, now_ms=self._now_ms())
        if session is None:
            raise UploadSessionInvalidException()

        byte_range = parse_content_range(content_range)
        if byte_range is None:
            raise InvalidContentRangeException(content_range)

        if byte_range.total != session.file_size:
            raise RangeMismatchException(
                f"content-range total mismatch, expected {session.file_size}, got {byte_range.total}",
                expected=session.file_size,
                actual=byte_range.total,
                field="content-range",
            )
        if len(body) != byte_range.length:
            raise RangeMismatchException(
                f"chunk size mismatch, expected {byte_range.length}, got {len(body)}",
                expected=byte_range.length,
                actual=len(body),
                field="body",
            )

        outcome = await self._drive.upload_chunk(
            session.upload_url,
            body,
            byte_range.start,
            byte_range.end,
            byte_range.total,
        )
        if not outcome.done or outcome.file is None:
            return ChunkResultDTO(done=False, next_expected_ranges=outcome.next_expected_ranges)

        record = await self._complete(session, outcome.file)
        logger.info(
            "upload_completed",
            file_id=record.id,
            size=record.file_size,
            hidden=record.hidden,
        )
        return ChunkResultDTO(
            done=True,
            file_id=record.id,
            size=record.file_size,
            file=FileRecordDTO.model_validate(record),
        )

    async def _complete(self, session: UploadSessionDescriptor, remote: RemoteFile) -> FileRecord:
        if session.hidden:
            record = FileRecord(
                id=session.file_id,
                file_name=session.filename,
                file_size=remote.size,
                mime_type=CACHE_MIME_TYPE,
                hidden=True,
            )
            async with self._uow_factory() as uow:
                return await uow.file_repository.insert_or_update(record)

        folder_id = await self._folders.get_or_create_by_path(session.folder_path)
        record = FileRecord(
            id=session.file_id,
            file_name=remote.name or session.filename,
            file_size=remote.size,
            mime_type=remote.mime_type or session.mime_type,
            folder_id=folder_id,
        )
        return await self._record_once(record)

    async def _record_once(self, record: FileRecord) -> FileRecord:
        """Insert; a record that already exists is read back instead."""
        try:
            async with self._uow_factory() as uow:
                return await uow.file_repository.insert(record)
        except FileRecordAlreadyExistsException:
            logger.info("file_record_already_exists", file_id=record.id)

        async with self._uow_factory(readonly=True) as uow:
            existing = await uow.file_repository.get_by_id(record.id)
        if existing is None:
            raise FileRecordNotFoundException(record.id)
        return existing

    # ------------------------------------------------------------------
    # Whole-body uploads
    # ------------------------------------------------------------------
    async def relay_upload(
        self,
        *,
        data: bytes,
        filename: Optional[str],
        declared_size: Optional[int] = None,
        mime_type: Optional[str] = None,
    ) -> FileRecordDTO:
        """Small-file path: one PUT to the drive, then a catalog insert."""
        name = _require_name(filename, "filename")
        size = len(data) if declared_size is None else declared_size
        payload = normalize_payload(data, size, sniff=self._settings.sniff_base64)
        if len(payload) > self._settings.direct_upload_threshold:
            logger.warning(
                "direct_upload_above_threshold",
                filename=name,
                size=len(payload),
                threshold=self._settings.direct_upload_threshold,
            )

        remote = await self._drive.upload_file(name, payload)
        record = FileRecord(
            id=str(uuid.uuid4()),
            file_name=remote.name or name,
            file_size=remote.size,
            mime_type=remote.mime_type or _clean(mime_type) or guess_content_type(name),
        )
        async with self._uow_factory() as uow:
            created = await uow.file_repository.insert(record)
        logger.info("file_relayed", file_id=created.id, size=created.file_size)
        return FileRecordDTO.model_validate(created)

    # ------------------------------------------------------------------
    # Hidden cache entries
    # ------------------------------------------------------------------
    async def put_cache_entry(self, *, key: Optional[str], data: bytes) -> CacheEntryDTO:
        cache_key = _require_name(key, "key")
        if not data:
            raise DomainValidationException("Request body is empty", field="body")

        remote = await self._drive.upload_file(cache_key, data, area=StorageArea.CACHE)
        record = FileRecord(
            id=cache_key,
            file_name=cache_key,
            file_size=remote.size,
            mime_type=CACHE_MIME_TYPE,
            hidden=True,
        )
        async with self._uow_factory() as uow:
            stored = await uow.file_repository.insert_or_update(record)
        logger.info("cache_entry_stored", key=cache_key, size=stored.file_size)
        return CacheEntryDTO(key=cache_key, size=stored.file_size)

    async def get_cache_download_url(self, key: str) -> str:
        async with self._uow_factory(readonly=True) as uow:
            record = await uow.file_repository.get_hidden(key)
        if record is None:
            raise FileRecordNotFoundException(key)
        url = await self._drive.download_url(key, area=StorageArea.CACHE)
        if not url:
            raise DownloadUnavailableException(key)
        return url

    async def delete_cache_entry(self, key: str) -> CacheDeletedDTO:
        # 远端 404 视为已删除
        await self._drive.delete_file(key, area=StorageArea.CACHE)
        async with self._uow_factory() as uow:
            await uow.file_repository.delete(key)
        logger.info("cache_entry_deleted", key=key)
        return CacheDeletedDTO(deleted=key)

    async def list_cache_keys(self, prefix: Optional[str] = None) -> list[str]:
        async with self._uow_factory(readonly=True) as uow:
            return await uow.file_repository.list_hidden_ids(prefix=prefix or "")

    # ------------------------------------------------------------------
    # Downloads
    # ------------------------------------------------------------------
    async def get_file_download_url(self, file_id: str) -> str:
        async with self._uow_factory(readonly=True) as uow:
            record = await uow.file_repository.get_by_id(file_id)
        if record is None:
            raise FileRecordNotFoundException(file_id)

        area = StorageArea.CACHE if record.hidden else StorageArea.FILES
        url = await self._drive.download_url(record.file_name, area=area)
        if not url:
            raise DownloadUnavailableException(file_id)
        return url

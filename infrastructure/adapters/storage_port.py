"""Infrastructure adapter that implements the application DrivePort
by delegating to the OneDrive client and translating models.
"""
from __future__ import annotations

from typing import Optional

from application.ports.storage import ChunkOutcome, DrivePort, RemoteFile, StorageArea
from infrastructure.external.storage import DriveItem, OneDriveClient
from infrastructure.external.storage.utils import join_drive_path


def _to_remote_file(item: DriveItem) -> RemoteFile:
    return RemoteFile(
        name=item.name,
        size=item.size,
        mime_type=item.mime_type,
        remote_id=item.id,
    )


class OneDrivePortAdapter(DrivePort):
    def __init__(self, client: OneDriveClient):
        self.client = client

    def base_path(self, area: StorageArea) -> str:
        cfg = self.client.config
        if area is StorageArea.CACHE:
            # 缓存目录位于存储根目录之下
            return join_drive_path(cfg.storage_path, cfg.cache_path)
        return join_drive_path(cfg.storage_path)

    async def open_upload_session(self, name: str, *, area: StorageArea = StorageArea.FILES) -> str:
        return await self.client.open_session(self.base_path(area), name)

    async def upload_chunk(
        self,
        upload_url: str,
        data: bytes,
        start: int,
        end: int,
        total: int,
    ) -> ChunkOutcome:
        result = await self.client.upload_chunk(upload_url, data, start, end, total)
        file: Optional[RemoteFile] = _to_remote_file(result.item) if result.item else None
        return ChunkOutcome(
            done=result.done,
            next_expected_ranges=list(result.next_expected_ranges),
            file=file,
        )

    async def upload_file(
        self,
        name: str,
        data: bytes,
        *,
        area: StorageArea = StorageArea.FILES,
    ) -> RemoteFile:
        item = await self.client.upload_direct(self.base_path(area), name, data)
        return _to_remote_file(item)

    async def delete_file(self, name: str, *, area: StorageArea = StorageArea.FILES) -> bool:
        return await self.client.delete_item(self.base_path(area), name)

    async def download_url(self, name: str, *, area: StorageArea = StorageArea.FILES) -> Optional[str]:
        return await self.client.get_download_url(self.base_path(area), name)

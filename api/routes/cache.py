"""隐藏缓存条目路由。"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import RedirectResponse

from api.dependencies import (
    get_upload_service,
    require_drive_settings,
    require_upload_authorization,
)
from application.dto import (
    CacheDeletedDTO,
    CacheEntryDTO,
    CacheInitRequestDTO,
    CacheSessionDTO,
    ChunkResultDTO,
)
from application.services.upload_service import UploadApplicationService
from core.response import Response as ApiResponse, success_response

router = APIRouter(
    prefix="/cache",
    tags=["缓存"],
    dependencies=[Depends(require_upload_authorization)],
)


@router.get(
    "",
    summary="列出缓存键",
    response_model=ApiResponse[list[str]],
)
async def list_cache_keys(
    prefix: Optional[str] = Query(None, description="键前缀"),
    service: UploadApplicationService = Depends(get_upload_service),
):
    keys = await service.list_cache_keys(prefix)
    return success_response(data=keys)


@router.post(
    "/init",
    summary="开启缓存分片上传会话",
    response_model=ApiResponse[CacheSessionDTO],
    dependencies=[Depends(require_drive_settings)],
)
async def init_cache_upload(
    payload: CacheInitRequestDTO,
    service: UploadApplicationService = Depends(get_upload_service),
):
    session = await service.open_cache_session(
        key=payload.key,
        file_size=payload.file_size,
        chunk_multiplier=payload.chunk_multiplier,
    )
    return success_response(data=session, message="Cache upload session created")


@router.post(
    "/chunk",
    summary="提交一个缓存分片",
    response_model=ApiResponse[ChunkResultDTO],
    response_model_exclude_none=True,
)
async def upload_cache_chunk(
    request: Request,
    x_upload_id: Optional[str] = Header(None),
    content_range: Optional[str] = Header(None),
    service: UploadApplicationService = Depends(get_upload_service),
):
    body = await request.body()
    result = await service.submit_chunk(upload_id=x_upload_id, content_range=content_range, body=body)
    return success_response(data=result, message="Upload completed" if result.done else "Chunk accepted")


@router.put(
    "/{key}",
    summary="整体写入缓存条目",
    response_model=ApiResponse[CacheEntryDTO],
)
async def put_cache_entry(
    key: str,
    request: Request,
    service: UploadApplicationService = Depends(get_upload_service),
):
    data = await request.body()
    entry = await service.put_cache_entry(key=key, data=data)
    return success_response(data=entry)


@router.get(
    "/{key}",
    summary="重定向到缓存条目下载地址",
    response_class=RedirectResponse,
    status_code=302,
)
async def get_cache_entry(
    key: str,
    service: UploadApplicationService = Depends(get_upload_service),
):
    url = await service.get_cache_download_url(key)
    return RedirectResponse(url, status_code=302)


@router.delete(
    "/{key}",
    summary="删除缓存条目",
    response_model=ApiResponse[CacheDeletedDTO],
)
async def delete_cache_entry(
    key: str,
    service: UploadApplicationService = Depends(get_upload_service),
):
    deleted = await service.delete_cache_entry(key)
    return success_response(data=deleted)

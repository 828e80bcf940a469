"""可续传上传相关路由。"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Header, Request, UploadFile

from api.dependencies import (
    get_upload_service,
    require_drive_settings,
    require_upload_authorization,
)
from application.dto import (
    ChunkResultDTO,
    FileRecordDTO,
    UploadInitRequestDTO,
    UploadSessionDTO,
)
from application.services.upload_service import UploadApplicationService
from core.response import Response as ApiResponse, success_response

router = APIRouter(
    prefix="/upload",
    tags=["文件上传"],
    dependencies=[Depends(require_upload_authorization)],
)


@router.post(
    "/init",
    summary="开启分片上传会话",
    response_model=ApiResponse[UploadSessionDTO],
    dependencies=[Depends(require_drive_settings)],
)
async def init_upload(
    payload: UploadInitRequestDTO,
    service: UploadApplicationService = Depends(get_upload_service),
):
    session = await service.open_session(
        filename=payload.filename,
        file_size=payload.file_size,
        mime_type=payload.mime_type,
        folder_path=payload.folder_path,
        chunk_multiplier=payload.chunk_multiplier,
    )
    return success_response(data=session, message="Upload session created")


@router.post(
    "/chunk",
    summary="提交一个分片",
    response_model=ApiResponse[ChunkResultDTO],
    response_model_exclude_none=True,
)
async def upload_chunk(
    request: Request,
    x_upload_id: Optional[str] = Header(None),
    content_range: Optional[str] = Header(None),
    service: UploadApplicationService = Depends(get_upload_service),
):
    body = await request.body()
    result = await service.submit_chunk(upload_id=x_upload_id, content_range=content_range, body=body)
    return success_response(data=result, message="Upload completed" if result.done else "Chunk accepted")


@router.post(
    "",
    summary="小文件直传",
    response_model=ApiResponse[FileRecordDTO],
)
async def upload_file(
    file: UploadFile = File(...),
    file_size: Optional[int] = Form(None, alias="fileSize"),
    service: UploadApplicationService = Depends(get_upload_service),
):
    data = await file.read()
    record = await service.relay_upload(
        data=data,
        filename=file.filename,
        declared_size=file_size,
        mime_type=file.content_type,
    )
    return success_response(data=record, message="Upload successful")

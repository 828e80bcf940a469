"""目录浏览与创建路由。"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from api.dependencies import get_folder_service, require_upload_authorization
from application.dto import FolderCreateRequestDTO, FolderDTO
from application.services.folder_service import FolderApplicationService
from core.response import Response as ApiResponse, success_response

router = APIRouter(prefix="/folders", tags=["目录"])


@router.get(
    "",
    summary="列出子目录",
    response_model=ApiResponse[list[FolderDTO]],
)
async def list_folders(
    parent_id: Optional[str] = Query(None, alias="parentId", description="父目录ID，缺省或 null 表示根目录"),
    service: FolderApplicationService = Depends(get_folder_service),
):
    folders = await service.list_children(parent_id)
    return success_response(data=folders)


@router.post(
    "",
    summary="创建目录",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[FolderDTO],
    dependencies=[Depends(require_upload_authorization)],
)
async def create_folder(
    payload: FolderCreateRequestDTO,
    service: FolderApplicationService = Depends(get_folder_service),
):
    folder = await service.create_folder(payload.name, payload.parent_id)
    return success_response(data=folder, message="Folder created")

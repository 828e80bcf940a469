"""文件下载路由。"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from api.dependencies import get_upload_service
from application.services.upload_service import UploadApplicationService

router = APIRouter(
    prefix="/bin",
    tags=["文件下载"],
)


@router.get(
    "/{file_id}",
    summary="重定向到网盘下载地址",
    response_class=RedirectResponse,
    status_code=302,
)
async def download_file(
    file_id: str,
    service: UploadApplicationService = Depends(get_upload_service),
):
    url = await service.get_file_download_url(file_id)
    return RedirectResponse(url, status_code=302)

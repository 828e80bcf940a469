"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
        )


class UploadUnauthorizedException(BusinessException):
    def __init__(self, message: str = "Provide Authorization or x-authorization header"):
        super().__init__(
            code=BusinessCode.UNAUTHORIZED,
            message=message,
            error_type="Unauthorized",
        )


class ServerMisconfiguredException(BusinessException):
    def __init__(self, message: str, *, missing: Optional[list[str]] = None):
        super().__init__(
            code=BusinessCode.SERVER_MISCONFIGURED,
            message=f"Server misconfigured: {message}",
            error_type="ServerMisconfigured",
            details={"missing": missing} if missing else None,
        )


class UploadSessionInvalidException(BusinessException):
    """Signature mismatch, expiry or missing fields in an upload token."""

    def __init__(self, message: str = "Invalid or expired uploadId"):
        super().__init__(
            code=BusinessCode.UPLOAD_SESSION_INVALID,
            message=message,
            error_type="UploadSessionInvalid",
            field="x-upload-id",
        )


class InvalidContentRangeException(BusinessException):
    def __init__(self, value: Optional[str]):
        super().__init__(
            code=BusinessCode.CONTENT_RANGE_INVALID,
            message="Invalid content-range header",
            error_type="InvalidContentRange",
            details={"content_range": value},
            field="content-range",
        )


class RangeMismatchException(BusinessException):
    """Content-Range disagrees with the session or with the body length."""

    def __init__(self, message: str, *, expected: int, actual: int, field: str):
        super().__init__(
            code=BusinessCode.RANGE_MISMATCH,
            message=message,
            error_type="RangeMismatch",
            details={"expected": expected, "actual": actual},
            field=field,
        )


class SizeMismatchException(BusinessException):
    def __init__(self, *, declared: int, actual: int):
        super().__init__(
            code=BusinessCode.SIZE_MISMATCH,
            message=f"size mismatch, declared {declared}, got {actual}",
            error_type="SizeMismatch",
            details={"declared": declared, "actual": actual},
            field="fileSize",
        )


class FileRecordNotFoundException(BusinessException):
    def __init__(self, file_id: Optional[str] = None):
        super().__init__(
            code=BusinessCode.NOT_FOUND,
            message="Not found",
            error_type="FileRecordNotFound",
            details={"file_id": file_id} if file_id is not None else None,
        )


class FileRecordAlreadyExistsException(BusinessException):
    def __init__(self, file_id: str):
        super().__init__(
            code=BusinessCode.BUSINESS_ERROR,
            message="File record already exists",
            error_type="FileRecordAlreadyExists",
            details={"file_id": file_id},
        )


class DownloadUnavailableException(BusinessException):
    def __init__(self, file_id: str):
        super().__init__(
            code=BusinessCode.FORBIDDEN,
            message="Download declined",
            error_type="DownloadUnavailable",
            details={"file_id": file_id},
        )


class FolderNotFoundException(BusinessException):
    def __init__(self, folder_id: str):
        super().__init__(
            code=BusinessCode.NOT_FOUND,
            message="parent folder not found",
            error_type="FolderNotFound",
            details={"folder_id": folder_id},
            field="parentId",
        )


class FolderAlreadyExistsException(BusinessException):
    def __init__(self, name: str, parent_id: Optional[str]):
        super().__init__(
            code=BusinessCode.CONFLICT,
            message="a folder with this name already exists in this location",
            error_type="FolderAlreadyExists",
            details={"name": name, "parent_id": parent_id},
            field="name",
        )

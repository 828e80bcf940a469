"""
Shared business codes used across layers (Domain/Core/API).

This package provides a single source of truth to avoid drift between
multiple enum definitions scattered across the codebase.
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    """业务状态码定义（单一来源）"""

    # 成功
    SUCCESS = 0

    # 参数错误 (1xxxx)
    PARAM_ERROR = 10000
    PARAM_VALIDATION_ERROR = 10003
    CONTENT_RANGE_INVALID = 10004
    RANGE_MISMATCH = 10005
    SIZE_MISMATCH = 10006

    # 业务错误 (2xxxx)
    BUSINESS_ERROR = 20000
    UPLOAD_SESSION_INVALID = 20004
    NOT_FOUND = 20006  # 资源未找到（通用）
    CONFLICT = 20009

    # 权限错误 (3xxxx)
    UNAUTHORIZED = 30001
    FORBIDDEN = 30002

    # 系统错误 (4xxxx)
    SYSTEM_ERROR = 40000
    SERVICE_UNAVAILABLE = 40003
    SERVER_MISCONFIGURED = 40004
    STORAGE_BACKEND_ERROR = 40005

    # 限流错误 (5xxxx)
    TOO_MANY_REQUESTS = 50001


__all__ = ["BusinessCode"]

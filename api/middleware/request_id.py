"""
Request ID 中间件
生成或透传追踪ID，并通过 contextvars 传递给日志系统
"""
import re
import uuid
from typing import Optional

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware


# 只透传看起来像追踪ID的值，其余一律重新生成
_INBOUND_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def _inbound_request_id(value: Optional[str]) -> str:
    if value and _INBOUND_ID.match(value.strip()):
        return value.strip()
    return str(uuid.uuid4())


def _client_ip(request: Request) -> str:
    """X-Forwarded-For 首个地址 > X-Real-IP > 连接地址"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Request ID 追踪中间件

    请求ID写入 request.state 与 structlog 上下文，并回写到响应头。
    """

    HEADER_NAME = "X-Request-ID"

    async def dispatch(self, request: Request, call_next):
        request_id = _inbound_request_id(request.headers.get(self.HEADER_NAME))
        client_ip = _client_ip(request)

        request.state.request_id = request_id
        request.state.client_ip = client_ip

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            client_ip=client_ip,
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)
        response.headers[self.HEADER_NAME] = request_id
        return response

"""
上传会话令牌服务 - 将可续传上传的全部状态签名后交给调用方保存

令牌格式: ``base64url(payload).base64url(hmac_sha256(secret, base64url(payload)))``
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import time
from typing import Any, Optional

from domain.upload import UploadSessionDescriptor
from core.logging_config import get_logger

logger = get_logger(__name__)

# 默认会话有效期：2 小时
MAX_SESSION_AGE_MS = 2 * 60 * 60 * 1000

_REQUIRED_STR_FIELDS = ("uploadUrl", "filename", "fileId")


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(value: str) -> bytes:
    padded = value + "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _sign(secret: str, payload: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), payload.encode("ascii"), hashlib.sha256).digest()


def _now_ms() -> int:
    return int(time.time() * 1000)


def _is_valid_payload(payload: Any, now_ms: int) -> bool:
    if not isinstance(payload, dict):
        return False
    exp = payload.get("exp")
    if not isinstance(exp, int) or isinstance(exp, bool) or now_ms >= exp:
        return False
    for key in _REQUIRED_STR_FIELDS:
        value = payload.get(key)
        if not isinstance(value, str) or not value:
            return False
    size = payload.get("fileSize")
    if not isinstance(size, int) or isinstance(size, bool) or size <= 0:
        return False
    return True


class SessionTokenService:
    """Mint and verify signed upload session tokens.

    Verification is total: any malformed, forged or expired token yields
    ``None`` rather than an exception.
    """

    def __init__(self, secret: str, *, max_age_ms: int = MAX_SESSION_AGE_MS):
        if not secret:
            raise ValueError("session token secret must not be empty")
        self._secret = secret
        self.max_age_ms = max_age_ms

    def expiry_from(self, now_ms: Optional[int] = None) -> int:
        return (now_ms if now_ms is not None else _now_ms()) + self.max_age_ms

    def create(self, descriptor: UploadSessionDescriptor) -> str:
        return create_session_token(descriptor, self._secret)

    def verify(self, token: Optional[str], now_ms: Optional[int] = None) -> Optional[UploadSessionDescriptor]:
        return verify_session_token(token, self._secret, now_ms=now_ms)


def create_session_token(descriptor: UploadSessionDescriptor, secret: str) -> str:
    # 固定字段顺序 + 紧凑分隔符，保证签名稳定
    encoded = json.dumps(descriptor.to_payload(), separators=(",", ":"), ensure_ascii=False)
    payload = _b64url_encode(encoded.encode("utf-8"))
    signature = _b64url_encode(_sign(secret, payload))
    return f"{payload}.{signature}"


def verify_session_token(
    token: Optional[str],
    secret: str,
    *,
    now_ms: Optional[int] = None,
) -> Optional[UploadSessionDescriptor]:
    if not token or not secret:
        return None
    parts = token.strip().split(".")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    payload, signature = parts

    try:
        actual = _b64url_decode(signature)
        expected = _sign(secret, payload)
    except (binascii.Error, ValueError, UnicodeError):
        return None
    if not hmac.compare_digest(actual, expected):
        logger.info("upload_token_signature_mismatch")
        return None

    try:
        data = json.loads(_b64url_decode(payload).decode("utf-8"))
    except (binascii.Error, ValueError, UnicodeError):
        return None

    if not _is_valid_payload(data, now_ms if now_ms is not None else _now_ms()):
        return None

    try:
        return UploadSessionDescriptor.from_payload(data)
    except (KeyError, TypeError):
        return None

"""OneDrive (Microsoft Graph) drive client.

职责：
- OAuth2 client-credentials 令牌获取与缓存
- 按路径读取元数据、小文件直传、删除
- 创建可续传上传会话并逐片 PUT
"""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import quote

import httpx

from core.logging_config import get_logger
from ..config import DriveConfig
from ..credentials import AccessToken, CredentialCache
from ..exceptions import (
    AuthenticationError,
    BackendErrorKind,
    FatalBackendError,
    RemoteItemNotFoundError,
    StorageError,
    TransientBackendError,
    classify_status,
)
from ..models import ChunkUploadResult, DriveItem
from ..retry import is_transient_chunk, is_transient_default, retry_async
from ..utils import encode_drive_path

logger = get_logger(__name__)

INVALID_TOKEN_CODE = "InvalidAuthenticationToken"
# 401 时最多刷新一次令牌再重试一次
MAX_AUTH_ATTEMPTS = 2


def _error_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


def _error_code(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return error.get("code")
    return None


def _error_message(body: Any, default: str) -> str:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("error_description"):
            return str(body["error_description"])
    if isinstance(body, str) and body:
        return body
    return default


def _replace_host(url: str, host: str) -> str:
    return str(httpx.URL(url).copy_with(host=host))


class OneDriveClient:
    """Talks to a single user's drive through Microsoft Graph."""

    def __init__(
        self,
        config: DriveConfig,
        *,
        credentials: Optional[CredentialCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.config = config
        self.credentials = credentials or CredentialCache()
        self._transport = transport
        self._sleep = sleep
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def drive_root(self) -> str:
        user = quote(self.config.user_email, safe="@")
        return f"{self.config.api_host}/v1.0/users/{user}/drive/root"

    @property
    def token_url(self) -> str:
        return f"{self.config.oauth_host}/{self.config.tenant_id}/oauth2/token"

    def item_url(self, base_path: Optional[str], relative_path: str, action: str = "") -> str:
        url = f"{self.drive_root}:/{encode_drive_path(base_path, relative_path)}"
        if action:
            url = f"{url}:/{action}"
        return url

    @property
    def client(self) -> httpx.AsyncClient:
        """获取或创建共享的 HTTP 客户端"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "OneDriveClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # HTTP boundary
    # ------------------------------------------------------------------

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send once; connection-level failures become NETWORK errors."""
        try:
            return await self.client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise TransientBackendError(
                f"Network error calling drive: {exc}",
                kind=BackendErrorKind.NETWORK,
            ) from exc

    async def _send_with_default_retry(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        async def _once() -> httpx.Response:
            response = await self._send(method, url, **kwargs)
            if response.status_code >= 500:
                raise TransientBackendError(
                    f"Drive returned {response.status_code}",
                    kind=BackendErrorKind.SERVER_ERROR,
                    status_code=response.status_code,
                    body=_error_body(response),
                )
            return response

        return await retry_async(
            _once,
            max_retries=self.config.request_max_retries,
            initial_delay=self.config.request_initial_delay,
            max_delay=self.config.request_max_delay,
            retry_condition=is_transient_default,
            sleep=self._sleep,
        )

    @staticmethod
    def _raise_for_response(response: httpx.Response, action: str) -> None:
        status = response.status_code
        body = _error_body(response)
        message = f"Failed to {action}: {_error_message(body, f'status {status}')}"
        kind = classify_status(status)
        if status == 404:
            raise RemoteItemNotFoundError(message, kind=kind, status_code=status, body=body)
        if kind is BackendErrorKind.UNAUTHORIZED:
            raise AuthenticationError(message, kind=kind, status_code=status, body=body)
        if kind is BackendErrorKind.RATE_LIMITED:
            raise TransientBackendError(message, kind=kind, status_code=status, body=body)
        raise FatalBackendError(message, kind=kind, status_code=status, body=body)

    # ------------------------------------------------------------------
    # OAuth
    # ------------------------------------------------------------------

    async def authenticate(self) -> AccessToken:
        """Client-credentials exchange; stores the new token in the cache."""
        api = self.config.api_host
        form = {
            "grant_type": "client_credentials",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "resource": f"{api}/",
            "scope": f"{api}/.default",
        }
        try:
            response = await self._send_with_default_retry("POST", self.token_url, data=form)
        except TransientBackendError as exc:
            raise AuthenticationError(
                f"Error fetching access token: {exc.message}",
                kind=exc.kind,
                status_code=exc.status_code,
                body=exc.body,
            ) from exc

        body = _error_body(response)
        if not response.is_success:
            raise AuthenticationError(
                f"Error fetching access token: {_error_message(body, f'status {response.status_code}')}",
                kind=classify_status(response.status_code),
                status_code=response.status_code,
                body=body,
            )

        access_token = body.get("access_token") if isinstance(body, dict) else None
        if not access_token:
            raise AuthenticationError("Access token is empty", body=body)

        token = AccessToken.issue(
            access_token,
            body.get("expires_in"),
            safety_margin=self.config.token_safety_margin,
        )
        self.credentials.store(token)
        logger.info("drive_token_refreshed", expires_at=token.expires_at)
        return token

    async def _authorized(self, method: str, url: str, action: str, **kwargs: Any) -> httpx.Response:
        """Send with a bearer token; on rejection refresh once and retry once."""
        extra_headers = kwargs.pop("headers", {})
        rejected: Optional[str] = None
        attempt = 1
        while True:
            token = await self.credentials.get(self.authenticate, stale=rejected)
            headers = {**extra_headers, "Authorization": f"Bearer {token}"}
            response = await self._send_with_default_retry(method, url, headers=headers, **kwargs)

            token_rejected = response.status_code == 401 or (
                not response.is_success and _error_code(_error_body(response)) == INVALID_TOKEN_CODE
            )
            if not token_rejected or attempt >= MAX_AUTH_ATTEMPTS:
                return response
            rejected = token
            logger.warning("drive_token_rejected", action=action, attempt=attempt)
            attempt += 1

    # ------------------------------------------------------------------
    # Drive operations
    # ------------------------------------------------------------------

    async def get_metadata(self, base_path: Optional[str], relative_path: str) -> DriveItem:
        response = await self._authorized("GET", self.item_url(base_path, relative_path), "get file")
        if not response.is_success:
            self._raise_for_response(response, "get file")
        return DriveItem.model_validate(response.json())

    async def upload_direct(self, base_path: Optional[str], relative_path: str, data: bytes) -> DriveItem:
        response = await self._authorized(
            "PUT",
            self.item_url(base_path, relative_path, "content"),
            "upload file",
            content=data,
            headers={"Content-Type": "application/octet-stream"},
        )
        if not response.is_success:
            self._raise_for_response(response, "upload file")
        item = DriveItem.model_validate(response.json())
        logger.info("drive_file_uploaded", path=relative_path, size=item.size)
        return item

    async def open_session(self, base_path: Optional[str], relative_path: str) -> str:
        response = await self._authorized(
            "POST",
            self.item_url(base_path, relative_path, "createUploadSession"),
            "create upload session",
            json={"item": {"@microsoft.graph.conflictBehavior": "replace"}},
        )
        if not response.is_success:
            self._raise_for_response(response, "create upload session")
        body = response.json()
        upload_url = body.get("uploadUrl") if isinstance(body, dict) else None
        if not upload_url:
            raise FatalBackendError(
                "Failed to create upload session: response has no uploadUrl",
                status_code=response.status_code,
                body=body,
            )
        logger.info("drive_upload_session_opened", path=relative_path)
        return upload_url

    async def upload_chunk(
        self,
        upload_url: str,
        data: bytes,
        start: int,
        end: int,
        total: int,
    ) -> ChunkUploadResult:
        """PUT ``data`` as ``bytes start-end/total`` to an open upload session.

        The session URL is itself the capability, no Authorization header is sent.
        """
        content_range = f"bytes {start}-{end}/{total}"
        headers = {
            "Content-Range": content_range,
            "Content-Length": str(len(data)),
        }

        async def _put_once() -> ChunkUploadResult:
            response = await self._send("PUT", upload_url, content=data, headers=headers)
            status = response.status_code

            if status == 202:
                body = _error_body(response)
                ranges = body.get("nextExpectedRanges") if isinstance(body, dict) else None
                return ChunkUploadResult(done=False, next_expected_ranges=ranges or [])
            if status in (200, 201):
                return ChunkUploadResult(done=True, item=DriveItem.model_validate(response.json()))

            body = _error_body(response)
            kind = classify_status(status)
            message = f"Chunk upload failed at {content_range}: {_error_message(body, f'status {status}')}"
            if kind in (BackendErrorKind.RATE_LIMITED, BackendErrorKind.SERVER_ERROR):
                raise TransientBackendError(
                    message, kind=kind, status_code=status, body=body, content_range=content_range
                )
            raise FatalBackendError(message, kind=kind, status_code=status, body=body, content_range=content_range)

        try:
            result = await retry_async(
                _put_once,
                max_retries=self.config.chunk_max_retries,
                initial_delay=self.config.chunk_initial_delay,
                max_delay=self.config.chunk_max_delay,
                retry_condition=is_transient_chunk,
                sleep=self._sleep,
            )
        except StorageError as exc:
            if exc.content_range is None:
                exc.content_range = content_range
            logger.warning(
                "chunk_upload_failed",
                range=content_range,
                status=exc.status_code,
                kind=exc.kind.value if exc.kind else None,
            )
            raise

        logger.info("chunk_uploaded", range=content_range, done=result.done)
        return result

    async def delete_item(self, base_path: Optional[str], relative_path: str) -> bool:
        response = await self._authorized("DELETE", self.item_url(base_path, relative_path), "delete file")
        if response.status_code == 404:
            return False
        if not response.is_success:
            self._raise_for_response(response, "delete file")
        logger.info("drive_file_deleted", path=relative_path)
        return True

    async def get_download_url(
        self,
        base_path: Optional[str],
        relative_path: str,
        custom_host: Optional[str] = None,
    ) -> Optional[str]:
        """Pre-authenticated download URL, or None when the drive offers none."""
        item = await self.get_metadata(base_path, relative_path)
        if not item.is_file:
            raise FatalBackendError(f"Not a file: {relative_path}")
        if not item.download_url:
            logger.warning("drive_download_url_missing", path=relative_path)
            return None

        host = custom_host or self.config.download_host
        if host:
            return _replace_host(item.download_url, host)
        return item.download_url

    async def health_check(self) -> bool:
        try:
            await self.authenticate()
        except StorageError as exc:
            logger.warning("drive_health_check_failed", error=exc.message)
            return False
        return True

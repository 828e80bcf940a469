"""OAuth access token cache owned by a single drive client."""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

# 服务端未返回 expires_in 时的默认有效期（秒）
DEFAULT_EXPIRES_IN = 3600
MIN_SAFETY_MARGIN = 30


@dataclass(frozen=True)
class AccessToken:
    value: str
    expires_at: float  # epoch seconds, safety margin already applied

    @classmethod
    def issue(
        cls,
        value: str,
        expires_in: object,
        *,
        safety_margin: int = MIN_SAFETY_MARGIN,
        issued_at: Optional[float] = None,
    ) -> "AccessToken":
        try:
            seconds = int(expires_in)  # type: ignore[call-overload]
        except (TypeError, ValueError):
            seconds = DEFAULT_EXPIRES_IN
        if seconds <= 0:
            seconds = DEFAULT_EXPIRES_IN
        margin = max(MIN_SAFETY_MARGIN, safety_margin)
        issued = time.time() if issued_at is None else issued_at
        return cls(value=value, expires_at=issued + seconds - margin)

    def is_valid(self, now: float) -> bool:
        return bool(self.value) and now < self.expires_at


class CredentialCache:
    """Holds the current access token and serializes refreshes.

    Concurrent refreshes are harmless (each yields an equally valid token),
    the lock only keeps a burst of callers from hitting the token endpoint at once.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._token: Optional[AccessToken] = None
        self._lock = asyncio.Lock()

    @property
    def token(self) -> Optional[AccessToken]:
        return self._token

    def current(self) -> Optional[str]:
        token = self._token
        if token is not None and token.is_valid(self._clock()):
            return token.value
        return None

    def store(self, token: AccessToken) -> None:
        self._token = token

    async def get(
        self,
        refresh: Callable[[], Awaitable[AccessToken]],
        *,
        stale: Optional[str] = None,
    ) -> str:
        """Return a usable token, calling ``refresh`` when needed.

        ``stale`` is a token the backend just rejected; it is never handed back.
        """
        value = self.current()
        if value is not None and value != stale:
            return value
        async with self._lock:
            value = self.current()
            if value is not None and value != stale:
                return value
            token = await refresh()
            self._token = token
            return token.value

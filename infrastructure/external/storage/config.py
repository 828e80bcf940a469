"""Drive client configuration model."""
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .credentials import MIN_SAFETY_MARGIN


class DriveConfig(BaseModel):
    """Everything the OneDrive client needs, assembled from settings."""

    client_id: str
    client_secret: str
    tenant_id: str
    user_email: str
    storage_path: str
    cache_path: str = "cache"

    oauth_host: str = "https://login.microsoftonline.com"
    api_host: str = "https://graph.microsoft.com"
    download_host: Optional[str] = None

    token_safety_margin: int = MIN_SAFETY_MARGIN
    timeout: float = 60.0

    # 元数据/上传会话等普通请求：仅重试网络错误与 5xx
    request_max_retries: int = 3
    request_initial_delay: float = 0.2
    request_max_delay: float = 5.0

    # 分片 PUT：额外重试 429
    chunk_max_retries: int = 3
    chunk_initial_delay: float = 1.0
    chunk_max_delay: float = Field(default=8.0, gt=0)

    @field_validator("oauth_host", "api_host")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("token_safety_margin")
    @classmethod
    def _min_margin(cls, v: int) -> int:
        return max(MIN_SAFETY_MARGIN, v)

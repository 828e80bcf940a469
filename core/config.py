"""
配置文件 - 项目配置管理
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator
from typing import Optional


class DatabaseSettings(BaseModel):
    url: str = "sqlite+aiosqlite:///./drive_relay.db"
    echo: bool = False


class OneDriveSettings(BaseModel):
    """Credentials and addressing for the Graph drive backend."""

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    tenant_id: Optional[str] = None
    user_email: Optional[str] = None
    # Folder (relative to drive root) that receives regular uploads
    storage_path: Optional[str] = None
    # Folder that receives hidden cache entries
    cache_path: str = "cache"
    oauth_host: str = "https://login.microsoftonline.com"
    api_host: str = "https://graph.microsoft.com"
    # Optional host substituted into download URLs (CDN / reverse proxy)
    download_host: Optional[str] = None
    # Seconds subtracted from expires_in; never below 30
    token_safety_margin: int = 30
    timeout: float = 60.0

    @field_validator("token_safety_margin")
    @classmethod
    def _min_margin(cls, v: int) -> int:
        return max(30, int(v))


class UploadSettings(BaseModel):
    # Graph requires chunk sizes in multiples of 320 KiB
    chunk_base: int = 320 * 1024
    default_chunk_multiplier: int = 10
    max_chunk_bytes: int = 100 * 1024 * 1024
    max_session_age_seconds: int = 2 * 60 * 60
    # Whole-body uploads above this size should use the chunked path
    direct_upload_threshold: int = 4 * 1024 * 1024
    sniff_base64: bool = True
    chunk_max_retries: int = 3
    chunk_initial_delay: float = 1.0
    chunk_max_delay: float = 8.0


class Settings(BaseSettings):
    """项目配置"""

    # 基础配置
    PROJECT_NAME: str = Field(default="Drive Relay")
    VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=True)
    ENVIRONMENT: str = Field(default="development")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    onedrive: OneDriveSettings = Field(default_factory=OneDriveSettings)
    upload: UploadSettings = Field(default_factory=UploadSettings)

    # 上传鉴权共享密钥，同时用作会话令牌签名密钥
    UPLOAD_TOKEN: Optional[str] = Field(
        default=None,
        description="Shared secret for upload endpoints and session token signing",
    )

    # CORS配置
    CORS_ORIGINS: list = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
    )

    # 日志/请求体记录配置
    LOG_REQUEST_BODY_ENABLE_BY_DEFAULT: bool = Field(default=True)
    LOG_REQUEST_BODY_MAX_BYTES: int = Field(default=2048)

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    @field_validator("UPLOAD_TOKEN", mode="before")
    @classmethod
    def _strip_upload_token(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """允许 JSON 字符串或逗号分隔字符串两种格式。"""
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("[") and s.endswith("]"):
                import json
                try:
                    arr = json.loads(s)
                    if isinstance(arr, list):
                        return arr
                except ValueError:
                    pass
            if "," in s:
                return [item.strip() for item in s.split(",") if item.strip()]
            return [s]
        return v

    def missing_onedrive_settings(self) -> list[str]:
        """Return env keys of required drive settings that are empty."""
        required = {
            "ONEDRIVE__CLIENT_ID": self.onedrive.client_id,
            "ONEDRIVE__CLIENT_SECRET": self.onedrive.client_secret,
            "ONEDRIVE__TENANT_ID": self.onedrive.tenant_id,
            "ONEDRIVE__USER_EMAIL": self.onedrive.user_email,
            "ONEDRIVE__STORAGE_PATH": self.onedrive.storage_path,
        }
        return [key for key, value in required.items() if not (value or "").strip()]


settings = Settings()

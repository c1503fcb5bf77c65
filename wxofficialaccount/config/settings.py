"""
Application settings and configuration management.
"""
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# 启动回调服务所必需的环境变量
REQUIRED_CREDENTIALS: List[str] = ["WECHAT_APP_ID", "WECHAT_APP_SECRET", "WECHAT_TOKEN"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # 公众号配置
    WECHAT_APP_ID: Optional[str] = None
    WECHAT_APP_SECRET: Optional[str] = None
    WECHAT_TOKEN: Optional[str] = None
    WECHAT_ENCODING_AES_KEY: Optional[str] = None  # 安全模式才需要

    # access_token 存储: memory / redis
    WECHAT_TOKEN_STORAGE: str = "memory"
    REDIS_URL: str = "redis://127.0.0.1:6379/0"
    REDIS_KEY_PREFIX: str = "wechatpy"

    # 服务配置
    HOST: str = "0.0.0.0"
    PORT: int = 8001
    CALLBACK_PATH: str = "/"
    LOG_LEVEL: str = "INFO"

    @field_validator("WECHAT_TOKEN_STORAGE")
    @classmethod
    def validate_token_storage(cls, value: str) -> str:
        value = value.lower()
        if value not in ("memory", "redis"):
            raise ValueError(f"WECHAT_TOKEN_STORAGE must be 'memory' or 'redis', got {value!r}")
        return value

    @field_validator("CALLBACK_PATH")
    @classmethod
    def validate_callback_path(cls, value: str) -> str:
        if not value.startswith("/"):
            value = "/" + value
        return value


# 创建全局settings实例
settings = Settings()


def get_settings() -> Settings:
    """
    获取设置实例

    Returns:
        Settings 实例
    """
    return settings


def missing_credentials(settings: Settings) -> List[str]:
    """返回未配置的必需环境变量"""
    return [name for name in REQUIRED_CREDENTIALS if not getattr(settings, name)]


def is_configured(settings: Settings) -> bool:
    """
    检查公众号凭证是否已配置

    Args:
        settings: 设置实例

    Returns:
        bool: 必需环境变量是否都已设置
    """
    return not missing_credentials(settings)

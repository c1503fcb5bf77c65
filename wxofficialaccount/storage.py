"""
Access Token 存储选择

access_token 的缓存与刷新由 wechatpy 负责,这里只负责选择存储后端:
- 不指定 redis_url: 进程内存(MemoryStorage)
- 指定 redis_url: Redis(RedisStorage),多进程/多实例共用一个 token
"""

import logging
from typing import Optional

import redis
from wechatpy.session import SessionStorage
from wechatpy.session.memorystorage import MemoryStorage
from wechatpy.session.redisstorage import RedisStorage

from .base import AccountConfigError

logger = logging.getLogger(__name__)


def build_session_storage(
    redis_url: Optional[str] = None,
    key_prefix: str = "wechatpy",
) -> SessionStorage:
    """
    构造 wechatpy 的 token 存储

    Args:
        redis_url: Redis 连接 URL,为空时使用内存存储
        key_prefix: Redis key 前缀

    Returns:
        SessionStorage 实例

    Raises:
        AccountConfigError: redis_url 格式错误
    """
    if not redis_url:
        logger.info("Using in-memory access token storage")
        return MemoryStorage()

    try:
        redis_client = redis.Redis.from_url(redis_url)
    except ValueError as e:
        raise AccountConfigError(f"Invalid REDIS_URL {redis_url!r}: {e}") from e

    logger.info(f"Using Redis access token storage: {redis_url}, prefix={key_prefix}")
    return RedisStorage(redis_client, prefix=key_prefix)

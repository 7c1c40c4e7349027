"""
Cache
缓存模块 - 记忆分析结果等短期数据
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional
from datetime import datetime, timedelta
from threading import Lock
import hashlib
import logging


logger = logging.getLogger(__name__)


class BaseCache(ABC):
    """
    缓存抽象基类
    """

    def __init__(self, ttl: Optional[int] = None):
        """
        Args:
            ttl: 默认过期时间 (秒), None = 永不过期
        """
        self.ttl = ttl

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """获取缓存值, 不存在或已过期返回 None"""
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """设置缓存值"""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass

    def exists(self, key: str) -> bool:
        return self.get(key) is not None

    @staticmethod
    def make_key(*args, **kwargs) -> str:
        """
        根据参数生成缓存键

        Returns:
            md5 十六进制摘要
        """
        key_parts = [str(arg) for arg in args]
        key_parts.extend([f"{k}={v}" for k, v in sorted(kwargs.items())])
        key_string = ":".join(key_parts)
        return hashlib.md5(key_string.encode("utf-8")).hexdigest()


def memory_set_key(memory_ids: Iterable[str], prefix: str = "analysis") -> str:
    """同一组记忆 (与顺序无关) 得到同一个缓存键"""
    ids = sorted(str(memory_id) for memory_id in memory_ids or [])
    return f"{prefix}:{BaseCache.make_key(*ids)}"


class MemoryCache(BaseCache):
    """
    内存缓存
    线程安全的字典缓存, 超出容量时淘汰最旧条目
    """

    def __init__(self, ttl: Optional[int] = None, max_size: int = 1000):
        """
        Args:
            ttl: 默认过期时间 (秒)
            max_size: 最大缓存条目数
        """
        super().__init__(ttl)
        self.max_size = max(1, int(max_size))
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._lock = Lock()

    @staticmethod
    def _expired(entry: Dict[str, Any], now: datetime) -> bool:
        expires_at = entry.get("expires_at")
        return expires_at is not None and now >= expires_at

    def _evict(self, now: datetime) -> None:
        for key in [k for k, v in self._entries.items() if self._expired(v, now)]:
            del self._entries[key]
        overflow = len(self._entries) - self.max_size + 1
        if overflow > 0:
            oldest = sorted(self._entries, key=lambda k: self._entries[k]["created_at"])
            for key in oldest[:overflow]:
                del self._entries[key]

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._expired(entry, datetime.now()):
                del self._entries[key]
                return None
            return entry["value"]

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        now = datetime.now()
        ttl = self.ttl if ttl is None else ttl
        with self._lock:
            if key not in self._entries:
                self._evict(now)
            self._entries[key] = {
                "value": value,
                "created_at": now,
                "expires_at": now + timedelta(seconds=ttl) if ttl else None,
            }

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

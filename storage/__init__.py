"""
Storage Module
存储模块 - 记忆源、产物存储和缓存
"""
from .cache import (
    BaseCache,
    MemoryCache,
    memory_set_key,
)
from .memory_store import InMemoryMemoryStore, MemoryFilter
from .artifact_store import (
    BaseArtifactStore,
    InMemoryArtifactStore,
    FileArtifactStore,
    get_artifact_store,
)

__all__ = [
    # Cache
    "BaseCache",
    "MemoryCache",
    "memory_set_key",
    # Memory source
    "InMemoryMemoryStore",
    "MemoryFilter",
    # Artifact sink
    "BaseArtifactStore",
    "InMemoryArtifactStore",
    "FileArtifactStore",
    "get_artifact_store",
]

"""Shared runtime singletons for web/CLI entrypoints."""

from __future__ import annotations

from threading import Lock
from typing import Optional

from config import get_muse_settings, get_storage_settings
from imaging import BaseImageAdapter, get_image_adapter as _build_image_adapter
from intelligence.llm import BaseLLM, get_llm as _build_llm
from muse import ArtifactOrchestrator, MemoryAnalyzer, SynthesisService
from storage import BaseArtifactStore, InMemoryMemoryStore, MemoryCache, get_artifact_store as _build_artifact_store


_MEMORY_STORE = InMemoryMemoryStore()
_ANALYSIS_CACHE = MemoryCache(max_size=get_storage_settings().cache_max_size)
_ARTIFACT_STORE: Optional[BaseArtifactStore] = None
_LLM: Optional[BaseLLM] = None
_IMAGE_ADAPTER: Optional[BaseImageAdapter] = None
_LOCK = Lock()


def get_memory_store() -> InMemoryMemoryStore:
    return _MEMORY_STORE


def get_artifact_store() -> BaseArtifactStore:
    global _ARTIFACT_STORE
    with _LOCK:
        if _ARTIFACT_STORE is None:
            _ARTIFACT_STORE = _build_artifact_store()
        return _ARTIFACT_STORE


def get_llm() -> BaseLLM:
    global _LLM
    with _LOCK:
        if _LLM is None:
            _LLM = _build_llm()
        return _LLM


def get_image_adapter() -> BaseImageAdapter:
    global _IMAGE_ADAPTER
    with _LOCK:
        if _IMAGE_ADAPTER is None:
            _IMAGE_ADAPTER = _build_image_adapter()
        return _IMAGE_ADAPTER


def get_synthesis_service() -> SynthesisService:
    settings = get_muse_settings()
    llm = get_llm()
    analyzer = MemoryAnalyzer(
        llm,
        use_llm=settings.analyze_with_llm,
        cache=_ANALYSIS_CACHE,
        cache_ttl=settings.analysis_cache_ttl,
        timeout_sec=settings.analysis_timeout_sec,
    )
    return SynthesisService(llm, get_artifact_store(), analyzer=analyzer, settings=settings)


def get_orchestrator() -> ArtifactOrchestrator:
    return ArtifactOrchestrator(get_llm(), get_image_adapter(), get_artifact_store())

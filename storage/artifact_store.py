"""Artifact sink: persisted creative outputs (poems, collections, images, journals, analyses)."""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional
from uuid import uuid4

from core import ArtifactKind, ArtifactRecord, Provenance
from utils.exceptions import NotFoundError, StorageError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_artifact_id() -> str:
    return f"art_{_utcnow().strftime('%Y%m%d_%H%M%S')}_{uuid4().hex[:8]}"


class BaseArtifactStore(ABC):
    """Create/read interface shared by all artifact backends."""

    def create_artifact(
        self,
        kind: ArtifactKind,
        payload: Dict[str, Any],
        provenance: Optional[Provenance] = None,
        *,
        title: str = "",
        description: str = "",
        memory_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> ArtifactRecord:
        """Persist one artifact and return the stored record. Raises ``StorageError``."""
        try:
            record = ArtifactRecord(
                id=_new_artifact_id(),
                kind=ArtifactKind(kind),
                title=str(title or ""),
                description=str(description or ""),
                payload=dict(payload or {}),
                provenance=provenance,
                memory_id=memory_id,
                user_id=user_id,
            )
        except ValueError as exc:
            raise StorageError("Invalid artifact", {"kind": str(kind), "error": str(exc)}) from exc
        self._save(record)
        return record

    @abstractmethod
    def _save(self, record: ArtifactRecord) -> None:
        pass

    @abstractmethod
    def get_artifact(self, artifact_id: str) -> ArtifactRecord:
        pass

    @abstractmethod
    def list_artifacts(
        self,
        *,
        user_id: Optional[str] = None,
        kind: Optional[ArtifactKind] = None,
        limit: int = 20,
    ) -> List[ArtifactRecord]:
        pass

    @staticmethod
    def _filter(
        records: List[ArtifactRecord],
        user_id: Optional[str],
        kind: Optional[ArtifactKind],
        limit: int,
    ) -> List[ArtifactRecord]:
        matches = [
            record
            for record in records
            if (user_id is None or record.user_id == user_id) and (kind is None or record.kind == kind)
        ]
        matches.sort(key=lambda record: record.created_at, reverse=True)
        return matches[: max(0, int(limit))]


class InMemoryArtifactStore(BaseArtifactStore):
    """Thread-safe in-process artifact store."""

    def __init__(self) -> None:
        self._records: Dict[str, ArtifactRecord] = {}
        self._lock = Lock()

    def _save(self, record: ArtifactRecord) -> None:
        with self._lock:
            self._records[record.id] = record

    def get_artifact(self, artifact_id: str) -> ArtifactRecord:
        with self._lock:
            record = self._records.get(str(artifact_id))
        if record is None:
            raise NotFoundError("Artefact not found", {"artifact_id": artifact_id})
        return record

    def list_artifacts(
        self,
        *,
        user_id: Optional[str] = None,
        kind: Optional[ArtifactKind] = None,
        limit: int = 20,
    ) -> List[ArtifactRecord]:
        with self._lock:
            records = list(self._records.values())
        return self._filter(records, user_id, kind, limit)


class FileArtifactStore(BaseArtifactStore):
    """One JSON file per artifact under ``root_dir``."""

    def __init__(self, root_dir: str) -> None:
        self.root_dir = Path(root_dir)
        self._lock = Lock()

    def _path(self, artifact_id: str) -> Path:
        return self.root_dir / f"{artifact_id}.json"

    def _save(self, record: ArtifactRecord) -> None:
        path = self._path(record.id)
        data = json.dumps(record.to_payload(), ensure_ascii=False, indent=2)
        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
            tmp = path.parent / f".{path.name}.{uuid4().hex}.tmp"
            with self._lock:
                tmp.write_text(data, encoding="utf-8")
                os.replace(tmp, path)
        except OSError as exc:
            raise StorageError("Failed to write artefact", {"path": str(path), "error": str(exc)}) from exc

    def _load(self, path: Path) -> ArtifactRecord:
        try:
            return ArtifactRecord.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError) as exc:
            raise StorageError("Failed to read artefact", {"path": str(path), "error": str(exc)}) from exc

    def get_artifact(self, artifact_id: str) -> ArtifactRecord:
        path = self._path(str(artifact_id))
        if not path.exists():
            raise NotFoundError("Artefact not found", {"artifact_id": artifact_id})
        return self._load(path)

    def list_artifacts(
        self,
        *,
        user_id: Optional[str] = None,
        kind: Optional[ArtifactKind] = None,
        limit: int = 20,
    ) -> List[ArtifactRecord]:
        if not self.root_dir.exists():
            return []
        records = [self._load(path) for path in sorted(self.root_dir.glob("*.json"))]
        return self._filter(records, user_id, kind, limit)


def get_artifact_store(backend: Optional[str] = None, artifact_dir: Optional[str] = None) -> BaseArtifactStore:
    """
    根据配置创建产物存储

    Args:
        backend: memory | file (不传则读取 STORAGE_ARTIFACT_BACKEND)
        artifact_dir: file 模式下的目录
    """
    from config import get_storage_settings

    settings = get_storage_settings()
    backend = str(backend or settings.artifact_backend or "memory").strip().lower()
    if backend == "memory":
        return InMemoryArtifactStore()
    if backend == "file":
        return FileArtifactStore(artifact_dir or settings.artifact_dir)
    raise StorageError(f"Unknown artifact backend: {backend}")

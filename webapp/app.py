"""Memory Muse HTTP API: memories, first scan, auto-create and artefacts."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from config import get_muse_settings
from core import ArtifactKind, MuseTone
from muse import coerce_synthesis, records_from_items, split_notes
from storage import MemoryFilter
from utils.exceptions import MemoryMuseError, NotFoundError, ValidationError
from webapp.runtime import get_artifact_store, get_memory_store, get_orchestrator, get_synthesis_service


logger = logging.getLogger(__name__)

DEFAULT_USER_ID = "local"
INTERNAL_ERROR_MESSAGE = "Something went wrong. Please try again."
AUTO_CREATE_STATUS = {"timeout": 504, "upstream": 503}


class MemoryUploadPayload(BaseModel):
    text: str = ""
    items: List[Dict[str, Any]] = Field(default_factory=list)
    split: bool = True


class FirstScanPayload(BaseModel):
    memoryId: Optional[str] = None
    museType: Optional[str] = None
    limit: Optional[int] = None

    @field_validator("memoryId", "museType", mode="before")
    @classmethod
    def _strip_optional(cls, value: Any) -> Optional[str]:
        text = str(value or "").strip()
        return text or None

    @field_validator("limit", mode="before")
    @classmethod
    def _coerce_limit(cls, value: Any) -> Optional[int]:
        try:
            return int(value) if value not in (None, "") else None
        except (TypeError, ValueError):
            return None


class AutoCreatePayload(BaseModel):
    memoryId: Optional[str] = None
    museType: Optional[str] = None
    firstScan: Optional[Any] = None

    @field_validator("memoryId", "museType", mode="before")
    @classmethod
    def _strip_optional(cls, value: Any) -> Optional[str]:
        text = str(value or "").strip()
        return text or None


def _clamp_limit(limit: Optional[int]) -> int:
    settings = get_muse_settings()
    value = settings.default_limit if not limit else int(limit)
    return max(1, min(value, settings.max_limit))


def _user(x_user_id: Optional[str]) -> str:
    return str(x_user_id or "").strip() or DEFAULT_USER_ID


app = FastAPI(title="Memory Muse API", version="1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MemoryMuseError)
async def _muse_error_handler(request: Request, exc: MemoryMuseError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


@app.exception_handler(Exception)
async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("%s %s crashed", request.method, request.url.path)
    return JSONResponse({"error": INTERNAL_ERROR_MESSAGE}, status_code=500)


@app.get("/api/health")
async def health() -> Dict[str, Any]:
    return {"ok": True, "ts": datetime.now(timezone.utc).isoformat(timespec="seconds")}


@app.post("/api/memories")
async def upload_memories(
    payload: MemoryUploadPayload,
    x_user_id: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    user_id = _user(x_user_id)
    if payload.items:
        records = records_from_items(payload.items)
    else:
        records = split_notes(payload.text, split=payload.split)
    stored = get_memory_store().add_memories(user_id, records)
    logger.info("Stored %d memories for user %s", len(stored), user_id)
    return {
        "success": True,
        "count": len(stored),
        "memoryIds": [record.id for record in stored],
        "memoryId": stored[0].id if len(stored) == 1 else None,
    }


@app.get("/api/memories")
async def list_memories(
    limit: int = 20,
    x_user_id: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    records = get_memory_store().list_memories(_user(x_user_id), limit=max(1, min(int(limit), 100)))
    return {"memories": [record.model_dump(mode="json", by_alias=True) for record in records]}


@app.post("/api/muse/first-scan")
async def first_scan(
    payload: FirstScanPayload,
    x_user_id: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    user_id = _user(x_user_id)
    tone = MuseTone.parse(payload.museType)
    query = MemoryFilter(user_id=user_id, memory_id=payload.memoryId, limit=_clamp_limit(payload.limit))

    try:
        records = get_memory_store().fetch_memories(query)
    except NotFoundError:
        if payload.memoryId:
            raise
        records = []

    result = await get_synthesis_service().first_scan(
        records,
        tone,
        memory_id=payload.memoryId,
        user_id=user_id,
    )
    return result.to_response()


@app.post("/api/muse/auto-create")
async def auto_create(
    payload: AutoCreatePayload,
    x_user_id: Optional[str] = Header(default=None),
) -> JSONResponse:
    user_id = _user(x_user_id)
    if not payload.memoryId or not isinstance(payload.firstScan, dict):
        raise ValidationError("Missing required fields: memoryId, firstScan")
    tone = MuseTone.parse(payload.museType)
    memory = get_memory_store().get_memory(user_id, payload.memoryId)

    result = await get_orchestrator().auto_create(
        coerce_synthesis(payload.firstScan),
        tone,
        memory.content,
        memory_id=memory.id,
        user_id=user_id,
    )
    status_code = 200 if result.success else AUTO_CREATE_STATUS.get(result.error_kind or "", 500)
    return JSONResponse(result.to_response(), status_code=status_code)


@app.get("/api/artefacts")
async def list_artefacts(
    kind: Optional[str] = None,
    limit: int = 20,
    x_user_id: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    artifact_kind = None
    if kind:
        try:
            artifact_kind = ArtifactKind(str(kind).strip().lower())
        except ValueError:
            raise ValidationError(f"Invalid artefact kind: {kind}") from None
    records = get_artifact_store().list_artifacts(
        user_id=_user(x_user_id),
        kind=artifact_kind,
        limit=max(1, min(int(limit), 100)),
    )
    return {"artefacts": [record.to_payload() for record in records]}


@app.get("/api/artefacts/{artifact_id}")
async def get_artefact(
    artifact_id: str,
    x_user_id: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    record = get_artifact_store().get_artifact(artifact_id)
    if record.user_id not in (None, _user(x_user_id)):
        raise NotFoundError("Artefact not found")
    return {"artefact": record.to_payload()}

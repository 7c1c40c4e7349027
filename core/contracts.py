"""Canonical data contracts for the first-scan / auto-create pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from utils.exceptions import ValidationError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    """Models that travel over the JSON contract use camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MuseTone(str, Enum):
    """Persona selector controlling prompt phrasing and stylistic hints."""

    SYNTHESIS = "synthesis"
    ANALYST = "analyst"
    POET = "poet"
    VISUALIST = "visualist"
    NARRATOR = "narrator"

    @classmethod
    def parse(cls, value: Any) -> "MuseTone":
        """Empty input selects synthesis; unknown values are rejected."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        if not text:
            return cls.SYNTHESIS
        try:
            return cls(text)
        except ValueError:
            allowed = ", ".join(item.value for item in cls)
            raise ValidationError(f"Invalid muse type: {text}", {"allowed": allowed}) from None


class ArtifactKind(str, Enum):
    """Artifact categories written to the artifact sink."""

    TEXT = "text"
    POEM = "poem"
    COLLECTION = "collection"
    IMAGE = "image"
    JOURNAL = "journal"
    ANALYSIS = "analysis"


class MemoryRecord(_CamelModel):
    """Immutable unit of input text owned by the caller."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    content: str = ""
    themes: List[str] = Field(default_factory=list)
    emotional_tags: List[str] = Field(default_factory=list)
    temporal_marker: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("content", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("themes", "emotional_tags", mode="before")
    @classmethod
    def _tags(cls, value: Any) -> List[str]:
        if not isinstance(value, (list, tuple)):
            return []
        return [str(item).strip() for item in value if str(item or "").strip()]

    @field_validator("temporal_marker", mode="before")
    @classmethod
    def _marker(cls, value: Any) -> Optional[str]:
        text = "" if value is None else str(value).strip()
        return text or None


class ConnectionType(str, Enum):
    TEMPORAL = "temporal"
    THEMATIC = "thematic"
    EMOTIONAL = "emotional"


class MemoryConnection(_CamelModel):
    """Link between two memories; ``strength`` is in [0, 1]."""

    source: str = Field(alias="from")
    target: str = Field(alias="to")
    type: ConnectionType = ConnectionType.THEMATIC
    strength: float = 0.0

    @field_validator("strength", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
        return min(max(number, 0.0), 1.0)


class MemoryAnalysis(_CamelModel):
    """Condensed analysis of a memory set used as prompt context."""

    emotional_patterns: List[str] = Field(default_factory=list)
    themes: List[str] = Field(default_factory=list)
    connections: List[MemoryConnection] = Field(default_factory=list)
    narrative: str = ""
    insights: List[str] = Field(default_factory=list)
    missing_ideas: List[str] = Field(default_factory=list)


class ReflectSection(_CamelModel):
    truths: List[str] = Field(default_factory=list)
    tensions: List[str] = Field(default_factory=list)
    questions: List[str] = Field(default_factory=list)
    missing_ideas: List[str] = Field(default_factory=list)


class RecomposeSection(_CamelModel):
    email_draft: str = ""
    tweet_thread: str = ""
    outline: str = ""


class VisualiseSection(_CamelModel):
    image_prompts: List[str] = Field(default_factory=list)
    palette: List[str] = Field(default_factory=list)
    storyboard_beats: List[str] = Field(default_factory=list)


class CollectionEntry(_CamelModel):
    name: str = "Collection"
    description: str = ""
    items: List[str] = Field(default_factory=list)


class CurateSection(_CamelModel):
    tags: List[str] = Field(default_factory=list)
    quotes: List[str] = Field(default_factory=list)
    collections: List[CollectionEntry] = Field(default_factory=list)


class SynthesisResult(_CamelModel):
    """Canonical structured output of a first scan. Never mutated after creation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    briefing: str = ""
    reflect: ReflectSection = Field(default_factory=ReflectSection)
    recompose: RecomposeSection = Field(default_factory=RecomposeSection)
    visualise: VisualiseSection = Field(default_factory=VisualiseSection)
    curate: CurateSection = Field(default_factory=CurateSection)
    next_actions: List[str] = Field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Provenance(_CamelModel):
    """Which model/provider produced an output."""

    model: str = ""
    provider: str = ""


class ArtifactRecord(_CamelModel):
    """Persisted creative output as returned by the artifact sink."""

    id: str
    kind: ArtifactKind
    title: str = ""
    description: str = ""
    payload: Dict[str, Any] = Field(default_factory=dict)
    provenance: Optional[Provenance] = None
    memory_id: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class FirstScanResult(BaseModel):
    """Synthesis result plus provenance for one first-scan invocation."""

    tone: MuseTone
    result: SynthesisResult
    provenance: Provenance
    memory_ids: List[str] = Field(default_factory=list)
    analysis: MemoryAnalysis = Field(default_factory=MemoryAnalysis)
    analysis_artifact: Optional[ArtifactRecord] = None

    def to_response(self) -> Dict[str, Any]:
        result = self.result.to_payload()
        body: Dict[str, Any] = {"success": True, "museType": self.tone.value}
        body.update(result)
        body.update(
            {
                "result": result,
                "memoryIds": list(self.memory_ids),
                "analysis": self.analysis.model_dump(mode="json", by_alias=True),
                "analysisArtefact": self.analysis_artifact.to_payload() if self.analysis_artifact else None,
                "model": self.provenance.model,
                "provider": self.provenance.provider,
            }
        )
        return body


class ArtifactOutcome(BaseModel):
    """Tagged outcome of one orchestrator slot: success(payload) or failure(kind, message)."""

    slot: str
    ok: bool
    payload: Dict[str, Any] = Field(default_factory=dict)
    error_kind: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, slot: str, payload: Optional[Dict[str, Any]] = None) -> "ArtifactOutcome":
        return cls(slot=slot, ok=True, payload=dict(payload or {}))

    @classmethod
    def failure(cls, slot: str, kind: str, message: str) -> "ArtifactOutcome":
        return cls(slot=slot, ok=False, error_kind=str(kind or "error"), message=str(message or ""))

    def value(self, key: str) -> Any:
        return self.payload.get(key) if self.ok else None


class AutoCreateResult(BaseModel):
    """Aggregated outcome of every auto-create slot."""

    success: bool
    tone: MuseTone
    poem: ArtifactOutcome
    collection: ArtifactOutcome
    image: ArtifactOutcome
    journal: ArtifactOutcome
    error: Optional[str] = None
    error_kind: Optional[str] = None

    def slots(self) -> Dict[str, ArtifactOutcome]:
        return {
            "poem": self.poem,
            "collection": self.collection,
            "image": self.image,
            "journal": self.journal,
        }

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "museType": self.tone.value,
            "poemArtefact": self.poem.value("artefact"),
            "collectionArtefact": self.collection.value("artefact"),
            "imageArtefact": self.image.value("artefact"),
            "journalArtefact": self.journal.value("artefact"),
            "poemText": self.poem.value("text"),
            "collection": self.collection.value("collection"),
            "image": self.image.value("image"),
            "slots": {name: outcome.model_dump(mode="json") for name, outcome in self.slots().items()},
            "error": self.error,
        }

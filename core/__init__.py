"""Core contracts and shared types for the muse pipeline."""

from .contracts import (
    ArtifactKind,
    ArtifactOutcome,
    ArtifactRecord,
    AutoCreateResult,
    CollectionEntry,
    ConnectionType,
    CurateSection,
    FirstScanResult,
    MemoryAnalysis,
    MemoryConnection,
    MemoryRecord,
    MuseTone,
    Provenance,
    RecomposeSection,
    ReflectSection,
    SynthesisResult,
    VisualiseSection,
)

__all__ = [
    "ArtifactKind",
    "ArtifactOutcome",
    "ArtifactRecord",
    "AutoCreateResult",
    "CollectionEntry",
    "ConnectionType",
    "CurateSection",
    "FirstScanResult",
    "MemoryAnalysis",
    "MemoryConnection",
    "MemoryRecord",
    "MuseTone",
    "Provenance",
    "RecomposeSection",
    "ReflectSection",
    "SynthesisResult",
    "VisualiseSection",
]

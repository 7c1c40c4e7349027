"""First-scan synthesis and auto-create pipeline."""

from .analyzer import MemoryAnalyzer, basic_analysis
from .auto_create import AUTO_CREATE_STAGES, ArtifactOrchestrator, StageSpec
from .ingest import records_from_items, split_notes
from .invoker import invoke, run_with_timeout
from .journal import compose_journal_entry
from .prompt_composer import (
    ComposedPrompt,
    build_memory_excerpt,
    compose_analysis_prompt,
    compose_collection_prompt,
    compose_first_scan_prompt,
    compose_poem_prompt,
)
from .recovery import BRIEFING_FALLBACK, coerce_synthesis, extract_json_object, recover
from .sampler import select_memories
from .synthesis import SynthesisService
from .tones import TONE_PROFILES, ToneProfile, enhance_image_prompt, get_tone_profile

__all__ = [
    "AUTO_CREATE_STAGES",
    "ArtifactOrchestrator",
    "BRIEFING_FALLBACK",
    "ComposedPrompt",
    "MemoryAnalyzer",
    "StageSpec",
    "SynthesisService",
    "TONE_PROFILES",
    "ToneProfile",
    "basic_analysis",
    "build_memory_excerpt",
    "coerce_synthesis",
    "compose_analysis_prompt",
    "compose_collection_prompt",
    "compose_first_scan_prompt",
    "compose_journal_entry",
    "compose_poem_prompt",
    "enhance_image_prompt",
    "extract_json_object",
    "get_tone_profile",
    "invoke",
    "recover",
    "records_from_items",
    "run_with_timeout",
    "select_memories",
    "split_notes",
]

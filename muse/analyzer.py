"""Memory analyzer: themes, emotional patterns and narrative for a memory set."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, List, Optional, Sequence

from core import ConnectionType, MemoryAnalysis, MemoryConnection, MemoryRecord
from intelligence.llm import BaseLLM, GenerationCall
from storage.cache import BaseCache, MemoryCache, memory_set_key
from utils.exceptions import MemoryMuseError

from .invoker import invoke
from .prompt_composer import compose_analysis_prompt
from .recovery import coerce_string, coerce_string_list, extract_json_object


logger = logging.getLogger(__name__)

HEURISTIC_TOP_K = 5
ANALYSIS_LIST_CAP = 12
ANALYSIS_TEMPERATURE = 0.3
ANALYSIS_MAX_TOKENS = 2048


def _ranked(values: Sequence[str], top_k: int) -> List[str]:
    """Most frequent first; ties keep first-seen order."""
    counts = Counter(values)
    first_seen = {value: idx for idx, value in reversed(list(enumerate(values)))}
    ranked = sorted(counts, key=lambda value: (-counts[value], first_seen[value]))
    return ranked[:top_k]


def basic_analysis(records: Sequence[MemoryRecord]) -> MemoryAnalysis:
    """Frequency-ranked themes and emotions, no model call."""
    records = list(records or [])
    emotions = [tag for record in records for tag in record.emotional_tags]
    themes = [theme for record in records for theme in record.themes]
    return MemoryAnalysis(
        emotional_patterns=_ranked(emotions, HEURISTIC_TOP_K),
        themes=_ranked(themes, HEURISTIC_TOP_K),
        narrative=f"Analysis of {len(records)} memories reveals patterns in themes and emotions.",
    )


def coerce_connections(raw: Any) -> List[MemoryConnection]:
    """Keep entries naming both ends; unknown types read as thematic."""
    if not isinstance(raw, list):
        return []
    allowed = {item.value for item in ConnectionType}
    connections: List[MemoryConnection] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        source = coerce_string(item.get("from")).strip()
        target = coerce_string(item.get("to")).strip()
        if not source or not target:
            continue
        kind = coerce_string(item.get("type")).strip().lower()
        connections.append(
            MemoryConnection(
                source=source,
                target=target,
                type=kind if kind in allowed else ConnectionType.THEMATIC,
                strength=item.get("strength"),
            )
        )
        if len(connections) >= ANALYSIS_LIST_CAP:
            break
    return connections


def coerce_analysis(raw: Any) -> MemoryAnalysis:
    raw = raw if isinstance(raw, dict) else {}
    return MemoryAnalysis(
        emotional_patterns=coerce_string_list(raw.get("emotionalPatterns"), ANALYSIS_LIST_CAP),
        themes=coerce_string_list(raw.get("themes"), ANALYSIS_LIST_CAP),
        connections=coerce_connections(raw.get("connections")),
        narrative=coerce_string(raw.get("narrative")).strip(),
        insights=coerce_string_list(raw.get("insights"), ANALYSIS_LIST_CAP),
        missing_ideas=coerce_string_list(raw.get("missingIdeas"), ANALYSIS_LIST_CAP),
    )


class MemoryAnalyzer:
    """
    Analyze a memory set for prompt context.

    An analysis call runs through the invoker whenever an LLM is wired in;
    any failure or unparseable reply falls back to the heuristic.
    Results are cached per memory-id set.
    """

    def __init__(
        self,
        llm: Optional[BaseLLM] = None,
        *,
        use_llm: bool = True,
        cache: Optional[BaseCache] = None,
        cache_ttl: int = 7200,
        timeout_sec: float = 30.0,
    ) -> None:
        self.llm = llm
        self.use_llm = bool(use_llm and llm is not None)
        self.cache = cache if cache is not None else MemoryCache(ttl=cache_ttl)
        self.cache_ttl = cache_ttl
        self.timeout_sec = timeout_sec

    async def analyze(self, records: Sequence[MemoryRecord]) -> MemoryAnalysis:
        records = list(records or [])
        key = memory_set_key([record.id for record in records])
        cached = self.cache.get(key)
        if cached is not None:
            return MemoryAnalysis.model_validate(cached)

        analysis = await self._analyze_with_llm(records) if self.use_llm else None
        if analysis is None:
            analysis = basic_analysis(records)

        self.cache.set(key, analysis.model_dump(), ttl=self.cache_ttl)
        return analysis

    async def _analyze_with_llm(self, records: List[MemoryRecord]) -> Optional[MemoryAnalysis]:
        prompt = compose_analysis_prompt(records)
        call = GenerationCall(
            messages=prompt.messages(),
            temperature=ANALYSIS_TEMPERATURE,
            max_tokens=ANALYSIS_MAX_TOKENS,
            model_hint="thinking",
        )
        try:
            response = await invoke(self.llm, call, self.timeout_sec, "Memory analysis timed out.")
        except MemoryMuseError as exc:
            logger.warning("Memory analysis call failed, using heuristic analysis: %s", exc.message)
            return None

        raw: Optional[Dict[str, Any]] = extract_json_object(response.content)
        if raw is None:
            logger.warning("Memory analysis reply had no JSON object, using heuristic analysis")
            return None

        analysis = coerce_analysis(raw)
        fallback = basic_analysis(records)
        return analysis.model_copy(
            update={
                "themes": analysis.themes or fallback.themes,
                "emotional_patterns": analysis.emotional_patterns or fallback.emotional_patterns,
                "narrative": analysis.narrative or fallback.narrative,
            }
        )

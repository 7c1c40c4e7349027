"""First-scan synthesis service and memory analyzer tests."""

from __future__ import annotations

import asyncio
import json
import logging
import random
from typing import List

import pytest

from config.settings import MuseSettings
from core import ArtifactKind, MemoryRecord, MuseTone
from intelligence.llm import BaseLLM, LLMResponse, MessageRole
from muse.analyzer import MemoryAnalyzer, basic_analysis
from muse.recovery import BRIEFING_FALLBACK
from muse.synthesis import (
    FIRST_SCAN_MAX_TOKENS,
    FIRST_SCAN_TEMPERATURE,
    FIRST_SCAN_TIMEOUT_MESSAGE,
    NO_INPUT_MESSAGE,
    SynthesisService,
)
from storage import InMemoryArtifactStore, MemoryCache
from utils.exceptions import GenerationCallError, GenerationTimeoutError, StorageError, ValidationError


SCAN_REPLY = json.dumps(
    {
        "muse": "poet",
        "briefing": "You write toward the sea. What would you like me to help you create from this?",
        "reflect": {"truths": ["The sea is a return"], "tensions": [], "questions": [], "missingIdeas": []},
        "visualise": {"imagePrompts": ["a lighthouse at dusk"]},
        "curate": {"tags": ["sea"], "collections": [{"name": "Tides", "items": ["salt"]}]},
        "nextActions": ["Write one line"],
    }
)


class _ScriptedLLM(BaseLLM):
    def __init__(self, replies: List[str] = None, delay: float = 0.0, error: Exception = None):
        super().__init__(model="scripted-1", chat_model="scripted-chat", thinking_model="scripted-think")
        self.replies = list(replies or [SCAN_REPLY])
        self.delay = delay
        self.error = error
        self.calls: List[dict] = []

    @property
    def provider(self) -> str:
        return "scripted"

    async def acomplete(self, messages, **kwargs) -> LLMResponse:
        self.calls.append({"messages": messages, **kwargs})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        return LLMResponse(content=reply, model=self.resolve_model(kwargs.get("model_hint")), provider=self.provider)


class _BrokenArtifactStore(InMemoryArtifactStore):
    def _save(self, record) -> None:
        raise StorageError("disk full")


def _settings(**overrides) -> MuseSettings:
    values = {"char_budget": 350_000, "synthesis_timeout_sec": 1.0, "analysis_timeout_sec": 1.0}
    values.update(overrides)
    return MuseSettings(**values)


def _chat_call(llm: _ScriptedLLM) -> dict:
    return next(call for call in llm.calls if call["model_hint"] == "chat")


def _records(count: int = 3, size: int = 40) -> List[MemoryRecord]:
    return [
        MemoryRecord(
            id=f"mem_{i}",
            content=f"note {i} " + "w" * size,
            themes=["sea", "home"] if i % 2 else ["sea"],
            emotional_tags=["calm"],
        )
        for i in range(count)
    ]


@pytest.mark.asyncio
async def test_first_scan_returns_recovered_result_with_provenance():
    llm = _ScriptedLLM()
    store = InMemoryArtifactStore()
    service = SynthesisService(llm, store, settings=_settings())

    result = await service.first_scan(_records(), "poet", user_id="u1")

    assert result.tone is MuseTone.POET
    assert result.result.briefing.startswith("You write toward the sea.")
    assert result.result.reflect.truths == ["The sea is a return"]
    assert result.result.curate.collections[0].name == "Tides"
    assert result.provenance.model == "scripted-chat"
    assert result.provenance.provider == "scripted"
    assert result.memory_ids == ["mem_0", "mem_1", "mem_2"]
    assert result.analysis.themes[0] == "sea"

    call = _chat_call(llm)
    assert call["temperature"] == FIRST_SCAN_TEMPERATURE
    assert call["max_tokens"] == FIRST_SCAN_MAX_TOKENS
    assert call["model_hint"] == "chat"
    assert [m.role for m in call["messages"]] == [MessageRole.SYSTEM, MessageRole.USER]
    assert "Memory 1 (id: mem_0)" in call["messages"][1].content


@pytest.mark.asyncio
async def test_first_scan_saves_analysis_snapshot():
    store = InMemoryArtifactStore()
    service = SynthesisService(_ScriptedLLM(), store, settings=_settings())

    result = await service.first_scan(_records(), "analyst", memory_id="mem_1", user_id="u1")

    snapshot = result.analysis_artifact
    assert snapshot is not None
    assert snapshot.kind is ArtifactKind.ANALYSIS
    assert snapshot.title == "Creative Analysis"
    assert snapshot.memory_id == "mem_1"
    assert snapshot.user_id == "u1"
    assert snapshot.payload["museType"] == "analyst"
    assert snapshot.payload["firstScan"]["briefing"] == result.result.briefing
    assert store.get_artifact(snapshot.id) == snapshot

    body = result.to_response()
    assert body["success"] is True
    assert body["museType"] == "analyst"
    assert body["briefing"] == result.result.briefing
    assert body["result"]["nextActions"] == ["Write one line"]
    assert body["analysisArtefact"]["id"] == snapshot.id
    assert body["memoryIds"] == ["mem_0", "mem_1", "mem_2"]


@pytest.mark.asyncio
async def test_snapshot_failure_is_not_fatal(caplog):
    service = SynthesisService(_ScriptedLLM(), _BrokenArtifactStore(), settings=_settings())

    with caplog.at_level(logging.WARNING):
        result = await service.first_scan(_records())

    assert result.analysis_artifact is None
    assert result.result.reflect.truths == ["The sea is a return"]
    assert any("non-fatal" in record.message for record in caplog.records)


@pytest.mark.asyncio
async def test_empty_input_is_rejected_before_any_call():
    llm = _ScriptedLLM()
    service = SynthesisService(llm, settings=_settings())

    with pytest.raises(ValidationError) as exc_info:
        await service.first_scan([])

    assert exc_info.value.message == NO_INPUT_MESSAGE
    assert llm.calls == []


@pytest.mark.asyncio
async def test_unknown_tone_is_rejected():
    service = SynthesisService(_ScriptedLLM(), settings=_settings())
    with pytest.raises(ValidationError):
        await service.first_scan(_records(), "jester")


@pytest.mark.asyncio
async def test_timeout_surfaces_scan_message():
    service = SynthesisService(_ScriptedLLM(delay=0.2), settings=_settings(synthesis_timeout_sec=0.01))

    with pytest.raises(GenerationTimeoutError) as exc_info:
        await service.first_scan(_records())

    assert exc_info.value.message == FIRST_SCAN_TIMEOUT_MESSAGE
    await asyncio.sleep(0.25)


@pytest.mark.asyncio
async def test_upstream_failure_maps_to_call_error():
    service = SynthesisService(_ScriptedLLM(error=ConnectionError("refused")), settings=_settings())

    with pytest.raises(GenerationCallError) as exc_info:
        await service.first_scan(_records())

    assert exc_info.value.status_code == 503
    assert exc_info.value.provider == "scripted"


@pytest.mark.asyncio
async def test_unparseable_reply_uses_fallback_briefing():
    service = SynthesisService(_ScriptedLLM(replies=[""]), settings=_settings())
    result = await service.first_scan(_records())
    assert result.result.briefing == BRIEFING_FALLBACK


@pytest.mark.asyncio
async def test_char_budget_limits_prompt_and_memory_ids():
    llm = _ScriptedLLM()
    service = SynthesisService(llm, settings=_settings(), rng=random.Random(5))
    records = _records(count=20, size=1000)

    result = await service.first_scan(records, char_budget=9000)

    # head and tail fit, the first middle record does not
    assert len(result.memory_ids) == 8
    assert result.memory_ids[0] == "mem_0"
    assert result.memory_ids[-1] == "mem_19"
    prompt = _chat_call(llm)["messages"][1].content
    assert prompt.count("(id: mem_") == len(result.memory_ids)


def test_basic_analysis_ranks_by_frequency():
    analysis = basic_analysis(_records(count=4))

    assert analysis.themes == ["sea", "home"]
    assert analysis.emotional_patterns == ["calm"]
    assert analysis.narrative == "Analysis of 4 memories reveals patterns in themes and emotions."


@pytest.mark.asyncio
async def test_analyzer_caches_per_memory_set():
    llm = _ScriptedLLM(replies=['{"themes": ["tides"], "insights": ["returns"], "narrative": "A return."}'])
    analyzer = MemoryAnalyzer(llm, use_llm=True, cache=MemoryCache(ttl=60))
    records = _records()

    first = await analyzer.analyze(records)
    second = await analyzer.analyze(list(reversed(records)))

    assert first == second
    assert first.themes == ["tides"]
    assert first.insights == ["returns"]
    assert first.emotional_patterns == ["calm"]
    assert len(llm.calls) == 1
    assert llm.calls[0]["model_hint"] == "thinking"


@pytest.mark.asyncio
async def test_analyzer_falls_back_to_heuristic_on_failure():
    llm = _ScriptedLLM(error=RuntimeError("boom"))
    analyzer = MemoryAnalyzer(llm, use_llm=True)

    analysis = await analyzer.analyze(_records())
    assert analysis == basic_analysis(_records())

    no_json = MemoryAnalyzer(_ScriptedLLM(replies=["I cannot help"]), use_llm=True)
    assert (await no_json.analyze(_records())).themes == ["sea", "home"]


@pytest.mark.asyncio
async def test_analyzer_keeps_well_formed_connections():
    reply = json.dumps(
        {
            "connections": [
                {"from": "mem_0", "to": "mem_1", "type": "temporal", "strength": 0.8},
                {"from": "mem_1", "to": "mem_2", "type": "causal", "strength": 3},
                {"from": "mem_2", "type": "emotional"},
                "mem_0 -> mem_2",
            ]
        }
    )
    analyzer = MemoryAnalyzer(_ScriptedLLM(replies=[reply]))

    analysis = await analyzer.analyze(_records())

    assert [(c.source, c.target, c.type.value, c.strength) for c in analysis.connections] == [
        ("mem_0", "mem_1", "temporal", 0.8),
        ("mem_1", "mem_2", "thematic", 1.0),
    ]
    dumped = analysis.model_dump(mode="json", by_alias=True)
    assert dumped["connections"][0] == {"from": "mem_0", "to": "mem_1", "type": "temporal", "strength": 0.8}


@pytest.mark.asyncio
async def test_analyzer_without_llm_flag_never_calls_model():
    llm = _ScriptedLLM()
    analyzer = MemoryAnalyzer(llm, use_llm=False)
    await analyzer.analyze(_records())
    assert llm.calls == []


class _HintAwareLLM(_ScriptedLLM):
    """Answers the analysis call and the synthesis call differently."""

    async def acomplete(self, messages, **kwargs) -> LLMResponse:
        self.calls.append({"messages": messages, **kwargs})
        hint = kwargs.get("model_hint")
        if hint == "thinking":
            content = '{"insights": ["deep"], "missingIdeas": ["gap"]}'
        else:
            content = SCAN_REPLY
        return LLMResponse(content=content, model=self.resolve_model(hint), provider=self.provider)


@pytest.mark.asyncio
async def test_default_service_analyzes_with_model_before_synthesis():
    llm = _HintAwareLLM()
    service = SynthesisService(llm, settings=MuseSettings())

    result = await service.first_scan(_records())

    assert [call["model_hint"] for call in llm.calls] == ["thinking", "chat"]
    assert result.analysis.insights == ["deep"]
    assert result.analysis.missing_ideas == ["gap"]
    assert result.analysis.themes == ["sea", "home"]
    chat_prompt = _chat_call(llm)["messages"][1].content
    assert '"deep"' in chat_prompt
    assert '"gap"' in chat_prompt

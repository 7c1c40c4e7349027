"""Prompt composer and tone table tests."""

from __future__ import annotations

import json

import pytest

from core import MemoryAnalysis, MemoryRecord, MuseTone, SynthesisResult
from intelligence.llm import MessageRole
from muse.prompt_composer import (
    EXCERPT_SEPARATOR,
    build_memory_excerpt,
    compose_analysis_prompt,
    compose_collection_prompt,
    compose_first_scan_prompt,
    compose_poem_prompt,
    summarize_analysis,
)
from muse.tones import TONE_PROFILES, enhance_image_prompt, get_tone_profile, tone_phrase
from utils.exceptions import ValidationError


def _analysis() -> MemoryAnalysis:
    return MemoryAnalysis(
        emotional_patterns=[f"e{i}" for i in range(10)],
        themes=[f"t{i}" for i in range(12)],
        narrative="A slow return to the sea.",
        insights=[f"i{i}" for i in range(3)],
        missing_ideas=[f"m{i}" for i in range(9)],
    )


def test_memory_excerpt_numbers_records_with_ids() -> None:
    records = [MemoryRecord(id="a", content="first"), MemoryRecord(id="b", content="second")]
    excerpt = build_memory_excerpt(records)

    assert excerpt == "Memory 1 (id: a)\nfirst" + EXCERPT_SEPARATOR + "Memory 2 (id: b)\nsecond"
    assert build_memory_excerpt([]) == ""


def test_memory_excerpt_optional_clamp() -> None:
    excerpt = build_memory_excerpt([MemoryRecord(id="a", content="x" * 50)], clamp_chars=10)
    assert excerpt.endswith("x" * 10 + "\n\n[TRUNCATED]")


def test_summarize_analysis_truncates_each_field() -> None:
    summary = summarize_analysis(_analysis())

    assert list(summary) == ["emotionalPatterns", "themes", "narrative", "insights", "missingIdeas"]
    assert len(summary["emotionalPatterns"]) == 6
    assert len(summary["themes"]) == 8
    assert len(summary["insights"]) == 3
    assert len(summary["missingIdeas"]) == 6
    assert summary["narrative"] == "A slow return to the sea."


def test_first_scan_prompt_layout() -> None:
    prompt = compose_first_scan_prompt("poet", "Memory 1 (id: a)\nsalt", _analysis())

    assert 'Current muse mode is "poet"' in prompt.system
    assert "strict JSON" in prompt.system
    assert prompt.user.startswith("You are Dameris. Muse mode: poet.")
    assert tone_phrase(MuseTone.POET) in prompt.user
    assert '"muse": "poet"' in prompt.user
    assert "<muse>" not in prompt.user

    memories_at = prompt.user.index("MEMORIES:")
    analysis_at = prompt.user.index("ANALYSIS (for reference):")
    assert memories_at < prompt.user.index("Memory 1 (id: a)") < analysis_at

    summary = json.loads(prompt.user[analysis_at + len("ANALYSIS (for reference):"):])
    assert summary["themes"] == [f"t{i}" for i in range(8)]


def test_first_scan_prompt_messages_are_system_then_user() -> None:
    messages = compose_first_scan_prompt(None, "x").messages()
    assert [m.role for m in messages] == [MessageRole.SYSTEM, MessageRole.USER]
    assert "Muse mode: synthesis." in messages[1].content


def test_first_scan_prompt_rejects_unknown_tone() -> None:
    with pytest.raises(ValidationError):
        compose_first_scan_prompt("jester", "x")


def test_draft_prompts_carry_persona_and_source() -> None:
    synthesis = SynthesisResult(briefing="You write about tides.")
    poem = compose_poem_prompt(synthesis, "narrator", "the tide came in " * 200)
    collection = compose_collection_prompt(synthesis, MuseTone.ANALYST, "notes")

    assert "The Narrator" in poem.system
    assert "8 to 14 lines" in poem.user
    assert "You write about tides." in poem.user
    assert poem.user.rstrip().endswith("...")
    assert "- (none)" in poem.user

    assert "The Analyst" in collection.system
    assert '"items": string[6]' in collection.user
    assert collection.user.rstrip().endswith("notes")


def test_analysis_prompt_clips_records() -> None:
    records = [
        MemoryRecord(id=str(i), content="y" * 400, themes=["sea"], emotional_tags=[], temporal_marker=None)
        for i in range(25)
    ]
    prompt = compose_analysis_prompt(records)

    assert prompt.user.count("Content: ") == 20
    assert "y" * 300 + "..." in prompt.user
    assert "Themes: sea" in prompt.user
    assert "Emotions: None" in prompt.user
    assert "Date: Unknown" in prompt.user
    assert "Memory 1 (id: 0):" in prompt.user
    assert "Temporal relationships" in prompt.user
    assert "- connections:" in prompt.user


def test_every_tone_has_a_profile() -> None:
    assert set(TONE_PROFILES) == set(MuseTone)
    assert get_tone_profile("analyst").poem_temperature < get_tone_profile("poet").poem_temperature
    assert get_tone_profile("").tone is MuseTone.SYNTHESIS


def test_enhance_image_prompt_appends_style_suffix() -> None:
    style = get_tone_profile("poet").image_style

    assert enhance_image_prompt("a lighthouse at dusk.", "poet") == f"a lighthouse at dusk, {style}"
    assert enhance_image_prompt("  ", "poet") == style
    assert enhance_image_prompt("x", "visualist").endswith(get_tone_profile("visualist").image_style)

"""Prompt composition for first-scan synthesis and the auto-create drafts."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from core import MemoryAnalysis, MemoryRecord, MuseTone, SynthesisResult
from intelligence.llm import Message

from .tones import get_tone_profile, tone_phrase


EXCERPT_SEPARATOR = "\n\n---\n\n"

# 分析摘要中每个字段保留的条目数
ANALYSIS_SUMMARY_LIMITS = {
    "emotional_patterns": 6,
    "themes": 8,
    "insights": 6,
    "missing_ideas": 6,
}

FIRST_SCAN_CONTRACT = """CRITICAL: Return ONLY the raw JSON object. DO NOT wrap it in markdown code blocks. DO NOT include ```json or ```. Start your response with { and end with }. Return ONLY valid JSON for this exact shape:
{
  "muse": "<muse>",
  "briefing": string, // 40-60 words. A psychological reading of the creative voice, themes and what this collection reveals about the writer's inner world. Mention the scale/scope. End with: "What would you like me to help you create from this?"
  "reflect": { "truths": string[5], "tensions": string[4], "questions": string[4], "missingIdeas": string[4] },
  "recompose": { "emailDraft": string, "tweetThread": string, "outline": string },
  "visualise": { "imagePrompts": string[6], "palette": string[6], "storyboardBeats": string[6] },
  "curate": { "tags": string[10], "quotes": string[10], "collections": [{ "name": string, "description": string, "items": string[6] } x3] },
  "nextActions": string[5] // short commands, actionable today
}"""

FIRST_SCAN_RULES = """Rules:
- For creative writing collections: focus ONLY on the writing itself. Ignore social media posts, event attendance or biographical side-notes.
- Use the user's language; do not invent biographical facts.
- Be specific: quote exact phrases from the memories in quotes when helpful.
- Keep everything compact; optimize for meaningful insight.
- The briefing should feel like a wise creative mentor understanding the work deeply."""


@dataclass(frozen=True)
class ComposedPrompt:
    system: str
    user: str

    def messages(self) -> List[Message]:
        return [Message.system(self.system), Message.user(self.user)]


def build_memory_excerpt(records: Sequence[MemoryRecord], clamp_chars: Optional[int] = None) -> str:
    """Render records as numbered ``Memory i (id: ...)`` blocks."""
    blocks = []
    for idx, record in enumerate(records or [], start=1):
        content = str(record.content or "")
        if clamp_chars is not None and len(content) > clamp_chars:
            content = content[:clamp_chars] + "\n\n[TRUNCATED]"
        blocks.append(f"Memory {idx} (id: {record.id})\n{content}")
    return EXCERPT_SEPARATOR.join(blocks)


def summarize_analysis(analysis: Optional[MemoryAnalysis]) -> Dict[str, Any]:
    """Condensed analysis summary; each list field is truncated independently."""
    analysis = analysis or MemoryAnalysis()
    return {
        "emotionalPatterns": list(analysis.emotional_patterns[: ANALYSIS_SUMMARY_LIMITS["emotional_patterns"]]),
        "themes": list(analysis.themes[: ANALYSIS_SUMMARY_LIMITS["themes"]]),
        "narrative": analysis.narrative or "",
        "insights": list(analysis.insights[: ANALYSIS_SUMMARY_LIMITS["insights"]]),
        "missingIdeas": list(analysis.missing_ideas[: ANALYSIS_SUMMARY_LIMITS["missing_ideas"]]),
    }


def compose_first_scan_prompt(
    tone: Any,
    excerpt: str,
    analysis: Optional[MemoryAnalysis] = None,
) -> ComposedPrompt:
    """Build the system/user pair for the first-scan synthesis call."""
    muse = MuseTone.parse(tone).value
    system = (
        f'You are Dameris: a voice-first muse. Current muse mode is "{muse}". '
        "You create concise, high-impact synthesis from personal notes. You must output strict JSON."
    )
    summary = json.dumps(summarize_analysis(analysis), indent=2, ensure_ascii=False)
    user = "\n".join(
        [
            f"You are Dameris. Muse mode: {muse}.",
            tone_phrase(muse),
            "",
            "Your job: spark the muse by finding hidden threads, missing ideas, and creative next steps, quickly.",
            "",
            "You will be given:",
            "- A short set of user memories/notes (raw text)",
            "- A high-level analysis (themes, emotions, narrative, insights, missingIdeas)",
            "",
            FIRST_SCAN_CONTRACT.replace("<muse>", muse),
            "",
            FIRST_SCAN_RULES,
            "",
            "MEMORIES:",
            str(excerpt or ""),
            "",
            "ANALYSIS (for reference):",
            summary,
        ]
    )
    return ComposedPrompt(system=system, user=user)


def _bullets(items: Sequence[str], limit: int) -> str:
    rows = [f"- {item}" for item in list(items or [])[:limit]]
    return "\n".join(rows) if rows else "- (none)"


def _clip(text: str, limit: int) -> str:
    text = str(text or "").strip()
    return text if len(text) <= limit else text[:limit].rstrip() + "..."


def compose_poem_prompt(synthesis: SynthesisResult, tone: Any, source_text: str = "") -> ComposedPrompt:
    """Poem draft: plain text lines, no title or commentary."""
    profile = get_tone_profile(tone)
    system = (
        f"You are Dameris, manifesting as {profile.persona}. "
        f"{tone_phrase(profile.tone)} You write short poems from a person's own notes."
    )
    user = "\n".join(
        [
            "Write a poem of 8 to 14 lines drawn from the briefing and fragments below.",
            "Return ONLY the poem as plain text lines. No title, no markdown, no commentary.",
            "",
            "BRIEFING:",
            synthesis.briefing,
            "",
            "TRUTHS:",
            _bullets(synthesis.reflect.truths, 5),
            "",
            "QUOTES:",
            _bullets(synthesis.curate.quotes, 6),
            "",
            "SOURCE:",
            _clip(source_text, 1200),
        ]
    )
    return ComposedPrompt(system=system, user=user)


def compose_collection_prompt(synthesis: SynthesisResult, tone: Any, source_text: str = "") -> ComposedPrompt:
    """Collection draft: one JSON object ``{name, description, items}``."""
    profile = get_tone_profile(tone)
    system = (
        f"You are Dameris, manifesting as {profile.persona}. "
        "You curate small named collections from a person's notes. You must output strict JSON."
    )
    user = "\n".join(
        [
            "Curate one collection from the material below.",
            'Return ONLY a raw JSON object: {"name": string, "description": string, "items": string[6]}.',
            "Items are short fragments, quotes or motifs taken from the material. No markdown code fences.",
            "",
            "BRIEFING:",
            synthesis.briefing,
            "",
            "TAGS:",
            ", ".join(synthesis.curate.tags[:10]) or "(none)",
            "",
            "QUOTES:",
            _bullets(synthesis.curate.quotes, 10),
            "",
            "SOURCE:",
            _clip(source_text, 1200),
        ]
    )
    return ComposedPrompt(system=system, user=user)


def _analysis_memory_block(idx: int, record: MemoryRecord, clip_chars: int) -> str:
    content = record.content
    if len(content) > clip_chars:
        content = content[:clip_chars] + "..."
    return "\n".join(
        [
            f"Memory {idx} (id: {record.id}):",
            f"Content: {content}",
            f"Themes: {', '.join(record.themes) or 'None'}",
            f"Emotions: {', '.join(record.emotional_tags) or 'None'}",
            f"Date: {record.temporal_marker or 'Unknown'}",
        ]
    )


def compose_analysis_prompt(
    records: Sequence[MemoryRecord],
    max_records: int = 20,
    clip_chars: int = 300,
) -> ComposedPrompt:
    """Pattern analysis over at most ``max_records`` memories, each clipped."""
    context = "\n\n".join(
        _analysis_memory_block(idx, record, clip_chars)
        for idx, record in enumerate(list(records or [])[:max_records], start=1)
    )
    system = (
        "You are an expert memory analyst specializing in finding patterns, connections, "
        "and narratives in digital memories. You think deeply and make insightful connections."
    )
    user = "\n".join(
        [
            "Analyze the following memories and identify:",
            "1. Emotional patterns and recurring emotional states",
            "2. Thematic connections across memories",
            "3. Temporal relationships and how memories relate over time",
            "4. Hidden narratives and story threads",
            "5. Key insights about the person's inner and creative life",
            "6. Missing ideas the person keeps circling but hasn't fully articulated",
            "",
            "Memories to analyze:",
            context,
            "",
            "Return ONLY a JSON object with:",
            "- emotionalPatterns: array of recurring emotions",
            "- themes: array of main themes",
            "- connections: array of {from, to, type, strength} linking memory ids, "
            "type is temporal, thematic or emotional, strength is 0-1",
            "- narrative: a brief narrative thread connecting the memories",
            "- insights: array of key insights",
            "- missingIdeas: array of emerging ideas not yet fully formed",
        ]
    )
    return ComposedPrompt(system=system, user=user)

"""Journal entry derived from a synthesis result."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from core import SynthesisResult

from .tones import get_tone_profile


def _section(title: str, items: Sequence[str]) -> List[str]:
    if not items:
        return []
    return [f"## {title}", *[f"- {item}" for item in items], ""]


def compose_journal_entry(
    synthesis: SynthesisResult,
    tone: Any,
    *,
    poem_text: Optional[str] = None,
    entry_date: Optional[date] = None,
) -> Dict[str, str]:
    """Build ``{title, content}`` markdown for the journal artifact."""
    profile = get_tone_profile(tone)
    day = (entry_date or date.today()).isoformat()
    title = f"Muse Journal: {profile.persona} ({day})"

    lines = [f"# {title}", "", synthesis.briefing.strip(), ""]
    lines += _section("What Rings True", synthesis.reflect.truths)
    lines += _section("Tensions", synthesis.reflect.tensions)
    lines += _section("Questions To Sit With", synthesis.reflect.questions)
    lines += _section("Missing Ideas", synthesis.reflect.missing_ideas)
    if poem_text and poem_text.strip():
        lines += ["## Poem", "", poem_text.strip(), ""]
    lines += _section("Next Actions", synthesis.next_actions)
    if synthesis.curate.tags:
        lines += ["Tags: " + ", ".join(f"#{tag.lstrip('#')}" for tag in synthesis.curate.tags), ""]

    return {"title": title, "content": "\n".join(lines).strip() + "\n"}

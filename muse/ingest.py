"""Turn uploaded note text into memory records."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4

from core import MemoryRecord
from utils.exceptions import ValidationError


_SEPARATOR_RE = re.compile(r"\n\s*(?:-{3,}|\*{3,}|_{3,})\s*\n|\n\s*\n")
_HASHTAG_RE = re.compile(r"(?<![\w#])#([A-Za-z][\w-]{1,40})")
_DATE_RE = re.compile(r"\b(\d{4}-\d{2}-\d{2})\b")

# 情绪词表: 关键词 -> 情绪标签
EMOTION_LEXICON: Dict[str, str] = {
    "happy": "joy",
    "joy": "joy",
    "delight": "joy",
    "sad": "sadness",
    "grief": "sadness",
    "lonely": "loneliness",
    "alone": "loneliness",
    "angry": "anger",
    "furious": "anger",
    "afraid": "fear",
    "scared": "fear",
    "anxious": "anxiety",
    "worried": "anxiety",
    "love": "love",
    "hope": "hope",
    "remember": "nostalgia",
    "miss": "nostalgia",
    "calm": "calm",
    "quiet": "calm",
    "grateful": "gratitude",
    "thankful": "gratitude",
}

_WORD_RE = re.compile(r"[a-z']+")


def _new_memory_id() -> str:
    return f"mem_{uuid4().hex[:12]}"


def extract_themes(text: str) -> List[str]:
    themes: List[str] = []
    for match in _HASHTAG_RE.finditer(str(text or "")):
        tag = match.group(1).lower()
        if tag not in themes:
            themes.append(tag)
    return themes


def extract_emotions(text: str) -> List[str]:
    emotions: List[str] = []
    for word in _WORD_RE.findall(str(text or "").lower()):
        tag = EMOTION_LEXICON.get(word)
        if tag and tag not in emotions:
            emotions.append(tag)
    return emotions


def split_blocks(text: str) -> List[str]:
    """Blank lines and ``---`` rules separate notes."""
    normalized = str(text or "").replace("\r\n", "\n").replace("\r", "\n")
    return [block.strip() for block in _SEPARATOR_RE.split(normalized) if block and block.strip()]


def build_record(content: str, *, created_at: Optional[datetime] = None, **fields: Any) -> MemoryRecord:
    content = str(content or "").strip()
    date_match = _DATE_RE.search(content)
    return MemoryRecord(
        id=str(fields.get("id") or _new_memory_id()),
        content=content,
        themes=fields.get("themes") or extract_themes(content),
        emotional_tags=fields.get("emotional_tags") or extract_emotions(content),
        temporal_marker=fields.get("temporal_marker") or (date_match.group(1) if date_match else None),
        created_at=created_at or datetime.now(timezone.utc),
    )


def split_notes(text: str, *, split: bool = True) -> List[MemoryRecord]:
    """
    Split an uploaded text corpus into records.

    Later notes get later ``created_at`` values so newest-first listing
    follows the reverse of upload order.
    """
    blocks = split_blocks(text) if split else [str(text or "").strip()]
    blocks = [block for block in blocks if block]
    if not blocks:
        raise ValidationError("No note content provided")
    base = datetime.now(timezone.utc)
    return [
        build_record(block, created_at=base + timedelta(microseconds=idx))
        for idx, block in enumerate(blocks)
    ]


def records_from_items(items: Iterable[Dict[str, Any]]) -> List[MemoryRecord]:
    """Records from structured items (``content``, optional ``themes``/``emotionalTags``/``temporalMarker``)."""
    base = datetime.now(timezone.utc)
    records: List[MemoryRecord] = []
    for idx, item in enumerate(items or []):
        if not isinstance(item, dict):
            continue
        content = str(item.get("content") or "").strip()
        if not content:
            continue
        records.append(
            build_record(
                content,
                created_at=base + timedelta(microseconds=idx),
                id=item.get("id"),
                themes=item.get("themes"),
                emotional_tags=item.get("emotionalTags") or item.get("emotional_tags"),
                temporal_marker=item.get("temporalMarker") or item.get("temporal_marker"),
            )
        )
    if not records:
        raise ValidationError("No note content provided")
    return records

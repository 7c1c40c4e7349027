"""
Structured response recovery.

Model output is treated as untrusted text: a best-effort brace-span
extractor pulls out a JSON object, then a total coercion step maps whatever
came back onto the closed ``SynthesisResult`` schema. Nothing here raises.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

from core import (
    CollectionEntry,
    CurateSection,
    RecomposeSection,
    ReflectSection,
    SynthesisResult,
    VisualiseSection,
)


logger = logging.getLogger(__name__)

BRIEFING_FALLBACK = "I scanned your note. Ask me what you want to create from it."

MAX_COLLECTIONS = 3
MAX_COLLECTION_ITEMS = 6

# 每个列表字段的上限, 与提示词中的输出约定一致
LIST_CAPS: Dict[str, int] = {
    "truths": 5,
    "tensions": 4,
    "questions": 4,
    "missingIdeas": 4,
    "imagePrompts": 6,
    "palette": 6,
    "storyboardBeats": 6,
    "tags": 10,
    "quotes": 10,
    "nextActions": 5,
}

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_LEADING_ARTIFACTS = (
    re.compile(r"^\s*```(?:json)?\s*", re.IGNORECASE),
    re.compile(r"^\s*\{\s*"),
    re.compile(r'^\s*"muse"\s*:\s*"[^"]*"\s*,?\s*', re.IGNORECASE),
    re.compile(r'^\s*"briefing"\s*:\s*"', re.IGNORECASE),
)
_TRAILING_FENCE_RE = re.compile(r"\s*```\s*$")
_TRAILING_JSON_RE = re.compile(r'(?<!\\)"?[\s},]*$')


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", str(text or ""))


def extract_json_object(text: Any) -> Optional[Dict[str, Any]]:
    """Decode the span from the first ``{`` to the last ``}``; ``None`` when that is not a JSON object."""
    cleaned = strip_code_fences(text if isinstance(text, str) else "")
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start < 0 or end <= start:
        return None
    try:
        value = json.loads(cleaned[start:end + 1])
    except (ValueError, RecursionError):
        return None
    return value if isinstance(value, dict) else None


def coerce_string(value: Any) -> str:
    return value if isinstance(value, str) else ""


def coerce_string_list(value: Any, cap: int) -> List[str]:
    """Keep trimmed non-empty ``str`` elements, at most ``cap`` of them."""
    if not isinstance(value, list):
        return []
    items = [item.strip() for item in value if isinstance(item, str)]
    return [item for item in items if item][: max(0, cap)]


def _section(raw: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = raw.get(key)
    return value if isinstance(value, dict) else {}


def coerce_collection(value: Any) -> Optional[CollectionEntry]:
    if not isinstance(value, dict):
        return None
    name = value.get("name")
    description = value.get("description")
    return CollectionEntry(
        name=name if isinstance(name, str) else "Collection",
        description=description if isinstance(description, str) else "",
        items=coerce_string_list(value.get("items"), MAX_COLLECTION_ITEMS),
    )


def clean_briefing(text: Any) -> str:
    """Remove JSON residue around a briefing that the model emitted as an escaped object."""
    cleaned = coerce_string(text)
    had_artifact = False
    for pattern in _LEADING_ARTIFACTS:
        cleaned, hits = pattern.subn("", cleaned, count=1)
        had_artifact = had_artifact or hits > 0
    cleaned = _TRAILING_FENCE_RE.sub("", cleaned)
    if had_artifact:
        cleaned = _TRAILING_JSON_RE.sub("", cleaned)
    return cleaned.replace('\\"', '"').strip()


def coerce_synthesis(raw: Any) -> SynthesisResult:
    """Map any value onto a complete, bounded ``SynthesisResult``."""
    raw = raw if isinstance(raw, dict) else {}
    reflect = _section(raw, "reflect")
    recompose = _section(raw, "recompose")
    visualise = _section(raw, "visualise")
    curate = _section(raw, "curate")

    raw_collections = curate.get("collections")
    collections: List[CollectionEntry] = []
    if isinstance(raw_collections, list):
        for entry in raw_collections:
            coerced = coerce_collection(entry)
            if coerced is not None:
                collections.append(coerced)
            if len(collections) >= MAX_COLLECTIONS:
                break

    return SynthesisResult(
        briefing=clean_briefing(raw.get("briefing")) or BRIEFING_FALLBACK,
        reflect=ReflectSection(
            truths=coerce_string_list(reflect.get("truths"), LIST_CAPS["truths"]),
            tensions=coerce_string_list(reflect.get("tensions"), LIST_CAPS["tensions"]),
            questions=coerce_string_list(reflect.get("questions"), LIST_CAPS["questions"]),
            missing_ideas=coerce_string_list(reflect.get("missingIdeas"), LIST_CAPS["missingIdeas"]),
        ),
        recompose=RecomposeSection(
            email_draft=coerce_string(recompose.get("emailDraft")),
            tweet_thread=coerce_string(recompose.get("tweetThread")),
            outline=coerce_string(recompose.get("outline")),
        ),
        visualise=VisualiseSection(
            image_prompts=coerce_string_list(visualise.get("imagePrompts"), LIST_CAPS["imagePrompts"]),
            palette=coerce_string_list(visualise.get("palette"), LIST_CAPS["palette"]),
            storyboard_beats=coerce_string_list(visualise.get("storyboardBeats"), LIST_CAPS["storyboardBeats"]),
        ),
        curate=CurateSection(
            tags=coerce_string_list(curate.get("tags"), LIST_CAPS["tags"]),
            quotes=coerce_string_list(curate.get("quotes"), LIST_CAPS["quotes"]),
            collections=collections,
        ),
        next_actions=coerce_string_list(raw.get("nextActions"), LIST_CAPS["nextActions"]),
    )


def recover(raw_text: Any) -> SynthesisResult:
    """Extract and coerce a ``SynthesisResult`` from free-form model text."""
    text = raw_text if isinstance(raw_text, str) else ""
    raw = extract_json_object(text)
    if raw is None:
        logger.debug("No JSON object found in model output; using raw text as briefing")
        raw = {"briefing": text}
    return coerce_synthesis(raw)

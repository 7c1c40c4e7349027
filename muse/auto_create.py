"""
Auto-create orchestration.

A briefing fans out into four artifact slots over a fixed three-stage graph:

    drafts  (poem + collection, concurrent, non-fatal)
      -> image   (sequential, fatal)
      -> journal (sequential, non-fatal)

Slot runners never raise; each resolves to an ``ArtifactOutcome``. A failed
fatal stage stops the graph and every later slot is reported as skipped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from config.settings import ImageSettings, MuseSettings
from core import (
    ArtifactKind,
    ArtifactOutcome,
    ArtifactRecord,
    AutoCreateResult,
    CollectionEntry,
    MuseTone,
    Provenance,
    SynthesisResult,
)
from imaging.adapters.base import BaseImageAdapter
from intelligence.llm import BaseLLM, GenerationCall, LLMResponse
from storage.artifact_store import BaseArtifactStore
from utils.exceptions import (
    GenerationTimeoutError,
    MemoryMuseError,
    StorageError,
    UpstreamError,
    ValidationError,
)

from .invoker import invoke, run_with_timeout
from .journal import compose_journal_entry
from .prompt_composer import compose_collection_prompt, compose_poem_prompt
from .recovery import coerce_collection, extract_json_object, strip_code_fences
from .tones import enhance_image_prompt, get_tone_profile


logger = logging.getLogger(__name__)

COLLECTION_TEMPERATURE = 0.6
DRAFT_MAX_TOKENS = 700
SOURCE_PROMPT_CHARS = 300

POEM_TIMEOUT_MESSAGE = "Poem generation timed out. Please try again."
COLLECTION_TIMEOUT_MESSAGE = "Collection generation timed out. Please try again."
IMAGE_TIMEOUT_MESSAGE = "Image generation timed out. Please try again."


@dataclass(frozen=True)
class StageSpec:
    name: str
    slots: Tuple[str, ...]
    concurrent: bool
    fatal: bool


AUTO_CREATE_STAGES: Tuple[StageSpec, ...] = (
    StageSpec("drafts", ("poem", "collection"), concurrent=True, fatal=False),
    StageSpec("image", ("image",), concurrent=False, fatal=True),
    StageSpec("journal", ("journal",), concurrent=False, fatal=False),
)

SLOT_NAMES: Tuple[str, ...] = tuple(slot for stage in AUTO_CREATE_STAGES for slot in stage.slots)


def error_kind(exc: BaseException) -> str:
    if isinstance(exc, GenerationTimeoutError):
        return "timeout"
    if isinstance(exc, UpstreamError):
        return "upstream"
    if isinstance(exc, ValidationError):
        return "invalid"
    if isinstance(exc, StorageError):
        return "storage"
    return "error"


def _error_message(exc: BaseException) -> str:
    if isinstance(exc, MemoryMuseError):
        return exc.message
    return str(exc) or type(exc).__name__


def image_prompt_for(synthesis: SynthesisResult, source_text: str) -> str:
    """First visualise prompt, else an excerpt of the source text, else the briefing."""
    if synthesis.visualise.image_prompts:
        return synthesis.visualise.image_prompts[0]
    excerpt = " ".join(str(source_text or "").split())[:SOURCE_PROMPT_CHARS].strip()
    return excerpt or synthesis.briefing


def clean_poem(text: str) -> str:
    lines = [line.rstrip() for line in strip_code_fences(text).strip().splitlines()]
    return "\n".join(lines).strip()


@dataclass
class _AutoCreateRun:
    """Inputs and resolved outcomes of a single auto-create invocation."""

    synthesis: SynthesisResult
    tone: MuseTone
    source_text: str
    memory_id: Optional[str]
    user_id: Optional[str]
    outcomes: Dict[str, ArtifactOutcome] = field(default_factory=dict)


SlotRunner = Callable[[_AutoCreateRun], Awaitable[ArtifactOutcome]]


class ArtifactOrchestrator:
    """Derive poem, collection, image and journal artifacts from a synthesis result."""

    def __init__(
        self,
        llm: BaseLLM,
        image_adapter: BaseImageAdapter,
        artifact_store: BaseArtifactStore,
        *,
        settings: Optional[MuseSettings] = None,
        image_settings: Optional[ImageSettings] = None,
    ) -> None:
        if settings is None or image_settings is None:
            from config import get_image_settings, get_muse_settings

            settings = settings or get_muse_settings()
            image_settings = image_settings or get_image_settings()
        self.llm = llm
        self.image_adapter = image_adapter
        self.artifact_store = artifact_store
        self.settings = settings
        self.image_settings = image_settings
        self._runners: Dict[str, SlotRunner] = {
            "poem": self._run_poem,
            "collection": self._run_collection,
            "image": self._run_image,
            "journal": self._run_journal,
        }

    async def auto_create(
        self,
        synthesis: SynthesisResult,
        tone: Any = MuseTone.SYNTHESIS,
        source_text: str = "",
        *,
        memory_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> AutoCreateResult:
        run = _AutoCreateRun(
            synthesis=synthesis,
            tone=MuseTone.parse(tone),
            source_text=str(source_text or ""),
            memory_id=memory_id,
            user_id=user_id,
        )

        for stage in AUTO_CREATE_STAGES:
            outcomes = await self._run_stage(stage, run)
            for outcome in outcomes:
                run.outcomes[outcome.slot] = outcome

            failed = [outcome for outcome in outcomes if not outcome.ok]
            if stage.fatal and failed:
                return self._abort(run, stage, failed[0])

        logger.info(
            "Auto-create finished: %s",
            ", ".join(f"{slot}={'ok' if run.outcomes[slot].ok else 'failed'}" for slot in SLOT_NAMES),
        )
        return AutoCreateResult(success=True, tone=run.tone, **run.outcomes)

    async def _run_stage(self, stage: StageSpec, run: _AutoCreateRun) -> List[ArtifactOutcome]:
        if stage.concurrent:
            return list(await asyncio.gather(*(self._run_slot(slot, run) for slot in stage.slots)))
        return [await self._run_slot(slot, run) for slot in stage.slots]

    async def _run_slot(self, slot: str, run: _AutoCreateRun) -> ArtifactOutcome:
        try:
            return await self._runners[slot](run)
        except Exception as exc:
            logger.warning("Auto-create slot %s failed: %s", slot, _error_message(exc))
            return ArtifactOutcome.failure(slot, error_kind(exc), _error_message(exc))

    def _abort(self, run: _AutoCreateRun, stage: StageSpec, cause: ArtifactOutcome) -> AutoCreateResult:
        logger.error("Auto-create aborted at stage %s: %s", stage.name, cause.message)
        for slot in SLOT_NAMES:
            if slot not in run.outcomes:
                run.outcomes[slot] = ArtifactOutcome.failure(
                    slot, "skipped", f"Skipped because {stage.name} generation failed"
                )
        return AutoCreateResult(
            success=False,
            tone=run.tone,
            error=cause.message,
            error_kind=cause.error_kind,
            **run.outcomes,
        )

    async def _generate(self, call: GenerationCall, message: str) -> LLMResponse:
        return await invoke(self.llm, call, self.settings.artifact_timeout_sec, message)

    def _persist(
        self,
        run: _AutoCreateRun,
        kind: ArtifactKind,
        payload: Dict[str, Any],
        provenance: Optional[Provenance],
        *,
        title: str,
        description: str = "",
    ) -> ArtifactRecord:
        return self.artifact_store.create_artifact(
            kind,
            payload,
            provenance,
            title=title,
            description=description,
            memory_id=run.memory_id,
            user_id=run.user_id,
        )

    def _persist_draft(
        self,
        run: _AutoCreateRun,
        kind: ArtifactKind,
        payload: Dict[str, Any],
        provenance: Provenance,
        **kwargs: Any,
    ) -> Optional[Dict[str, Any]]:
        """Drafts are kept even when saving them fails."""
        try:
            return self._persist(run, kind, payload, provenance, **kwargs).to_payload()
        except Exception as exc:
            logger.warning("Failed to save %s artefact (non-fatal): %s", kind.value, exc)
            return None

    async def _run_poem(self, run: _AutoCreateRun) -> ArtifactOutcome:
        profile = get_tone_profile(run.tone)
        prompt = compose_poem_prompt(run.synthesis, run.tone, run.source_text)
        response = await self._generate(
            GenerationCall(
                messages=prompt.messages(),
                temperature=profile.poem_temperature,
                max_tokens=DRAFT_MAX_TOKENS,
                model_hint="chat",
            ),
            POEM_TIMEOUT_MESSAGE,
        )
        text = clean_poem(response.content)
        if not text:
            return ArtifactOutcome.failure("poem", "empty", "Poem draft was empty")

        provenance = Provenance(model=response.model, provider=response.provider)
        artefact = self._persist_draft(
            run,
            ArtifactKind.POEM,
            {"kind": "poem", "museType": run.tone.value, "text": text},
            provenance,
            title=f"A Poem from {profile.persona}",
            description=text.splitlines()[0],
        )
        return ArtifactOutcome.success(
            "poem",
            {"text": text, "artefact": artefact, "model": response.model, "provider": response.provider},
        )

    async def _run_collection(self, run: _AutoCreateRun) -> ArtifactOutcome:
        prompt = compose_collection_prompt(run.synthesis, run.tone, run.source_text)
        response = await self._generate(
            GenerationCall(
                messages=prompt.messages(),
                temperature=COLLECTION_TEMPERATURE,
                max_tokens=DRAFT_MAX_TOKENS,
                model_hint="chat",
            ),
            COLLECTION_TIMEOUT_MESSAGE,
        )
        collection = coerce_collection(extract_json_object(response.content))
        if collection is None or not collection.items:
            collection = self._fallback_collection(run.synthesis)
        if collection is None:
            return ArtifactOutcome.failure("collection", "invalid", "Collection draft had no items")

        provenance = Provenance(model=response.model, provider=response.provider)
        data = collection.model_dump(mode="json")
        artefact = self._persist_draft(
            run,
            ArtifactKind.COLLECTION,
            {"kind": "collection", "museType": run.tone.value, "collection": data},
            provenance,
            title=collection.name,
            description=collection.description,
        )
        return ArtifactOutcome.success(
            "collection",
            {"collection": data, "artefact": artefact, "model": response.model, "provider": response.provider},
        )

    @staticmethod
    def _fallback_collection(synthesis: SynthesisResult) -> Optional[CollectionEntry]:
        for entry in synthesis.curate.collections:
            if entry.items:
                logger.info("Collection draft unusable; using first-scan collection %r", entry.name)
                return entry
        return None

    async def _run_image(self, run: _AutoCreateRun) -> ArtifactOutcome:
        prompt = enhance_image_prompt(image_prompt_for(run.synthesis, run.source_text), run.tone)
        image = await run_with_timeout(
            self.image_adapter.generate_image(
                prompt,
                style_hint=get_tone_profile(run.tone).image_style,
                width=self.image_settings.width,
                height=self.image_settings.height,
            ),
            self.image_settings.timeout_sec,
            IMAGE_TIMEOUT_MESSAGE,
            provider=self.image_adapter.provider,
        )
        provenance = Provenance(model=image.model, provider=image.provider or self.image_adapter.provider)
        record = self._persist(
            run,
            ArtifactKind.IMAGE,
            {"kind": "visualise", "museType": run.tone.value, "prompt": prompt, "image": image.to_payload()},
            provenance,
            title="Visual Interpretation",
            description=prompt,
        )
        return ArtifactOutcome.success(
            "image",
            {"image": image.url, "prompt": prompt, "artefact": record.to_payload()},
        )

    async def _run_journal(self, run: _AutoCreateRun) -> ArtifactOutcome:
        poem = run.outcomes.get("poem")
        entry = compose_journal_entry(run.synthesis, run.tone, poem_text=poem.value("text") if poem else None)
        record = self._persist(
            run,
            ArtifactKind.JOURNAL,
            {"kind": "journal", "museType": run.tone.value, "content": entry["content"]},
            None,
            title=entry["title"],
            description=run.synthesis.briefing,
        )
        return ArtifactOutcome.success("journal", {"entry": entry, "artefact": record.to_payload()})

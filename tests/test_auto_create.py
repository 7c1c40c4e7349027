"""Auto-create orchestration tests: slot isolation, fatal image stage, concurrency."""

from __future__ import annotations

import asyncio
import json
from datetime import date
from typing import List, Optional

import pytest

from config.settings import ImageSettings, MuseSettings
from core import ArtifactKind, AutoCreateResult, CollectionEntry, CurateSection, MuseTone, SynthesisResult
from core import ReflectSection, VisualiseSection
from imaging.adapters.base import BaseImageAdapter, GeneratedImage, compose_image_prompt
from intelligence.llm import BaseLLM, LLMResponse
from muse.auto_create import AUTO_CREATE_STAGES, SLOT_NAMES, ArtifactOrchestrator, error_kind, image_prompt_for
from muse.journal import compose_journal_entry
from muse.tones import get_tone_profile
from storage import InMemoryArtifactStore
from utils.exceptions import GenerationTimeoutError, ImageGenerationError, StorageError, ValidationError


POEM = "salt on the sill\nthe tide keeps time\nI come back anyway"
COLLECTION = json.dumps({"name": "Collected Sparks", "description": "Bright bits", "items": ["salt", "tide", "sill"]})


class _DraftLLM(BaseLLM):
    """Answers poem and collection prompts; tracks overlapping calls."""

    def __init__(
        self,
        poem: str = POEM,
        collection: str = COLLECTION,
        fail: Optional[str] = None,
        delay: float = 0.0,
    ):
        super().__init__(model="draft-1", chat_model="draft-chat")
        self.poem = poem
        self.collection = collection
        self.fail = fail
        self.delay = delay
        self.calls: List[dict] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def provider(self) -> str:
        return "draft"

    async def acomplete(self, messages, **kwargs) -> LLMResponse:
        slot = "poem" if "short poems" in messages[0].content else "collection"
        self.calls.append({"slot": slot, **kwargs})
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.fail == slot:
                raise RuntimeError(f"{slot} backend down")
        finally:
            self.in_flight -= 1
        content = self.poem if slot == "poem" else self.collection
        return LLMResponse(content=content, model=self.resolve_model(kwargs.get("model_hint")), provider=self.provider)


class _FakeImageAdapter(BaseImageAdapter):
    provider = "fake-image"

    def __init__(self, error: Exception = None, delay: float = 0.0):
        self.error = error
        self.delay = delay
        self.prompts: List[str] = []
        self.style_hints: List[str] = []

    async def generate_image(self, prompt, *, style_hint=None, width=1024, height=1024) -> GeneratedImage:
        self.prompts.append(prompt)
        self.style_hints.append(style_hint)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return GeneratedImage(url="data:image/png;base64,AAAA", provider=self.provider, model="fake-sd")


class _SelectiveStore(InMemoryArtifactStore):
    """Fails to persist the listed artifact kinds."""

    def __init__(self, failing: tuple = ()):
        super().__init__()
        self.failing = set(failing)

    def _save(self, record) -> None:
        if record.kind in self.failing:
            raise StorageError(f"cannot save {record.kind.value}")
        super()._save(record)


def _synthesis(**overrides) -> SynthesisResult:
    values = dict(
        briefing="You keep writing toward the sea.",
        reflect=ReflectSection(truths=["The sea is a return"], questions=["Why now?"]),
        visualise=VisualiseSection(image_prompts=["a lighthouse at dusk"]),
        curate=CurateSection(
            tags=["sea", "#home"],
            collections=[CollectionEntry(name="Tides", description="From the scan", items=["low", "high"])],
        ),
        next_actions=["Walk to the pier"],
    )
    values.update(overrides)
    return SynthesisResult(**values)


def _orchestrator(llm=None, adapter=None, store=None, **settings) -> ArtifactOrchestrator:
    return ArtifactOrchestrator(
        llm or _DraftLLM(),
        adapter or _FakeImageAdapter(),
        store or InMemoryArtifactStore(),
        settings=MuseSettings(artifact_timeout_sec=settings.get("artifact_timeout_sec", 1.0)),
        image_settings=ImageSettings(timeout_sec=settings.get("image_timeout_sec", 1.0), width=512, height=512),
    )


def test_stage_graph_shape():
    assert SLOT_NAMES == ("poem", "collection", "image", "journal")
    assert [stage.name for stage in AUTO_CREATE_STAGES] == ["drafts", "image", "journal"]
    assert [stage.fatal for stage in AUTO_CREATE_STAGES] == [False, True, False]
    assert AUTO_CREATE_STAGES[0].concurrent is True


def test_error_kind_mapping():
    assert error_kind(GenerationTimeoutError("t")) == "timeout"
    assert error_kind(ImageGenerationError("i")) == "upstream"
    assert error_kind(ValidationError("v")) == "invalid"
    assert error_kind(StorageError("s")) == "storage"
    assert error_kind(RuntimeError("r")) == "error"


def test_image_prompt_fallback_order():
    assert image_prompt_for(_synthesis(), "notes") == "a lighthouse at dusk"
    no_prompts = _synthesis(visualise=VisualiseSection())
    assert image_prompt_for(no_prompts, "  salt\n and  tide ") == "salt and tide"
    assert image_prompt_for(no_prompts, "") == "You keep writing toward the sea."


@pytest.mark.asyncio
async def test_auto_create_success_fills_every_slot():
    llm = _DraftLLM()
    adapter = _FakeImageAdapter()
    store = InMemoryArtifactStore()
    orchestrator = _orchestrator(llm, adapter, store)

    result = await orchestrator.auto_create(_synthesis(), "poet", "notes", memory_id="mem_1", user_id="u1")

    assert isinstance(result, AutoCreateResult)
    assert result.success is True
    assert result.error is None
    assert all(outcome.ok for outcome in result.slots().values())

    body = result.to_response()
    assert body["poemText"].splitlines() == POEM.splitlines()
    assert body["collection"]["name"] == "Collected Sparks"
    assert body["collection"]["items"] == ["salt", "tide", "sill"]
    assert body["image"] == "data:image/png;base64,AAAA"
    assert body["journalArtefact"]["kind"] == "journal"
    assert body["poemArtefact"]["memoryId"] == "mem_1"

    poem_style = get_tone_profile("poet").image_style
    assert adapter.prompts == [f"a lighthouse at dusk, {poem_style}"]
    assert adapter.style_hints == [poem_style]
    assert compose_image_prompt(adapter.prompts[0], adapter.style_hints[0]) == adapter.prompts[0]

    kinds = {record.kind for record in store.list_artifacts(user_id="u1")}
    assert kinds == {ArtifactKind.POEM, ArtifactKind.COLLECTION, ArtifactKind.IMAGE, ArtifactKind.JOURNAL}

    poem_call = next(call for call in llm.calls if call["slot"] == "poem")
    assert poem_call["temperature"] == get_tone_profile("poet").poem_temperature
    assert poem_call["model_hint"] == "chat"


@pytest.mark.asyncio
async def test_journal_includes_poem_text():
    store = InMemoryArtifactStore()
    result = await _orchestrator(store=store).auto_create(_synthesis(), MuseTone.NARRATOR, "notes")

    content = result.journal.payload["entry"]["content"]
    assert "## Poem" in content
    assert "the tide keeps time" in content
    assert "## What Rings True" in content
    assert "Tags: #sea, #home" in content


@pytest.mark.asyncio
async def test_poem_failure_does_not_block_collection():
    result = await _orchestrator(_DraftLLM(fail="poem")).auto_create(_synthesis(), "poet", "notes")

    assert result.success is True
    assert result.poem.ok is False
    assert result.poem.error_kind == "upstream"
    assert result.collection.ok is True
    assert result.image.ok is True
    body = result.to_response()
    assert body["poemText"] is None
    assert body["poemArtefact"] is None
    assert "## Poem" not in result.journal.payload["entry"]["content"]


@pytest.mark.asyncio
async def test_collection_failure_does_not_block_poem():
    result = await _orchestrator(_DraftLLM(fail="collection")).auto_create(_synthesis(), "poet", "notes")

    assert result.success is True
    assert result.collection.ok is False
    assert result.poem.ok is True
    assert result.to_response()["collection"] is None


@pytest.mark.asyncio
async def test_unusable_collection_falls_back_to_first_scan_collection():
    result = await _orchestrator(_DraftLLM(collection="no json here")).auto_create(_synthesis(), "poet", "")

    assert result.collection.ok is True
    assert result.collection.payload["collection"]["name"] == "Tides"


@pytest.mark.asyncio
async def test_unusable_collection_without_fallback_is_invalid():
    synthesis = _synthesis(curate=CurateSection())
    result = await _orchestrator(_DraftLLM(collection="{}")).auto_create(synthesis, "poet", "")

    assert result.collection.ok is False
    assert result.collection.error_kind == "invalid"
    assert result.success is True


@pytest.mark.asyncio
async def test_empty_poem_is_a_slot_failure():
    result = await _orchestrator(_DraftLLM(poem="```\n```")).auto_create(_synthesis(), "poet", "")
    assert result.poem.ok is False
    assert result.poem.error_kind == "empty"


@pytest.mark.asyncio
async def test_image_failure_aborts_and_skips_journal():
    adapter = _FakeImageAdapter(error=ImageGenerationError("Image generation failed", provider="fake-image"))
    result = await _orchestrator(adapter=adapter).auto_create(_synthesis(), "poet", "notes")

    assert result.success is False
    assert result.error == "Image generation failed"
    assert result.error_kind == "upstream"
    assert result.poem.ok is True
    assert result.image.ok is False
    assert result.journal.ok is False
    assert result.journal.error_kind == "skipped"
    assert result.to_response()["error"] == "Image generation failed"


@pytest.mark.asyncio
async def test_image_timeout_reports_timeout_kind():
    adapter = _FakeImageAdapter(delay=0.2)
    result = await _orchestrator(adapter=adapter, image_timeout_sec=0.01).auto_create(_synthesis(), "poet", "")

    assert result.success is False
    assert result.error_kind == "timeout"
    assert result.journal.error_kind == "skipped"
    await asyncio.sleep(0.25)


@pytest.mark.asyncio
async def test_image_storage_failure_is_fatal():
    store = _SelectiveStore(failing=(ArtifactKind.IMAGE,))
    result = await _orchestrator(store=store).auto_create(_synthesis(), "poet", "")

    assert result.success is False
    assert result.error_kind == "storage"
    assert result.journal.error_kind == "skipped"


@pytest.mark.asyncio
async def test_journal_storage_failure_is_not_fatal():
    store = _SelectiveStore(failing=(ArtifactKind.JOURNAL,))
    result = await _orchestrator(store=store).auto_create(_synthesis(), "poet", "")

    assert result.success is True
    assert result.journal.ok is False
    assert result.to_response()["journalArtefact"] is None
    assert result.to_response()["imageArtefact"]["kind"] == "image"


@pytest.mark.asyncio
async def test_draft_storage_failure_keeps_draft():
    store = _SelectiveStore(failing=(ArtifactKind.POEM,))
    result = await _orchestrator(store=store).auto_create(_synthesis(), "poet", "")

    assert result.poem.ok is True
    assert result.poem.payload["artefact"] is None
    assert result.poem.payload["text"].startswith("salt on the sill")


@pytest.mark.asyncio
async def test_drafts_run_concurrently():
    llm = _DraftLLM(delay=0.05)
    result = await _orchestrator(llm).auto_create(_synthesis(), "poet", "")

    assert result.success is True
    assert llm.max_in_flight == 2


def test_compose_journal_entry_title_and_sections():
    entry = compose_journal_entry(_synthesis(), "analyst", entry_date=date(2024, 5, 1))

    assert entry["title"] == "Muse Journal: The Analyst (2024-05-01)"
    assert entry["content"].startswith("# Muse Journal: The Analyst (2024-05-01)")
    assert "## Questions To Sit With\n- Why now?" in entry["content"]
    assert "## Tensions" not in entry["content"]
    assert "## Next Actions\n- Walk to the pier" in entry["content"]


@pytest.mark.asyncio
async def test_unknown_tone_is_rejected_up_front():
    with pytest.raises(ValidationError):
        await _orchestrator().auto_create(_synthesis(), "jester", "")

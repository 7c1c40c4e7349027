"""First-scan synthesis: sample, analyze, prompt, invoke, recover."""

from __future__ import annotations

import logging
import random
from typing import Any, Optional, Sequence

from config.settings import MuseSettings
from core import (
    ArtifactKind,
    ArtifactRecord,
    FirstScanResult,
    MemoryAnalysis,
    MemoryRecord,
    MuseTone,
    Provenance,
    SynthesisResult,
)
from intelligence.llm import BaseLLM, GenerationCall
from storage.artifact_store import BaseArtifactStore
from utils.exceptions import ValidationError

from .analyzer import MemoryAnalyzer
from .invoker import invoke
from .prompt_composer import build_memory_excerpt, compose_first_scan_prompt
from .recovery import recover
from .sampler import select_memories


logger = logging.getLogger(__name__)

FIRST_SCAN_TEMPERATURE = 0.7
FIRST_SCAN_MAX_TOKENS = 1400
FIRST_SCAN_TIMEOUT_MESSAGE = (
    "Memory scan timed out. Please try again with a smaller file or check your connection."
)
NO_INPUT_MESSAGE = "No memories found to scan"


class SynthesisService:
    """Runs the first-scan operation for one request; holds no per-request state."""

    def __init__(
        self,
        llm: BaseLLM,
        artifact_store: Optional[BaseArtifactStore] = None,
        *,
        analyzer: Optional[MemoryAnalyzer] = None,
        settings: Optional[MuseSettings] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        if settings is None:
            from config import get_muse_settings

            settings = get_muse_settings()
        self.llm = llm
        self.artifact_store = artifact_store
        self.settings = settings
        self.analyzer = analyzer or MemoryAnalyzer(
            llm,
            use_llm=settings.analyze_with_llm,
            cache_ttl=settings.analysis_cache_ttl,
            timeout_sec=settings.analysis_timeout_sec,
        )
        self.rng = rng

    async def first_scan(
        self,
        records: Sequence[MemoryRecord],
        tone: Any = MuseTone.SYNTHESIS,
        char_budget: Optional[int] = None,
        *,
        memory_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> FirstScanResult:
        """
        Produce a ``SynthesisResult`` for ``records``.

        Raises ``ValidationError`` for empty input, ``GenerationTimeoutError``
        when the model call exceeds its budget and ``UpstreamError`` when the
        call fails. The analysis snapshot artifact is best-effort.
        """
        tone = MuseTone.parse(tone)
        records = list(records or [])
        if not records:
            raise ValidationError(NO_INPUT_MESSAGE)

        budget = int(char_budget or self.settings.char_budget)
        selected = select_memories(records, budget, rng=self.rng)
        analysis = await self.analyzer.analyze(selected)

        prompt = compose_first_scan_prompt(tone, build_memory_excerpt(selected), analysis)
        call = GenerationCall(
            messages=prompt.messages(),
            temperature=FIRST_SCAN_TEMPERATURE,
            max_tokens=FIRST_SCAN_MAX_TOKENS,
            model_hint="chat",
        )
        logger.info("First scan: tone=%s memories=%d/%d", tone.value, len(selected), len(records))
        response = await invoke(
            self.llm,
            call,
            self.settings.synthesis_timeout_sec,
            FIRST_SCAN_TIMEOUT_MESSAGE,
        )

        result = recover(response.content)
        provenance = Provenance(
            model=response.model or self.llm.model,
            provider=response.provider or self.llm.provider,
        )
        snapshot = self._save_snapshot(
            result,
            analysis,
            tone,
            provenance,
            memory_id=memory_id or selected[0].id,
            user_id=user_id,
        )

        return FirstScanResult(
            tone=tone,
            result=result,
            provenance=provenance,
            memory_ids=[record.id for record in selected],
            analysis=analysis,
            analysis_artifact=snapshot,
        )

    def _save_snapshot(
        self,
        result: SynthesisResult,
        analysis: MemoryAnalysis,
        tone: MuseTone,
        provenance: Provenance,
        *,
        memory_id: Optional[str],
        user_id: Optional[str],
    ) -> Optional[ArtifactRecord]:
        if self.artifact_store is None:
            return None
        payload = {
            "kind": "first-scan",
            "museType": tone.value,
            "firstScan": result.to_payload(),
            "analysis": analysis.model_dump(mode="json", by_alias=True),
        }
        try:
            record = self.artifact_store.create_artifact(
                ArtifactKind.ANALYSIS,
                payload,
                provenance,
                title="Creative Analysis",
                description=result.briefing,
                memory_id=memory_id,
                user_id=user_id,
            )
        except Exception as exc:
            logger.warning("Failed to save analysis artefact (non-fatal): %s", exc)
            return None
        logger.debug("Saved analysis artefact %s", record.id)
        return record

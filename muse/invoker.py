"""Generation invoker: bound the latency of one model call."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Optional, Set

from intelligence.llm import BaseLLM, GenerationCall, LLMResponse
from utils.exceptions import GenerationCallError, GenerationTimeoutError, UpstreamError


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MESSAGE = "Generation timed out. Please try again."
UPSTREAM_MESSAGE = "AI service unavailable. Please check your API configuration."

# 超时后被放弃的调用; 保持引用直到其自行结束
_abandoned: Set["asyncio.Future[Any]"] = set()


def _discard_abandoned(task: "asyncio.Future[Any]") -> None:
    _abandoned.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Abandoned generation call finished with %s: %s", type(exc).__name__, exc)
    else:
        logger.debug("Abandoned generation call finished; result discarded")


def _park(task: "asyncio.Future[Any]") -> None:
    _abandoned.add(task)
    task.add_done_callback(_discard_abandoned)


def abandoned_count() -> int:
    return len(_abandoned)


async def run_with_timeout(
    awaitable: Awaitable[Any],
    timeout_sec: Optional[float],
    message: str = DEFAULT_TIMEOUT_MESSAGE,
    *,
    provider: Optional[str] = None,
) -> Any:
    """
    Race ``awaitable`` against a timer.

    Timer first: raise ``GenerationTimeoutError(message)`` and leave the call
    running; its eventual outcome is consumed and dropped. The same holds when
    the caller is cancelled mid-wait. Any error from the call itself is raised
    as ``GenerationCallError``.
    """
    task = asyncio.ensure_future(awaitable)
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout_sec)
    except asyncio.CancelledError:
        # 调用方被取消: 与超时一样放弃该调用
        _park(task)
        raise

    if task not in done:
        _park(task)
        logger.warning("Generation call exceeded %ss; abandoning it", timeout_sec)
        raise GenerationTimeoutError(message, {"timeout_sec": timeout_sec})

    exc = task.exception()
    if exc is None:
        return task.result()
    if isinstance(exc, (GenerationTimeoutError, UpstreamError)):
        raise exc
    logger.error("Generation call failed (%s): %s", provider or "unknown", exc)
    raise GenerationCallError(
        UPSTREAM_MESSAGE,
        provider=provider,
        error_type=type(exc).__name__,
    ) from exc


async def invoke(
    llm: BaseLLM,
    call: GenerationCall,
    timeout_sec: Optional[float],
    message: str = DEFAULT_TIMEOUT_MESSAGE,
) -> LLMResponse:
    """Run one ``GenerationCall`` against ``llm`` within ``timeout_sec``."""
    provider = getattr(llm, "provider", None)
    return await run_with_timeout(
        llm.acomplete(call.messages, **call.options()),
        timeout_sec,
        message,
        provider=provider,
    )

"""Budget sampler: fit a memory corpus into a fixed character budget."""

from __future__ import annotations

import logging
import random
from typing import Dict, List, Optional, Sequence, Tuple

from core import MemoryRecord


logger = logging.getLogger(__name__)

MIN_SELECTED = 3


def total_chars(records: Sequence[MemoryRecord]) -> int:
    return sum(len(record.content) for record in records)


def partition_positions(count: int) -> Tuple[List[int], List[int], List[int]]:
    """Split positions 0..count-1 into head (20%), middle (60%) and tail (20%)."""
    edge = count // 5
    if count >= MIN_SELECTED:
        edge = max(1, edge)
    head = list(range(0, edge))
    middle = list(range(edge, count - edge))
    tail = list(range(count - edge, count)) if edge else []
    return head, middle, tail


def select_memories(
    records: Sequence[MemoryRecord],
    max_chars: int,
    rng: Optional[random.Random] = None,
) -> List[MemoryRecord]:
    """
    Select records whose combined content fits ``max_chars``.

    Under budget the input is returned unchanged. Over budget, the middle 60%
    is shuffled with ``rng`` and records are taken greedily head first, then
    tail, then middle, stopping at the first one that does not fit. When that
    leaves fewer than three records, the remaining budget is split across the
    next candidates and each is truncated to its share. The result keeps the
    head + shuffled middle + tail ordering.
    """
    items = list(records or [])
    budget = max(0, int(max_chars))
    if total_chars(items) <= budget:
        return items

    head, middle, tail = partition_positions(len(items))
    rng = rng or random.Random()
    rng.shuffle(middle)

    candidates = head + middle + tail
    rank = {position: order for order, position in enumerate(candidates)}
    priority = head + tail + middle

    chosen: Dict[int, MemoryRecord] = {}
    used = 0
    cursor = 0
    for position in priority:
        size = len(items[position].content)
        if used + size > budget:
            break
        chosen[position] = items[position]
        used += size
        cursor += 1

    needed = min(MIN_SELECTED, len(items)) - len(chosen)
    if needed > 0:
        pending = priority[cursor:cursor + needed]
        share = (budget - used) // len(pending)
        for position in pending:
            record = items[position]
            chosen[position] = record.model_copy(update={"content": record.content[:share]})
            used += min(share, len(record.content))
        logger.debug("Budget sampler truncated %d record(s) to %d chars each", len(pending), share)

    selected = [chosen[position] for position in sorted(chosen, key=rank.__getitem__)]
    logger.info(
        "Budget sampler kept %d/%d memories (%d/%d chars)",
        len(selected),
        len(items),
        used,
        budget,
    )
    return selected

"""
backend/pipeline.py

The update channel that serialises slot updates onto the event loop, and
the ring-buffer safe_put() helper used to enqueue without blocking.

Query callbacks can fire from any thread and at any rate; they never touch
the presentation store directly. Instead they post a SlotUpdate onto this
channel, and a single consumer task (TimelineCoordinator) applies them one
at a time.

The channel uses safe_put() which drops the *oldest* item when full
(ring-buffer semantics) rather than blocking the producer.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .metrics import METRICS

logger = logging.getLogger(__name__)


def new_update_queue(size: int = 1_000) -> asyncio.Queue:
    """
    Create the update channel.
    Must be called from within a running asyncio event loop.
    """
    queue: asyncio.Queue = asyncio.Queue(maxsize=size)
    logger.debug("Update channel initialised — size=%d", size)
    return queue


# ---------------------------------------------------------------------------
# Ring-buffer put helper
# ---------------------------------------------------------------------------

async def safe_put(queue: asyncio.Queue, item: Any) -> bool:
    """
    Non-blocking enqueue with ring-buffer drop semantics.

    If the queue is full, the *oldest* item is discarded to make room,
    METRICS.updates_dropped is incremented, and a warning is logged.

    Returns:
        True  — item was enqueued successfully.
        False — item could not be enqueued (extremely unlikely race condition).
    """
    if queue.full():
        try:
            queue.get_nowait()  # discard oldest item
            queue.task_done()
            METRICS.updates_dropped.inc()
            logger.warning(
                "Update channel full (%d/%d) — oldest update dropped to make room",
                queue.qsize(),
                queue.maxsize,
            )
        except asyncio.QueueEmpty:
            pass  # drained between the full() check and get_nowait()

    try:
        queue.put_nowait(item)
        return True
    except asyncio.QueueFull:
        METRICS.updates_dropped.inc()
        logger.error("safe_put: update channel still full after drop — update lost")
        return False

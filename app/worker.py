"""Background worker process.

RUN:  python -m app.worker

Same image as the API, different command:
  api:    uvicorn app.main:app --host 0.0.0.0 --port 8000
  worker: python -m app.worker

The loop polls every registered queue round-robin, dispatches each task
to its handler, and logs the outcome.  A failing handler is logged and
the task dropped; there is no retry or dead-letter queue.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from app.core.config import SETTINGS
from app.core.logging import setup_logging
from app.core.metrics import ENROLLMENT_EMAILS, QUEUE_DEPTH
from app.services.mail_sender import mail_sender
from app.services.task_queue import (
    ENROLLMENT_EMAIL_QUEUE,
    InMemoryTaskQueue,
    TaskQueue,
    task_queue,
)

TaskHandler = Callable[[dict], Coroutine[Any, Any, None]]

logger = logging.getLogger("worker")


# ---------------------------------------------------------------------------
# Handler registry
# ---------------------------------------------------------------------------

HANDLERS: dict[str, TaskHandler] = {}


def register_handler(queue: str):
    """Decorator: register a coroutine as the handler for a queue."""

    def decorator(func):
        HANDLERS[queue] = func
        return func

    return decorator


# ---------------------------------------------------------------------------
# Task handlers
# ---------------------------------------------------------------------------


@register_handler(ENROLLMENT_EMAIL_QUEUE)
async def handle_enrollment_email(payload: dict) -> None:
    """Send the enrollment confirmation queued by the checkout service."""
    try:
        await mail_sender.send(payload["to"], payload["subject"], payload["html"])
    except Exception:
        ENROLLMENT_EMAILS.labels(result="send_failed").inc()
        raise
    ENROLLMENT_EMAILS.labels(result="sent").inc()
    logger.info(
        "Enrollment email sent to=%s course=%s",
        payload["to"],
        payload.get("course_id"),
        extra={"user_id": payload.get("user_id"), "course_id": payload.get("course_id")},
    )


# ---------------------------------------------------------------------------
# Main worker loop
# ---------------------------------------------------------------------------


async def process_one(queue_name: str, queue: TaskQueue = task_queue, timeout: int = 1) -> bool:
    """Dequeue and handle at most one task. Returns True if a task was taken."""
    task = await queue.dequeue(queue_name, timeout=timeout)
    QUEUE_DEPTH.labels(queue_name=queue_name).set(await queue.queue_length(queue_name))
    if task is None:
        return False

    handler = HANDLERS[queue_name]
    try:
        await handler(task.payload)
        logger.info("Task %s on [%s] completed", task.id, queue_name, extra={"task_id": task.id})
    except Exception:
        logger.exception("Task %s on [%s] failed", task.id, queue_name, extra={"task_id": task.id})
    return True


def warn_if_in_memory(queue: TaskQueue = task_queue) -> bool:
    """Warn when the worker cannot see tasks queued by the API process."""
    if not isinstance(queue, InMemoryTaskQueue):
        return False
    logger.warning(
        "REDIS_URL is not set: the worker polls its own in-memory queue and "
        "will never receive tasks queued by the API process"
    )
    return True


async def run_worker() -> None:
    """Poll all registered queues and dispatch tasks to handlers."""
    queues = list(HANDLERS.keys())
    warn_if_in_memory()
    logger.info("Worker started — listening on queues: %s", queues)

    while True:
        handled = False
        for queue_name in queues:
            handled = await process_one(queue_name) or handled
        if not handled:
            # The in-memory queue returns immediately; avoid a hot loop
            await asyncio.sleep(0.5)


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(run_worker())

"""
Comment lifecycle events and the in-process sink that delivers them.

The thread service emits exactly one event per committed mutation.
Listeners are decoupled from the write path: a listener that raises is
logged and skipped, and coroutine listeners run as background tasks, so
nothing a listener does can fail or delay the mutation that triggered it.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from dataclasses import asdict, dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

COMMENT_CREATED = "comment.created"
COMMENT_DELETED = "comment.deleted"

Listener = Callable[[Any], Any]


@dataclass(frozen=True, slots=True)
class CommentCreatedEvent:
    id: int
    author_id: int
    parent_id: Optional[int] = None


@dataclass(frozen=True, slots=True)
class CommentDeletedEvent:
    id: int
    removed_replies: int = 0


class EventSink:
    """Fire-and-forget dispatcher keyed by event name."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._pending: set[asyncio.Task] = set()

    def subscribe(self, event_name: str, listener: Listener) -> None:
        self._listeners[event_name].append(listener)

    def unsubscribe(self, event_name: str, listener: Listener) -> None:
        try:
            self._listeners[event_name].remove(listener)
        except ValueError:
            pass

    def emit(self, event_name: str, payload: Any) -> None:
        for listener in list(self._listeners.get(event_name, ())):
            try:
                result = listener(payload)
            except Exception:
                logger.exception("Listener %r failed for %s", listener, event_name)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._pending.add(task)
                task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Async listener failed", exc_info=exc)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for async listeners still running.  Used at shutdown and in tests."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


def log_comment_event(event: CommentCreatedEvent | CommentDeletedEvent) -> None:
    """Audit listener: one log line per comment mutation."""
    logger.info("%s %s", type(event).__name__, asdict(event))


def register_default_listeners(sink: EventSink) -> None:
    sink.subscribe(COMMENT_CREATED, log_comment_event)
    sink.subscribe(COMMENT_DELETED, log_comment_event)

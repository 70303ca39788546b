"""
EventSink tests — delivery to sync and async listeners, and isolation of
listener failures from the emitter.
"""
import asyncio
import logging

import pytest

from comment_threads.events import (
    COMMENT_CREATED,
    COMMENT_DELETED,
    CommentCreatedEvent,
    CommentDeletedEvent,
    EventSink,
    register_default_listeners,
)


def test_emit_reaches_only_subscribed_listeners():
    sink = EventSink()
    created, deleted = [], []
    sink.subscribe(COMMENT_CREATED, created.append)
    sink.subscribe(COMMENT_DELETED, deleted.append)

    sink.emit(COMMENT_CREATED, CommentCreatedEvent(id=1, author_id=2))

    assert created == [CommentCreatedEvent(id=1, author_id=2, parent_id=None)]
    assert deleted == []


def test_emit_without_listeners_is_a_no_op():
    EventSink().emit(COMMENT_DELETED, CommentDeletedEvent(id=1))


def test_unsubscribe():
    sink = EventSink()
    seen = []
    sink.subscribe(COMMENT_CREATED, seen.append)
    sink.unsubscribe(COMMENT_CREATED, seen.append)
    # Removing twice is harmless.
    sink.unsubscribe(COMMENT_CREATED, seen.append)

    sink.emit(COMMENT_CREATED, CommentCreatedEvent(id=1, author_id=1))
    assert seen == []


def test_failing_listener_is_logged_and_others_still_run(caplog):
    sink = EventSink()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    sink.subscribe(COMMENT_DELETED, broken)
    sink.subscribe(COMMENT_DELETED, seen.append)

    with caplog.at_level(logging.ERROR, logger="comment_threads.events"):
        sink.emit(COMMENT_DELETED, CommentDeletedEvent(id=9, removed_replies=2))

    assert seen == [CommentDeletedEvent(id=9, removed_replies=2)]
    assert "boom" in caplog.text


@pytest.mark.asyncio
async def test_async_listener_runs_in_background():
    sink = EventSink()
    seen = []
    gate = asyncio.Event()

    async def slow_listener(event):
        await gate.wait()
        seen.append(event)

    sink.subscribe(COMMENT_CREATED, slow_listener)
    sink.emit(COMMENT_CREATED, CommentCreatedEvent(id=3, author_id=1))

    # emit returned without waiting for the listener.
    assert seen == []
    assert sink.pending == 1

    gate.set()
    await sink.drain()
    assert seen == [CommentCreatedEvent(id=3, author_id=1)]
    assert sink.pending == 0


@pytest.mark.asyncio
async def test_async_listener_failure_is_logged(caplog):
    sink = EventSink()

    async def broken(event):
        raise ValueError("async boom")

    sink.subscribe(COMMENT_CREATED, broken)
    with caplog.at_level(logging.ERROR, logger="comment_threads.events"):
        sink.emit(COMMENT_CREATED, CommentCreatedEvent(id=4, author_id=1))
        await sink.drain()
        # Let the done-callback run.
        await asyncio.sleep(0)

    assert sink.pending == 0
    assert "async boom" in caplog.text


def test_default_listeners_log_each_mutation(caplog):
    sink = EventSink()
    register_default_listeners(sink)

    with caplog.at_level(logging.INFO, logger="comment_threads.events"):
        sink.emit(COMMENT_CREATED, CommentCreatedEvent(id=5, author_id=6, parent_id=7))
        sink.emit(COMMENT_DELETED, CommentDeletedEvent(id=5))

    assert "CommentCreatedEvent" in caplog.text
    assert "'parent_id': 7" in caplog.text
    assert "CommentDeletedEvent" in caplog.text


def test_events_are_immutable():
    event = CommentCreatedEvent(id=1, author_id=1)
    with pytest.raises(AttributeError):
        event.id = 2

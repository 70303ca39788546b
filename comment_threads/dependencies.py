from fastapi import Depends, Header, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from comment_threads.cache import ResultCache
from comment_threads.config import settings
from comment_threads.database import get_db
from comment_threads.events import EventSink
from comment_threads.schemas import Order
from comment_threads.services.thread_service import ThreadService


class RootPageParams:
    """
    Query parameters for the root-comment listing.

    Attributes
    ----------
    media_id:
        Media item whose root comments are listed (required).
    page:
        1-based page number (minimum 1).
    take:
        Page size, clamped to ``settings.MAX_PAGE_SIZE``.
    order:
        ``asc`` (oldest first) or ``desc`` (newest first) by creation time.
    """

    def __init__(
        self,
        media_id: int = Query(..., ge=1, description="Media item to list root comments for."),
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        take: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            description="Number of comments per page.",
        ),
        order: Order = Query(Order.DESC, description="Sort direction by creation time."),
    ) -> None:
        self.media_id = media_id
        self.page = page
        # Respect the application-level ceiling regardless of the caller.
        self.take = min(take, settings.MAX_PAGE_SIZE)
        self.order = order


class ChildPageParams:
    """Query parameters for a root's reply listing (always oldest first)."""

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        take: int = Query(
            settings.DEFAULT_CHILDREN_PAGE_SIZE,
            ge=1,
            description="Number of replies per page.",
        ),
    ) -> None:
        self.page = page
        self.take = min(take, settings.MAX_PAGE_SIZE)


def get_requester_id(
    x_user_id: int = Header(..., alias="X-User-Id", ge=1, description="Id of the acting user."),
) -> int:
    return x_user_id


def get_cache(request: Request) -> ResultCache:
    return request.app.state.cache


def get_events(request: Request) -> EventSink:
    return request.app.state.events


def get_thread_service(
    db: AsyncSession = Depends(get_db),
    cache: ResultCache = Depends(get_cache),
    events: EventSink = Depends(get_events),
) -> ThreadService:
    return ThreadService(db, cache, events)

"""
Thread service — creation, deletion and paginated reads of comment threads.

Design notes
------------
- Threads are two levels deep.  A root comment is attached to a media
  item; a reply points at a root.  Replying to a reply is rejected.
- ``children_count`` on a root is kept in step with its replies by a
  single ``UPDATE ... SET children_count = children_count +/- 1`` issued
  in the same transaction as the insert or delete that caused it.
- Deleting a root deletes its replies in the same transaction.
- Both listings go through the cache-aside pattern.  Cache keys encode
  every parameter that affects the page.  After every committed mutation
  the whole result cache is cleared, then exactly one event is emitted.
- Listings only ever show comments whose media item is public.  The
  owner of a private media item gets no special treatment here.
"""
import logging

from sqlalchemy import asc, delete, desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased, joinedload

from comment_threads.cache import ResultCache
from comment_threads.config import settings
from comment_threads.errors import Forbidden, InvalidRequest, NotFound
from comment_threads.events import (
    COMMENT_CREATED,
    COMMENT_DELETED,
    CommentCreatedEvent,
    CommentDeletedEvent,
    EventSink,
)
from comment_threads.models import Comment, Media
from comment_threads.schemas import CommentAck, CommentResponse, Order, Page, PageMeta
from comment_threads.services.media_service import MediaCatalog
from comment_threads.services.user_service import UserDirectory

logger = logging.getLogger(__name__)

CommentPage = Page[CommentResponse]


# ---------------------------------------------------------------------------
# Cache keys
# ---------------------------------------------------------------------------

def roots_cache_key(media_id: int, page: int, take: int, order: Order) -> str:
    return f"roots:media={media_id}:page={page}:take={take}:order={Order(order).value}"


def children_cache_key(parent_id: int, page: int, take: int) -> str:
    return f"children:parent={parent_id}:page={page}:take={take}"


def _check_window(page: int, take: int) -> None:
    if page < 1:
        raise InvalidRequest(f"page must be >= 1, got {page}")
    if take < 1:
        raise InvalidRequest(f"take must be >= 1, got {take}")


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class ThreadService:
    """
    Orchestrates the comment store, the result cache and the event sink
    for one unit of work.  Build one per request around the request's
    session.
    """

    def __init__(
        self,
        db: AsyncSession,
        cache: ResultCache,
        events: EventSink,
        users: UserDirectory | None = None,
        media: MediaCatalog | None = None,
        ttl: int | None = None,
    ) -> None:
        self._db = db
        self._cache = cache
        self._events = events
        self._users = users or UserDirectory(db)
        self._media = media or MediaCatalog(db)
        self._ttl = settings.CACHE_TTL if ttl is None else ttl

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self,
        text: str,
        author_id: int,
        parent_comment_id: int | None = None,
        media_id: int | None = None,
    ) -> CommentAck:
        """
        Create a root comment on *media_id* or a reply to *parent_comment_id*.

        Exactly one of the two must be given.  Raises ``InvalidRequest``,
        or ``NotFound`` for a missing author, parent or media item.
        """
        if (parent_comment_id is None) == (media_id is None):
            raise InvalidRequest("Exactly one of media_id or parent_comment_id must be provided")
        if not text or not text.strip():
            raise InvalidRequest("Comment text must not be empty")
        if len(text) > settings.COMMENT_MAX_LENGTH:
            raise InvalidRequest(
                f"Comment text exceeds {settings.COMMENT_MAX_LENGTH} characters"
            )

        author = await self._users.find_one(author_id)

        if parent_comment_id is not None:
            parent = await self.find_one(parent_comment_id)
            if parent.parent_id is not None:
                raise InvalidRequest(f"Comment {parent.id} is a reply and cannot be replied to")
        if media_id is not None:
            await self._media.find_one(media_id)

        comment = Comment(
            text=text,
            author_id=author.id,
            parent_id=parent_comment_id,
            media_id=media_id,
        )
        try:
            self._db.add(comment)
            await self._db.flush()
            new_id = comment.id
            if parent_comment_id is not None:
                await self._adjust_children_count(parent_comment_id, 1)
            await self._db.commit()
        except Exception:
            await self._db.rollback()
            raise

        await self._cache.clear()
        self._events.emit(
            COMMENT_CREATED,
            CommentCreatedEvent(id=new_id, author_id=author_id, parent_id=parent_comment_id),
        )
        logger.debug("Comment %s created by user %s", new_id, author_id)
        return CommentAck(id=new_id, message=f"Comment with id {new_id} created successfully")

    async def remove(self, comment_id: int, requester_id: int) -> CommentAck:
        """
        Delete a comment owned by *requester_id*.

        Ownership is checked before anything is written, so a ``NotFound``
        or ``Forbidden`` leaves the store, the cache and the sink untouched.
        If the row is already gone when the DELETE runs, the transaction is
        rolled back and ``NotFound`` is raised instead of touching the
        parent's counter.
        """
        comment = await self.find_one(comment_id, requester_id)
        parent_id = comment.parent_id

        try:
            removed_replies = 0
            if parent_id is None:
                result = await self._db.execute(
                    delete(Comment).where(Comment.parent_id == comment_id)
                )
                removed_replies = result.rowcount or 0
            result = await self._db.execute(delete(Comment).where(Comment.id == comment_id))
            if result.rowcount != 1:
                # Removed by a concurrent request after the lookup above.
                raise NotFound("Comment", comment_id)
            if parent_id is not None:
                await self._adjust_children_count(parent_id, -1)
            await self._db.commit()
        except Exception:
            await self._db.rollback()
            raise

        await self._cache.clear()
        self._events.emit(
            COMMENT_DELETED,
            CommentDeletedEvent(id=comment_id, removed_replies=removed_replies),
        )
        logger.debug(
            "Comment %s deleted by user %s (%d replies removed)",
            comment_id, requester_id, removed_replies,
        )
        return CommentAck(id=comment_id, message="Comment deleted successfully")

    async def _adjust_children_count(self, comment_id: int, delta: int) -> None:
        # Never read-modify-write: concurrent replies to one root would lose updates.
        stmt = (
            update(Comment)
            .where(Comment.id == comment_id)
            .values(children_count=Comment.children_count + delta)
        )
        if delta < 0:
            stmt = stmt.where(Comment.children_count >= -delta)
        await self._db.execute(stmt)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_one(self, comment_id: int, requester_id: int | None = None) -> Comment:
        """
        Fetch a comment with its author.

        With *requester_id* the requester must exist and be the author,
        otherwise ``NotFound`` / ``Forbidden`` is raised.
        """
        q = (
            select(Comment)
            .where(Comment.id == comment_id)
            .options(joinedload(Comment.author))
            .execution_options(populate_existing=True)
        )
        result = await self._db.execute(q)
        comment = result.unique().scalar_one_or_none()
        if comment is None:
            raise NotFound("Comment", comment_id)

        if requester_id is not None:
            requester = await self._users.find_one(requester_id)
            if comment.author_id != requester.id:
                raise Forbidden(f"User {requester.id} is not the author of comment {comment.id}")
        return comment

    async def find_roots_paginated(
        self,
        media_id: int,
        page: int = 1,
        take: int | None = None,
        order: Order = Order.DESC,
    ) -> CommentPage:
        """
        Return one page of root comments on a public media item, ordered by
        creation time in *order*.

        Two SQL statements are issued on a cache miss: COUNT, then SELECT
        with the author joined.
        """
        take = settings.DEFAULT_PAGE_SIZE if take is None else take
        _check_window(page, take)
        order = Order(order)

        cache_key = roots_cache_key(media_id, page, take, order)
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return CommentPage.model_validate(cached)

        conditions = (
            Comment.media_id == media_id,
            Comment.parent_id.is_(None),
            Media.is_public.is_(True),
        )
        count_q = (
            select(func.count())
            .select_from(Comment)
            .join(Media, Comment.media_id == Media.id)
            .where(*conditions)
        )
        item_count: int = (await self._db.execute(count_q)).scalar_one()

        direction = asc if order is Order.ASC else desc
        rows_q = (
            select(Comment)
            .join(Media, Comment.media_id == Media.id)
            .where(*conditions)
            .options(joinedload(Comment.author))
            .order_by(direction(Comment.created_at), direction(Comment.id))
            .offset((page - 1) * take)
            .limit(take)
            .execution_options(populate_existing=True)
        )
        comments = (await self._db.execute(rows_q)).unique().scalars().all()

        return await self._store_page(cache_key, comments, page, take, item_count)

    async def find_children_by_parent(
        self,
        parent_id: int,
        page: int = 1,
        take: int | None = None,
    ) -> CommentPage:
        """
        Return one page of replies to *parent_id*, oldest first.

        Replies inherit visibility from their root's media item.  A missing
        parent yields an empty page rather than an error.
        """
        take = settings.DEFAULT_CHILDREN_PAGE_SIZE if take is None else take
        _check_window(page, take)

        cache_key = children_cache_key(parent_id, page, take)
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return CommentPage.model_validate(cached)

        parent = aliased(Comment)
        conditions = (Comment.parent_id == parent_id, Media.is_public.is_(True))
        count_q = (
            select(func.count())
            .select_from(Comment)
            .join(parent, Comment.parent_id == parent.id)
            .join(Media, parent.media_id == Media.id)
            .where(*conditions)
        )
        item_count: int = (await self._db.execute(count_q)).scalar_one()

        rows_q = (
            select(Comment)
            .join(parent, Comment.parent_id == parent.id)
            .join(Media, parent.media_id == Media.id)
            .where(*conditions)
            .options(joinedload(Comment.author))
            .order_by(asc(Comment.created_at), asc(Comment.id))
            .offset((page - 1) * take)
            .limit(take)
            .execution_options(populate_existing=True)
        )
        children = (await self._db.execute(rows_q)).unique().scalars().all()

        return await self._store_page(cache_key, children, page, take, item_count)

    async def _store_page(
        self,
        cache_key: str,
        comments,
        page: int,
        take: int,
        item_count: int,
    ) -> CommentPage:
        result = CommentPage(
            data=[CommentResponse.model_validate(c) for c in comments],
            meta=PageMeta.build(page, take, item_count),
        )
        await self._cache.set(cache_key, result.model_dump(mode="json"), ttl=self._ttl)
        return result

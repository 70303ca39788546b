"""
Media service — media records and the catalog the thread service checks
media references against.

Only metadata is modelled here (name, owner, visibility); file storage is
handled elsewhere.  Visibility decides whether a media item's comments
appear in thread listings, so changing it invalidates the result cache
once the change is committed.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from comment_threads.cache import ResultCache
from comment_threads.errors import Forbidden, NotFound
from comment_threads.models import Media
from comment_threads.schemas import MediaCreate

logger = logging.getLogger(__name__)


class MediaCatalog:
    """Resolve a media item by id or fail with ``NotFound``."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def find_one(self, media_id: int) -> Media:
        media = await self._db.get(Media, media_id)
        if media is None:
            raise NotFound("Media", media_id)
        return media


async def get_media(db: AsyncSession, media_id: int) -> Media | None:
    result = await db.execute(select(Media).where(Media.id == media_id))
    return result.scalar_one_or_none()


async def create_media(db: AsyncSession, data: MediaCreate) -> Media:
    media = Media(name=data.name, is_public=data.is_public, owner_id=data.owner_id)
    db.add(media)
    await db.flush()
    await db.refresh(media)
    return media


async def set_visibility(
    db: AsyncSession,
    cache: ResultCache,
    media_id: int,
    requester_id: int,
    is_public: bool,
) -> Media:
    """
    Make a media item public or private.

    Only the owner may change visibility.  Commits before clearing the
    result cache so no listing computed from the old visibility survives.
    """
    media = await MediaCatalog(db).find_one(media_id)
    if media.owner_id != requester_id:
        raise Forbidden(f"User {requester_id} does not own media {media_id}")
    if media.is_public == is_public:
        return media

    media.is_public = is_public
    await db.commit()
    await cache.clear()
    logger.info("Media %s visibility set to %s", media_id, "public" if is_public else "private")
    return media

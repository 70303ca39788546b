from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from comment_threads.cache import ResultCache
from comment_threads.database import get_db
from comment_threads.dependencies import get_cache
from comment_threads.models import Comment, Media, User
from comment_threads.schemas import MetricsResponse

router = APIRouter(prefix="/api/v1/metrics", tags=["metrics"])

@router.get("", response_model=MetricsResponse)
async def get_metrics(
    db: AsyncSession = Depends(get_db),
    cache: ResultCache = Depends(get_cache),
):

    total_comments = (await db.execute(select(func.count()).select_from(Comment))).scalar_one()

    root_comments = (
        await db.execute(
            select(func.count()).select_from(Comment).where(Comment.parent_id.is_(None))
        )
    ).scalar_one()

    total_media = (await db.execute(select(func.count()).select_from(Media))).scalar_one()

    total_users = (await db.execute(select(func.count()).select_from(User))).scalar_one()

    replies = total_comments - root_comments
    avg_replies = replies / root_comments if root_comments > 0 else 0

    return MetricsResponse(
        total_comments=total_comments,
        root_comments=root_comments,
        replies=replies,
        total_media=total_media,
        total_users=total_users,
        avg_replies_per_root=round(avg_replies, 2),
        cache_info=cache.stats,
    )

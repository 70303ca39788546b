from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from comment_threads.cache import ResultCache
from comment_threads.database import get_db
from comment_threads.dependencies import get_cache, get_requester_id
from comment_threads.schemas import MediaCreate, MediaResponse, MediaUpdate
from comment_threads.services import media_service, user_service

router = APIRouter(prefix="/api/v1/media", tags=["media"])

@router.get("/{media_id}", response_model=MediaResponse)
async def get_media(media_id: int, db: AsyncSession = Depends(get_db)):
    media = await media_service.get_media(db, media_id)
    if not media:
        raise HTTPException(status_code=404, detail="Media not found")
    return media

@router.post("", status_code=201, response_model=MediaResponse)
async def create_media(data: MediaCreate, db: AsyncSession = Depends(get_db)):
    await user_service.UserDirectory(db).find_one(data.owner_id)
    return await media_service.create_media(db, data)

@router.patch("/{media_id}", response_model=MediaResponse)
async def update_media(
    media_id: int,
    data: MediaUpdate,
    requester_id: int = Depends(get_requester_id),
    db: AsyncSession = Depends(get_db),
    cache: ResultCache = Depends(get_cache),
):
    return await media_service.set_visibility(db, cache, media_id, requester_id, data.is_public)

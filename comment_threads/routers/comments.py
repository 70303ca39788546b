from fastapi import APIRouter, Depends

from comment_threads.dependencies import (
    ChildPageParams,
    RootPageParams,
    get_requester_id,
    get_thread_service,
)
from comment_threads.schemas import CommentAck, CommentCreate, CommentResponse, Page
from comment_threads.services.thread_service import ThreadService

router = APIRouter(prefix="/api/v1/comments", tags=["comments"])


@router.post("", status_code=201, response_model=CommentAck)
async def create_comment(
    data: CommentCreate,
    requester_id: int = Depends(get_requester_id),
    service: ThreadService = Depends(get_thread_service),
):
    return await service.create(
        text=data.text,
        author_id=requester_id,
        parent_comment_id=data.parent_comment_id,
        media_id=data.media_id,
    )


# Declared before "/{comment_id}" so "roots" is not parsed as an id.
@router.get("/roots", response_model=Page[CommentResponse])
async def list_root_comments(
    params: RootPageParams = Depends(),
    service: ThreadService = Depends(get_thread_service),
):
    return await service.find_roots_paginated(
        params.media_id, params.page, params.take, params.order
    )


@router.get("/{parent_id}/children", response_model=Page[CommentResponse])
async def list_child_comments(
    parent_id: int,
    params: ChildPageParams = Depends(),
    service: ThreadService = Depends(get_thread_service),
):
    return await service.find_children_by_parent(parent_id, params.page, params.take)


@router.get("/{comment_id}", response_model=CommentResponse)
async def get_comment(comment_id: int, service: ThreadService = Depends(get_thread_service)):
    return await service.find_one(comment_id)


@router.delete("/{comment_id}", response_model=CommentAck)
async def delete_comment(
    comment_id: int,
    requester_id: int = Depends(get_requester_id),
    service: ThreadService = Depends(get_thread_service),
):
    return await service.remove(comment_id, requester_id)

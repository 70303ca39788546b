import math
from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

T = TypeVar("T")


# --- User ---

class UserBase(BaseModel):
    name: str = Field(min_length=1, max_length=150)
    email: str = Field(max_length=255)


class UserCreate(UserBase):
    pass


class UserResponse(UserBase):
    id: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# --- Media ---

class MediaBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    is_public: bool = True


class MediaCreate(MediaBase):
    owner_id: int


class MediaUpdate(BaseModel):
    is_public: bool


class MediaResponse(MediaBase):
    id: int
    owner_id: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# --- Comment ---

class CommentCreate(BaseModel):
    text: str = Field(min_length=1, max_length=500)
    parent_comment_id: int | None = None
    media_id: int | None = None

    @model_validator(mode="after")
    def _media_or_parent(self) -> "CommentCreate":
        if (self.parent_comment_id is None) == (self.media_id is None):
            raise ValueError("Exactly one of media_id or parent_comment_id must be provided")
        return self


class AuthorResponse(BaseModel):
    id: int
    name: str
    model_config = ConfigDict(from_attributes=True)


class CommentResponse(BaseModel):
    id: int
    text: str
    children_count: int
    created_at: datetime
    author_id: int
    parent_id: int | None = None
    media_id: int | None = None
    author: AuthorResponse | None = None
    model_config = ConfigDict(from_attributes=True)


class CommentAck(BaseModel):
    id: int
    message: str


# --- Pagination ---

class Order(str, Enum):
    ASC = "asc"
    DESC = "desc"


class PageMeta(BaseModel):
    page: int
    take: int
    item_count: int
    page_count: int
    has_previous_page: bool
    has_next_page: bool

    @classmethod
    def build(cls, page: int, take: int, item_count: int) -> "PageMeta":
        page_count = math.ceil(item_count / take)
        return cls(
            page=page,
            take=take,
            item_count=item_count,
            page_count=page_count,
            has_previous_page=page > 1,
            has_next_page=page < page_count,
        )


class Page(BaseModel, Generic[T]):
    data: list[T]
    meta: PageMeta


# --- Metrics ---

class MetricsResponse(BaseModel):
    total_comments: int
    root_comments: int
    replies: int
    total_media: int
    total_users: int
    avg_replies_per_root: float
    cache_info: dict = {}

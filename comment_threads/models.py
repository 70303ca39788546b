from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from comment_threads.database import Base


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships: lazy="raise" makes any load not requested by a service an error
    comments: Mapped[List["Comment"]] = relationship(
        "Comment", back_populates="author", lazy="raise"
    )
    media: Mapped[List["Media"]] = relationship("Media", back_populates="owner", lazy="raise")


# ---------------------------------------------------------------------------
# Media
# ---------------------------------------------------------------------------
class Media(Base):
    __tablename__ = "media"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    owner: Mapped["User"] = relationship("User", back_populates="media", lazy="raise")
    comments: Mapped[List["Comment"]] = relationship(
        "Comment", back_populates="media", lazy="raise"
    )


# ---------------------------------------------------------------------------
# Comment
# ---------------------------------------------------------------------------
class Comment(Base):
    __tablename__ = "comments"

    __table_args__ = (
        # A comment hangs off a media item (root) or off another comment (reply).
        CheckConstraint(
            "(parent_id IS NULL) <> (media_id IS NULL)",
            name="ck_comments_parent_xor_media",
        ),
        # Root listing: media_id filter, created_at order
        Index("ix_comments_media_id_created_at", "media_id", "created_at"),
        # Reply listing: parent_id filter, created_at order
        Index("ix_comments_parent_id_created_at", "parent_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    text: Mapped[str] = mapped_column(String(500), nullable=False)
    children_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True
    )
    media_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("media.id", ondelete="CASCADE"), nullable=True
    )

    author: Mapped["User"] = relationship("User", back_populates="comments", lazy="raise")
    media: Mapped[Optional["Media"]] = relationship(
        "Media", back_populates="comments", lazy="raise"
    )
    parent: Mapped[Optional["Comment"]] = relationship(
        "Comment", remote_side=[id], lazy="raise"
    )

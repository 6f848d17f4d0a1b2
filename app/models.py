from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.schemas import URL_MAX_LENGTH

# The in-memory repositories keep instances of these classes as plain
# transient objects, so every column a domain operation relies on is set
# explicitly in Python rather than through server-side defaults.


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    username: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(60), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


# ---------------------------------------------------------------------------
# Post
# ---------------------------------------------------------------------------
class Post(Base):
    __tablename__ = "posts"

    __table_args__ = (
        # Category feed, newest first
        Index("ix_posts_category_created_at", "category", "created_at"),
        # Author profile page
        Index("ix_posts_author_username", "author_username"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    kind: Mapped[str] = mapped_column("type", String(8), nullable=False)
    url: Mapped[Optional[str]] = mapped_column(String(URL_MAX_LENGTH), nullable=True)
    text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    upvote_percentage: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Author snapshot taken at creation time; not a foreign key.
    author_id: Mapped[str] = mapped_column(String(36), nullable=False)
    author_username: Mapped[str] = mapped_column(String(32), nullable=False)

    # lazy="noload": repositories load these explicitly with selectinload.
    comments: Mapped[List["Comment"]] = relationship(
        "Comment",
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="Comment.created_at",
        lazy="noload",
    )
    votes: Mapped[List["Vote"]] = relationship(
        "Vote",
        back_populates="post",
        cascade="all, delete-orphan",
        lazy="noload",
    )

    @property
    def author(self) -> dict:
        return {"id": self.author_id, "username": self.author_username}


# ---------------------------------------------------------------------------
# Comment
# ---------------------------------------------------------------------------
class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[str] = mapped_column(String(36), nullable=False)
    author_username: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )

    post: Mapped["Post"] = relationship("Post", back_populates="comments", lazy="noload")

    @property
    def author(self) -> dict:
        return {"id": self.author_id, "username": self.author_username}


# ---------------------------------------------------------------------------
# Vote
# ---------------------------------------------------------------------------
class Vote(Base):
    __tablename__ = "votes"

    __table_args__ = (
        CheckConstraint("value IN (1, -1)", name="ck_votes_value"),
    )

    # Composite primary key: one vote per (post, user).
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    value: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    post: Mapped["Post"] = relationship("Post", back_populates="votes", lazy="noload")


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------
class AuthSession(Base):
    __tablename__ = "sessions"

    token: Mapped[str] = mapped_column(String(1024), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator, model_validator


# --- User ---

class Credentials(BaseModel):
    username: str = Field(min_length=1, max_length=32, pattern=r"^[a-zA-Z0-9_]+$")
    # bcrypt only looks at the first 72 bytes of its input.
    password: str = Field(min_length=8, max_length=72)


class UserResponse(BaseModel):
    id: str
    username: str
    model_config = ConfigDict(from_attributes=True, frozen=True)


class TokenResponse(BaseModel):
    token: str


# --- Vote ---

class VoteResponse(BaseModel):
    user_id: str = Field(serialization_alias="user")
    value: int = Field(serialization_alias="vote")
    model_config = ConfigDict(from_attributes=True)


# --- Comment ---

class CommentCreate(BaseModel):
    comment: str = Field(min_length=1, max_length=10000)


class CommentResponse(BaseModel):
    id: str
    body: str
    author: UserResponse
    created_at: datetime = Field(serialization_alias="created")
    model_config = ConfigDict(from_attributes=True)


# --- Post ---

# Width of posts.url
URL_MAX_LENGTH = 2048

class PostCreate(BaseModel):
    kind: Literal["text", "link"] = Field(alias="type")
    title: str = Field(min_length=1, max_length=300)
    category: str = Field(min_length=1, max_length=50)
    url: HttpUrl | None = None
    text: str | None = None
    model_config = ConfigDict(populate_by_name=True)

    @field_validator("url")
    @classmethod
    def _fit_url_column(cls, url: HttpUrl | None) -> HttpUrl | None:
        # Checked on the normalized form, which is what gets stored.
        if url is not None and len(str(url)) > URL_MAX_LENGTH:
            raise ValueError(f"url must be at most {URL_MAX_LENGTH} characters")
        return url

    @model_validator(mode="after")
    def _require_link_url(self) -> "PostCreate":
        if self.kind == "link" and self.url is None:
            raise ValueError("link posts require a url")
        return self


class PostResponse(BaseModel):
    id: str
    title: str
    kind: str = Field(serialization_alias="type")
    url: str | None = None
    text: str | None = None
    author: UserResponse
    category: str
    views: int
    score: int
    upvote_percentage: int = Field(serialization_alias="upvotePercentage")
    votes: list[VoteResponse] = []
    comments: list[CommentResponse] = []
    created_at: datetime = Field(serialization_alias="created")
    model_config = ConfigDict(from_attributes=True)


# --- Misc ---

class MessageResponse(BaseModel):
    message: str

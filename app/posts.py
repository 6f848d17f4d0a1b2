"""
Post aggregate rules shared by every PostRepository implementation.

A post owns its comments and its vote ledger. The only mutations are
comment add/remove, votes, the view counter and deletion; deletion of a
post or a comment is reserved to its own author.
"""
import uuid
from datetime import datetime, timezone

from app import voting
from app.errors import CommentNotFoundError, ForbiddenError
from app.models import Comment, Post
from app.schemas import CommentCreate, PostCreate, UserResponse

TEXT = "text"
LINK = "link"


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_post(data: PostCreate, author: UserResponse) -> Post:
    """
    Build a new post authored by *author*.

    Only the payload field matching the kind survives: a text post drops its
    url and a link post drops its text. The ledger starts with the author's
    own upvote. Id and timestamp are assigned by the repository on ``add``.
    """
    post = Post(
        title=data.title,
        kind=data.kind,
        category=data.category,
        url=str(data.url) if data.kind == LINK and data.url is not None else None,
        text=data.text if data.kind == TEXT else None,
        views=0,
        author_id=author.id,
        author_username=author.username,
        comments=[],
    )
    voting.start_ledger(post, author.id)
    return post


def stamp(entity: Post | Comment) -> None:
    """Assign a fresh id and creation timestamp."""
    entity.id = new_id()
    entity.created_at = utcnow()


def build_comment(data: CommentCreate, author: UserResponse) -> Comment:
    return Comment(
        body=data.comment,
        author_id=author.id,
        author_username=author.username,
    )


def find_comment(post: Post, comment_id: str) -> Comment:
    for comment in post.comments:
        if comment.id == comment_id:
            return comment
    raise CommentNotFoundError()


def remove_comment(post: Post, comment_id: str, requester_id: str) -> Comment:
    """
    Detach comment *comment_id* from *post* on behalf of *requester_id*.

    Only the comment's author may remove it; being the post's author does
    not grant the right.
    """
    comment = find_comment(post, comment_id)
    if comment.author_id != requester_id:
        raise ForbiddenError()
    post.comments.remove(comment)
    return comment


def ensure_author(post: Post, requester_id: str) -> None:
    if post.author_id != requester_id:
        raise ForbiddenError()

"""
Post service: the operations of the Post aggregate as the HTTP layer sees them.

Functions take the repository chosen for the request plus the resolved user
identity where one is required. Authorization rules (only the author may
delete a post or a comment) and the vote ledger are enforced below this
layer, so every repository variant behaves the same way.
"""
import logging
from typing import Awaitable, Callable

from app import posts
from app.repositories.base import PostRepository
from app.schemas import CommentCreate, PostCreate, PostResponse, UserResponse

logger = logging.getLogger(__name__)


async def list_posts(repo: PostRepository, category: str | None = None) -> list[PostResponse]:
    if category is None:
        return await repo.get_all()
    logger.info("Get posts by category %s", category)
    return await repo.get_by_category(category)


async def list_user_posts(repo: PostRepository, username: str) -> list[PostResponse]:
    logger.info("Get posts created by %s", username)
    return await repo.get_by_author(username)


async def get_post(repo: PostRepository, post_id: str) -> PostResponse:
    """Return the post and count one view."""
    post = await repo.get_by_id(post_id)
    logger.info("Get post %s", post.id)
    return post


async def create_post(repo: PostRepository, data: PostCreate, author: UserResponse) -> PostResponse:
    """
    Create a post authored by *author*.

    The author's own upvote is recorded immediately, so a new post starts
    with score 1 and 100 percent upvotes.
    """
    post = await repo.add(posts.build_post(data, author))
    logger.info("Add post %s by %s", post.id, author.id)
    return post


async def add_comment(
    repo: PostRepository, post_id: str, data: CommentCreate, author: UserResponse
) -> PostResponse:
    post = await repo.add_comment(post_id, posts.build_comment(data, author))
    logger.info("Add comment to post %s by %s", post_id, author.id)
    return post


async def delete_comment(
    repo: PostRepository, post_id: str, comment_id: str, requester: UserResponse
) -> PostResponse:
    post = await repo.delete_comment(post_id, comment_id, requester.id)
    logger.info("Delete comment %s from post %s by %s", comment_id, post_id, requester.id)
    return post


async def vote(
    apply: Callable[[str, str], Awaitable[PostResponse]], post_id: str, voter: UserResponse
) -> PostResponse:
    """
    Run one of the repository's vote methods (``repo.upvote``,
    ``repo.downvote`` or ``repo.unvote``) on behalf of *voter*.
    """
    post = await apply(post_id, voter.id)
    logger.info("%s post %s by %s", apply.__name__.capitalize(), post_id, voter.id)
    return post


async def delete_post(repo: PostRepository, post_id: str, requester: UserResponse) -> None:
    await repo.delete(post_id, requester.id)
    logger.info("Delete post %s by %s", post_id, requester.id)

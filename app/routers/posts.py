from fastapi import APIRouter, Depends
from app.dependencies import get_current_session, get_post_repository
from app.repositories.base import PostRepository
from app.schemas import CommentCreate, MessageResponse, PostCreate, PostResponse
from app.services import post_service
from app.sessions import Session

router = APIRouter(prefix="/api", tags=["posts"])

# Text posts have no url and link posts no text; omit the empty one.
_post_response = {"response_model": PostResponse, "response_model_exclude_none": True}
_posts_response = {"response_model": list[PostResponse], "response_model_exclude_none": True}

@router.get("/posts/", **_posts_response)
async def list_posts(repo: PostRepository = Depends(get_post_repository)):
    return await post_service.list_posts(repo)

@router.get("/posts/{category}", **_posts_response)
async def list_posts_by_category(category: str, repo: PostRepository = Depends(get_post_repository)):
    return await post_service.list_posts(repo, category)

@router.get("/user/{username}", **_posts_response)
async def list_user_posts(username: str, repo: PostRepository = Depends(get_post_repository)):
    return await post_service.list_user_posts(repo, username)

@router.get("/post/{post_id}", **_post_response)
async def get_post(post_id: str, repo: PostRepository = Depends(get_post_repository)):
    return await post_service.get_post(repo, post_id)

@router.post("/posts", status_code=201, **_post_response)
async def create_post(
    data: PostCreate,
    session: Session = Depends(get_current_session),
    repo: PostRepository = Depends(get_post_repository),
):
    return await post_service.create_post(repo, data, session.user)

@router.post("/post/{post_id}", status_code=201, **_post_response)
async def add_comment(
    post_id: str,
    data: CommentCreate,
    session: Session = Depends(get_current_session),
    repo: PostRepository = Depends(get_post_repository),
):
    return await post_service.add_comment(repo, post_id, data, session.user)

@router.get("/post/{post_id}/upvote", **_post_response)
async def upvote(
    post_id: str,
    session: Session = Depends(get_current_session),
    repo: PostRepository = Depends(get_post_repository),
):
    return await post_service.vote(repo.upvote, post_id, session.user)

@router.get("/post/{post_id}/downvote", **_post_response)
async def downvote(
    post_id: str,
    session: Session = Depends(get_current_session),
    repo: PostRepository = Depends(get_post_repository),
):
    return await post_service.vote(repo.downvote, post_id, session.user)

@router.get("/post/{post_id}/unvote", **_post_response)
async def unvote(
    post_id: str,
    session: Session = Depends(get_current_session),
    repo: PostRepository = Depends(get_post_repository),
):
    return await post_service.vote(repo.unvote, post_id, session.user)

@router.delete("/post/{post_id}/{comment_id}", **_post_response)
async def delete_comment(
    post_id: str,
    comment_id: str,
    session: Session = Depends(get_current_session),
    repo: PostRepository = Depends(get_post_repository),
):
    return await post_service.delete_comment(repo, post_id, comment_id, session.user)

@router.delete("/post/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: str,
    session: Session = Depends(get_current_session),
    repo: PostRepository = Depends(get_post_repository),
):
    await post_service.delete_post(repo, post_id, session.user)
    return MessageResponse(message="success")

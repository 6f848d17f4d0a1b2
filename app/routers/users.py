from fastapi import APIRouter, Depends
from app.dependencies import get_session_manager, get_user_repository
from app.repositories.base import UserRepository
from app.schemas import Credentials, TokenResponse
from app.services import user_service
from app.sessions import SessionManager

router = APIRouter(prefix="/api", tags=["users"])

@router.post("/register", status_code=201, response_model=TokenResponse)
async def register(
    data: Credentials,
    users: UserRepository = Depends(get_user_repository),
    sessions: SessionManager = Depends(get_session_manager),
):
    return await user_service.register(users, sessions, data)

@router.post("/login", response_model=TokenResponse)
async def login(
    data: Credentials,
    users: UserRepository = Depends(get_user_repository),
    sessions: SessionManager = Depends(get_session_manager),
):
    return await user_service.login(users, sessions, data)

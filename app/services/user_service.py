"""
User service: registration and login, each ending in a fresh session token.
"""
import logging

from app.repositories.base import UserRepository
from app.schemas import Credentials, TokenResponse
from app.sessions import SessionManager

logger = logging.getLogger(__name__)


async def register(
    users: UserRepository, sessions: SessionManager, data: Credentials
) -> TokenResponse:
    """
    Create the account and log it in.

    Raises ``AlreadyExistsError`` when the username is taken.
    """
    user = await users.register(data.username, data.password)
    logger.info("User id=%s, username=%s registered", user.id, user.username)
    return TokenResponse(token=await sessions.create(user))


async def login(
    users: UserRepository, sessions: SessionManager, data: Credentials
) -> TokenResponse:
    """
    Check the credentials and issue a new session token.

    Raises ``NoSuchUserError`` or ``BadCredentialsError``.
    """
    user = await users.authorize(data.username, data.password)
    token = await sessions.create(user)
    return TokenResponse(token=token)

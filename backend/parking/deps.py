import logging
from datetime import timedelta
from functools import lru_cache
from typing import AsyncIterator, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import ProgrammingError
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .database import async_session
from .infrastructure.wizard_store import MemoryWizardStore
from .models import User
from .utils.auth import AuthTokenError, decode_access_token, extract_bearer_token

logger = logging.getLogger(__name__)

_UNAUTHORIZED_HEADERS = {"WWW-Authenticate": "Bearer"}

async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session

async def get_current_user_id(
    authorization: Optional[str] = Header(default=None),
    session: AsyncSession = Depends(get_session),
) -> int:
    settings = get_settings()
    try:
        token = extract_bearer_token(authorization)
        user_id = decode_access_token(token, secret=settings.auth_secret, algorithms=[settings.auth_algorithm])
    except AuthTokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers=_UNAUTHORIZED_HEADERS,
        ) from exc

    try:
        exists = await session.scalar(select(User.id).where(User.id == user_id))
    except ProgrammingError as exc:
        await session.rollback()
        logger.error("user lookup failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="user lookup failed") from exc
    if exists is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="unknown user",
            headers=_UNAUTHORIZED_HEADERS,
        )
    return user_id


@lru_cache
def get_wizard_store() -> MemoryWizardStore:
    return MemoryWizardStore(ttl=timedelta(minutes=get_settings().wizard_ttl_minutes))

from typing import Annotated
import logging

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import decode_access_token
from app.db.session import get_db
from app.models.models import User


DbSessionDep = Annotated[AsyncSession, Depends(get_db)]
logger = logging.getLogger("gifiti.auth")


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.removeprefix("Bearer ").strip() or None
    return None


async def get_current_user(request: Request, db: DbSessionDep) -> User:
    token = _bearer_token(request)
    if not token:
        logger.info(
            "Auth token missing path=%s ip=%s",
            request.url.path,
            request.client.host if request.client else None,
        )
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token de acceso requerido")

    payload = decode_access_token(token)
    if not payload or "sub" not in payload:
        logger.info("Auth token invalid path=%s", request.url.path)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token inválido")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        logger.info("Auth token subject invalid path=%s", request.url.path)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token inválido") from None

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        logger.info("Auth user missing path=%s user_id=%s", request.url.path, user_id)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Usuario no encontrado")

    logger.debug("get_current_user: authenticated user_id=%s", user.id)
    return user


CurrentUserDep = Annotated[User, Depends(get_current_user)]

import logging

from fastapi import APIRouter, HTTPException, Request, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from app.api.deps import CurrentUserDep, DbSessionDep
from app.core.audit import (
    audit_login_failed,
    audit_login_success,
    audit_logout,
    audit_register,
)
from app.core.config import settings
from app.core.rate_limit import check_rate_limit
from app.core.security import create_access_token, get_password_hash, verify_password
from app.models.models import User
from app.schemas.auth import AuthPayload, LoginRequest, RegisterRequest, UserPublic
from app.schemas.common import ApiResponse
from app.services.birthdays import calculate_age


router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger("gifiti.auth")


def _auth_payload(user: User) -> AuthPayload:
    return AuthPayload(
        user=UserPublic.model_validate(user),
        token=create_access_token(str(user.id)),
    )


@router.post("/register", response_model=ApiResponse[AuthPayload], status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    request: Request,
    db: DbSessionDep,
) -> ApiResponse[AuthPayload]:
    check_rate_limit(request, key_suffix="register")

    email = payload.email.lower()
    existing = await db.scalar(select(User.id).where(func.lower(User.email) == email))
    if existing is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Este email ya está registrado")

    existing = await db.scalar(select(User.id).where(User.nickname == payload.nickname))
    if existing is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Este nickname ya está en uso")

    user = User(
        email=email,
        hashed_password=get_password_hash(payload.password),
        nickname=payload.nickname,
        real_name=payload.real_name,
        birth_date=payload.birth_date,
        age=calculate_age(payload.birth_date),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("register: unique violation email=%s nickname=%s", email, payload.nickname)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Este email o nickname ya está en uso",
        ) from None
    await db.refresh(user)

    audit_register(request, user.id, user.email)
    logger.info("User registered id=%s", user.id)
    return ApiResponse(data=_auth_payload(user), message="Usuario registrado exitosamente")


@router.post("/login", response_model=ApiResponse[AuthPayload])
async def login(
    payload: LoginRequest,
    request: Request,
    db: DbSessionDep,
) -> ApiResponse[AuthPayload]:
    check_rate_limit(
        request,
        max_requests=settings.rate_limit_login_requests,
        key_suffix="login",
    )

    email = payload.email.lower()
    user = await db.scalar(select(User).where(func.lower(User.email) == email))
    if not user or not verify_password(payload.password, user.hashed_password):
        audit_login_failed(request, email, "invalid_credentials")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Email o contraseña incorrectos")

    audit_login_success(request, user.id, user.email)
    return ApiResponse(data=_auth_payload(user), message="Inicio de sesión exitoso")


@router.get("/me", response_model=ApiResponse[UserPublic])
async def me(current_user: CurrentUserDep) -> ApiResponse[UserPublic]:
    return ApiResponse(data=UserPublic.model_validate(current_user))


@router.post("/logout", response_model=ApiResponse[None])
async def logout(request: Request, current_user: CurrentUserDep) -> ApiResponse[None]:
    # Tokens are stateless; the client discards its copy
    audit_logout(request, current_user.id)
    return ApiResponse(message="Sesión cerrada exitosamente")

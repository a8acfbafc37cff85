import logging

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.api.deps import CurrentUserDep, DbSessionDep
from app.core.config import settings
from app.models.models import ReputationVote, User, VoteTypeEnum
from app.schemas.common import ApiResponse, total_pages
from app.schemas.profile import (
    ReputationStats,
    VoteCreate,
    VoteHistoryPage,
    VotePublic,
    VoteWithVoter,
)


router = APIRouter(prefix="/api/reputation", tags=["reputation"])
logger = logging.getLogger("gifiti.reputation")


async def vote_counts(db: AsyncSession, user_id: int) -> tuple[int, int]:
    result = await db.execute(
        select(ReputationVote.type, func.count(ReputationVote.id))
        .where(ReputationVote.to_user_id == user_id)
        .group_by(ReputationVote.type)
    )
    counts = {vote_type: count for vote_type, count in result.all()}
    return (
        counts.get(VoteTypeEnum.POSITIVE.value, 0),
        counts.get(VoteTypeEnum.NEGATIVE.value, 0),
    )


@router.get("/user/{user_id}", response_model=ApiResponse[ReputationStats])
async def get_reputation(user_id: int, db: DbSessionDep) -> ApiResponse[ReputationStats]:
    positive, negative = await vote_counts(db, user_id)
    return ApiResponse(
        data=ReputationStats(
            user_id=user_id,
            positive_votes=positive,
            negative_votes=negative,
            total_votes=positive + negative,
        )
    )


@router.post("/vote", response_model=ApiResponse[VotePublic], status_code=status.HTTP_201_CREATED)
async def cast_vote(
    payload: VoteCreate,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[VotePublic]:
    if payload.to_user_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No puedes votarte a ti mismo")
    if await db.get(User, payload.to_user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Usuario no encontrado")

    if payload.promise_id:
        duplicate = await db.scalar(
            select(ReputationVote.id).where(
                ReputationVote.from_user_id == current_user.id,
                ReputationVote.to_user_id == payload.to_user_id,
                ReputationVote.promise_id == payload.promise_id,
            )
        )
        if duplicate is not None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Ya has votado por esta promesa")

    vote = ReputationVote(
        from_user_id=current_user.id,
        to_user_id=payload.to_user_id,
        type=payload.type,
        promise_id=payload.promise_id,
    )
    db.add(vote)
    await db.commit()
    await db.refresh(vote)
    logger.info("Vote recorded id=%s from=%s to=%s type=%s", vote.id, vote.from_user_id, vote.to_user_id, vote.type)
    return ApiResponse(data=VotePublic.model_validate(vote), message="Voto registrado exitosamente")


@router.get("/user/{user_id}/history", response_model=ApiResponse[VoteHistoryPage])
async def vote_history(
    user_id: int,
    db: DbSessionDep,
    current_user: CurrentUserDep,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=100),
) -> ApiResponse[VoteHistoryPage]:
    condition = ReputationVote.to_user_id == user_id
    total = await db.scalar(select(func.count(ReputationVote.id)).where(condition)) or 0
    result = await db.execute(
        select(ReputationVote)
        .where(condition)
        .options(selectinload(ReputationVote.from_user))
        .order_by(ReputationVote.created_at.desc(), ReputationVote.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )
    return ApiResponse(
        data=VoteHistoryPage(
            votes=[VoteWithVoter.model_validate(vote) for vote in result.scalars().all()],
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages(total, limit),
        )
    )

"""
User profile endpoints:
  POST /users          — create a user profile
  PUT  /users/me       — update display name / privacy
  GET  /users/{id}     — fetch a user profile with follow counts
"""
import logging

from fastapi import APIRouter, Depends, status
from opentelemetry import trace
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from watchhive.auth import get_current_user_id
from watchhive.database import get_db
from watchhive.errors import ConflictError, NotFoundError
from watchhive.models import Follow, User
from watchhive.schemas import UserCreate, UserProfileResponse, UserResponse, UserUpdate

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(body: UserCreate, db: AsyncSession = Depends(get_db)):
    """
    Register a new user profile.

    Credentials live with the identity provider; this only records the
    profile the feed and privacy checks need.
    """
    with tracer.start_as_current_span("create_user"):
        existing = await db.execute(
            select(User).where(User.username == body.username)
        )
        if existing.scalar_one_or_none():
            raise ConflictError(f"Username '{body.username}' already taken")

        user = User(
            username=body.username,
            display_name=body.display_name,
            is_private=body.is_private,
        )
        db.add(user)
        await db.flush()  # get user_id before commit

        logger.info("Created user %s (id=%s)", user.username, user.user_id)
        return user


@router.put("/me", response_model=UserResponse)
async def update_me(
    body: UserUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")

    if body.display_name is not None:
        user.display_name = body.display_name
    if body.is_private is not None and body.is_private != user.is_private:
        user.is_private = body.is_private
        logger.info("User %s is now %s", user_id, "private" if user.is_private else "public")
    return user


@router.get("/{target_id}", response_model=UserProfileResponse)
async def get_user(
    target_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    user = await db.get(User, target_id)
    if not user:
        raise NotFoundError("User not found")

    follower_count = await db.scalar(
        select(func.count()).select_from(Follow).where(Follow.followee_id == target_id)
    )
    following_count = await db.scalar(
        select(func.count()).select_from(Follow).where(Follow.follower_id == target_id)
    )
    return UserProfileResponse(
        user_id=user.user_id,
        username=user.username,
        display_name=user.display_name,
        is_private=user.is_private,
        created_at=user.created_at,
        follower_count=follower_count,
        following_count=following_count,
    )

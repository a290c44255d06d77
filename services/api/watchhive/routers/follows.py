"""
Social graph endpoints:
  POST   /follows/{id}                  — follow (public) or request to follow (private)
  DELETE /follows/{id}                  — unfollow
  GET    /follows/{id}/status           — is the caller following / pending?
  GET    /follows/{id}/followers        — follower ids
  GET    /follows/{id}/following        — followee ids
  GET    /follows/requests              — caller's incoming pending requests
  POST   /follows/requests/{id}/accept  — accept, creating the follow edge
  POST   /follows/requests/{id}/reject  — reject
"""
import logging

from fastapi import APIRouter, Depends, Response, status
from opentelemetry import trace
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from watchhive import follow_requests
from watchhive.auth import get_current_user_id
from watchhive.database import get_db
from watchhive.errors import BadRequestError, NotFoundError
from watchhive.feed.social_graph import follow_exists, followee_ids, follower_ids
from watchhive.models import Follow, FollowRequest, FollowRequestStatus, User
from watchhive.schemas import (
    FollowListResponse,
    FollowRequestResponse,
    FollowResult,
    FollowStatusResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


async def _get_user(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


async def _get_incoming_request(db: AsyncSession, request_id: str, user_id: str) -> FollowRequest:
    request = await db.get(FollowRequest, request_id)
    # Requests addressed to someone else are reported as missing
    if not request or request.recipient_id != user_id:
        raise NotFoundError("Follow request not found")
    return request


@router.get("/requests", response_model=list[FollowRequestResponse])
async def list_follow_requests(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    rows = await db.execute(
        select(FollowRequest)
        .where(
            FollowRequest.recipient_id == user_id,
            FollowRequest.status == FollowRequestStatus.PENDING,
        )
        .order_by(FollowRequest.created_at.desc())
    )
    return rows.scalars().all()


@router.post("/requests/{request_id}/accept", response_model=FollowRequestResponse)
async def accept_follow_request(
    request_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    with tracer.start_as_current_span("accept_follow_request"):
        request = await _get_incoming_request(db, request_id, user_id)
        await follow_requests.accept(db, request)
        await db.flush()
        return request


@router.post("/requests/{request_id}/reject", response_model=FollowRequestResponse)
async def reject_follow_request(
    request_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    request = await _get_incoming_request(db, request_id, user_id)
    follow_requests.reject(request)
    await db.flush()
    return request


@router.post("/{target_id}", response_model=FollowResult, status_code=status.HTTP_201_CREATED)
async def follow_user(
    target_id: str,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Follow another user.

    Public accounts are followed immediately (201). Private accounts get a
    pending follow request instead (202); the edge appears once they accept.
    """
    with tracer.start_as_current_span("follow_user"):
        if user_id == target_id:
            raise BadRequestError("You cannot follow yourself")

        target = await _get_user(db, target_id)

        if await follow_exists(db, user_id, target_id):
            raise BadRequestError("You are already following this user")

        if target.is_private:
            request = await follow_requests.open_request(db, user_id, target_id)
            response.status_code = status.HTTP_202_ACCEPTED
            return FollowResult(
                status="PENDING",
                message="Follow request sent",
                request_id=request.request_id,
            )

        db.add(Follow(follower_id=user_id, followee_id=target_id))
        logger.info("%s followed %s", user_id, target_id)
        return FollowResult(status="FOLLOWING", message="Successfully followed user")


@router.delete("/{target_id}")
async def unfollow_user(
    target_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    with tracer.start_as_current_span("unfollow_user"):
        if not await follow_exists(db, user_id, target_id):
            raise NotFoundError("You are not following this user")

        await db.execute(
            delete(Follow).where(
                Follow.follower_id == user_id,
                Follow.followee_id == target_id,
            )
        )
        logger.info("%s unfollowed %s", user_id, target_id)
        return {"message": "Successfully unfollowed user"}


@router.get("/{target_id}/status", response_model=FollowStatusResponse)
async def follow_status(
    target_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    request = await follow_requests.find_request(db, user_id, target_id)
    return FollowStatusResponse(
        is_following=await follow_exists(db, user_id, target_id),
        request_pending=request is not None and request.status == FollowRequestStatus.PENDING,
    )


@router.get("/{target_id}/followers", response_model=FollowListResponse)
async def list_followers(
    target_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await _get_user(db, target_id)
    return FollowListResponse(user_id=target_id, user_ids=await follower_ids(db, target_id))


@router.get("/{target_id}/following", response_model=FollowListResponse)
async def list_following(
    target_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await _get_user(db, target_id)
    return FollowListResponse(user_id=target_id, user_ids=await followee_ids(db, target_id))

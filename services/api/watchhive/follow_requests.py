"""
Follow requests towards private accounts.

  (none) ──request──▶ PENDING ──accept──▶ ACCEPTED   (creates the Follow edge)
                              └─reject──▶ REJECTED

ACCEPTED and REJECTED are terminal: the request has been consumed. A later
follow attempt on the same pair replaces it with a fresh PENDING request.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from watchhive.errors import BadRequestError, ConflictError
from watchhive.feed.social_graph import follow_exists
from watchhive.models import Follow, FollowRequest, FollowRequestStatus

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[FollowRequestStatus, set[FollowRequestStatus]] = {
    FollowRequestStatus.PENDING: {FollowRequestStatus.ACCEPTED, FollowRequestStatus.REJECTED},
    FollowRequestStatus.ACCEPTED: set(),
    FollowRequestStatus.REJECTED: set(),
}


def transition(request: FollowRequest, target: FollowRequestStatus) -> None:
    if target not in ALLOWED_TRANSITIONS[request.status]:
        raise ConflictError(
            f"Follow request is {request.status.value.lower()} and cannot be "
            f"moved to {target.value.lower()}"
        )
    request.status = target


async def find_request(db: AsyncSession, sender_id: str, recipient_id: str):
    rows = await db.execute(
        select(FollowRequest).where(
            FollowRequest.sender_id == sender_id,
            FollowRequest.recipient_id == recipient_id,
        )
    )
    return rows.scalar_one_or_none()


async def open_request(db: AsyncSession, sender_id: str, recipient_id: str) -> FollowRequest:
    existing = await find_request(db, sender_id, recipient_id)
    if existing is not None:
        if existing.status == FollowRequestStatus.PENDING:
            raise BadRequestError("A follow request is already pending")
        # Consumed request: drop it before the pair can be requested again
        await db.delete(existing)
        await db.flush()

    request = FollowRequest(
        sender_id=sender_id,
        recipient_id=recipient_id,
        status=FollowRequestStatus.PENDING,
    )
    db.add(request)
    await db.flush()
    logger.info("Follow request %s: %s → %s", request.request_id, sender_id, recipient_id)
    return request


async def accept(db: AsyncSession, request: FollowRequest) -> None:
    transition(request, FollowRequestStatus.ACCEPTED)
    if not await follow_exists(db, request.sender_id, request.recipient_id):
        db.add(Follow(follower_id=request.sender_id, followee_id=request.recipient_id))
    logger.info("Follow request %s accepted", request.request_id)


def reject(request: FollowRequest) -> None:
    transition(request, FollowRequestStatus.REJECTED)
    logger.info("Follow request %s rejected", request.request_id)

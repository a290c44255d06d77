"""
Social graph reads: follow-edge lookups and the set of users whose entries
belong in a viewer's feed.

Follow lists are small enough to load in full per request.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from watchhive.models import Follow


async def follow_exists(db: AsyncSession, follower_id: str, followee_id: str) -> bool:
    row = await db.execute(
        select(Follow.follower_id).where(
            Follow.follower_id == follower_id,
            Follow.followee_id == followee_id,
        )
    )
    return row.first() is not None


async def followee_ids(db: AsyncSession, user_id: str) -> list[str]:
    rows = await db.execute(
        select(Follow.followee_id)
        .where(Follow.follower_id == user_id)
        .order_by(Follow.created_at.desc())
    )
    return [r[0] for r in rows.all()]


async def follower_ids(db: AsyncSession, user_id: str) -> list[str]:
    rows = await db.execute(
        select(Follow.follower_id)
        .where(Follow.followee_id == user_id)
        .order_by(Follow.created_at.desc())
    )
    return [r[0] for r in rows.all()]


class SocialGraphReader:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def relevant_user_ids(self, viewer_id: str) -> set[str]:
        """The viewer plus everyone they follow."""
        return {viewer_id, *await followee_ids(self._db, viewer_id)}

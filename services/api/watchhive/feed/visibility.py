"""
Who may see a user's entries.

The rule itself is a pure predicate; `ensure_can_view` adds the one lookup it
needs (the confirmed follow edge) and raises for callers that list or fetch
entries directly. Pending follow requests never grant visibility.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from watchhive.errors import PrivateAccountError
from watchhive.feed.social_graph import follow_exists
from watchhive.models import User

logger = logging.getLogger(__name__)


def can_view(viewer_id: str, owner_id: str, owner_is_private: bool, follow_edge: bool) -> bool:
    if viewer_id == owner_id:
        return True
    if not owner_is_private:
        return True
    return follow_edge


async def ensure_can_view(db: AsyncSession, viewer_id: str, owner: User) -> None:
    """Raise PrivateAccountError unless `viewer_id` may see `owner`'s entries."""
    # Only a private, foreign owner needs the follow lookup
    needs_lookup = viewer_id != owner.user_id and owner.is_private
    edge = await follow_exists(db, viewer_id, owner.user_id) if needs_lookup else False

    if not can_view(viewer_id, owner.user_id, owner.is_private, edge):
        logger.info("Denied %s access to private account %s", viewer_id, owner.user_id)
        raise PrivateAccountError()

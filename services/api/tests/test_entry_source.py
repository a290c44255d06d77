import unittest
from datetime import timedelta

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from fakes import NOW
from watchhive.database import Base
from watchhive.feed.entry_source import EntryFeedSource, liked_entry_ids, watched_catalog_ids
from watchhive.feed.social_graph import SocialGraphReader
from watchhive.feed.suggestions import latest_watched_entry
from watchhive.models import Entry, EntryKind, Follow, Like, User


class TestEntryFeedSource(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.db = async_sessionmaker(self.engine, expire_on_commit=False)()

        self.db.add_all(
            [
                User(user_id="alice", username="alice"),
                User(user_id="bob", username="bob"),
                User(user_id="carol", username="carol"),
                Follow(follower_id="alice", followee_id="bob"),
            ]
        )
        await self.db.commit()
        self.source = EntryFeedSource(self.db, clock=lambda: NOW)

    async def asyncTearDown(self) -> None:
        await self.db.close()
        await self.engine.dispose()

    async def _entry(self, entry_id, user_id, hours_ago, likes=0, comments=0, catalog_id=1, watched_hours_ago=None):
        created = NOW - timedelta(hours=hours_ago)
        watched = NOW - timedelta(hours=watched_hours_ago if watched_hours_ago is not None else hours_ago)
        self.db.add(
            Entry(
                entry_id=entry_id,
                user_id=user_id,
                catalog_id=catalog_id,
                title=f"Title {entry_id}",
                kind=EntryKind.MOVIE,
                watched_at=watched,
                like_count=likes,
                comment_count=comments,
                created_at=created,
                updated_at=created,
            )
        )
        await self.db.commit()

    async def test_relevant_users_are_viewer_and_followees(self) -> None:
        ids = await SocialGraphReader(self.db).relevant_user_ids("alice")
        self.assertEqual(ids, {"alice", "bob"})

    async def test_popular_older_entry_ranks_first_within_page(self) -> None:
        await self._entry("fresh", "alice", hours_ago=0)
        await self._entry("popular", "bob", hours_ago=2, likes=10)

        page = await self.source.page("alice", {"alice", "bob"}, page=1, page_size=20)

        self.assertEqual([s.entry.entry_id for s in page.entries], ["popular", "fresh"])
        self.assertFalse(page.exact)

    async def test_equal_scores_keep_recency_order(self) -> None:
        await self._entry("a", "alice", hours_ago=3)
        await self._entry("b", "bob", hours_ago=3)
        await self._entry("c", "bob", hours_ago=1)

        page = await self.source.page("alice", {"alice", "bob"}, page=1, page_size=20)

        # c is newest; a and b tie on time and score, entry_id desc breaks the tie
        self.assertEqual([s.entry.entry_id for s in page.entries], ["c", "b", "a"])

    async def test_ranking_does_not_cross_pages(self) -> None:
        for i in range(4):
            await self._entry(f"new{i}", "alice", hours_ago=i)
        await self._entry("old-but-loved", "bob", hours_ago=10, likes=500)

        first = await self.source.page("alice", {"alice", "bob"}, page=1, page_size=4)
        second = await self.source.page("alice", {"alice", "bob"}, page=2, page_size=4)

        self.assertNotIn("old-but-loved", [s.entry.entry_id for s in first.entries])
        self.assertTrue(first.exact)
        self.assertEqual([s.entry.entry_id for s in second.entries], ["old-but-loved"])
        self.assertFalse(second.exact)

    async def test_excludes_users_outside_the_set(self) -> None:
        await self._entry("mine", "alice", hours_ago=1)
        await self._entry("stranger", "carol", hours_ago=1)

        page = await self.source.page("alice", {"alice", "bob"}, page=1, page_size=20)

        self.assertEqual([s.entry.entry_id for s in page.entries], ["mine"])

    async def test_marks_viewer_likes(self) -> None:
        await self._entry("liked", "bob", hours_ago=1)
        await self._entry("other", "bob", hours_ago=2)
        self.db.add(Like(user_id="alice", entry_id="liked"))
        await self.db.commit()

        page = await self.source.page("alice", {"alice", "bob"}, page=1, page_size=20)

        flags = {s.entry.entry_id: s.is_liked for s in page.entries}
        self.assertEqual(flags, {"liked": True, "other": False})
        self.assertEqual(await liked_entry_ids(self.db, "alice", []), set())

    async def test_watched_catalog_ids(self) -> None:
        await self._entry("e1", "alice", hours_ago=1, catalog_id=10)
        await self._entry("e2", "alice", hours_ago=2, catalog_id=10)
        await self._entry("e3", "alice", hours_ago=3, catalog_id=11)
        await self._entry("e4", "bob", hours_ago=3, catalog_id=12)

        self.assertEqual(await watched_catalog_ids(self.db, "alice"), {10, 11})
        self.assertEqual(await watched_catalog_ids(self.db, "carol"), set())

    async def test_latest_watched_entry_orders_by_watch_time(self) -> None:
        # Logged most recently, but watched long ago
        await self._entry("backfilled", "alice", hours_ago=0, watched_hours_ago=500)
        await self._entry("recent-watch", "alice", hours_ago=5, watched_hours_ago=5)

        latest = await latest_watched_entry(self.db, "alice")

        self.assertEqual(latest.entry_id, "recent-watch")
        self.assertIsNone(await latest_watched_entry(self.db, "carol"))

    async def test_latest_watched_entry_breaks_ties_by_log_time(self) -> None:
        await self._entry("logged-later", "alice", hours_ago=1, watched_hours_ago=10)
        await self._entry("logged-earlier", "alice", hours_ago=3, watched_hours_ago=10)

        for _ in range(3):
            latest = await latest_watched_entry(self.db, "alice")
            self.assertEqual(latest.entry_id, "logged-later")

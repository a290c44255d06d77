import unittest
from datetime import datetime, timedelta, timezone

from watchhive.feed.scoring import ScoreWeights, engagement_score

NOW = datetime(2024, 6, 1, 12, 0, 0)


class TestEngagementScore(unittest.TestCase):
    def test_fresh_entry_uses_minimum_age(self) -> None:
        # 0 likes, 0 comments, created just now: age clamps to 0.5h
        score = engagement_score(0, 0, NOW, NOW)
        self.assertAlmostEqual(score, 1 / 2.5 ** 1.5, places=9)
        self.assertAlmostEqual(score, 0.2530, places=4)

    def test_comments_weigh_double(self) -> None:
        created = NOW - timedelta(hours=4)
        self.assertAlmostEqual(
            engagement_score(0, 1, created, NOW),
            engagement_score(2, 0, created, NOW),
        )
        self.assertAlmostEqual(engagement_score(3, 2, created, NOW), 8 / 6 ** 1.5)

    def test_popular_old_entry_can_outrank_fresh_one(self) -> None:
        # 10 likes, 2h old vs 0 likes, just created
        older = engagement_score(10, 0, NOW - timedelta(hours=2), NOW)
        fresh = engagement_score(0, 0, NOW, NOW)
        self.assertAlmostEqual(older, 11 / 4 ** 1.5, places=9)
        self.assertGreater(older, fresh)

    def test_engagement_against_recency(self) -> None:
        one_hour = engagement_score(10, 0, NOW - timedelta(hours=1), NOW)
        two_days = engagement_score(0, 0, NOW - timedelta(hours=48), NOW)
        half_hour = engagement_score(10, 0, NOW - timedelta(minutes=30), NOW)
        self.assertGreater(one_hour, two_days)
        self.assertLess(one_hour, half_hour)

    def test_score_decreases_with_age(self) -> None:
        scores = [
            engagement_score(5, 1, NOW - timedelta(hours=h), NOW) for h in (1, 2, 6, 24, 72)
        ]
        self.assertEqual(scores, sorted(scores, reverse=True))
        self.assertEqual(len(set(scores)), len(scores))

    def test_score_increases_with_engagement(self) -> None:
        created = NOW - timedelta(hours=3)
        self.assertLess(engagement_score(1, 0, created, NOW), engagement_score(2, 0, created, NOW))
        self.assertLess(engagement_score(2, 0, created, NOW), engagement_score(2, 1, created, NOW))

    def test_entries_within_minimum_age_score_equally(self) -> None:
        self.assertEqual(
            engagement_score(1, 1, NOW - timedelta(minutes=5), NOW),
            engagement_score(1, 1, NOW - timedelta(minutes=25), NOW),
        )

    def test_naive_and_aware_timestamps_agree(self) -> None:
        created = NOW - timedelta(hours=5)
        aware_now = NOW.replace(tzinfo=timezone.utc)
        self.assertAlmostEqual(
            engagement_score(4, 1, created, NOW),
            engagement_score(4, 1, created.replace(tzinfo=timezone.utc), aware_now),
        )

    def test_custom_weights(self) -> None:
        weights = ScoreWeights(gravity=1.0, age_offset_hours=0.0, comment_weight=1.0, min_age_hours=1.0)
        score = engagement_score(1, 1, NOW - timedelta(hours=3), NOW, weights)
        self.assertAlmostEqual(score, 3 / 3)

"""Tests for leaderboard reconciliation."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from clipvote.core.exceptions import LockNotAcquiredError
from clipvote.jobs import LeaderboardSyncJob
from clipvote.models.schemas.leaderboard import LeaderboardEntry, LeaderboardPage
from clipvote.services.leaderboard import LeaderboardStore, daily_voters_key
from clipvote.services.lock import LeaseLock


def page(**scores) -> LeaderboardPage:
    return LeaderboardPage(
        entries=[LeaderboardEntry(member=m, score=s) for m, s in scores.items()],
        total=len(scores),
    )


@pytest.fixture
def rankings():
    repo = MagicMock()
    repo.active_voting_slots = AsyncMock(return_value=[("s1", 3)])
    repo.clip_scores = AsyncMock(return_value={"c1": 10.0, "c2": 4.0})
    repo.voter_page = AsyncMock(side_effect=lambda timeframe, limit, offset=0: (
        page(v1=7, v2=2) if timeframe == "all" else page(v1=1)
    ))
    repo.creator_page = AsyncMock(return_value=page(alice=12))
    return repo


@pytest.mark.unit
class TestLeaderboardSyncJob:
    async def test_overwrites_drifted_boards(self, redis, rankings):
        store = LeaderboardStore(redis, key_scheme="namespaced")
        await redis.zadd("leaderboard:voters:all", {"v1": 99})
        await redis.zadd("leaderboard:clips:s1:3", {"c1": 1})
        job = LeaderboardSyncJob(store, rankings)

        stats = await job.run()

        assert stats.to_dict() == {"clips": 2, "voters_all": 2, "voters_daily": 1, "creators": 1}
        assert await redis.zscore("leaderboard:voters:all", "v1") == 7.0
        assert await redis.zscore("leaderboard:clips:s1:3", "c1") == 10.0
        assert await redis.zscore(daily_voters_key(), "v1") == 1.0
        assert await redis.ttl(daily_voters_key()) > 0
        assert await redis.zscore("leaderboard:creators:all", "alice") == 12.0

    async def test_uses_configured_limits(self, redis, rankings):
        job = LeaderboardSyncJob(LeaderboardStore(redis), rankings)

        await job.run()

        limits = {call.args[0]: call.args[1] for call in rankings.voter_page.await_args_list}
        assert limits == {"all": 1000, "today": 500}
        rankings.creator_page.assert_awaited_once_with(500)

    async def test_slot_without_season_skipped_for_namespaced_boards(self, redis, rankings):
        rankings.active_voting_slots.return_value = [(None, 3)]
        job = LeaderboardSyncJob(LeaderboardStore(redis, key_scheme="namespaced"), rankings)

        stats = await job.run()

        assert stats.clips == 0
        rankings.clip_scores.assert_not_awaited()

    async def test_legacy_boards_need_no_season(self, redis, rankings):
        rankings.active_voting_slots.return_value = [(None, 3)]
        job = LeaderboardSyncJob(LeaderboardStore(redis, key_scheme="legacy"), rankings)

        stats = await job.run()

        assert stats.clips == 2
        assert await redis.zcard("leaderboard:clips:3") == 2

    async def test_unreachable_store_counts_nothing(self, broken_redis, rankings):
        job = LeaderboardSyncJob(LeaderboardStore(broken_redis, key_scheme="namespaced"), rankings)

        stats = await job.run()

        assert stats.to_dict() == {"clips": 0, "voters_all": 0, "voters_daily": 0, "creators": 0}

    async def test_runs_under_lease(self, redis, rankings):
        await LeaseLock(redis, "sync_leaderboards", ttl_ms=5000).acquire()
        job = LeaderboardSyncJob(
            LeaderboardStore(redis),
            rankings,
            lock=LeaseLock(redis, "sync_leaderboards", ttl_ms=5000),
        )

        with pytest.raises(LockNotAcquiredError):
            await job.run()

        rankings.active_voting_slots.assert_not_awaited()

"""Scheduled maintenance jobs."""

from clipvote.jobs.sync_leaderboards import LeaderboardSyncJob, SyncStats

__all__ = ["LeaderboardSyncJob", "SyncStats"]

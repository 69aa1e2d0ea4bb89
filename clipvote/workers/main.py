"""Worker process entry point.

Runs three loops concurrently, each guarded by its own lease so that any
number of replicas may be deployed while only one instance works a queue at
a time:

1. VoteQueueWorker: drains ``vote_queue`` into ``votes`` and refreshes the
   clip, voter and creator boards and the vote-count cache.
2. CommentQueueWorker: drains ``comment_queue`` into ``comments`` and
   ``comment_likes``.
3. LeaderboardSyncJob: overwrites the boards from database aggregates.

Usage:
    python -m clipvote.workers.main
"""

import asyncio
import signal
import sys
from typing import List

from clipvote.core.config import settings
from clipvote.jobs import LeaderboardSyncJob
from clipvote.models.database import close_db, init_db
from clipvote.observability.logging import get_logger, setup_logging
from clipvote.services.cache import VoteCountCache
from clipvote.services.leaderboard import LeaderboardStore
from clipvote.services.lock import LeaseLock
from clipvote.services.persistence import CommentRepository, RankingRepository, VoteRepository
from clipvote.services.queue import build_comment_queue, build_vote_queue
from clipvote.services.store import close_redis_client, init_redis_client
from clipvote.workers.comment_worker import CommentQueueWorker
from clipvote.workers.vote_worker import VoteQueueWorker

logger = get_logger(__name__)


async def run_workers():
    """Initialize connections, run all loops, shut down on SIGINT/SIGTERM."""
    setup_logging()

    await init_db()
    logger.info("Database initialized")

    redis = await init_redis_client()
    logger.info("Redis initialized")

    leaderboard = LeaderboardStore(redis)
    vote_worker = VoteQueueWorker(
        build_vote_queue(redis),
        votes=VoteRepository(),
        leaderboard=leaderboard,
        cache=VoteCountCache(redis),
        lock=LeaseLock(redis, "process_vote_queue"),
    )
    comment_worker = CommentQueueWorker(
        build_comment_queue(redis),
        comments=CommentRepository(),
        lock=LeaseLock(redis, "process_comment_queue"),
    )
    sync_job = LeaderboardSyncJob(
        leaderboard,
        rankings=RankingRepository(),
        lock=LeaseLock(redis, "sync_leaderboards"),
    )
    loops = [vote_worker, comment_worker, sync_job]

    tasks: List[asyncio.Task] = []
    shutdown_event = asyncio.Event()

    def handle_shutdown(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        shutdown_event.set()
        for loop in loops:
            loop.stop()

    signal.signal(signal.SIGINT, handle_shutdown)
    signal.signal(signal.SIGTERM, handle_shutdown)

    try:
        logger.info(
            f"Starting workers: interval={settings.WORKER_INTERVAL_S}s, "
            f"key_scheme={settings.LEADERBOARD_KEY_SCHEME}"
        )
        tasks = [
            asyncio.create_task(vote_worker.run_forever(), name="vote-worker"),
            asyncio.create_task(comment_worker.run_forever(), name="comment-worker"),
            asyncio.create_task(sync_job.run_forever(), name="leaderboard-sync"),
        ]

        done, pending = await asyncio.wait(
            tasks + [asyncio.create_task(shutdown_event.wait())],
            return_when=asyncio.FIRST_COMPLETED,
        )

        for task in done:
            if task in tasks:
                try:
                    task.result()
                except Exception as e:
                    logger.error(f"Worker {task.get_name()} failed: {e}")

    finally:
        for loop in loops:
            loop.stop()

        # Give in-flight batches a chance to finish before cancelling
        if tasks:
            try:
                await asyncio.wait_for(
                    asyncio.gather(*tasks, return_exceptions=True),
                    timeout=10.0,
                )
            except asyncio.TimeoutError:
                logger.warning("Workers did not shut down in time")

        await close_redis_client()
        await close_db()

        logger.info("Workers shut down gracefully")


def main():
    """Main entry point."""
    try:
        asyncio.run(run_workers())
    except KeyboardInterrupt:
        pass
    sys.exit(0)


if __name__ == "__main__":
    main()

"""Tests for the system-of-record repositories."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from clipvote.services.persistence import CommentRepository, VoteRepository
from clipvote.services.persistence.rankings import window_start
from clipvote.services.persistence.votes import event_time
from factories import make_comment, make_vote


def compiled(statement) -> str:
    return str(statement.compile(dialect=postgresql.dialect()))


def session_factory(rowcount: int):
    """Session factory whose every statement reports ``rowcount`` rows."""
    session = MagicMock()
    session.execute = AsyncMock(return_value=MagicMock(rowcount=rowcount))
    session.commit = AsyncMock()

    @asynccontextmanager
    async def factory():
        yield session

    return factory, session


@pytest.mark.unit
class TestStatements:
    def test_vote_insert_ignores_duplicates(self):
        sql = compiled(VoteRepository.insert_statement(make_vote("e1")))
        assert "INSERT INTO votes" in sql
        assert "ON CONFLICT DO NOTHING" in sql

    def test_comment_insert_keyed_by_event_id(self):
        sql = compiled(CommentRepository.create_statement(make_comment("e1", comment_text="hi")))
        assert "INSERT INTO comments" in sql
        assert "ON CONFLICT (id) DO NOTHING" in sql

    def test_like_is_idempotent_per_user(self):
        sql = compiled(CommentRepository.like_statement("cm1", "u1", 1700000000000))
        assert "ON CONFLICT (comment_id, user_key) DO NOTHING" in sql


@pytest.mark.unit
class TestVoteRepository:
    async def test_new_vote_reports_inserted(self):
        factory, session = session_factory(rowcount=1)
        assert await VoteRepository(factory).record_vote(make_vote("e1")) is True
        session.commit.assert_awaited_once()

    async def test_duplicate_vote_reports_not_inserted(self):
        factory, _ = session_factory(rowcount=0)
        assert await VoteRepository(factory).record_vote(make_vote("e1")) is False

    async def test_delete_returns_removed_rows(self):
        factory, _ = session_factory(rowcount=1)
        assert await VoteRepository(factory).delete_vote("clip-1", "voter-1") == 1


@pytest.mark.unit
class TestCommentRepository:
    async def test_like_of_existing_like_succeeds(self):
        factory, _ = session_factory(rowcount=0)
        assert await CommentRepository(factory).like("cm1", "u1", 1700000000000) is True

    async def test_soft_delete_only_touches_author_rows(self):
        factory, session = session_factory(rowcount=0)

        assert await CommentRepository(factory).soft_delete("cm1", "someone-else") == 0

        sql = compiled(session.execute.await_args.args[0])
        assert "UPDATE comments SET is_deleted" in sql
        assert "comments.user_key" in sql


@pytest.mark.unit
class TestTimeWindows:
    def test_event_time_is_utc(self):
        assert event_time(1700000000000) == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)

    def test_today_starts_at_utc_midnight(self):
        now = datetime(2026, 10, 17, 15, 30, tzinfo=timezone.utc)
        assert window_start("today", now) == datetime(2026, 10, 17, tzinfo=timezone.utc)

    def test_week_covers_seven_days(self):
        now = datetime(2026, 10, 17, 15, 30, tzinfo=timezone.utc)
        assert window_start("week", now) == datetime(2026, 10, 10, tzinfo=timezone.utc)

    def test_all_time_is_unbounded(self):
        assert window_start("all") is None

"""Tests for queue event schemas."""

import json

import pytest
from pydantic import ValidationError

from clipvote.models.schemas.events import CommentEvent, QueueEvent, VoteEvent


@pytest.mark.unit
class TestQueueEvent:
    def test_accepts_voter_key_alias(self):
        event = VoteEvent.from_wire(
            '{"eventId": "e1", "clipId": "c1", "voterKey": "v1", "action": "up", "timestamp": 1}'
        )
        assert event.actor_key == "v1"
        assert event.subject_id == "c1"

    def test_accepts_user_key_alias(self):
        event = CommentEvent.model_validate(
            {"eventId": "e1", "clipId": "c1", "userKey": "u1", "action": "like"}
        )
        assert event.actor_key == "u1"

    def test_wire_format_is_camel_case(self):
        event = VoteEvent.model_validate(
            {
                "eventId": "e1",
                "clipId": "c1",
                "voterKey": "v1",
                "action": "up",
                "timestamp": 1,
                "data": {"slotPosition": 2, "seasonId": "s1"},
            }
        )

        wire = json.loads(event.to_wire())

        assert wire["eventId"] == "e1"
        assert wire["actorKey"] == "v1"
        assert wire["data"]["slotPosition"] == 2
        assert wire["data"]["seasonId"] == "s1"
        assert "metadata" not in wire

    def test_unknown_fields_survive_a_round_trip(self):
        event = QueueEvent.from_wire(
            '{"eventId": "e1", "clipId": "c1", "actorKey": "a", "action": "x", "traceId": "t-1"}'
        )
        assert json.loads(event.to_wire())["traceId"] == "t-1"

    def test_rejects_unknown_vote_action(self):
        with pytest.raises(ValidationError):
            VoteEvent.model_validate({"eventId": "e1", "clipId": "c1", "voterKey": "v1", "action": "sideways"})

    def test_rejects_missing_event_id(self):
        with pytest.raises(ValidationError):
            VoteEvent.model_validate({"clipId": "c1", "voterKey": "v1", "action": "up"})


@pytest.mark.unit
class TestRetryBookkeeping:
    def test_fresh_event_has_no_retries(self):
        event = VoteEvent.model_validate({"eventId": "e1", "clipId": "c1", "voterKey": "v1", "action": "up"})
        assert event.retry_count == 0
        assert event.first_failed_at is None

    def test_with_retry_keeps_first_failure_time(self):
        event = VoteEvent.model_validate({"eventId": "e1", "clipId": "c1", "voterKey": "v1", "action": "up"})

        once = event.with_retry(1, failed_at=100)
        twice = once.with_retry(2, failed_at=200)

        assert twice.retry_count == 2
        assert twice.first_failed_at == 100
        assert event.metadata is None

    def test_garbage_retry_count_reads_as_zero(self):
        event = VoteEvent.model_validate(
            {"eventId": "e1", "clipId": "c1", "voterKey": "v1", "action": "up", "metadata": {"retryCount": "x"}}
        )
        assert event.retry_count == 0

    def test_garbage_first_failure_time_reads_as_none(self):
        event = VoteEvent.model_validate(
            {
                "eventId": "e1",
                "clipId": "c1",
                "voterKey": "v1",
                "action": "up",
                "metadata": {"retryCount": 4, "firstFailedAt": "yesterday"},
            }
        )

        assert event.first_failed_at is None
        assert event.with_retry(5, failed_at=300).first_failed_at == 300

"""Tests for the Redis list-backed event queue.

The queue moves each event between four lists (main, processing,
dead_letter, poison) with Lua scripts. These tests run the scripts against
an in-memory Redis and check list contents directly after each operation.
"""

import json

import pytest

from clipvote.core.result import StoreStatus
from clipvote.models.schemas.events import CommentEvent, VoteEvent
from clipvote.services.queue import EventQueue, QueueKeys
from factories import make_comment, make_vote


async def segments(redis, name: str):
    keys = QueueKeys.for_queue(name)
    return (
        await redis.lrange(keys.main, 0, -1),
        await redis.lrange(keys.processing, 0, -1),
        await redis.lrange(keys.dead_letter, 0, -1),
    )


@pytest.mark.unit
class TestQueueKeys:
    def test_keys_derive_from_queue_name(self):
        keys = QueueKeys.for_queue("vote_queue")

        assert keys.main == "vote_queue"
        assert keys.processing == "vote_queue:processing"
        assert keys.dead_letter == "vote_queue:dead_letter"
        assert keys.poison == "vote_queue:poison"
        assert keys.last_processed == "vote_queue:last_processed_at"


@pytest.mark.unit
class TestPushAndPop:
    async def test_push_returns_pending_length(self, vote_queue):
        first = await vote_queue.push(make_vote("e1"))
        second = await vote_queue.push(make_vote("e2"))

        assert first.is_ok and first.value == 1
        assert second.value == 2

    async def test_pop_returns_oldest_first(self, vote_queue):
        for i in range(1, 4):
            await vote_queue.push(make_vote(f"e{i}", voter=f"v{i}"))

        result = await vote_queue.pop_batch(2)

        assert result.is_ok
        assert [c.event.event_id for c in result.value] == ["e1", "e2"]
        assert [c.position for c in result.value] == [0, 1]

    async def test_pop_moves_items_to_processing(self, redis, vote_queue):
        for i in range(1, 4):
            await vote_queue.push(make_vote(f"e{i}", voter=f"v{i}"))

        batch = (await vote_queue.pop_batch(2)).value
        main, processing, _ = await segments(redis, "vote_queue")

        assert processing == [c.raw for c in batch]
        assert len(main) == 1
        assert json.loads(main[0])["eventId"] == "e3"

    async def test_pop_from_empty_queue(self, vote_queue):
        result = await vote_queue.pop_batch(10)

        assert result.is_ok
        assert result.value == []

    async def test_claimed_raw_is_the_stored_string(self, redis, vote_queue):
        raw = '{"voterKey":"v1","clipId":"c9","eventId":"e1","action":"up","timestamp":1}'
        await redis.lpush("vote_queue", raw)

        claimed = (await vote_queue.pop_batch(1)).value[0]

        assert claimed.raw == raw
        assert claimed.event.subject_id == "c9"

    async def test_push_during_claim_loses_nothing(self, redis, vote_queue):
        for i in range(1, 4):
            await vote_queue.push(make_vote(f"e{i}", voter=f"v{i}"))

        batch = (await vote_queue.pop_batch(2)).value
        await vote_queue.push(make_vote("e4", voter="v4"))
        main, processing, _ = await segments(redis, "vote_queue")

        assert len(main) + len(processing) == 4
        ids = sorted(json.loads(raw)["eventId"] for raw in main + processing)
        assert ids == ["e1", "e2", "e3", "e4"]
        assert [c.event.event_id for c in batch] == ["e1", "e2"]

        nxt = (await vote_queue.pop_batch(10)).value
        assert [c.event.event_id for c in nxt] == ["e3", "e4"]


@pytest.mark.unit
class TestMalformedEvents:
    async def test_unparsable_item_is_quarantined(self, redis, vote_queue):
        await redis.lpush("vote_queue", "not json at all")
        await vote_queue.push(make_vote("e1"))

        batch = (await vote_queue.pop_batch(10)).value
        _, processing, _ = await segments(redis, "vote_queue")
        poison = await redis.lrange("vote_queue:poison", 0, -1)

        assert [c.event.event_id for c in batch] == ["e1"]
        assert batch[0].position == 0
        assert processing == [batch[0].raw]
        assert len(poison) == 1
        assert json.loads(poison[0])["raw"] == "not json at all"

    async def test_wrong_action_is_quarantined(self, redis, vote_queue):
        bad = json.dumps({"eventId": "x", "clipId": "c", "voterKey": "v", "action": "sideways"})
        await redis.lpush("vote_queue", bad)

        batch = (await vote_queue.pop_batch(10)).value

        assert batch == []
        assert await redis.llen("vote_queue:processing") == 0
        assert await redis.llen("vote_queue:poison") == 1

    async def test_poison_list_is_capped(self, redis, vote_queue):
        for i in range(15):
            await redis.lpush("vote_queue", f"garbage-{i}")

        await vote_queue.pop_batch(20)

        assert await redis.llen("vote_queue:poison") == vote_queue.poison_cap


@pytest.mark.unit
class TestAcknowledge:
    async def test_acknowledge_clears_processing(self, redis, vote_queue):
        await vote_queue.push(make_vote("e1"))
        batch = (await vote_queue.pop_batch(10)).value

        result = await vote_queue.acknowledge(batch)

        assert result.is_ok
        assert await redis.llen("vote_queue:processing") == 0

    async def test_acknowledge_empty_batch_is_noop(self, redis, vote_queue):
        await vote_queue.push(make_vote("e1"))
        await vote_queue.pop_batch(10)

        result = await vote_queue.acknowledge([])

        assert result.is_ok and result.value == 0
        assert await redis.llen("vote_queue:processing") == 1


@pytest.mark.unit
class TestDeadLetter:
    async def test_failure_scenario(self, redis, vote_queue):
        await vote_queue.push(make_vote("e2"))
        claimed = (await vote_queue.pop_batch(10)).value[0]

        result = await vote_queue.move_to_dead_letter(claimed, "db timeout", 1)
        main, processing, dead = await segments(redis, "vote_queue")

        assert result.is_ok and result.value == 1
        assert main == [] and processing == []
        assert len(dead) == 1
        entry = json.loads(dead[0])
        assert entry["attempts"] == 1
        assert entry["error"] == "db timeout"
        assert entry["event"]["eventId"] == "e2"
        assert entry["firstFailedAt"] <= entry["lastFailedAt"]

    async def test_first_failed_at_comes_from_metadata(self, vote_queue):
        await vote_queue.push(make_vote("e1").with_retry(4, failed_at=1234))
        claimed = (await vote_queue.pop_batch(1)).value[0]

        await vote_queue.move_to_dead_letter(claimed, "boom", 5)
        entries = (await vote_queue.list_dead_letters()).value

        assert entries[0].first_failed_at == 1234
        assert entries[0].attempts == 5

    async def test_removes_only_the_claimed_duplicate(self, redis, vote_queue):
        event = make_vote("e1")
        await vote_queue.push(event)
        await vote_queue.push(event)
        batch = (await vote_queue.pop_batch(10)).value

        await vote_queue.move_to_dead_letter(batch[1], "boom", 1)
        _, processing, dead = await segments(redis, "vote_queue")

        assert processing == [batch[0].raw]
        assert len(dead) == 1

    async def test_dead_letter_cap_evicts_oldest(self, redis):
        queue = EventQueue(redis, "vote_queue", VoteEvent, dead_letter_cap=3)
        for i in range(1, 6):
            await queue.push(make_vote(f"e{i}", voter=f"v{i}"))
        batch = (await queue.pop_batch(10)).value

        for claimed in batch:
            await queue.move_to_dead_letter(claimed, "boom", 1)

        entries = (await queue.list_dead_letters(limit=10)).value
        assert [e.event["eventId"] for e in entries] == ["e5", "e4", "e3"]
        assert await redis.llen("vote_queue:processing") == 0

    async def test_no_event_in_two_segments(self, redis, vote_queue):
        for i in range(1, 6):
            await vote_queue.push(make_vote(f"e{i}", voter=f"v{i}"))
        batch = (await vote_queue.pop_batch(3)).value
        await vote_queue.move_to_dead_letter(batch[1], "boom", 1)

        main, processing, dead = await segments(redis, "vote_queue")
        ids = [json.loads(r)["eventId"] for r in main + processing]
        ids += [json.loads(r)["event"]["eventId"] for r in dead]

        assert sorted(ids) == ["e1", "e2", "e3", "e4", "e5"]


@pytest.mark.unit
class TestRequeueAndRecovery:
    async def test_requeue_moves_updated_event_to_main(self, redis, vote_queue):
        await vote_queue.push(make_vote("e1"))
        claimed = (await vote_queue.pop_batch(1)).value[0]

        result = await vote_queue.requeue(claimed, claimed.event.with_retry(1))
        main, processing, _ = await segments(redis, "vote_queue")

        assert result.is_ok
        assert processing == []
        assert json.loads(main[0])["metadata"]["retryCount"] == 1

    async def test_recover_orphans_restores_order(self, vote_queue):
        for i in range(1, 4):
            await vote_queue.push(make_vote(f"e{i}", voter=f"v{i}"))
        await vote_queue.pop_batch(2)

        recovered = await vote_queue.recover_orphans()
        batch = (await vote_queue.pop_batch(10)).value

        assert recovered.value == 2
        assert [c.event.event_id for c in batch] == ["e1", "e2", "e3"]

    async def test_recover_orphans_is_idempotent(self, redis, vote_queue):
        for i in range(1, 4):
            await vote_queue.push(make_vote(f"e{i}", voter=f"v{i}"))
        await vote_queue.pop_batch(2)

        await vote_queue.recover_orphans()
        main_after_first = await redis.lrange("vote_queue", 0, -1)
        second = await vote_queue.recover_orphans()

        assert second.value == 0
        assert await redis.lrange("vote_queue", 0, -1) == main_after_first


@pytest.mark.unit
class TestHealthAndReplay:
    async def test_end_to_end_comment_scenario(self, redis, comment_queue):
        await comment_queue.push(make_comment("e1", clip_id="c1", comment_text="hi"))

        batch = (await comment_queue.pop_batch(10)).value
        main, processing, _ = await segments(redis, "comment_queue")
        assert [c.event.event_id for c in batch] == ["e1"]
        assert isinstance(batch[0].event, CommentEvent)
        assert batch[0].event.data.comment_text == "hi"
        assert main == [] and len(processing) == 1

        await comment_queue.acknowledge(batch)
        health = (await comment_queue.health()).value

        assert health.pending_count == 0
        assert health.processing_count == 0
        assert health.dead_letter_count == 0

    async def test_health_reports_last_processed(self, vote_queue):
        await vote_queue.push(make_vote("e1"))
        await vote_queue.set_last_processed_at(1700000000123)

        health = (await vote_queue.health()).value

        assert health.pending_count == 1
        assert health.last_processed_at == 1700000000123

    async def test_health_without_marker(self, vote_queue):
        health = (await vote_queue.health()).value

        assert health.last_processed_at is None

    async def test_replay_resets_retry_bookkeeping(self, redis, vote_queue):
        await vote_queue.push(make_vote("e1").with_retry(4, failed_at=1234))
        claimed = (await vote_queue.pop_batch(1)).value[0]
        await vote_queue.move_to_dead_letter(claimed, "boom", 5)

        replayed = await vote_queue.replay_dead_letters(10)
        main, _, dead = await segments(redis, "vote_queue")

        assert replayed.value == 1
        assert dead == []
        event = VoteEvent.from_wire(main[0])
        assert event.event_id == "e1"
        assert event.retry_count == 0
        assert event.first_failed_at is None

    async def test_replay_takes_oldest_first(self, redis, vote_queue):
        for i in range(1, 4):
            await vote_queue.push(make_vote(f"e{i}", voter=f"v{i}"))
        for claimed in (await vote_queue.pop_batch(10)).value:
            await vote_queue.move_to_dead_letter(claimed, "boom", 1)

        await vote_queue.replay_dead_letters(2)
        batch = (await vote_queue.pop_batch(10)).value

        assert [c.event.event_id for c in batch] == ["e1", "e2"]
        assert await redis.llen("vote_queue:dead_letter") == 1


@pytest.mark.unit
class TestStoreFailures:
    async def test_unconfigured_store_is_unavailable(self):
        queue = EventQueue(None, "vote_queue", VoteEvent)

        push = await queue.push(make_vote("e1"))
        health = await queue.health()

        assert push.status is StoreStatus.UNAVAILABLE
        assert health.status is StoreStatus.UNAVAILABLE
        assert health.should_fallback

    async def test_connection_error_is_unavailable(self, broken_redis):
        queue = EventQueue(broken_redis, "vote_queue", VoteEvent)

        push = await queue.push(make_vote("e1"))
        popped = await queue.pop_batch(10)

        assert push.status is StoreStatus.UNAVAILABLE
        assert popped.status is StoreStatus.UNAVAILABLE
        assert "Connection refused" in popped.error

    async def test_wrong_key_type_is_error(self, redis, vote_queue):
        await redis.set("vote_queue", "not a list")

        result = await vote_queue.push(make_vote("e1"))

        assert result.status is StoreStatus.ERROR

"""Tests for sweetconnect.comms.store -- in-memory and SQLite message stores."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from sweetconnect.comms.message import Activity, Message
from sweetconnect.comms.store import (
    HISTORY_CAP,
    InMemoryMessageStore,
    MessageStore,
    SQLiteMessageStore,
)
from sweetconnect.engine.errors import PersistenceError
from sweetconnect.identity.roles import Actor, Role

BASE = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _msg(sender: str, receiver: str, content: str, minutes: int = 0) -> Message:
    return Message(
        sender_id=sender,
        receiver_id=receiver,
        content=content,
        created_at=BASE + timedelta(minutes=minutes),
    )


@pytest.fixture(params=["memory", "sqlite"])
def make_store(request, tmp_path):
    """Factory returning an unopened store of each backend."""

    def make() -> MessageStore:
        if request.param == "memory":
            return InMemoryMessageStore()
        return SQLiteMessageStore(str(tmp_path / "messages.db"))

    return make


# ======================================================================
# Messages
# ======================================================================


class TestMessageHistory:
    @pytest.mark.asyncio
    async def test_append_returns_id(self, make_store) -> None:
        async with make_store() as store:
            msg = _msg("u1", "s1", "hello")
            assert await store.append(msg) == msg.message_id
            assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_history_visible_to_both_parties_only(self, make_store) -> None:
        async with make_store() as store:
            msg = _msg("u1", "s1", "hello")
            await store.append(msg)
            for actor in ("u1", "s1"):
                history = await store.history(actor)
                assert [m.message_id for m in history] == [msg.message_id]
            assert await store.history("admin") == []

    @pytest.mark.asyncio
    async def test_history_newest_first(self, make_store) -> None:
        async with make_store() as store:
            for i in range(5):
                await store.append(_msg("u1", "s1", f"m{i}", minutes=i))
            history = await store.history("s1")
            assert [m.content for m in history] == ["m4", "m3", "m2", "m1", "m0"]

    @pytest.mark.asyncio
    async def test_history_ordered_by_timestamp_not_insert_order(self, make_store) -> None:
        async with make_store() as store:
            await store.append(_msg("u1", "s1", "late", minutes=10))
            await store.append(_msg("u1", "s1", "early", minutes=1))
            history = await store.history("u1")
            assert [m.content for m in history] == ["late", "early"]

    @pytest.mark.asyncio
    async def test_equal_timestamps_latest_insert_first(self, make_store) -> None:
        async with make_store() as store:
            await store.append(_msg("u1", "s1", "first"))
            await store.append(_msg("s1", "u1", "second"))
            history = await store.history("u1")
            assert [m.content for m in history] == ["second", "first"]

    @pytest.mark.asyncio
    async def test_history_capped_at_fifty(self, make_store) -> None:
        async with make_store() as store:
            for i in range(HISTORY_CAP + 10):
                await store.append(_msg("u1", "s1", f"m{i}", minutes=i))
            history = await store.history("u1", limit=500)
            assert len(history) == HISTORY_CAP
            stamps = [m.created_at for m in history]
            assert stamps == sorted(stamps, reverse=True)
            assert history[0].content == f"m{HISTORY_CAP + 9}"

    @pytest.mark.asyncio
    async def test_history_respects_smaller_limit(self, make_store) -> None:
        async with make_store() as store:
            for i in range(5):
                await store.append(_msg("u1", "s1", f"m{i}", minutes=i))
            assert len(await store.history("u1", limit=2)) == 2
            assert await store.history("u1", limit=0) == []

    @pytest.mark.asyncio
    async def test_fields_round_trip(self, make_store) -> None:
        async with make_store() as store:
            msg = Message(
                sender_id="u1",
                receiver_id="s1",
                content="note",
                kind="request",
                created_at=BASE,
            )
            await store.append(msg)
            (loaded,) = await store.history("u1")
            assert loaded == msg

    @pytest.mark.asyncio
    async def test_duplicate_id_is_persistence_error(self, make_store) -> None:
        async with make_store() as store:
            msg = _msg("u1", "s1", "hello")
            await store.append(msg)
            with pytest.raises(PersistenceError):
                await store.append(msg)
            assert await store.count() == 1


# ======================================================================
# Activities
# ======================================================================


class TestActivities:
    @pytest.mark.asyncio
    async def test_append_and_list(self, make_store) -> None:
        async with make_store() as store:
            older = Activity(actor_id="u1", activity_type="login", created_at=BASE)
            newer = Activity(
                actor_id="u1",
                activity_type="hug_request",
                details="please",
                created_at=BASE + timedelta(minutes=1),
            )
            await store.append_activity(older)
            await store.append_activity(newer)
            await store.append_activity(Activity(actor_id="u2", activity_type="login"))
            listed = await store.activities("u1")
            assert [a.activity_type for a in listed] == ["hug_request", "login"]
            assert listed[0].details == "please"


# ======================================================================
# Concurrent writes
# ======================================================================


class TestConcurrentWrites:
    @pytest.mark.asyncio
    async def test_failed_insert_does_not_discard_neighbours(self, make_store) -> None:
        async with make_store() as store:
            messages = [
                _msg("u1" if i % 2 else "s1", "s1" if i % 2 else "u1", f"m{i}", minutes=i)
                for i in range(40)
            ]
            batch: list[Message] = []
            for i, msg in enumerate(messages):
                batch.append(msg)
                if i % 4 == 1:
                    batch.append(messages[i - 1])

            results = await asyncio.gather(
                *(store.append(m) for m in batch), return_exceptions=True
            )

            failures = [r for r in results if isinstance(r, Exception)]
            assert len(failures) == 10
            assert all(isinstance(r, PersistenceError) for r in failures)
            assert await store.count() == 40
            expected = {m.message_id for m in messages}
            for party in ("u1", "s1"):
                ids = [m.message_id for m in await store.history(party)]
                assert len(ids) == len(set(ids)) == 40
                assert set(ids) == expected


# ======================================================================
# Actors
# ======================================================================


class TestActors:
    @pytest.mark.asyncio
    async def test_saved_in_registration_order(self, make_store) -> None:
        async with make_store() as store:
            admin = Actor(actor_id="a1", name="Admin", role=Role.ADMIN, email="a@example.com")
            shared = Actor(actor_id="u1", name="Tharun", role=Role.SHARED, email="u@example.com")
            await store.save_actor(admin)
            await store.save_actor(shared)
            assert [a.actor_id for a in await store.actors()] == ["a1", "u1"]

    @pytest.mark.asyncio
    async def test_save_again_updates_in_place(self, make_store) -> None:
        async with make_store() as store:
            first = Actor(actor_id="a1", name="Admin", role=Role.ADMIN, email="a@example.com")
            await store.save_actor(first)
            await store.save_actor(Actor(actor_id="b1", name="B", role=Role.SHARED))
            await store.save_actor(
                Actor(actor_id="a1", name="Boss", role=Role.ADMIN, email="a@example.com")
            )
            stored = await store.actors()
            assert [(a.actor_id, a.name) for a in stored] == [("a1", "Boss"), ("b1", "B")]


# ======================================================================
# SQLite specifics
# ======================================================================


class TestSQLiteStore:
    @pytest.mark.asyncio
    async def test_unopened_store_raises(self, tmp_path) -> None:
        store = SQLiteMessageStore(str(tmp_path / "x.db"))
        with pytest.raises(PersistenceError):
            await store.append(_msg("u1", "s1", "hello"))

    @pytest.mark.asyncio
    async def test_persists_across_reopen(self, tmp_path) -> None:
        path = str(tmp_path / "persist.db")
        msg = _msg("u1", "s1", "kept")
        async with SQLiteMessageStore(path) as store:
            await store.append(msg)
        async with SQLiteMessageStore(path) as store:
            history = await store.history("s1")
        assert [m.message_id for m in history] == [msg.message_id]

    @pytest.mark.asyncio
    async def test_bad_path_raises_persistence_error(self, tmp_path) -> None:
        store = SQLiteMessageStore(str(tmp_path / "missing" / "dir" / "x.db"))
        with pytest.raises(PersistenceError):
            await store.open()

    @pytest.mark.asyncio
    async def test_actors_survive_reopen(self, tmp_path) -> None:
        path = str(tmp_path / "actors.db")
        actor = Actor(
            actor_id="s1",
            name="Shrreya",
            role=Role.CORRESPONDENT,
            email="s@example.com",
            created_at=BASE,
        )
        async with SQLiteMessageStore(path) as store:
            await store.save_actor(actor)
        async with SQLiteMessageStore(path) as store:
            assert await store.actors() == [actor]

    @pytest.mark.asyncio
    async def test_count_failure_is_persistence_error(self, tmp_path) -> None:
        async with SQLiteMessageStore(str(tmp_path / "count.db")) as store:
            await store._conn().execute("DROP TABLE messages")
            with pytest.raises(PersistenceError):
                await store.count()

"""Tests for ParticipantRegistry."""

import anyio
import pytest

from chatroom.errors import ConflictError, NotFoundError

pytestmark = pytest.mark.anyio


class TestJoin:
    async def test_join_stamps_last_status(self, registry, clock) -> None:
        participant = await registry.join("ana")
        assert participant.name == "ana"
        assert participant.last_status == int(clock.now() * 1000)

    async def test_duplicate_name_conflicts(self, registry) -> None:
        await registry.join("ana")
        with pytest.raises(ConflictError):
            await registry.join("ana")
        assert [p.name for p in await registry.list()] == ["ana"]

    async def test_names_are_case_sensitive(self, registry) -> None:
        await registry.join("ana")
        await registry.join("Ana")
        assert [p.name for p in await registry.list()] == ["ana", "Ana"]

    async def test_concurrent_joins_admit_one(self, registry) -> None:
        outcomes: list[str] = []

        async def attempt() -> None:
            try:
                await registry.join("bob")
                outcomes.append("joined")
            except ConflictError:
                outcomes.append("conflict")

        async with anyio.create_task_group() as tg:
            for _ in range(3):
                tg.start_soon(attempt)

        assert sorted(outcomes) == ["conflict", "conflict", "joined"]
        assert len(await registry.list()) == 1


class TestHeartbeat:
    async def test_refreshes_timestamp(self, registry, clock) -> None:
        await registry.join("ana")
        clock.advance(7)
        await registry.heartbeat("ana")
        participant = await registry.get("ana")
        assert participant.last_status == int(clock.now() * 1000)

    async def test_unknown_name_is_not_found(self, registry) -> None:
        with pytest.raises(NotFoundError):
            await registry.heartbeat("ghost")
        assert await registry.get("ghost") is None


class TestEvictExpired:
    async def test_evicts_only_expired(self, registry, clock) -> None:
        await registry.join("old")
        clock.advance(6)
        await registry.join("fresh")
        clock.advance(4)

        evicted = await registry.evict_expired(clock.now(), 10)

        assert [p.name for p in evicted] == ["old"]
        assert [p.name for p in await registry.list()] == ["fresh"]

    async def test_threshold_is_inclusive(self, registry, clock) -> None:
        await registry.join("edge")
        clock.advance(9.999)
        assert await registry.evict_expired(clock.now(), 10) == []
        clock.advance(0.001)
        assert [p.name for p in await registry.evict_expired(clock.now(), 10)] == ["edge"]

    async def test_second_run_evicts_nothing(self, registry, clock) -> None:
        await registry.join("bob")
        clock.advance(20)
        assert len(await registry.evict_expired(clock.now(), 10)) == 1
        assert await registry.evict_expired(clock.now(), 10) == []

    async def test_heartbeat_before_sweep_survives(self, registry, clock) -> None:
        await registry.join("ana")
        clock.advance(11)
        await registry.heartbeat("ana")

        assert await registry.evict_expired(clock.now(), 10) == []
        assert await registry.get("ana") is not None

    async def test_heartbeat_after_eviction_does_not_resurrect(self, registry, clock) -> None:
        await registry.join("bob")
        clock.advance(16)
        await registry.evict_expired(clock.now(), 10)

        with pytest.raises(NotFoundError):
            await registry.heartbeat("bob")
        assert await registry.list() == []

    async def test_concurrent_heartbeat_and_sweep(self, registry, clock) -> None:
        await registry.join("ana")
        clock.advance(12)
        evicted = []
        heartbeat_failed = []

        async def sweep() -> None:
            evicted.extend(await registry.evict_expired(clock.now(), 10))

        async def beat() -> None:
            try:
                await registry.heartbeat("ana")
            except NotFoundError:
                heartbeat_failed.append(True)

        async with anyio.create_task_group() as tg:
            tg.start_soon(sweep)
            tg.start_soon(beat)

        live = await registry.get("ana")
        if evicted:
            assert live is None
            assert heartbeat_failed
        else:
            assert live is not None
            assert not heartbeat_failed

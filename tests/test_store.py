# tests/test_store.py

from datetime import datetime, timedelta, timezone

import pytest
import redis.asyncio as redis
from fakeredis import FakeAsyncRedis
from redis.asyncio.client import Pipeline

from pokedex.exceptions import CacheError
from pokedex.models import Pokemon
from pokedex.store import PokemonStore


def make_pokemon(pokemon_id, name, types=("normal",), **extra):
    return Pokemon(
        id=pokemon_id,
        name=name,
        types=[{"name": t, "url": f"https://pokeapi.co/api/v2/type/{t}/"} for t in types],
        height=7,
        weight=69,
        **extra,
    )


@pytest.mark.asyncio
async def test_insert_if_absent_is_idempotent(store):
    first = make_pokemon(25, "pikachu", ["electric"])

    assert await store.insert_if_absent(first) is True
    assert await store.insert_if_absent(make_pokemon(25, "raichu", ["electric"], base_experience=999)) is False

    stored = await store.find_by_id(25)
    assert stored.name == "pikachu"
    assert stored.base_experience is None
    assert await store.count() == 1


@pytest.mark.asyncio
async def test_insert_stamps_cached_at(store):
    await store.insert_if_absent(make_pokemon(1, "bulbasaur"))

    stored = await store.find_by_id(1)
    assert stored.cached_at is not None


@pytest.mark.asyncio
async def test_find_by_name_is_case_insensitive(store):
    await store.insert_if_absent(make_pokemon(25, "pikachu"))

    assert (await store.find_by_name("PIKACHU")).id == 25
    assert (await store.find_by_name(" Pikachu ")).id == 25
    assert await store.find_by_name("pika") is None


@pytest.mark.asyncio
async def test_find_missing_returns_none(store):
    assert await store.find_by_id(151) is None
    assert await store.find_by_name("mew") is None


@pytest.mark.asyncio
async def test_fragment_searches_keep_insert_order(store):
    await store.insert_if_absent(make_pokemon(6, "charizard", ["fire", "flying"]))
    await store.insert_if_absent(make_pokemon(1, "bulbasaur", ["grass", "poison"]))
    await store.insert_if_absent(make_pokemon(4, "charmander", ["fire"]))

    by_name = await store.find_by_name_fragment("CHAR")
    by_type = await store.find_by_type_fragment("fir")

    assert [p.id for p in by_name] == [6, 4]
    assert [p.id for p in by_type] == [6, 4]


@pytest.mark.asyncio
async def test_fragment_searches_respect_limit(store):
    for pid in range(1, 6):
        await store.insert_if_absent(make_pokemon(pid, f"mon{pid}", ["bug"]))

    assert [p.id for p in await store.find_by_name_fragment("mon", limit=3)] == [1, 2, 3]
    assert len(await store.find_by_type_fragment("bug", limit=2)) == 2


@pytest.mark.asyncio
async def test_type_or_name_fragment_deduplicates(store):
    await store.insert_if_absent(make_pokemon(900, "firefly", ["fire", "bug"]))
    await store.insert_if_absent(make_pokemon(4, "charmander", ["fire"]))

    results = await store.find_by_type_or_name_fragment("fire")

    assert [p.id for p in results] == [900, 4]


@pytest.mark.asyncio
async def test_expired_record_disappears_from_lookups(store, redis_client):
    await store.insert_if_absent(make_pokemon(132, "ditto", expires_at=datetime.now(timezone.utc) + timedelta(hours=1)))
    assert await redis_client.ttl(store.pokemon_key(132)) > 0

    # Simulate Redis reaping the record
    await redis_client.delete(store.pokemon_key(132))

    assert await store.find_by_id(132) is None
    assert await store.find_by_name_fragment("ditto") == []


@pytest.mark.asyncio
async def test_reference_for(store):
    await store.insert_if_absent(make_pokemon(7, "squirtle"))

    assert await store.reference_for(7) == "test:pokemon:7"
    assert await store.reference_for(8) is None


@pytest.mark.asyncio
async def test_daily_cache_upsert_creates_then_updates_in_place(store, redis_client):
    expires_at = datetime.now(timezone.utc) + timedelta(hours=24)
    await store.upsert_daily_cache("2026-10-19", 25, "test:pokemon:25", expires_at)
    await store.upsert_daily_cache("2026-10-19", 133, None, expires_at)

    daily = await store.get_daily_cache("2026-10-19")
    assert daily.pokemon_id == 133
    assert daily.pokemon is None
    assert len(await redis_client.keys("test:daily:*")) == 1
    assert 0 < await redis_client.ttl("test:daily:2026-10-19") <= 24 * 60 * 60


@pytest.mark.asyncio
async def test_daily_cache_already_expired_is_not_kept(store):
    await store.upsert_daily_cache("2026-10-18", 25, None, datetime.now(timezone.utc) - timedelta(minutes=1))

    assert await store.get_daily_cache("2026-10-18") is None


@pytest.mark.asyncio
async def test_daily_cache_serialises_with_camel_case_keys(store, redis_client):
    await store.upsert_daily_cache("2026-10-19", 25, "test:pokemon:25", datetime.now(timezone.utc) + timedelta(hours=1))

    raw = await redis_client.get("test:daily:2026-10-19")
    assert '"pokemonId":25' in raw
    assert '"expiresAt"' in raw


@pytest.mark.asyncio
async def test_redis_failures_raise_cache_error(fake_server):
    fake_server.connected = False
    store = PokemonStore(FakeAsyncRedis(server=fake_server, decode_responses=True), prefix="test")

    with pytest.raises(CacheError):
        await store.find_by_id(25)
    with pytest.raises(CacheError):
        await store.insert_if_absent(make_pokemon(25, "pikachu"))


def fail_pipeline_once(monkeypatch, error, before_failing=None):
    """Makes the next transaction EXEC raise `error` without applying anything."""
    real_execute = Pipeline.execute
    failed = []

    async def flaky_execute(self, *args, **kwargs):
        if not failed:
            failed.append(True)
            if before_failing is not None:
                await before_failing()
            raise error
        return await real_execute(self, *args, **kwargs)

    monkeypatch.setattr(Pipeline, "execute", flaky_execute)


@pytest.mark.asyncio
async def test_failed_insert_leaves_nothing_behind(store, monkeypatch):
    fail_pipeline_once(monkeypatch, redis.ConnectionError("connection dropped"))

    with pytest.raises(CacheError):
        await store.insert_if_absent(make_pokemon(25, "pikachu", ["electric"]))

    assert await store.find_by_id(25) is None
    assert await store.count() == 0

    # A later insert is not blocked by the failed one
    assert await store.insert_if_absent(make_pokemon(25, "pikachu", ["electric"])) is True
    assert (await store.find_by_name("pikachu")).id == 25
    assert [p.id for p in await store.find_by_name_fragment("pika")] == [25]


@pytest.mark.asyncio
async def test_insert_racing_another_writer_is_a_no_op(store, redis_client, monkeypatch):
    other = PokemonStore(redis_client, prefix="test")

    async def concurrent_insert():
        await other.insert_if_absent(make_pokemon(25, "pikachu", ["electric"], base_experience=112))

    fail_pipeline_once(monkeypatch, redis.WatchError("Watched variable changed."), before_failing=concurrent_insert)

    assert await store.insert_if_absent(make_pokemon(25, "pikachu", ["electric"])) is False
    assert (await store.find_by_id(25)).base_experience == 112
    assert await store.count() == 1


@pytest.mark.asyncio
async def test_watch_error_without_a_stored_record_is_cache_error(store, monkeypatch):
    fail_pipeline_once(monkeypatch, redis.WatchError("A ConnectionError occurred while watching one or more keys"))

    with pytest.raises(CacheError):
        await store.insert_if_absent(make_pokemon(25, "pikachu"))
    assert await store.find_by_id(25) is None

# pokedex/store.py

import logging
import math
from datetime import datetime, timezone
from typing import List, Optional

import redis.asyncio as redis
from pydantic import ValidationError

from .config import settings
from .exceptions import CacheError
from .models import DailyRandomCache, Pokemon

logger = logging.getLogger(__name__)

SCAN_CHUNK_SIZE = 100 # Records loaded per MGET while scanning the index


def _seconds_until(moment: datetime) -> int:
    """Whole seconds from now until `moment`, rounded up (<= 0 when already past)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return math.ceil((moment - datetime.now(timezone.utc)).total_seconds())


class PokemonStore:
    """
    Redis-backed store for cached Pokémon records and the daily pointer.

    Layout (all keys share `prefix`):
      {prefix}:pokemon:{id}          JSON record
      {prefix}:pokemon:name:{name}   id of the record with that name
      {prefix}:pokemon:index         ids in first-insert order
      {prefix}:daily:{YYYY-MM-DD}    JSON daily pointer, expires at its expiresAt

    Records are immutable once written; the only write is insert-if-absent.
    """

    def __init__(self, client: redis.Redis, prefix: str = settings.redis_key_prefix,
                 search_limit: int = settings.store_search_limit):
        self._redis = client
        self.prefix = prefix
        self.search_limit = search_limit

    # --- Keys ---
    def pokemon_key(self, pokemon_id: int) -> str:
        return f"{self.prefix}:pokemon:{pokemon_id}"

    def _name_key(self, name: str) -> str:
        return f"{self.prefix}:pokemon:name:{name.lower()}"

    @property
    def _index_key(self) -> str:
        return f"{self.prefix}:pokemon:index"

    def _daily_key(self, date_key: str) -> str:
        return f"{self.prefix}:daily:{date_key}"

    # --- Pokémon records ---
    def _load(self, raw: Optional[str]) -> Optional[Pokemon]:
        if raw is None:
            return None
        try:
            return Pokemon.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Invalid Pokémon record in store: {e}")
            return None

    async def find_by_id(self, pokemon_id: int) -> Optional[Pokemon]:
        try:
            raw = await self._redis.get(self.pokemon_key(pokemon_id))
        except redis.RedisError as e:
            raise CacheError(f"Store lookup failed for id {pokemon_id}") from e
        return self._load(raw)

    async def find_by_name(self, name: str) -> Optional[Pokemon]:
        """Exact, case-insensitive lookup on the stored (lowercase) name."""
        try:
            pokemon_id = await self._redis.get(self._name_key(name.strip()))
        except redis.RedisError as e:
            raise CacheError(f"Store lookup failed for name '{name}'") from e
        if pokemon_id is None:
            return None
        pokemon = await self.find_by_id(int(pokemon_id))
        if pokemon is None or pokemon.name != name.strip().lower():
            return None
        return pokemon

    async def _all_records(self) -> List[Pokemon]:
        """Every stored record in first-insert order."""
        records: List[Pokemon] = []
        try:
            ids = await self._redis.lrange(self._index_key, 0, -1)
            for start in range(0, len(ids), SCAN_CHUNK_SIZE):
                chunk = ids[start:start + SCAN_CHUNK_SIZE]
                raws = await self._redis.mget([self.pokemon_key(int(i)) for i in chunk])
                # Expired entries come back as None
                records.extend(p for p in map(self._load, raws) if p is not None)
        except redis.RedisError as e:
            raise CacheError("Store scan failed") from e
        return records

    async def find_by_name_fragment(self, fragment: str, limit: Optional[int] = None) -> List[Pokemon]:
        fragment = fragment.lower()
        matches = [p for p in await self._all_records() if fragment in p.name]
        return matches[:limit or self.search_limit]

    async def find_by_type_fragment(self, fragment: str, limit: Optional[int] = None) -> List[Pokemon]:
        fragment = fragment.lower()
        matches = [
            p for p in await self._all_records()
            if any(fragment in t.name.lower() for t in p.types)
        ]
        return matches[:limit or self.search_limit]

    async def find_by_type_or_name_fragment(self, fragment: str, limit: Optional[int] = None) -> List[Pokemon]:
        """Name matches first, then type matches, each capped at `limit`, deduplicated by id."""
        results = {}
        for pokemon in await self.find_by_name_fragment(fragment, limit):
            results.setdefault(pokemon.id, pokemon)
        for pokemon in await self.find_by_type_fragment(fragment, limit):
            results.setdefault(pokemon.id, pokemon)
        return list(results.values())

    async def insert_if_absent(self, pokemon: Pokemon) -> bool:
        """
        Persists `pokemon` unless a record with the same id already exists.

        Returns True when the record was written, False when it was a no-op.
        """
        if pokemon.cached_at is None:
            pokemon = pokemon.model_copy(update={"cached_at": datetime.now(timezone.utc)})

        ttl = None
        if pokemon.expires_at is not None:
            ttl = _seconds_until(pokemon.expires_at)
            if ttl <= 0:
                logger.debug(f"Not storing Pokémon {pokemon.id}: already past expiresAt.")
                return False

        key = self.pokemon_key(pokemon.id)
        payload = pokemon.model_dump_json(by_alias=True)
        try:
            # Record, name key and index entry land together or not at all
            async with self._redis.pipeline(transaction=True) as pipe:
                await pipe.watch(key)
                if await pipe.exists(key):
                    logger.debug(f"Pokémon {pokemon.id} already stored; insert skipped.")
                    return False
                pipe.multi()
                pipe.set(key, payload, ex=ttl)
                pipe.set(self._name_key(pokemon.name), pokemon.id, nx=True, ex=ttl)
                pipe.rpush(self._index_key, pokemon.id)
                await pipe.execute()
        except redis.WatchError as e:
            # Also raised when the connection drops mid-transaction
            if await self.reference_for(pokemon.id) is not None:
                logger.debug(f"Pokémon {pokemon.id} was stored concurrently; insert skipped.")
                return False
            raise CacheError(f"Store insert failed for id {pokemon.id}") from e
        except redis.RedisError as e:
            raise CacheError(f"Store insert failed for id {pokemon.id}") from e
        logger.info(f"Stored Pokémon {pokemon.name} (ID: {pokemon.id}).")
        return True

    async def reference_for(self, pokemon_id: int) -> Optional[str]:
        """Store key of the record with `pokemon_id`, or None if it is not stored."""
        try:
            exists = await self._redis.exists(self.pokemon_key(pokemon_id))
        except redis.RedisError as e:
            raise CacheError(f"Store lookup failed for id {pokemon_id}") from e
        return self.pokemon_key(pokemon_id) if exists else None

    async def count(self) -> int:
        try:
            return await self._redis.llen(self._index_key)
        except redis.RedisError as e:
            raise CacheError("Store count failed") from e

    # --- Daily pointer ---
    async def get_daily_cache(self, date_key: str) -> Optional[DailyRandomCache]:
        try:
            raw = await self._redis.get(self._daily_key(date_key))
        except redis.RedisError as e:
            raise CacheError(f"Daily cache lookup failed for {date_key}") from e
        if raw is None:
            return None
        try:
            return DailyRandomCache.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Invalid daily cache entry for {date_key}: {e}")
            return None

    async def upsert_daily_cache(self, date_key: str, pokemon_id: int, reference: Optional[str],
                                 expires_at: datetime) -> DailyRandomCache:
        """Creates or overwrites the pointer for `date_key`; Redis removes it at `expires_at`."""
        entry = DailyRandomCache(date=date_key, pokemon_id=pokemon_id, pokemon=reference, expires_at=expires_at)
        key = self._daily_key(date_key)
        ttl = _seconds_until(expires_at)
        try:
            if ttl <= 0:
                await self._redis.delete(key)
            else:
                await self._redis.set(key, entry.model_dump_json(by_alias=True), ex=ttl)
        except redis.RedisError as e:
            raise CacheError(f"Daily cache write failed for {date_key}") from e
        logger.info(f"Daily Pokémon for {date_key} set to ID {pokemon_id} (expires {expires_at.isoformat()}).")
        return entry

# pokedex/pokedex_data.py

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from .config import settings
from .exceptions import BadRequestError
from .models import Pokemon
from .pokeapi_client import PokeAPIClient, parse_pokemon_id
from .store import PokemonStore

logger = logging.getLogger(__name__)

# --- Helpers ---
def today_key(now: Optional[datetime] = None) -> str:
    """UTC date key (YYYY-MM-DD) for the daily pointer."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).date().isoformat()

async def _cache_pokemon(store: PokemonStore, pokemon: Pokemon) -> None:
    """Write-back after a provider fetch; failures are logged, never raised."""
    try:
        await store.insert_if_absent(pokemon)
    except Exception as e:
        logger.error(f"Error caching Pokémon {pokemon.id}: {e}", exc_info=True)

async def _find_in_store(store: PokemonStore, identifier: str) -> Optional[Pokemon]:
    numeric_id = parse_pokemon_id(identifier)
    if numeric_id is not None:
        pokemon = await store.find_by_id(numeric_id)
        if pokemon is not None:
            return pokemon
    return await store.find_by_name(identifier)

async def get_pokemon_data(identifier: str, store: PokemonStore, pokeapi: PokeAPIClient) -> Pokemon:
    """
    Cache-aside lookup of a single Pokémon by ID or name.

    Args:
        identifier: National Dex ID or name; trimmed and lower-cased here.

    Raises:
        BadRequestError: the identifier is blank.
        ResourceNotFoundError: neither the store nor PokeAPI knows it.
        PokeAPIError: PokeAPI failed for any other reason.
    """
    identifier = (identifier or "").strip().lower()
    if not identifier:
        raise BadRequestError("Pokemon ID or name is required")

    pokemon = await _find_in_store(store, identifier)
    if pokemon is not None:
        logger.info(f"Serving Pokémon '{identifier}' from store.")
        return pokemon

    logger.info(f"Store miss for '{identifier}'; fetching from PokeAPI...")
    pokemon = await pokeapi.fetch_pokemon(identifier)
    await _cache_pokemon(store, pokemon)
    return pokemon

async def get_daily_pokemon_data(store: PokemonStore, pokeapi: PokeAPIClient,
                                 now: Optional[datetime] = None) -> Pokemon:
    """
    Returns the Pokémon of the day, drawing and persisting a new one when
    today's pointer is missing or refers to a record that is gone.
    """
    now = now or datetime.now(timezone.utc)
    date_key = today_key(now)

    daily = await store.get_daily_cache(date_key)
    if daily is not None:
        pokemon = await store.find_by_id(daily.pokemon_id)
        if pokemon is not None:
            logger.info(f"Serving daily Pokémon for {date_key}: {pokemon.name} (ID: {pokemon.id}).")
            return pokemon
        logger.warning(f"Daily pointer for {date_key} refers to missing Pokémon {daily.pokemon_id}; redrawing.")

    random_id = pokeapi.random_pokemon_id()
    pokemon = await store.find_by_id(random_id)
    if pokemon is None:
        fetched = await pokeapi.fetch_pokemon(random_id)
        # Unlike the plain lookup, a failed write here fails the request
        await store.insert_if_absent(fetched)
        pokemon = await store.find_by_id(fetched.id) or fetched

    expires_at = now + timedelta(seconds=settings.daily_cache_ttl_seconds)
    reference = await store.reference_for(pokemon.id)
    await store.upsert_daily_cache(date_key, pokemon.id, reference, expires_at)
    return pokemon

async def search_pokemon_data(query: str, store: PokemonStore, pokeapi: PokeAPIClient) -> List[Pokemon]:
    """
    Searches the store by name, exact ID and type; falls back to PokeAPI only
    when the store has no match at all.
    """
    normalized_query = (query or "").strip().lower()
    if not normalized_query:
        raise BadRequestError("Search query is required")

    matches = await store.find_by_name_fragment(normalized_query)
    numeric_id = parse_pokemon_id(normalized_query)
    if numeric_id is not None:
        by_id = await store.find_by_id(numeric_id)
        if by_id is not None:
            matches.append(by_id)
    matches.extend(await store.find_by_type_fragment(normalized_query))

    # Deduplicate by ID, keeping first-seen order
    unique = {}
    for pokemon in matches:
        unique.setdefault(pokemon.id, pokemon)

    if unique:
        logger.info(f"Search '{normalized_query}' served {len(unique)} result(s) from store.")
        return list(unique.values())

    logger.info(f"Search '{normalized_query}' has no store hits; searching PokeAPI...")
    results = await pokeapi.search_pokemon(normalized_query)
    for pokemon in results:
        await _cache_pokemon(store, pokemon)
    return results

# pokedex/pokeapi_client.py

import httpx
import logging
import random
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Union

from pydantic import ValidationError

from .cache import ResponseCache
from .config import settings
from .exceptions import PokeAPIError, PokeAPIConnectionError, ResourceNotFoundError
from .models import Pokemon

logger = logging.getLogger(__name__)

# Failures that skip a single step or candidate during search
SEARCH_SKIPPABLE_ERRORS = (ResourceNotFoundError, PokeAPIError)


def _id_from_url(url: str) -> Optional[str]:
    """Last non-empty path segment, e.g. '.../pokemon/25/' -> '25'."""
    segments = [s for s in url.split('/') if s]
    return segments[-1] if segments else None

def parse_pokemon_id(value: Optional[str]) -> Optional[int]:
    """Integer for a plain ASCII digit string ('25'), None for anything else ('2_5', '+25', 'pikachu')."""
    if not value or not (value.isascii() and value.isdigit()):
        return None
    return int(value)

def transform_pokemon_data(data: Dict[str, Any]) -> Pokemon:
    """Maps a raw PokeAPI /pokemon response onto our Pokemon record."""
    sprites = data.get('sprites') or {}
    return Pokemon(
        id=data['id'],
        name=data['name'],
        types=[{'name': t['type']['name'], 'url': t['type']['url']} for t in data.get('types', [])],
        stats=[
            {'base_stat': s['base_stat'], 'effort': s.get('effort', 0), 'stat': s['stat']}
            for s in data.get('stats', [])
        ],
        abilities=[
            {'ability': a['ability'], 'is_hidden': a.get('is_hidden', False), 'slot': a['slot']}
            for a in data.get('abilities', [])
        ],
        sprites={
            'front_default': sprites.get('front_default'),
            'front_shiny': sprites.get('front_shiny'),
            'back_default': sprites.get('back_default'),
            'back_shiny': sprites.get('back_shiny'),
            'other': sprites.get('other'),
        },
        height=data.get('height', 0),
        weight=data.get('weight', 0),
        base_experience=data.get('base_experience'),
        cached_at=datetime.now(timezone.utc),
    )


class PokeAPIClient:
    """Thin PokeAPI client: single lookups, best-effort search, random IDs."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = settings.pokeapi_base_url,
        response_cache: Optional[ResponseCache] = None,
    ):
        self._client = http_client
        self.base_url = base_url.rstrip('/')
        self._response_cache = response_cache

    async def _get_json(self, endpoint: str) -> Dict[str, Any]:
        """
        Fetches JSON from a PokeAPI endpoint.

        Args:
            endpoint: Path relative to the base URL (e.g. "/pokemon/pikachu").

        Raises:
            ResourceNotFoundError: PokeAPI answered 404.
            PokeAPIError: any other non-success status.
            PokeAPIConnectionError: the request never got a response.
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        if self._response_cache is not None:
            cached = await self._response_cache.get(url)
            if cached is not None:
                return cached

        logger.debug(f"Fetching data from PokeAPI: {url}")
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                logger.warning(f"Resource not found at {url}")
                raise ResourceNotFoundError(f"PokeAPI resource not found: {endpoint}") from e
            logger.error(f"HTTP error occurred: {e.response.status_code} {e.response.reason_phrase} for url {url}")
            raise PokeAPIError(f"PokeAPI returned {e.response.status_code} for {endpoint}",
                               status_code=e.response.status_code) from e
        except httpx.RequestError as e:
            logger.error(f"An error occurred while requesting {url}: {e!r}")
            raise PokeAPIConnectionError(f"Could not reach PokeAPI for {endpoint}") from e

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Invalid JSON body from {url}: {e}")
            raise PokeAPIError(f"PokeAPI returned an invalid body for {endpoint}",
                               status_code=response.status_code) from e
        if self._response_cache is not None:
            await self._response_cache.set(url, data)
        return data

    async def fetch_pokemon(self, identifier: Union[int, str]) -> Pokemon:
        """Fetches a single Pokémon by National Dex ID or name."""
        data = await self._get_json(f"/pokemon/{identifier}")
        try:
            return transform_pokemon_data(data)
        except (KeyError, TypeError, ValidationError) as e:
            logger.error(f"Unexpected Pokémon payload for '{identifier}': {e}")
            raise PokeAPIError(f"PokeAPI returned an unexpected payload for {identifier}") from e

    async def search_pokemon(self, query: str) -> List[Pokemon]:
        """
        Best-effort search against PokeAPI, which has no search endpoint.

        Tries, in order: an exact numeric ID, a name/URL substring scan of the
        paginated /pokemon listing, then the /type/{query} member list.
        Results are deduplicated by ID; per-Pokémon fetch failures are logged
        and skipped.
        """
        normalized_query = query.lower().strip()

        numeric_id = parse_pokemon_id(normalized_query)
        if numeric_id is not None:
            try:
                return [await self.fetch_pokemon(numeric_id)]
            except SEARCH_SKIPPABLE_ERRORS as e:
                logger.info(f"No Pokémon with ID {numeric_id} ({type(e).__name__}); falling back to name search.")

        results: List[Pokemon] = []
        seen_ids = set()
        specific = len(normalized_query) > settings.search_early_exit_min_length
        batch_size = settings.search_batch_size

        for offset in range(0, settings.search_listing_limit, batch_size):
            try:
                list_data = await self._get_json(f"/pokemon?limit={batch_size}&offset={offset}")
            except PokeAPIConnectionError:
                raise
            except SEARCH_SKIPPABLE_ERRORS as e:
                logger.warning(f"Stopping listing scan at offset {offset}: {e}")
                break

            matching = [
                ref for ref in list_data.get('results', [])
                if normalized_query in ref.get('name', '')
                or f"/pokemon/{normalized_query}/" in ref.get('url', '')
            ]
            for ref in matching:
                pokemon_id = _id_from_url(ref.get('url', ''))
                if not pokemon_id:
                    continue
                try:
                    pokemon = await self.fetch_pokemon(pokemon_id)
                except SEARCH_SKIPPABLE_ERRORS as e:
                    logger.error(f"Error fetching Pokémon {ref.get('name')}: {e}")
                    continue
                if pokemon.id not in seen_ids:
                    seen_ids.add(pokemon.id)
                    results.append(pokemon)

            # Specific queries stop at the first page with a match
            if results and specific:
                break

        try:
            type_data = await self._get_json(f"/type/{normalized_query}")
        except SEARCH_SKIPPABLE_ERRORS as e:
            logger.debug(f"'{normalized_query}' is not a resolvable type: {e}")
            return results

        members = type_data.get('pokemon', [])[:settings.search_type_member_limit]
        for member in members:
            pokemon_id = _id_from_url(member.get('pokemon', {}).get('url', ''))
            if not pokemon_id:
                continue
            try:
                pokemon = await self.fetch_pokemon(pokemon_id)
            except SEARCH_SKIPPABLE_ERRORS as e:
                logger.error(f"Error fetching Pokémon by type '{normalized_query}': {e}")
                continue
            if pokemon.id not in seen_ids:
                seen_ids.add(pokemon.id)
                results.append(pokemon)

        return results

    def random_pokemon_id(self, max_id: int = settings.max_pokemon_id) -> int:
        """Uniformly random ID in 1..max_id inclusive."""
        return random.randint(1, max_id)

# pokedex/clients.py
import httpx
import logging
from typing import Optional

from fastapi import Request

from .config import settings
from .pokeapi_client import PokeAPIClient
from .store import PokemonStore

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(settings.http_timeout_seconds, connect=5.0)

def create_http_client(timeout: httpx.Timeout = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    """Creates the shared httpx client used to talk to PokeAPI."""
    logger.info("Creating httpx client for PokeAPI.")
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        limits=httpx.Limits(max_connections=100, max_keepalive_connections=20)
    )

async def close_http_client(client: Optional[httpx.AsyncClient]):
    """Closes the shared httpx client."""
    if client and not client.is_closed:
        await client.aclose()
        logger.info("PokeAPI httpx client closed.")
    elif client:
        logger.warning("PokeAPI httpx client was already closed.")

# --- FastAPI dependencies ---
# Instances are built once in the app lifespan and kept on app.state

def get_pokemon_store(request: Request) -> PokemonStore:
    return request.app.state.store

def get_pokeapi_client(request: Request) -> PokeAPIClient:
    return request.app.state.pokeapi

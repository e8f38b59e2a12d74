# tests/conftest.py

import httpx
import pytest
import pytest_asyncio
from fakeredis import FakeAsyncRedis, FakeServer

from pokedex.clients import get_pokemon_store, get_pokeapi_client
from pokedex.main import app
from pokedex.pokeapi_client import PokeAPIClient
from pokedex.store import PokemonStore

POKEAPI_BASE = "https://pokeapi.co/api/v2"


def pokemon_payload(pokemon_id, name, types=("normal",), artwork=True):
    """Raw PokeAPI /pokemon/{id} body, trimmed to the fields we read."""
    sprite_base = "https://raw.githubusercontent.com/PokeAPI/sprites/master/sprites/pokemon"
    return {
        "id": pokemon_id, "name": name, "height": 4, "weight": 60,
        "base_experience": 112, "order": 35, "is_default": True,
        "types": [
            {"slot": i + 1, "type": {"name": t, "url": f"{POKEAPI_BASE}/type/{t}/"}}
            for i, t in enumerate(types)
        ],
        "abilities": [{"slot": 1, "is_hidden": False, "ability": {"name": "static", "url": f"{POKEAPI_BASE}/ability/9/"}}],
        "stats": [
            {"stat": {"name": "hp", "url": f"{POKEAPI_BASE}/stat/1/"}, "base_stat": 35, "effort": 0},
            {"stat": {"name": "speed", "url": f"{POKEAPI_BASE}/stat/6/"}, "base_stat": 90, "effort": 2},
        ],
        "sprites": {
            "front_default": f"{sprite_base}/{pokemon_id}.png",
            "front_shiny": f"{sprite_base}/shiny/{pokemon_id}.png",
            "back_default": None,
            "back_shiny": None,
            "other": {"official-artwork": {
                "front_default": f"{sprite_base}/other/official-artwork/{pokemon_id}.png" if artwork else None,
                "front_shiny": None,
            }},
        },
        "species": {"name": name, "url": f"{POKEAPI_BASE}/pokemon-species/{pokemon_id}/"},
    }


@pytest.fixture
def make_payload():
    return pokemon_payload


@pytest.fixture
def fake_server():
    return FakeServer()


@pytest.fixture
def redis_client(fake_server):
    # A fresh FakeServer per test keeps data isolated
    return FakeAsyncRedis(server=fake_server, decode_responses=True)


@pytest.fixture
def store(redis_client):
    return PokemonStore(redis_client, prefix="test", search_limit=20)


@pytest_asyncio.fixture
async def http_client():
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture
def pokeapi(http_client):
    # No response cache so route call counts reflect every provider call
    return PokeAPIClient(http_client, base_url=POKEAPI_BASE)


@pytest_asyncio.fixture
async def api_client(store, pokeapi, redis_client):
    """HTTP client for the app, wired to the fake store and the test PokeAPI client."""
    app.state.redis = redis_client
    app.dependency_overrides[get_pokemon_store] = lambda: store
    app.dependency_overrides[get_pokeapi_client] = lambda: pokeapi
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
    del app.state.redis

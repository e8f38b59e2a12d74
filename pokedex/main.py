# pokedex/main.py

from fastapi import Depends, FastAPI, HTTPException, Path, Query, Request, status
from contextlib import asynccontextmanager
import logging
from typing import List, Optional

from .cache import ResponseCache, create_redis_client, close_redis_client, ping_redis
from .clients import create_http_client, close_http_client, get_pokemon_store, get_pokeapi_client
from .config import settings
from .exceptions import BadRequestError, ResourceNotFoundError
from .models import Pokemon
from .pokeapi_client import PokeAPIClient
from .pokedex_data import get_pokemon_data, get_daily_pokemon_data, search_pokemon_data
from .store import PokemonStore

# Configure logging
logger = logging.getLogger(__name__)
logging.basicConfig(level=settings.log_level, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup phase
    logger.info("Application startup...")
    redis_client = create_redis_client(settings.redis_url)
    http_client = create_http_client()
    app.state.redis = redis_client
    app.state.http_client = http_client
    app.state.store = PokemonStore(redis_client)
    app.state.pokeapi = PokeAPIClient(
        http_client,
        base_url=settings.pokeapi_base_url,
        response_cache=ResponseCache(redis_client),
    )
    if await ping_redis(redis_client):
        logger.info("Redis reachable; Pokémon store ready.")
    else:
        logger.error("Redis is not reachable at startup; store calls will fail until it is.")

    yield # Application runs here

    # Shutdown phase
    logger.info("Application shutdown...")
    await close_http_client(http_client)
    await close_redis_client(redis_client)
    logger.info("Resources cleaned up.")

# Create FastAPI app instance with lifespan manager
app = FastAPI(
    title="Pokedex API",
    description="Browse, search and view Pokémon from PokeAPI, cached in Redis",
    version="1.0.0",
    lifespan=lifespan,
)

# --- API Endpoints ---

@app.get("/")
async def read_root(request: Request):
    """ Basic root endpoint to check if the API is running. """
    redis_ok = await ping_redis(getattr(request.app.state, "redis", None))
    return {
        "message": "Welcome to the Pokedex API!",
        "documentation": "/docs",
        "redis_status": "connected" if redis_ok else "not connected"
    }

# Fixed paths must be registered before /api/pokemon/{identifier}
@app.get(
    "/api/pokemon/random",
    response_model=Pokemon,
    summary="Get the Pokémon of the Day",
    description="Returns a random Pokémon that stays the same for the whole UTC day.",
    tags=["Pokemon"]
)
async def get_daily_pokemon(
    store: PokemonStore = Depends(get_pokemon_store),
    pokeapi: PokeAPIClient = Depends(get_pokeapi_client),
):
    try:
        pokemon = await get_daily_pokemon_data(store, pokeapi)
    except Exception as e:
        logger.error(f"Error fetching daily random Pokémon: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch daily random Pokemon"
        )
    logger.info(f"Returning daily Pokémon: {pokemon.name} (ID: {pokemon.id})")
    return pokemon

@app.get(
    "/api/pokemon/search",
    response_model=List[Pokemon],
    summary="Search Pokémon",
    description="Searches cached Pokémon by name, ID or type, falling back to PokeAPI when nothing is cached.",
    tags=["Pokemon"]
)
async def search_pokemon(
    q: Optional[str] = Query(None, description="Name fragment, National Dex ID or type name."),
    store: PokemonStore = Depends(get_pokemon_store),
    pokeapi: PokeAPIClient = Depends(get_pokeapi_client),
):
    logger.info(f"Received search request: q={q!r}")
    try:
        results = await search_pokemon_data(q, store, pokeapi)
    except BadRequestError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except Exception as e:
        logger.error(f"Error searching Pokémon: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to search Pokemon"
        )
    logger.info(f"Returning {len(results)} search result(s).")
    return results

@app.get(
    "/api/pokemon/{identifier}",
    response_model=Pokemon,
    summary="Get a Specific Pokémon",
    description="Returns a single Pokémon identified by its National Pokédex ID or name.",
    tags=["Pokemon"]
)
async def get_pokemon(
    identifier: str = Path(
        ...,
        description="The National Pokédex ID or name of the Pokémon.",
        examples=["pikachu", "25"]
    ),
    store: PokemonStore = Depends(get_pokemon_store),
    pokeapi: PokeAPIClient = Depends(get_pokeapi_client),
):
    logger.info(f"Received request for Pokémon: '{identifier}'")
    try:
        pokemon = await get_pokemon_data(identifier, store, pokeapi)
    except BadRequestError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except ResourceNotFoundError:
        normalized = identifier.strip().lower()
        logger.warning(f"Pokémon not found for identifier: '{normalized}'")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Pokemon not found: {normalized}"
        )
    except Exception as e:
        logger.error(f"Error fetching Pokémon details for '{identifier}': {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch Pokemon details"
        )
    logger.info(f"Returning details for Pokémon: {pokemon.name} (ID: {pokemon.id})")
    return pokemon

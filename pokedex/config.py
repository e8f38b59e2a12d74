# pokedex/config.py

import os
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
# Useful for local development
env_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), '.env')
load_dotenv(dotenv_path=env_path)

class Settings(BaseSettings):
    """Application settings."""

    # Redis configuration (document store for cached Pokémon + daily pointer)
    # Reads REDIS_URL from environment or .env file
    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "pokedex"

    # PokeAPI base URL
    pokeapi_base_url: str = "https://pokeapi.co/api/v2"
    http_timeout_seconds: float = 10.0

    # How long raw PokeAPI responses may be reused (seconds, 0 disables)
    pokeapi_response_ttl_seconds: int = 60 * 60

    # Highest valid National Dex ID (Gen 9 ends at 1025)
    max_pokemon_id: int = 1025

    # Provider-side search tuning
    search_listing_limit: int = 1300 # Approximate total size of /pokemon listing
    search_batch_size: int = 100
    search_type_member_limit: int = 20
    search_early_exit_min_length: int = 3

    # Per-criterion cap when searching the local store
    store_search_limit: int = 20

    # Pokémon of the day lives for 24 hours
    daily_cache_ttl_seconds: int = 60 * 60 * 24

    log_level: str = "INFO"

    class Config:
        # Specifies the .env file encoding
        env_file_encoding = 'utf-8'


# Create a single instance of the settings to be imported in other modules
settings = Settings()

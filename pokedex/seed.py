#!/usr/bin/env python3
"""
Pre-populate the Pokémon store from PokeAPI.

Usage:
  python -m pokedex.seed                 # curated list of popular Pokémon
  python -m pokedex.seed --all           # every ID from 1 to MAX_POKEMON_ID
  python -m pokedex.seed --ids 25 133    # specific IDs

Already stored Pokémon are skipped, so the script can be re-run safely.
"""

import argparse
import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .cache import create_redis_client, close_redis_client
from .clients import create_http_client, close_http_client
from .config import settings
from .exceptions import ResourceNotFoundError
from .pokeapi_client import PokeAPIClient
from .store import PokemonStore

logger = logging.getLogger(__name__)

# Gen 1 starters and favourites plus a few popular picks from later generations
POPULAR_POKEMON_IDS = [
    1, 4, 7, 25, 39, 52, 54, 56, 58, 60, 63, 66, 72, 74, 77, 79, 81, 84, 86, 88,
    90, 92, 95, 96, 98, 100, 102, 104, 108, 109, 111, 113, 114, 115, 116, 118,
    120, 121, 122, 123, 124, 125, 126, 127, 128, 129, 130, 131, 132, 133, 134,
    135, 136, 137, 138, 139, 140, 141, 142, 143, 144, 145, 146, 147, 148, 149,
    150, 151,
    152, 155, 158, 172, 173, 174, 175, 249, 250, 251,
    387, 390, 393, 494,
    650, 656, 722, 725, 810, 813, 816,
]

@dataclass
class SeedSummary:
    seeded: int = 0
    skipped: int = 0
    errors: int = 0


async def _seed_one(pokemon_id: int, store: PokemonStore, pokeapi: PokeAPIClient, summary: SeedSummary):
    try:
        if await store.find_by_id(pokemon_id) is not None:
            summary.skipped += 1
            return
        pokemon = await pokeapi.fetch_pokemon(pokemon_id)
        if await store.insert_if_absent(pokemon):
            summary.seeded += 1
        else:
            summary.skipped += 1
    except ResourceNotFoundError:
        # Gaps in the ID range are expected
        summary.skipped += 1
    except Exception as e:
        logger.error(f"Error seeding Pokémon #{pokemon_id}: {e}")
        summary.errors += 1

async def seed_pokemon(ids: Iterable[int], store: PokemonStore, pokeapi: PokeAPIClient,
                       batch_size: int = 10, delay: float = 1.0) -> SeedSummary:
    """Fetches and stores `ids` in concurrent batches, pausing `delay` seconds between batches."""
    ids = list(ids)
    summary = SeedSummary()
    for start in range(0, len(ids), batch_size):
        batch = ids[start:start + batch_size]
        logger.info(f"Processing batch: Pokémon #{batch[0]} to #{batch[-1]}...")
        await asyncio.gather(*(_seed_one(pid, store, pokeapi, summary) for pid in batch))
        logger.info(f"Batch complete (Seeded: {summary.seeded}, Skipped: {summary.skipped}, Errors: {summary.errors})")
        if delay and start + batch_size < len(ids):
            await asyncio.sleep(delay) # Be nice to PokeAPI
    return summary

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pokedex-seed", description="Populate the Pokémon store from PokeAPI")
    target = parser.add_mutually_exclusive_group()
    target.add_argument("--all", action="store_true", help=f"Seed every ID from 1 to {settings.max_pokemon_id}")
    target.add_argument("--ids", type=int, nargs="+", help="Specific National Dex IDs to seed")
    parser.add_argument("--batch-size", type=int, default=10, help="Concurrent fetches per batch (default: 10)")
    parser.add_argument("--delay", type=float, default=1.0, help="Seconds to wait between batches (default: 1.0)")
    return parser

def resolve_ids(args: argparse.Namespace) -> List[int]:
    if args.all:
        return list(range(1, settings.max_pokemon_id + 1))
    if args.ids:
        return args.ids
    return POPULAR_POKEMON_IDS

async def run(args: argparse.Namespace) -> SeedSummary:
    redis_client = create_redis_client(settings.redis_url)
    http_client = create_http_client()
    try:
        store = PokemonStore(redis_client)
        pokeapi = PokeAPIClient(http_client, base_url=settings.pokeapi_base_url)
        return await seed_pokemon(resolve_ids(args), store, pokeapi,
                                  batch_size=args.batch_size, delay=args.delay)
    finally:
        await close_http_client(http_client)
        await close_redis_client(redis_client)

def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=settings.log_level, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    args = build_parser().parse_args(argv)
    ids = resolve_ids(args)
    print(f"Seeding {len(ids)} Pokémon into {settings.redis_url}...")
    summary = asyncio.run(run(args))
    print("\nSeed Summary:")
    print(f"   Seeded:  {summary.seeded}")
    print(f"   Skipped: {summary.skipped}")
    print(f"   Errors:  {summary.errors}")
    print(f"   Total:   {len(ids)}")
    return 0

if __name__ == "__main__":
    raise SystemExit(main())

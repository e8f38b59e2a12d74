# pokedex/models.py
from datetime import datetime

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

# Shown when a Pokémon has neither official artwork nor a default sprite
PLACEHOLDER_IMAGE = "/placeholder-pokemon.png"

# --- Basic Named Resources ---
class NamedResource(BaseModel):
    name: str
    url: str

class PokemonType(BaseModel):
    """Represents a Pokémon type."""
    name: str = Field(..., description="Name of the type")
    url: str = Field(..., description="URL to type details on PokeAPI")

class PokemonStat(BaseModel):
    """Represents a base stat for a Pokémon."""
    base_stat: int = Field(..., ge=0, le=255, description="Base stat value")
    effort: int = Field(0, description="Effort value yielded when defeated")
    stat: NamedResource

class PokemonAbility(BaseModel):
    """Represents a Pokémon ability slot."""
    ability: NamedResource
    is_hidden: bool = Field(False, description="Is this a hidden ability")
    slot: int

# --- Sprite Models ---
class OfficialArtwork(BaseModel):
    front_default: Optional[str] = None
    front_shiny: Optional[str] = None

class SpriteOther(BaseModel):
    official_artwork: Optional[OfficialArtwork] = Field(None, alias="official-artwork")

    class Config:
        populate_by_name = True

class PokemonSprites(BaseModel):
    """Sprites for a Pokémon, including the higher resolution official artwork."""
    front_default: Optional[str] = None
    front_shiny: Optional[str] = None
    back_default: Optional[str] = None
    back_shiny: Optional[str] = None
    other: Optional[SpriteOther] = None

    def display_image(self, placeholder: str = PLACEHOLDER_IMAGE) -> str:
        """Official artwork, then the default front sprite, then the placeholder."""
        artwork = self.other.official_artwork if self.other else None
        if artwork and artwork.front_default:
            return artwork.front_default
        if self.front_default:
            return self.front_default
        return placeholder

class Pokemon(BaseModel):
    """A Pokémon record as served by the API and cached in the store."""
    id: int = Field(..., gt=0, description="National Pokédex ID")
    name: str = Field(..., description="Pokémon name (lowercase)")
    types: List[PokemonType] = []
    stats: List[PokemonStat] = []
    abilities: List[PokemonAbility] = []
    sprites: PokemonSprites = Field(default_factory=PokemonSprites)
    height: int = Field(..., description="Height in decimetres")
    weight: int = Field(..., description="Weight in hectograms")
    base_experience: Optional[int] = None
    cached_at: Optional[datetime] = Field(None, alias="cachedAt")
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")

    @field_validator("name")
    @classmethod
    def lowercase_name(cls, value: str) -> str:
        return value.lower()

    @property
    def image_url(self) -> str:
        return self.sprites.display_image()

    class Config:
        populate_by_name = True

class DailyRandomCache(BaseModel):
    """Pointer to the Pokémon of the day, one per UTC date."""
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$", description="UTC date key (YYYY-MM-DD)")
    pokemon_id: int = Field(..., alias="pokemonId")
    pokemon: Optional[str] = Field(None, description="Store key of the referenced Pokémon record")
    expires_at: datetime = Field(..., alias="expiresAt")

    class Config:
        populate_by_name = True

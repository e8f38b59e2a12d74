# pokedex/exceptions.py

class PokedexError(Exception):
    """Base class for errors raised by the Pokedex service."""
    message: str = "An unexpected error occurred."

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        if message:
            self.message = message

class BadRequestError(PokedexError):
    """A required input (identifier, search query) was empty."""
    message = "A required parameter is missing or blank."

class ResourceNotFoundError(PokedexError):
    """The identifier resolves neither in the store nor at PokeAPI."""
    message = "Resource not found."

class PokeAPIError(PokedexError):
    """PokeAPI answered with a non-success, non-404 status."""
    message = "PokeAPI request failed."

    def __init__(self, message: str = None, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code

class PokeAPIConnectionError(PokeAPIError):
    """PokeAPI could not be reached (transport failure, timeout)."""
    message = "Could not connect to PokeAPI."

class CacheError(PokedexError):
    """The Redis-backed store failed outside the tolerated cache-write path."""
    message = "Cache store operation failed."

# pokedex/__init__.py

__version__ = "0.1.0" # Keep version consistent with pyproject.toml

from .memory_catalog import (
    VALID_QUALITIES,
    CuratedCatalog,
    base_imdb_id,
    validate_curated_magnet,
)

__all__ = [
    "VALID_QUALITIES",
    "CuratedCatalog",
    "base_imdb_id",
    "validate_curated_magnet",
]

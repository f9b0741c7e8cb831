"""Repository layer for data access."""

from filestore.repositories.metadata_repository import MetadataRepository
from filestore.repositories.chunk_repository import ChunkRepository

__all__ = [
    "MetadataRepository",
    "ChunkRepository",
]

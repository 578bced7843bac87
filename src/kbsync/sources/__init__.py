"""Inbound source record access and per-type field mapping."""

from .base import SourceRepository
from .mappers import (
    SOURCE_MAPPERS,
    ExtractedContent,
    extract_content,
    project_id_of,
    source_id_of,
    user_id_of,
)
from .memory import InMemorySourceRepository

__all__ = [
    "SOURCE_MAPPERS",
    "ExtractedContent",
    "InMemorySourceRepository",
    "SourceRepository",
    "extract_content",
    "project_id_of",
    "source_id_of",
    "user_id_of",
]

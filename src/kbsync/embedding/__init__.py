"""Embedding module for vector generation.

This module provides the embedder interface, concrete providers, a factory
for creating embedders by name, and the EmbeddingService facade.
"""

from .base import BaseEmbedder
from .factory import EmbedderFactory
from .providers.hashing import HashingEmbedder
from .providers.openai import OpenAIEmbedder
from .service import EmbeddingService

__all__ = [
    "BaseEmbedder",
    "EmbedderFactory",
    "EmbeddingService",
    "HashingEmbedder",
    "OpenAIEmbedder",
]

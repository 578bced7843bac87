from .hashing import HashingEmbedder
from .openai import OpenAIEmbedder

__all__ = ["HashingEmbedder", "OpenAIEmbedder"]

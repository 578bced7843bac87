import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load .env file from the project root
# This file: src/kbsync/config/settings.py
SERVER_ROOT = Path(__file__).resolve().parent.parent.parent.parent
ENV_PATH = SERVER_ROOT / ".env"

if ENV_PATH.exists():
    load_dotenv(ENV_PATH)
else:
    # Fallback to simple load_dotenv which looks in cwd
    load_dotenv()


class Settings(BaseModel):
    """Global Application Settings"""

    # Environment
    ENV: str = Field(default="development", description="Environment: development, production, testing")
    LOG_LEVEL: str = Field(default="INFO", description="Log level")

    # Storage
    DATABASE_URL: str = Field(default="sqlite:///./kbsync.db", description="Knowledge store SQLAlchemy URL")

    # Embedding provider
    EMBEDDING_PROVIDER: str = Field(default="hashing", description="Embedder type: hashing, openai")
    EMBEDDING_BASE_URL: str = Field(default="https://api.openai.com/v1", description="OpenAI-compatible API base URL")
    EMBEDDING_API_KEY: Optional[str] = Field(default=None, description="Embedding API key")
    EMBEDDING_MODEL: str = Field(default="text-embedding-3-small", description="Embedding model name")
    EMBEDDING_BATCH_SIZE: int = Field(default=5, ge=1, description="Texts embedded concurrently per batch")
    EMBEDDING_BATCH_DELAY: float = Field(default=0.1, ge=0, description="Seconds between embedding batches")

    # Sync
    SYNC_BATCH_SIZE: int = Field(default=10, ge=1, description="Source documents per sync batch")
    SYNC_BATCH_DELAY: float = Field(default=1.0, ge=0, description="Seconds between sync batches")
    CHUNK_SIZE: int = Field(default=800, ge=1, description="Chunk window used when indexing")
    CHUNK_OVERLAP: int = Field(default=100, ge=0, description="Chunk overlap used when indexing")

    # Retrieval
    RETRIEVAL_LIMIT: int = Field(default=10, ge=1, description="Maximum results per query")
    SIMILARITY_THRESHOLD: float = Field(default=0.7, ge=-1, le=1, description="Minimum cosine similarity")

    model_config = {
        "frozen": True,
    }


def load_settings() -> Settings:
    """Load settings from environment variables."""
    env = {name: os.environ[name] for name in Settings.model_fields if name in os.environ}
    return Settings(**env)


# Global settings instance
settings = load_settings()

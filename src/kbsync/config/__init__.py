"""Configuration system for kbsync."""

from .factory import Engine, build_engine, create_embedding_service
from .settings import Settings, load_settings, settings

__all__ = ["Engine", "Settings", "build_engine", "create_embedding_service", "load_settings", "settings"]

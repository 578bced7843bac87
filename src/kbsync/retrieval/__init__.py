"""Similarity retrieval and report-context formatting."""

from .service import (
    DEFAULT_SOURCE_TYPES,
    EMPTY_CONTEXT,
    RetrievalService,
    build_report_context,
)

__all__ = [
    "DEFAULT_SOURCE_TYPES",
    "EMPTY_CONTEXT",
    "RetrievalService",
    "build_report_context",
]

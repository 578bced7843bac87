"""
Inbound record access.

The engine never owns the domain records it indexes. The host application
exposes them through a ``SourceRepository``: read-only snapshots as plain
mappings with snake_case keys, scoped by organization and optionally project.
"""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from ..entities.knowledge_chunk import SourceType


@runtime_checkable
class SourceRepository(Protocol):
    """Protocol for the host's data-access layer."""

    async def list_records(
        self,
        organization_id: str,
        source_type: SourceType,
        project_id: str | None = None,
    ) -> list[Mapping[str, Any]]:
        """Return the records of one source type visible to the organization.

        When ``project_id`` is given, only records belonging to that project
        are returned.
        """
        ...

    async def count_records(self, organization_id: str, source_type: SourceType) -> int:
        """Return the number of live records of one source type."""
        ...

    async def get_project(self, project_id: str) -> Mapping[str, Any] | None:
        """Return the project record, or None if it does not exist."""
        ...

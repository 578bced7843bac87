from collections import defaultdict
from collections.abc import Mapping
from typing import Any

from ..entities.knowledge_chunk import SourceType
from .mappers import project_id_of, source_id_of

# Activity streams are unbounded; only the most recent entries are indexed
DEFAULT_ACTIVITY_LIMIT = 1000


class InMemorySourceRepository:
    """
    Dict-backed SourceRepository for tests and scripts.

    Projects, teams and activity entries carry their own ``organization_id``.
    Tasks, reports, comments and attachments are scoped through the project
    they belong to, the same way the host database resolves them.

    Example:
        >>> repo = InMemorySourceRepository()
        >>> repo.add(SourceType.PROJECT, {"id": "p1", "organization_id": "org-1", "name": "Alpha"})
        >>> repo.add(SourceType.TASK, {"id": "t1", "project_id": "p1", "name": "Kickoff"})
    """

    def __init__(self, activity_limit: int = DEFAULT_ACTIVITY_LIMIT):
        self.activity_limit = activity_limit
        self._records: dict[SourceType, dict[str, dict[str, Any]]] = defaultdict(dict)

    def add(self, source_type: SourceType | str, record: Mapping[str, Any]) -> None:
        """Insert or replace a record (keyed by its id)."""
        self._records[SourceType(source_type)][source_id_of(record)] = dict(record)

    def remove(self, source_type: SourceType | str, source_id: str) -> bool:
        return self._records[SourceType(source_type)].pop(str(source_id), None) is not None

    def _org_project_ids(self, organization_id: str) -> set[str]:
        return {
            pid
            for pid, project in self._records[SourceType.PROJECT].items()
            if project.get("organization_id") == organization_id
        }

    def _visible(self, organization_id: str, source_type: SourceType) -> list[dict[str, Any]]:
        records = list(self._records[source_type].values())
        if source_type in (SourceType.PROJECT, SourceType.TEAM, SourceType.USER_ACTIVITY):
            visible = [r for r in records if r.get("organization_id") == organization_id]
        else:
            project_ids = self._org_project_ids(organization_id)
            visible = [r for r in records if project_id_of(r, source_type) in project_ids]

        if source_type == SourceType.USER_ACTIVITY:
            visible.sort(key=lambda r: str(r.get("timestamp") or ""), reverse=True)
            visible = visible[: self.activity_limit]
        return visible

    async def list_records(
        self,
        organization_id: str,
        source_type: SourceType,
        project_id: str | None = None,
    ) -> list[Mapping[str, Any]]:
        source_type = SourceType(source_type)
        records = self._visible(organization_id, source_type)
        if project_id is not None:
            records = [r for r in records if project_id_of(r, source_type) == project_id]
        return [dict(r) for r in records]

    async def count_records(self, organization_id: str, source_type: SourceType) -> int:
        return len(self._visible(organization_id, SourceType(source_type)))

    async def get_project(self, project_id: str) -> Mapping[str, Any] | None:
        project = self._records[SourceType.PROJECT].get(str(project_id))
        return dict(project) if project is not None else None

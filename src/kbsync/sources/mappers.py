"""
Per-source-type field mapping.

Each source type has one pure function turning a read-only record snapshot
into ``ExtractedContent(title, content)``; ``extract_content`` dispatches on
``SourceType``. Records are plain mappings with snake_case keys as exposed by
the host's data-access layer; missing fields render as a readable placeholder.
Comments and attachments are defined by their text and file name: without
one, the mapper returns empty content and the record is not indexed.
"""

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from ..entities.knowledge_chunk import MAX_CONTENT_LENGTH, MAX_TITLE_LENGTH, SourceType

Record = Mapping[str, Any]

REPORT_CONTENT_PREVIEW = 3000


@dataclass(frozen=True)
class ExtractedContent:
    title: str
    content: str

    @property
    def is_empty(self) -> bool:
        return not self.content.strip()


def _fmt(value: Any, default: str = "Unknown") -> str:
    if value is None or value == "":
        return default
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _lines(*pairs: tuple[str, Any, str]) -> str:
    return "\n".join(f"{label}: {_fmt(value, default)}" for label, value, default in pairs)


def _json(value: Any) -> str:
    return json.dumps(value or {}, default=str, sort_keys=True)


def _blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def map_project(record: Record) -> ExtractedContent:
    content = _lines(
        ("Project Name", record.get("name"), "Untitled"),
        ("Description", record.get("description"), "No description provided"),
        ("Status", record.get("status"), "Unknown"),
        ("Owner", record.get("owner"), "Unknown"),
        ("Created Date", record.get("created_date"), "Unknown"),
        ("Due Date", record.get("due_date") or record.get("finish_date"), "Not set"),
    )
    repo = record.get("github_repository") or {}
    if repo.get("connected"):
        content += "\n" + _lines(
            ("GitHub Repository", repo.get("repository_full_name") or repo.get("repository_name"), "Unknown"),
            ("Repository URL", repo.get("repository_url"), "Unknown"),
            ("Language", repo.get("language"), "Unknown"),
            ("Stars", repo.get("stars"), "0"),
            ("Forks", repo.get("forks"), "0"),
        )
    return ExtractedContent(f"Project: {_fmt(record.get('name'), 'Untitled')}", content)


def map_task(record: Record) -> ExtractedContent:
    content = _lines(
        ("Task Name", record.get("name"), "Untitled"),
        ("Description", record.get("description"), "No description provided"),
        ("Type", record.get("type"), "Unknown"),
        ("Priority", record.get("priority"), "Medium"),
        ("Status", record.get("status"), "Unknown"),
        ("Assignee", record.get("assigned_to"), "Unassigned"),
        ("Project ID", record.get("project_id"), "Unknown"),
        ("Created Date", record.get("created_date"), "Unknown"),
        ("Assigned Date", record.get("assigned_date"), "Not assigned"),
        ("Due Date", record.get("due_date"), "Not set"),
        ("Created By", record.get("created_by"), "Unknown"),
    )
    return ExtractedContent(f"Task: {_fmt(record.get('name'), 'Untitled')}", content)


def map_user_activity(record: Record) -> ExtractedContent:
    content = _lines(
        ("Activity Type", record.get("type"), "Unknown"),
        ("User", record.get("user"), "Unknown"),
        ("Status", record.get("status"), "Unknown"),
        ("Timestamp", record.get("timestamp"), "Unknown"),
        ("Details", record.get("details"), "No additional details"),
    )
    return ExtractedContent(f"Activity: {_fmt(record.get('type'))}", content)


def map_report(record: Record) -> ExtractedContent:
    period = record.get("period") or {}
    body = record.get("content") or {}
    raw = body.get("raw_content") or ""
    content = _lines(
        ("Report Type", record.get("report_type"), "Unknown"),
        ("Generated At", record.get("generated_at"), "Unknown"),
        ("Project ID", record.get("project_id"), "Unknown"),
        ("Period Start", period.get("start_date"), "Unknown"),
        ("Period End", period.get("end_date"), "Unknown"),
        ("Content", raw[:REPORT_CONTENT_PREVIEW], "No content available"),
    )
    content += "\n" + "\n".join([
        f"Metrics: {_json(body.get('metrics'))}",
        f"Risk Assessment: {_json(body.get('risk_assessment'))}",
        f"Team Performance: {_json(body.get('team_performance'))}",
    ])
    return ExtractedContent(f"Report: {_fmt(record.get('report_type'))}", content)


def map_team(record: Record) -> ExtractedContent:
    members = [
        _fmt(m.get("name") if isinstance(m, Mapping) else m, "")
        for m in record.get("members") or []
    ]
    content = _lines(
        ("Team Name", record.get("name"), "Untitled"),
        ("Description", record.get("description"), "No description provided"),
        ("Created Date", record.get("created_date"), "Unknown"),
        ("Team Members", ", ".join(m for m in members if m), "No members"),
    )
    return ExtractedContent(f"Team: {_fmt(record.get('name'), 'Untitled')}", content)


def map_comment(record: Record) -> ExtractedContent:
    title = f"Comment on {_fmt(record.get('parent_type'), 'item')}"
    if _blank(record.get("content")):
        return ExtractedContent(title, "")
    content = _lines(
        ("Comment", record.get("content"), ""),
        ("Author", record.get("author"), "Unknown"),
        ("Parent Type", record.get("parent_type"), "Unknown"),
        ("Parent ID", record.get("parent_id"), "Unknown"),
        ("Created Date", record.get("created_date"), "Unknown"),
        ("Modified Date", record.get("modified_date"), "Not modified"),
    )
    return ExtractedContent(title, content)


def map_attachment(record: Record) -> ExtractedContent:
    title = f"Attachment: {_fmt(record.get('original_name'), 'Unnamed file')}"
    if _blank(record.get("original_name")):
        return ExtractedContent(title, "")
    content = _lines(
        ("File Name", record.get("original_name"), ""),
        ("File Type", record.get("mimetype"), "Unknown"),
        ("File Size", f"{record['size']} bytes" if record.get("size") is not None else None, "Unknown"),
        ("Uploaded By", record.get("uploaded_by"), "Unknown"),
        ("Parent Type", record.get("parent_type"), "Unknown"),
        ("Parent ID", record.get("parent_id"), "Unknown"),
        ("Upload Date", record.get("upload_date"), "Unknown"),
        ("Description", record.get("description"), "No description provided"),
    )
    return ExtractedContent(title, content)


SOURCE_MAPPERS: dict[SourceType, Callable[[Record], ExtractedContent]] = {
    SourceType.PROJECT: map_project,
    SourceType.TASK: map_task,
    SourceType.USER_ACTIVITY: map_user_activity,
    SourceType.REPORT: map_report,
    SourceType.TEAM: map_team,
    SourceType.COMMENT: map_comment,
    SourceType.ATTACHMENT: map_attachment,
}


def extract_content(record: Record, source_type: SourceType | str) -> ExtractedContent:
    """Map a record to its title and content, truncated to storage limits.

    Raises:
        ValueError: If source_type is not a known SourceType
    """
    extracted = SOURCE_MAPPERS[SourceType(source_type)](record)
    return ExtractedContent(
        title=extracted.title[:MAX_TITLE_LENGTH],
        content=extracted.content[:MAX_CONTENT_LENGTH],
    )


# ==================== Record identity ====================

def source_id_of(record: Record) -> str:
    """Return the record id as a string (``id``, falling back to ``_id``)."""
    value = record.get("id", record.get("_id"))
    if value is None or value == "":
        raise ValueError("Source record has no id")
    return str(value)


def project_id_of(record: Record, source_type: SourceType | str) -> str | None:
    """Return the project a record belongs to, or None for org-wide records."""
    source_type = SourceType(source_type)
    if source_type == SourceType.PROJECT:
        return source_id_of(record)
    if source_type == SourceType.TEAM:
        return None

    project_id = record.get("project_id")
    if not project_id and source_type in (SourceType.COMMENT, SourceType.ATTACHMENT):
        if str(record.get("parent_type", "")).lower() == "project":
            project_id = record.get("parent_id")
    return str(project_id) if project_id else None


def user_id_of(record: Record) -> str | None:
    """Return the user who created or owns the record, if known."""
    for key in ("created_by", "user_id", "owner", "uploaded_by", "author"):
        value = record.get(key)
        if value:
            return str(value)
    return None

"""
Data models for parsed task lines.

This module defines the Task record produced by the markdown parser and the
metadata dialects it understands.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any


class MetadataFormat(str, Enum):
    """
    Metadata dialect preference for task lines.

    TASKS is the inline emoji notation (``📅 2024-05-01``), DATAVIEW the
    bracketed key-value notation (``[due:: 2024-05-01]``).
    """

    TASKS = "tasks"
    DATAVIEW = "dataview"

    @classmethod
    def from_value(cls, value: str | MetadataFormat) -> MetadataFormat:
        """Resolve a dialect from its name, raising ValueError if unknown."""
        if isinstance(value, MetadataFormat):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            supported = ", ".join(member.value for member in cls)
            raise ValueError(
                f"Unsupported metadata format: {value}. Supported formats: {supported}"
            ) from None


@dataclass(frozen=True)
class Task:
    """
    A single task line with its extracted metadata.

    Tasks are immutable; an edited line is parsed into a new Task and
    compared against the old one with ``diff_tasks``.
    """

    id: str
    content: str
    status: str
    original_markdown: str
    file_path: str
    line: int
    tags: tuple[str, ...] = ()
    priority: int | None = None
    start_date: date | None = None
    due_date: date | None = None
    scheduled_date: date | None = None
    completed_date: date | None = None
    created_date: date | None = None
    recurrence: str | None = None
    project: str | None = None
    context: str | None = None

    @property
    def completed(self) -> bool:
        return self.status.lower() == "x"

    def to_dict(self) -> dict[str, Any]:
        """Convert task to dictionary format for JSON serialization."""
        result: dict[str, Any] = {
            "id": self.id,
            "content": self.content,
            "status": self.status,
            "completed": self.completed,
            "originalMarkdown": self.original_markdown,
            "filePath": self.file_path,
            "line": self.line,
            "tags": list(self.tags),
        }
        optional = {
            "priority": self.priority,
            "startDate": self.start_date,
            "dueDate": self.due_date,
            "scheduledDate": self.scheduled_date,
            "completedDate": self.completed_date,
            "createdDate": self.created_date,
            "recurrence": self.recurrence,
            "project": self.project,
            "context": self.context,
        }
        for key, value in optional.items():
            if value is None:
                continue
            result[key] = value.isoformat() if isinstance(value, date) else value
        return result


@dataclass
class ParseSummary:
    """Counts gathered while parsing a whole document."""

    tasks: int = 0
    completed: int = 0
    projects: set[str] = field(default_factory=set)
    tags: dict[str, int] = field(default_factory=dict)

    def add(self, task: Task) -> None:
        self.tasks += 1
        if task.completed:
            self.completed += 1
        if task.project:
            self.projects.add(task.project)
        for tag in task.tags:
            self.tags[tag] = self.tags.get(tag, 0) + 1


def generate_task_id(file_path: str, line_number: int) -> str:
    """Derive a task id from its location; stable only while the line stays put."""
    return f"{file_path}-L{line_number}"


def diff_tasks(old: Task, new: Task) -> set[str]:
    """
    Work out which displayed aspects changed between two versions of a task.

    Args:
        old: Previously rendered task
        new: Freshly parsed task

    Returns:
        Subset of {"completed", "priority", "content", "metadata"}
    """
    changed: set[str] = set()
    if old.completed != new.completed:
        changed.add("completed")
    if old.priority != new.priority:
        changed.add("priority")
    if (
        old.original_markdown != new.original_markdown
        or old.content != new.content
    ):
        changed.add("content")
    if (
        old.due_date != new.due_date
        or old.completed_date != new.completed_date
        or old.tags != new.tags
        or old.priority != new.priority
    ):
        changed.add("metadata")
    return changed

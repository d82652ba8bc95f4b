"""
Indentation-based task hierarchy queries.

These functions locate a task's parent line and a parent's direct children
by comparing raw leading-whitespace lengths in a LineBuffer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .buffer import LineBuffer
from .markdown_parser import TASK_MARKER

TASK_MARKER_PATTERN = re.compile(r"^([ \t]*)" + TASK_MARKER)
HEADING_PATTERN = re.compile(r"^#{1,6}\s")
BLOCKQUOTE_PATTERN = re.compile(r"^[ \t]*>")
INDENT_PATTERN = re.compile(r"^[ \t]*")


@dataclass(frozen=True)
class ParentTask:
    line_number: int
    indent: int


@dataclass(frozen=True)
class ChildTask:
    line_number: int
    status: str
    text: str


def leading_whitespace(text: str) -> str:
    match = INDENT_PATTERN.match(text)
    return match.group(0) if match else ""


def indent_level(text: str) -> int:
    """Raw length of the leading whitespace run; tabs count as one."""
    return len(leading_whitespace(text))


def task_status(text: str) -> Optional[str]:
    """Status character of a task line, or None if the line is not a task."""
    match = TASK_MARKER_PATTERN.match(text)
    return match.group(3) if match else None


def status_offset(text: str) -> Optional[int]:
    """Offset of the status character within a task line."""
    match = TASK_MARKER_PATTERN.match(text)
    return match.start(3) if match else None


def _is_structural(text: str) -> bool:
    return bool(HEADING_PATTERN.match(text) or BLOCKQUOTE_PATTERN.match(text))


def find_parent(buffer: LineBuffer, line_number: int) -> Optional[ParentTask]:
    """
    Find the nearest enclosing parent task of a line.

    Walks upwards skipping blank lines. The first line with smaller
    indentation is the parent if it is a task; headings and blockquotes are
    walked past, anything else ends the search. Candidates indented with a
    different unit (tabs vs. spaces) are ignored.

    Args:
        buffer: Document snapshot
        line_number: 1-based line of the child

    Returns:
        ParentTask, or None if the line has no parent task
    """
    current_indent = leading_whitespace(buffer.line(line_number).text)
    current_level = len(current_indent)

    if current_level == 0:
        return None

    uses_spaces = " " in current_indent
    uses_tabs = "\t" in current_indent

    for number in range(line_number - 1, 0, -1):
        text = buffer.line(number).text
        if not text.strip():
            continue

        indent = leading_whitespace(text)
        level = len(indent)

        if level > 0:
            if (uses_spaces and " " not in indent) or (uses_tabs and "\t" not in indent):
                continue

        if level < current_level:
            if task_status(text) is not None:
                return ParentTask(line_number=number, indent=level)
            if not _is_structural(text):
                break

    return None


def expected_child_indent(parent_indent: int, child_indent_text: str, tab_width: int) -> int:
    """
    Indentation a direct child is expected to have.

    Tab-indented lists step by one tab character; space-indented lists by
    the configured tab width.
    """
    if child_indent_text.endswith("\t"):
        return parent_indent + 1
    return parent_indent + tab_width


def direct_children(
    buffer: LineBuffer,
    parent_line: int,
    parent_indent: int,
    child_indent: int,
) -> list[ChildTask]:
    """
    Collect the direct child tasks of a parent line.

    Walks downwards until the first non-blank line indented no deeper than
    the parent. Only task lines at exactly ``child_indent`` whose
    indentation extends the parent's own indentation count; deeper lines are
    skipped without ending the walk.

    Args:
        buffer: Document snapshot
        parent_line: 1-based line of the parent task
        parent_indent: Raw indentation length of the parent
        child_indent: Raw indentation length expected for direct children

    Returns:
        Direct children in document order
    """
    parent_indent_text = leading_whitespace(buffer.line(parent_line).text)
    children: list[ChildTask] = []

    for number in range(parent_line + 1, buffer.line_count + 1):
        text = buffer.line(number).text
        if not text.strip():
            continue

        level = indent_level(text)
        if level <= parent_indent:
            break

        if level == child_indent and text.startswith(parent_indent_text):
            status = task_status(text)
            if status is not None:
                children.append(ChildTask(line_number=number, status=status, text=text))

    return children

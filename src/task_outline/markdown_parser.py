"""
Markdown task line parser.

This module turns a single outline line into a Task record. Supported syntax:
- List items (-, *, + or 1.) followed by a [status] checkbox, optionally
  indented or inside a blockquote
- Inline emoji metadata (Tasks dialect): 📅 due, ⏳ scheduled, 🛫 start,
  ✅ completion, ➕ created, 🔁 recurrence, 🔺⏫🔼🔽⏬ priority
- Bracketed key-value metadata (Dataview dialect): [due:: 2024-05-01],
  [priority:: high], [project:: Work/Q3], [context:: home]
- Projects as #project/<path> tags, contexts as @word
- Tags using #hashtag format, ignoring anything inside links
- Whole documents, skipping fenced code blocks
"""

import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, NamedTuple, Optional

from .models import MetadataFormat, ParseSummary, Task, generate_task_id

logger = logging.getLogger(__name__)

# List marker and checkbox; shared with the indentation analyzer
TASK_MARKER = r"(-|\d+\.|\*|\+)\s\[(.)\]"
TASK_PATTERN = re.compile(r"^(([\s>]*)?" + TASK_MARKER + r")\s*(.*)$")
CODE_FENCE_PATTERN = re.compile(r"^\s*(```|~~~)")

DATE_VALUE = r"(\d{4}-\d{2}-\d{2})"


class FieldSyntax(NamedTuple):
    """The two notations a single metadata field can be written in."""

    tasks: re.Pattern[str]
    dataview: re.Pattern[str]


def _dataview_field(keys: str, value: str = r"([^\]]+)") -> re.Pattern[str]:
    return re.compile(rf"\[(?:{keys})::\s*{value}\]", re.IGNORECASE)


# Dates are tried in this order: due, scheduled, start, completion, created
DATE_FIELDS: dict[str, FieldSyntax] = {
    "due_date": FieldSyntax(
        re.compile(r"📅\s*" + DATE_VALUE),
        _dataview_field("due|🗓️?|📅", DATE_VALUE),
    ),
    "scheduled_date": FieldSyntax(
        re.compile(r"⏳\s*" + DATE_VALUE),
        _dataview_field("scheduled|⏳", DATE_VALUE),
    ),
    "start_date": FieldSyntax(
        re.compile(r"🛫\s*" + DATE_VALUE),
        _dataview_field("start|🛫", DATE_VALUE),
    ),
    "completed_date": FieldSyntax(
        re.compile(r"✅\s*" + DATE_VALUE),
        _dataview_field("completion|✅", DATE_VALUE),
    ),
    "created_date": FieldSyntax(
        re.compile(r"➕\s*" + DATE_VALUE),
        _dataview_field("created|➕", DATE_VALUE),
    ),
}

RECURRENCE = FieldSyntax(
    re.compile(
        r"(?<!\[)🔁(?!::)\s*(.*?)"
        r"(?=\s(?:📅|🗓|🛫|⏳|✅|➕|🔁|🔺|⏫|🔼|🔽|⏬|\[#[A-E]\]|\[[^\[\]]+?::|@|#)|$)"
    ),
    _dataview_field("repeat|recurrence|🔁"),
)

PRIORITY = FieldSyntax(
    re.compile(r"(🔺|⏫|🔼|🔽|⏬️?|\[#[A-E]\])"),
    _dataview_field("priority"),
)

PROJECT_PREFIX = "#project/"
PROJECT = FieldSyntax(
    re.compile(re.escape(PROJECT_PREFIX) + r"([\w/-]+)"),
    _dataview_field("project"),
)

CONTEXT_TOKEN_PATTERN = re.compile(r"(?<!\S)@([\w-]+)")
CONTEXT = FieldSyntax(CONTEXT_TOKEN_PATTERN, _dataview_field("context"))

TAG_PATTERN = re.compile(
    r"#[^\u2000-\u206F\u2E00-\u2E7F'!\"#$%&()*+,.:;<=>?@^`{|}~\[\]\\\s]+"
)

# Spans masked out before tag and context scanning
WIKI_LINK_PATTERN = re.compile(r"\[\[[^\[\]]+\]\]")
MARKDOWN_LINK_PATTERN = re.compile(r"\[[^\[\]]*\]\(.*?\)")
DATAVIEW_FIELD_PATTERN = re.compile(r"\[[^\[\]]+?::[^\]]*\]")

PRIORITY_MAP: dict[str, int] = {
    "🔺": 5,
    "⏫": 4,
    "🔼": 3,
    "🔽": 2,
    "⏬️": 1,
    "⏬": 1,
    "[#A]": 5,
    "[#B]": 4,
    "[#C]": 3,
    "[#D]": 2,
    "[#E]": 1,
    "highest": 5,
    "high": 4,
    "medium": 3,
    "low": 2,
    "lowest": 1,
}


class TaskLineParser:
    """
    Parser for single task lines.

    Every field is first looked up in the preferred metadata dialect and, if
    that fails, in the other one, so a line may mix both notations.
    Extraction runs in a fixed order (dates, recurrence, priority, project,
    context, tags) and each step cuts its match out of the remaining content
    before the next step runs.
    """

    def __init__(self, metadata_format: MetadataFormat = MetadataFormat.TASKS) -> None:
        self.metadata_format = MetadataFormat.from_value(metadata_format)

    def parse_line(self, file_path: str, line: str, line_number: int) -> Optional[Task]:
        """
        Parse one line into a Task.

        Args:
            file_path: Path of the file the line belongs to
            line: The raw line text
            line_number: 1-based line number

        Returns:
            Task object, or None if the line is not a task
        """
        task_match = TASK_PATTERN.match(line)
        if not task_match:
            return None

        status = task_match.group(4)
        task_info = self._parse_task_content(task_match.group(5))

        return Task(
            id=generate_task_id(file_path, line_number),
            content=task_info.pop("content"),
            status=status,
            original_markdown=line,
            file_path=file_path,
            line=line_number,
            **task_info,
        )

    def _parse_task_content(self, content: str) -> dict[str, Any]:
        """
        Extract metadata fields from the text following the checkbox.

        Args:
            content: The task content string

        Returns:
            Dictionary of Task fields, including the cleaned "content"
        """
        result: dict[str, Any] = {}

        for field_name, syntax in DATE_FIELDS.items():
            value, content = self._extract_field(
                content, syntax, lambda raw, _: self._parse_date(raw)
            )
            if value is not None:
                result[field_name] = value

        recurrence, content = self._extract_field(
            content, RECURRENCE, lambda raw, _: raw.strip() or None, mask_links=True
        )
        if recurrence:
            result["recurrence"] = recurrence

        priority, content = self._extract_field(
            content, PRIORITY, self._parse_priority, mask_links=True
        )
        if priority is not None:
            result["priority"] = priority

        # Project and context come before tags so #project/x is not left as a tag
        project, content = self._extract_field(
            content, PROJECT, lambda raw, _: raw.strip() or None, mask_links=True
        )
        if project:
            result["project"] = project

        context, content = self._extract_field(
            content, CONTEXT, lambda raw, _: raw.strip() or None, mask_links=True
        )
        if context:
            result["context"] = context

        tags, content = self._extract_tags(content)
        result["tags"] = tags

        result["content"] = self._clean_text(content)
        return result

    def _preferred(self, syntax: FieldSyntax) -> list[tuple[MetadataFormat, re.Pattern[str]]]:
        ordered = [
            (MetadataFormat.TASKS, syntax.tasks),
            (MetadataFormat.DATAVIEW, syntax.dataview),
        ]
        if self.metadata_format is MetadataFormat.DATAVIEW:
            ordered.reverse()
        return ordered

    def _extract_field(
        self,
        content: str,
        syntax: FieldSyntax,
        convert: Callable[[str, MetadataFormat], Any],
        mask_links: bool = False,
    ) -> tuple[Any, str]:
        """
        Find the first usable match for a field and cut it from the content.

        Args:
            content: Remaining task content
            syntax: Patterns for both dialects
            convert: Turns the captured text into a field value, or None
            mask_links: Ignore inline-dialect matches inside links

        Returns:
            (value, remaining content); value is None when nothing matched
        """
        for dialect, pattern in self._preferred(syntax):
            link_spans: list[tuple[int, int]] = []
            haystack = content
            if mask_links and dialect is MetadataFormat.TASKS:
                link_spans = self._link_spans(content)
                haystack = self._mask_links(content, link_spans)
            match = pattern.search(haystack)
            if not match:
                continue

            # A value never runs into a link; stop it where the first one starts
            start, end = match.span()
            value_start, value_end = match.span(1)
            for span_start, _ in link_spans:
                if value_start <= span_start < value_end:
                    value_end = end = span_start
                    break

            value = convert(content[value_start:value_end], dialect)
            if value is not None:
                return value, self._cut_spans(content, [(start, end)])
        return None, content

    def _extract_tags(self, content: str) -> tuple[tuple[str, ...], str]:
        """
        Collect #tags and drop leftover @contexts outside of links.

        Args:
            content: Remaining task content

        Returns:
            (tags in source order, content with tags and contexts removed)
        """
        if self.metadata_format is MetadataFormat.DATAVIEW:
            content = DATAVIEW_FIELD_PATTERN.sub(" ", content)

        masked = self._mask_links(content)
        tag_matches = list(TAG_PATTERN.finditer(masked))
        spans = [match.span() for match in tag_matches]
        spans.extend(match.span() for match in CONTEXT_TOKEN_PATTERN.finditer(masked))

        tags = tuple(match.group(0) for match in tag_matches)
        return tags, self._cut_spans(content, spans)

    def _link_spans(self, content: str) -> list[tuple[int, int]]:
        """Spans of links and bracketed fields, sorted by position."""
        spans: list[tuple[int, int]] = []
        for pattern in (WIKI_LINK_PATTERN, MARKDOWN_LINK_PATTERN, DATAVIEW_FIELD_PATTERN):
            for match in pattern.finditer(content):
                start, end = match.span()
                if any(start < taken_end and taken_start < end for taken_start, taken_end in spans):
                    continue
                spans.append((start, end))
        return sorted(spans)

    def _mask_links(
        self, content: str, spans: Optional[list[tuple[int, int]]] = None
    ) -> str:
        """
        Replace link and bracketed-field spans with equal-length whitespace.

        Args:
            content: Text to mask
            spans: Precomputed link spans of the content

        Returns:
            Masked text with the same length as the input
        """
        if spans is None:
            spans = self._link_spans(content)

        masked = content
        for start, end in spans:
            masked = masked[:start] + " " * (end - start) + masked[end:]
        return masked

    def _cut_spans(self, content: str, spans: list[tuple[int, int]]) -> str:
        """Remove spans from content, leaving a single space in place of each."""
        result = content
        last_start = len(content) + 1
        for start, end in sorted(spans, reverse=True):
            if end > last_start:
                continue
            result = result[:start] + " " + result[end:]
            last_start = start
        return result

    def _parse_priority(self, raw: str, dialect: MetadataFormat) -> Optional[int]:
        """
        Map a priority token to 1-5.

        Args:
            raw: Captured priority token or bracketed value
            dialect: Which notation produced the token

        Returns:
            Priority between 1 and 5, or None if unrecognized
        """
        value = raw.strip()
        if dialect is MetadataFormat.DATAVIEW:
            value = value.lower()

        mapped = PRIORITY_MAP.get(value)
        if mapped is not None:
            return mapped

        if dialect is MetadataFormat.DATAVIEW:
            try:
                number = int(value)
            except ValueError:
                return None
            if 1 <= number <= 5:
                return number
        return None

    def _parse_date(self, date_str: str) -> Optional[date]:
        """
        Parse a YYYY-MM-DD string as a local calendar date.

        Args:
            date_str: Date string

        Returns:
            date object, or None if the components are invalid
        """
        try:
            return datetime.strptime(date_str, "%Y-%m-%d").date()
        except ValueError:
            logger.warning(f"Invalid date encountered: {date_str}")
            return None

    def _clean_text(self, text: str) -> str:
        """Collapse whitespace runs and trim."""
        return re.sub(r"\s{2,}", " ", text).strip()


def parse_task_line(
    file_path: str,
    line: str,
    line_number: int,
    metadata_format: MetadataFormat = MetadataFormat.TASKS,
) -> Optional[Task]:
    """Parse a single line; returns None if the line is not a task."""
    return TaskLineParser(metadata_format).parse_line(file_path, line, line_number)


def parse_document(
    text: str,
    file_path: str = "",
    metadata_format: MetadataFormat = MetadataFormat.TASKS,
) -> list[Task]:
    """
    Parse every task line of a markdown document.

    Lines inside fenced code blocks are skipped.

    Args:
        text: Document content
        file_path: Path used to derive task ids
        metadata_format: Preferred metadata dialect

    Returns:
        Tasks in document order
    """
    parser = TaskLineParser(metadata_format)
    tasks: list[Task] = []
    in_code_block = False

    for line_number, line in enumerate(text.splitlines(), start=1):
        if CODE_FENCE_PATTERN.match(line):
            in_code_block = not in_code_block
            continue
        if in_code_block:
            continue

        task = parser.parse_line(file_path, line, line_number)
        if task is not None:
            tasks.append(task)

    return tasks


class MarkdownTaskParser(TaskLineParser):
    """Parses all tasks of a markdown file."""

    def __init__(
        self,
        input_file: Path,
        metadata_format: MetadataFormat = MetadataFormat.TASKS,
    ) -> None:
        super().__init__(metadata_format)
        self.input_file = input_file
        self.tasks: list[Task] = []
        self.summary = ParseSummary()

    def parse(self) -> None:
        """Parse the markdown file and populate tasks and summary."""
        if not self.input_file.exists():
            raise FileNotFoundError(f"Markdown file not found: {self.input_file}")

        text = self.input_file.read_text(encoding="utf-8")
        self.tasks = parse_document(text, str(self.input_file), self.metadata_format)

        self.summary = ParseSummary()
        for task in self.tasks:
            self.summary.add(task)

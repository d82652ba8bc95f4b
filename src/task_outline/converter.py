"""
Main converter module for markdown task lists.

This module provides the interface for turning a markdown file into a JSON
list of parsed tasks, and for applying a status toggle to a document with
parent completion propagation.
"""

import json
from pathlib import Path
from typing import Any, Optional, Union

from .buffer import LineBuffer, Transaction
from .config import PropagationSettings
from .interceptor import ParentCompletionInterceptor, status_change_transaction
from .markdown_parser import MarkdownTaskParser
from .models import MetadataFormat


class TaskListConverter:
    """
    Converts markdown files to JSON task lists.

    Supports:
    - Markdown files (.md, .markdown)
    """

    SUPPORTED_FORMATS = (".md", ".markdown")

    def __init__(
        self,
        input_file: Union[str, Path],
        metadata_format: MetadataFormat = MetadataFormat.TASKS,
    ) -> None:
        """
        Initialize the converter with an input file.

        Args:
            input_file: Path to the markdown file to convert
            metadata_format: Preferred metadata dialect

        Raises:
            ValueError: If the file format is not supported
            FileNotFoundError: If the input file doesn't exist
        """
        self.input_file = Path(input_file)

        if not self.input_file.exists():
            raise FileNotFoundError(f"Input file not found: {self.input_file}")

        file_extension = self.input_file.suffix.lower()
        if file_extension not in self.SUPPORTED_FORMATS:
            supported = ", ".join(self.SUPPORTED_FORMATS)
            raise ValueError(
                f"Unsupported file format: {file_extension}. "
                f"Supported formats: {supported}"
            )

        self.parser = MarkdownTaskParser(self.input_file, metadata_format)

    def convert(self) -> dict[str, Any]:
        """
        Parse the input file.

        Returns:
            Dictionary with the parsed tasks and a summary
        """
        self.parser.parse()
        summary = self.parser.summary
        return {
            "file": str(self.input_file),
            "metadataFormat": self.parser.metadata_format.value,
            "tasks": [task.to_dict() for task in self.parser.tasks],
            "summary": {
                "tasks": summary.tasks,
                "completed": summary.completed,
                "projects": sorted(summary.projects),
                "tags": summary.tags,
            },
        }

    def convert_to_file(self, output_file: Union[str, Path], indent: int = 2) -> None:
        """
        Convert the input file and save as JSON file.

        Args:
            output_file: Path to the output JSON file
            indent: JSON indentation level for pretty printing
        """
        output_path = Path(output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.convert()

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=indent, ensure_ascii=False)

        print(f"Successfully converted {self.input_file} to {output_path}")
        self._print_conversion_summary()

    def _print_conversion_summary(self) -> None:
        """Print a summary of the conversion results."""
        summary = self.parser.summary
        print("\nConversion Summary:")
        print(f"  Tasks: {summary.tasks}")
        print(f"  Completed tasks: {summary.completed}")
        print(f"  Incomplete tasks: {summary.tasks - summary.completed}")

        if summary.projects:
            print("\nProjects found:")
            for project in sorted(summary.projects):
                print(f"  - {project}")

        if summary.tags:
            print("\nTags found:")
            for tag, count in summary.tags.items():
                print(f"  - {tag} ({count} tasks)")


def convert_task_list(
    input_file: Union[str, Path],
    output_file: Optional[Union[str, Path]] = None,
    indent: int = 2,
    metadata_format: MetadataFormat = MetadataFormat.TASKS,
) -> Union[dict[str, Any], None]:
    """
    Convenience function to convert a markdown task file.

    Args:
        input_file: Path to the markdown file
        output_file: Path to the output JSON file (optional)
        indent: JSON indentation level for pretty printing
        metadata_format: Preferred metadata dialect

    Returns:
        Dictionary with the parsed tasks if no output_file,
        None if output_file is specified
    """
    converter = TaskListConverter(input_file, metadata_format)

    if output_file:
        converter.convert_to_file(output_file, indent)
        return None
    else:
        return converter.convert()


def toggle_task(
    text: str,
    line_number: int,
    status: str = "x",
    settings: Optional[PropagationSettings] = None,
) -> tuple[str, Transaction]:
    """
    Set a task's status in a document and propagate to its parent.

    Args:
        text: Document content
        line_number: 1-based line of the task to change
        status: New status character
        settings: Propagation settings

    Returns:
        (new document text, the transaction that produced it)

    Raises:
        ValueError: If the line is not a task or the status is invalid
    """
    transaction = status_change_transaction(LineBuffer(text), line_number, status)
    result = ParentCompletionInterceptor(settings).intercept(transaction)
    return result.after.text, result

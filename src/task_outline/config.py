"""
Settings for parent completion propagation.

The host settings store supplies these values; ``from_dict`` accepts its
camelCase keys as well as the snake_case field names.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Union

from .models import MetadataFormat

logger = logging.getLogger(__name__)

DEFAULT_IN_PROGRESS_MARKERS = ("/",)

BOOLEAN_SETTINGS = (
    "enabled",
    "revert_parent_on_partial_completion",
    "mark_parent_in_progress_on_partial_activity",
    "workflow_enabled",
    "workflow_strict_terminal_check",
)

SETTING_ALIASES = {
    "enabled": "enabled",
    "autoCompleteParent": "enabled",
    "revertParentOnPartialCompletion": "revert_parent_on_partial_completion",
    "markParentInProgressOnPartialActivity": "mark_parent_in_progress_on_partial_activity",
    "workflowEnabled": "workflow_enabled",
    "workflowStrictTerminalCheck": "workflow_strict_terminal_check",
    "inProgressMarkerCycle": "in_progress_markers",
    "tabWidth": "tab_width",
    "preferMetadataFormat": "metadata_format",
    "metadataFormat": "metadata_format",
}


@dataclass(frozen=True)
class PropagationSettings:
    """
    Configuration for the parent completion engine.

    Attributes:
        enabled: Run propagation at all
        revert_parent_on_partial_completion: Move a completed parent back to
            in-progress when one of its children is no longer complete
        mark_parent_in_progress_on_partial_activity: Mark an empty parent
            in-progress once any child has a status
        workflow_enabled: Documents use multi-stage workflows
        workflow_strict_terminal_check: Only count [x] children at the final
            workflow stage as complete
        in_progress_markers: In-progress status cycle; the first is written
        tab_width: Indentation step of space-indented lists
        metadata_format: Preferred metadata dialect for parsing
    """

    enabled: bool = True
    revert_parent_on_partial_completion: bool = True
    mark_parent_in_progress_on_partial_activity: bool = True
    workflow_enabled: bool = False
    workflow_strict_terminal_check: bool = False
    in_progress_markers: tuple[str, ...] = DEFAULT_IN_PROGRESS_MARKERS
    tab_width: int = 4
    metadata_format: MetadataFormat = MetadataFormat.TASKS

    def __post_init__(self) -> None:
        for name in BOOLEAN_SETTINGS:
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise ValueError(f"{name} must be true or false, got {value!r}")
        if (
            not isinstance(self.tab_width, int)
            or isinstance(self.tab_width, bool)
            or self.tab_width < 1
        ):
            raise ValueError(f"tab_width must be a positive integer, got {self.tab_width!r}")
        object.__setattr__(
            self, "in_progress_markers", _parse_markers(self.in_progress_markers)
        )
        object.__setattr__(
            self, "metadata_format", MetadataFormat.from_value(self.metadata_format)
        )

    @property
    def in_progress_marker(self) -> str:
        return self.in_progress_markers[0]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PropagationSettings:
        """
        Build settings from a mapping, ignoring unknown keys.

        Args:
            data: Settings keyed by field name or camelCase alias

        Returns:
            PropagationSettings instance

        Raises:
            ValueError: If a value is invalid
        """
        field_names = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in data.items():
            name = SETTING_ALIASES.get(key, key)
            if name not in field_names:
                logger.debug(f"Ignoring unknown setting: {key}")
                continue
            values[name] = value
        return cls(**values)


def _parse_markers(markers: Union[str, tuple[str, ...], list[str]]) -> tuple[str, ...]:
    """Normalize a marker cycle given as "/|>" or a sequence of characters."""
    if isinstance(markers, str):
        parts = markers.split("|")
    else:
        parts = list(markers)
    cleaned = tuple(part for part in parts if isinstance(part, str) and len(part) == 1)
    return cleaned or DEFAULT_IN_PROGRESS_MARKERS


def load_settings(settings_file: Path) -> PropagationSettings:
    """
    Load propagation settings from a JSON file.

    Args:
        settings_file: Path to a JSON object of settings

    Returns:
        PropagationSettings instance

    Raises:
        ValueError: If the file cannot be read or is not a JSON object
    """
    try:
        with open(settings_file, encoding="utf-8") as f:
            data = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        raise ValueError(f"Failed to load settings file {settings_file}: {e}")

    if not isinstance(data, dict):
        raise ValueError(f"Settings file {settings_file} must contain a JSON object")

    return PropagationSettings.from_dict(data)

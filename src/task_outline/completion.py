"""
Parent status decision procedure.

Given the direct children of a parent task and the parent's current status,
decide whether the parent's marker should be left alone, completed, or moved
to the in-progress marker.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from .config import PropagationSettings
from .indentation import ChildTask

COMPLETE_MARKER = "x"


class ParentAction(Enum):
    KEEP = "keep"
    COMPLETE = "complete"
    IN_PROGRESS = "in_progress"


@dataclass(frozen=True)
class Decision:
    action: ParentAction
    marker: Optional[str] = None

    @property
    def changes_parent(self) -> bool:
        return self.action is not ParentAction.KEEP


KEEP = Decision(ParentAction.KEEP)


def is_complete_status(status: str) -> bool:
    return status in ("x", "X")


def child_is_complete(
    child: ChildTask,
    settings: PropagationSettings,
    is_terminal_stage: Optional[Callable[[ChildTask], bool]] = None,
) -> bool:
    """
    Check whether a child counts as done.

    An [x] child is done unless strict workflow checking is on, in which
    case it must also be at the final stage of its workflow.
    """
    if not is_complete_status(child.status):
        return False
    if settings.workflow_enabled and settings.workflow_strict_terminal_check:
        return is_terminal_stage is None or is_terminal_stage(child)
    return True


def decide(
    children: Sequence[ChildTask],
    parent_status: str,
    settings: PropagationSettings,
    is_terminal_stage: Optional[Callable[[ChildTask], bool]] = None,
) -> Decision:
    """
    Decide how a parent's status marker should change.

    Rules, first match wins:
    1. No children: keep.
    2. All children complete and parent not complete: complete.
    3. Parent complete but some child is not, with reverting enabled:
       in-progress.
    4. Parent empty and some child has any status, with partial-activity
       marking enabled: in-progress.
    5. Otherwise keep.

    Args:
        children: Direct children of the parent
        parent_status: Current status character of the parent
        settings: Propagation settings
        is_terminal_stage: Workflow oracle bound to the document

    Returns:
        Decision for the parent marker
    """
    if not children:
        return KEEP

    all_complete = all(
        child_is_complete(child, settings, is_terminal_stage) for child in children
    )
    parent_complete = is_complete_status(parent_status)

    if all_complete and not parent_complete:
        return Decision(ParentAction.COMPLETE, COMPLETE_MARKER)

    if parent_complete and not all_complete:
        if settings.revert_parent_on_partial_completion:
            return _in_progress(parent_status, settings)
        return KEEP

    if (
        parent_status == " "
        and settings.mark_parent_in_progress_on_partial_activity
        and any(child.status != " " for child in children)
    ):
        return _in_progress(parent_status, settings)

    return KEEP


def _in_progress(parent_status: str, settings: PropagationSettings) -> Decision:
    marker = settings.in_progress_marker
    if parent_status == marker:
        return KEEP
    return Decision(ParentAction.IN_PROGRESS, marker)

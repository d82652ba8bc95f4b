"""
Workflow stage oracle interface.

Multi-stage workflows are owned by a separate subsystem. The completion
engine only asks it one question: is this [x] task line at the final stage
of its workflow?
"""

from __future__ import annotations

from typing import Protocol

from .buffer import LineBuffer


class WorkflowStageOracle(Protocol):
    def __call__(self, line_text: str, line_number: int, buffer: LineBuffer) -> bool:
        ...


def not_a_workflow(line_text: str, line_number: int, buffer: LineBuffer) -> bool:
    """Oracle for documents without workflows: every task is at its final stage."""
    return True

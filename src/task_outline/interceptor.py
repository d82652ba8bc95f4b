"""
Edit transaction interceptor for parent task completion.

Runs once per document edit. When the edit toggles a task's status marker or
inserts a new empty task, the interceptor finds the task's parent, decides
whether the parent marker should change, and returns the transaction with
one extra change that rewrites the parent's status character.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from .buffer import Annotation, Change, LineBuffer, Transaction
from .completion import Decision, ParentAction, decide
from .config import PropagationSettings
from .indentation import (
    TASK_MARKER_PATTERN,
    ChildTask,
    direct_children,
    expected_child_indent,
    find_parent,
    leading_whitespace,
    status_offset,
    task_status,
)
from .workflow import WorkflowStageOracle, not_a_workflow

logger = logging.getLogger(__name__)

TASK_STATUS_CHANGE = "taskStatusChange"
AUTO_COMPLETE_PREFIX = "autoCompleteParent"

PASTE_EVENT = "input.paste"

NEW_TASK_AFTER_NEWLINE = re.compile(r"\n[ \t]*([-*+]|\d+\.)\s\[ \]")
NEW_TASK_AT_START = re.compile(r"^[ \t]*([-*+]|\d+\.)\s\[ \]")

OUTCOME_ANNOTATIONS = {
    ParentAction.COMPLETE: Annotation(TASK_STATUS_CHANGE, f"{AUTO_COMPLETE_PREFIX}.DONE"),
    ParentAction.IN_PROGRESS: Annotation(
        TASK_STATUS_CHANGE, f"{AUTO_COMPLETE_PREFIX}.IN_PROGRESS"
    ),
}


def is_self_produced(transaction: Transaction) -> bool:
    """True if the transaction was produced by parent completion itself."""
    value = transaction.annotation(TASK_STATUS_CHANGE)
    return value is not None and AUTO_COMPLETE_PREFIX in value


def status_change_transaction(
    buffer: LineBuffer, line_number: int, status: str, user_event: str = "input"
) -> Transaction:
    """
    Build a user transaction that rewrites one task's status character.

    Raises:
        ValueError: If the status is not a single character, or the line does
            not exist or is not a task
    """
    if len(status) != 1 or status == "\n":
        raise ValueError(f"Status must be a single character, got {status!r}")
    try:
        line = buffer.line(line_number)
    except IndexError as e:
        raise ValueError(str(e)) from None

    offset = status_offset(line.text)
    if offset is None:
        raise ValueError(f"Line {line_number} is not a task: {line.text!r}")

    position = line.start + offset
    return Transaction(
        before=buffer,
        changes=(Change(position, position + 1, status),),
        user_event=user_event,
    )


def find_task_status_change(transaction: Transaction) -> Optional[int]:
    """
    Find the first task line whose status was changed or which was inserted.

    Args:
        transaction: Transaction to scan

    Returns:
        1-based line number in the new document, or None
    """
    after = transaction.after

    for change in transaction.mapped_changes():
        inserted = change.inserted

        if inserted:
            new_task = NEW_TASK_AFTER_NEWLINE.search(inserted)
            if new_task:
                return after.line_at(change.from_b + new_task.start() + 1).number
            if NEW_TASK_AT_START.match(inserted):
                return after.line_at(change.from_b).number

            # Lines starting inside the inserted text have no counterpart before
            first_line = after.line_at(change.from_b).number
            last_line = after.line_at(change.to_b - 1).number
            for number in range(first_line + 1, last_line + 1):
                if TASK_MARKER_PATTERN.match(after.line(number).text):
                    return number

        line = after.line_at(change.from_b)
        task_match = TASK_MARKER_PATTERN.match(line.text)
        if not task_match:
            continue

        bracket_open = line.start + task_match.start(3) - 1
        bracket_close = line.start + task_match.end(3)
        if inserted and bracket_open <= change.to_b and bracket_close >= change.from_b:
            return line.number

    return None


class ParentCompletionInterceptor:
    """
    Keeps a parent task's marker in step with its children.

    The interceptor holds no state between calls; everything it needs comes
    from the transaction, the settings and the workflow oracle.
    """

    def __init__(
        self,
        settings: Optional[PropagationSettings] = None,
        oracle: WorkflowStageOracle = not_a_workflow,
    ) -> None:
        self.settings = settings or PropagationSettings()
        self.oracle = oracle

    def __call__(self, transaction: Transaction) -> Transaction:
        return self.intercept(transaction)

    def intercept(self, transaction: Transaction) -> Transaction:
        """
        Process one transaction.

        Args:
            transaction: Transaction about to be applied

        Returns:
            The same transaction, or a copy with the parent marker change
            appended
        """
        if not self.settings.enabled or not transaction.doc_changed:
            return transaction
        if transaction.is_user_event(PASTE_EVENT):
            return transaction
        if is_self_produced(transaction):
            logger.debug("Skipping transaction produced by parent completion")
            return transaction

        line_number = find_task_status_change(transaction)
        if line_number is None:
            return transaction

        doc = transaction.after
        parent = find_parent(doc, line_number)
        if parent is None:
            return transaction

        child_indent = expected_child_indent(
            parent.indent,
            leading_whitespace(doc.line(line_number).text),
            self.settings.tab_width,
        )
        children = direct_children(doc, parent.line_number, parent.indent, child_indent)

        parent_line = doc.line(parent.line_number)
        parent_status = task_status(parent_line.text)
        if parent_status is None:
            return transaction

        decision = decide(
            children,
            parent_status,
            self.settings,
            lambda child: self._is_terminal_stage(child, doc),
        )
        logger.debug(
            f"Line {line_number}: parent line {parent.line_number} "
            f"[{parent_status}] -> {decision.action.value}"
        )

        if not decision.changes_parent:
            return transaction

        return self._amend(transaction, parent.line_number, decision)

    def _is_terminal_stage(self, child: ChildTask, doc: LineBuffer) -> bool:
        return self.oracle(child.text, child.line_number, doc)

    def _amend(
        self, transaction: Transaction, parent_line_number: int, decision: Decision
    ) -> Transaction:
        """
        Append the parent marker rewrite unless the transaction already touches it.

        Args:
            transaction: Transaction being processed
            parent_line_number: 1-based parent line in the new document
            decision: Decision carrying the marker to write

        Returns:
            Amended transaction, or the original one on conflict
        """
        parent_line = transaction.after.line(parent_line_number)
        offset = status_offset(parent_line.text)
        if offset is None or decision.marker is None:
            return transaction

        # None means the marker itself was inserted by this transaction
        marker_a = transaction.map_to_before(parent_line.start + offset)
        if marker_a is None or any(
            change.start <= marker_a < change.end for change in transaction.changes
        ):
            logger.debug(f"Parent marker on line {parent_line_number} already changing")
            return transaction

        logger.info(
            f"Setting parent task on line {parent_line_number} to [{decision.marker}]"
        )
        return transaction.with_change(
            Change(marker_a, marker_a + 1, decision.marker),
            OUTCOME_ANNOTATIONS[decision.action],
        )

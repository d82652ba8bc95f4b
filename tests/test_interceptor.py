"""
Tests for the edit transaction interceptor.

Documents are built line by line; toggles are expressed as the single
status-character change an editor would produce.
"""

import pytest

from task_outline.buffer import Annotation, Change, LineBuffer, Transaction
from task_outline.config import PropagationSettings
from task_outline.interceptor import (
    TASK_STATUS_CHANGE,
    ParentCompletionInterceptor,
    find_task_status_change,
    is_self_produced,
    status_change_transaction,
)


def doc(*lines: str) -> LineBuffer:
    return LineBuffer.from_lines(lines)


def toggle(buffer: LineBuffer, line_number: int, status: str = "x") -> Transaction:
    return status_change_transaction(buffer, line_number, status)


class TestFindTaskStatusChange:
    """Locating the task line an edit affects."""

    def test_status_toggle(self) -> None:
        """Test a change of the status character."""
        buffer = doc("- [ ] Parent", "  - [ ] Child")

        assert find_task_status_change(toggle(buffer, 2)) == 2

    def test_new_task_after_newline(self) -> None:
        """Test inserting a new empty task on a new line."""
        buffer = doc("- [ ] Parent", "  - [x] Child")
        tr = Transaction(buffer, (Change(len(buffer), len(buffer), "\n  - [ ] New"),))

        assert find_task_status_change(tr) == 3

    def test_new_task_at_insertion_start(self) -> None:
        """Test inserting a task at the start of an empty line."""
        buffer = LineBuffer("- [ ] Parent\n")
        tr = Transaction(buffer, (Change(13, 13, "  - [ ] Child"),))

        assert find_task_status_change(tr) == 2

    def test_typing_away_from_the_checkbox(self) -> None:
        """Test that editing task text is not a status change."""
        buffer = doc("- [ ] Parent", "  - [ ] Child")
        tr = Transaction(buffer, (Change(12, 12, "s"),))

        assert find_task_status_change(tr) is None

    def test_typing_at_end_of_document(self) -> None:
        """Test that appending text to the last task is not a status change."""
        buffer = doc("- [ ] P", "  - [x] A", "  - [ ] B")
        tr = Transaction(buffer, (Change(len(buffer), len(buffer), "z"),))

        assert find_task_status_change(tr) is None
        assert ParentCompletionInterceptor(PropagationSettings(tab_width=2))(tr) is tr

    def test_new_completed_task_line(self) -> None:
        """Test that an inserted line holding a checked task counts as new."""
        buffer = doc("- [ ] P", "  - [x] A")
        tr = Transaction(buffer, (Change(len(buffer), len(buffer), "\n  - [x] B"),))

        assert find_task_status_change(tr) == 3

    def test_splitting_line_above_task(self) -> None:
        """Test that pressing enter before an existing task is not a status change."""
        buffer = doc("- [ ] P", "  - [x] A")
        tr = Transaction(buffer, (Change(8, 8, "\n"),))

        assert find_task_status_change(tr) is None

    def test_edit_on_plain_line(self) -> None:
        """Test that edits to non-task lines are ignored."""
        buffer = doc("Some text", "- [ ] Parent")
        tr = Transaction(buffer, (Change(4, 4, "!"),))

        assert find_task_status_change(tr) is None


class TestParentCompletionInterceptor:
    """End-to-end propagation through transactions."""

    def setup_method(self) -> None:
        self.interceptor = ParentCompletionInterceptor(PropagationSettings(tab_width=2))

    def test_completing_children_completes_parent(self) -> None:
        """Test completing each child in turn."""
        buffer = doc("- [ ] Parent", "  - [ ] Child 1", "  - [ ] Child 2")

        first = self.interceptor(toggle(buffer, 2))
        assert first.after.text == "- [/] Parent\n  - [x] Child 1\n  - [ ] Child 2"
        assert first.annotation(TASK_STATUS_CHANGE) == "autoCompleteParent.IN_PROGRESS"

        second = self.interceptor(toggle(first.after, 3))
        assert second.after.text == "- [x] Parent\n  - [x] Child 1\n  - [x] Child 2"
        assert second.annotation(TASK_STATUS_CHANGE) == "autoCompleteParent.DONE"
        assert len(second.changes) == 2

    def test_changes_stay_in_original_coordinates(self) -> None:
        """Test that the parent change is expressed against the old document."""
        buffer = doc("- [ ] Parent", "  - [x] Child 1", "  - [ ] Child 2")

        result = self.interceptor(toggle(buffer, 3))

        assert result.before is buffer
        assert result.changes[0] == Change(3, 4, "x")

    def test_new_open_child_reverts_parent(self) -> None:
        """Test that adding an open child moves a completed parent to in-progress."""
        buffer = doc("- [x] Parent", "  - [x] Child 1")
        tr = Transaction(
            buffer, (Change(len(buffer), len(buffer), "\n  - [ ] New"),), user_event="input"
        )

        result = self.interceptor(tr)

        assert result.after.text == "- [/] Parent\n  - [x] Child 1\n  - [ ] New"
        assert result.annotation(TASK_STATUS_CHANGE) == "autoCompleteParent.IN_PROGRESS"

    def test_new_completed_child_completes_parent(self) -> None:
        """Test that adding a checked child can complete the parent."""
        buffer = doc("- [ ] P", "  - [x] A")
        tr = Transaction(buffer, (Change(len(buffer), len(buffer), "\n  - [x] B"),))

        result = self.interceptor(tr)

        assert result.after.text == "- [x] P\n  - [x] A\n  - [x] B"

    def test_unchecking_child_reverts_parent(self) -> None:
        """Test reverting when a child is reopened."""
        buffer = doc("- [x] Parent", "  - [x] Child 1", "  - [x] Child 2")

        result = self.interceptor(toggle(buffer, 2, " "))

        assert result.after.text == "- [/] Parent\n  - [ ] Child 1\n  - [x] Child 2"

    def test_grandchildren_do_not_count(self) -> None:
        """Test that only direct children decide the parent."""
        buffer = doc("- [ ] P", "  - [x] A", "    - [ ] deep", "  - [ ] B")

        result = self.interceptor(toggle(buffer, 4))

        assert result.after.text == "- [x] P\n  - [x] A\n    - [ ] deep\n  - [x] B"

    def test_tab_indented_children(self) -> None:
        """Test tab-indented lists with the default tab width."""
        buffer = doc("- [ ] P", "\t- [x] A", "\t- [ ] B")

        result = ParentCompletionInterceptor()(toggle(buffer, 3))

        assert result.after.text == "- [x] P\n\t- [x] A\n\t- [x] B"

    def test_only_one_level_per_transaction(self) -> None:
        """Test that the grandparent is not updated in the same transaction."""
        buffer = doc("- [ ] Top", "  - [ ] Mid", "    - [ ] Leaf")

        result = self.interceptor(toggle(buffer, 3))

        assert result.after.text == "- [ ] Top\n  - [x] Mid\n    - [x] Leaf"

    def test_self_produced_transactions_pass_through(self) -> None:
        """Test that annotated transactions are not processed again."""
        buffer = doc("- [x] Parent", "  - [x] Child")
        tr = Transaction(
            buffer,
            (Change(18, 19, " "),),
            annotations=(Annotation(TASK_STATUS_CHANGE, "autoCompleteParent.DONE"),),
        )

        assert is_self_produced(tr)
        assert self.interceptor(tr) is tr

    def test_other_status_annotations_are_processed(self) -> None:
        """Test that unrelated status annotations do not block propagation."""
        buffer = doc("- [ ] Parent", "  - [ ] Child")
        tr = Transaction(
            buffer,
            (Change(18, 19, "x"),),
            annotations=(Annotation(TASK_STATUS_CHANGE, "workflow.advance"),),
        )

        assert not is_self_produced(tr)
        assert self.interceptor(tr).after.text == "- [x] Parent\n  - [x] Child"

    def test_paste_is_ignored(self) -> None:
        """Test that pasted content never triggers propagation."""
        buffer = doc("- [ ] Parent", "  - [ ] Child")
        tr = Transaction(buffer, (Change(18, 19, "x"),), user_event="input.paste")

        assert self.interceptor(tr) is tr

    def test_no_document_change(self) -> None:
        """Test that selection-only transactions pass through."""
        tr = Transaction(doc("- [ ] Parent", "  - [ ] Child"))

        assert self.interceptor(tr) is tr

    def test_disabled(self) -> None:
        """Test that nothing happens when propagation is off."""
        interceptor = ParentCompletionInterceptor(PropagationSettings(enabled=False, tab_width=2))
        tr = toggle(doc("- [ ] Parent", "  - [ ] Child"), 2)

        assert interceptor(tr) is tr

    def test_top_level_task(self) -> None:
        """Test that tasks without a parent leave the transaction alone."""
        tr = toggle(doc("- [ ] Alone", "- [ ] Other"), 1)

        assert self.interceptor(tr) is tr

    def test_parent_marker_already_rewritten(self) -> None:
        """Test that the parent change is skipped when the edit covers the marker."""
        buffer = doc("- [ ] Parent", "  - [x] A")
        tr = Transaction(buffer, (Change(3, 12, "x] Parent\n  - [ ] New"),))

        assert find_task_status_change(tr) == 2
        assert self.interceptor(tr) is tr

    def test_workflow_oracle(self) -> None:
        """Test strict workflow checking through the interceptor."""
        calls = []

        def oracle(line_text: str, line_number: int, buffer: LineBuffer) -> bool:
            calls.append((line_text, line_number))
            return False

        settings = PropagationSettings(
            tab_width=2, workflow_enabled=True, workflow_strict_terminal_check=True
        )
        interceptor = ParentCompletionInterceptor(settings, oracle)

        result = interceptor(toggle(doc("- [ ] P", "  - [x] A", "  - [ ] B"), 3))

        assert result.after.text == "- [/] P\n  - [x] A\n  - [x] B"
        assert calls == [("  - [x] A", 2)]

    def test_unchanged_decision(self) -> None:
        """Test a toggle that leaves the parent as it is."""
        buffer = doc("- [/] Parent", "  - [x] A", "  - [ ] B")

        tr = toggle(buffer, 2, "/")

        assert self.interceptor(tr) is tr


class TestStatusChangeTransaction:
    """Building toggle transactions."""

    def test_builds_single_change(self) -> None:
        """Test the change produced for a toggle."""
        tr = toggle(doc("- [ ] a", "  - [ ] b"), 2)

        assert tr.changes == (Change(13, 14, "x"),)
        assert tr.user_event == "input"

    def test_rejects_non_task_line(self) -> None:
        """Test that plain lines cannot be toggled."""
        with pytest.raises(ValueError):
            toggle(doc("text"), 1)

    def test_rejects_missing_line(self) -> None:
        """Test that unknown lines cannot be toggled."""
        with pytest.raises(ValueError):
            toggle(doc("- [ ] a"), 5)

    def test_rejects_bad_status(self) -> None:
        """Test that statuses must be single characters."""
        with pytest.raises(ValueError):
            toggle(doc("- [ ] a"), 1, "xx")

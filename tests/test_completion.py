"""Tests for the parent status decision procedure."""

from task_outline.completion import Decision, ParentAction, child_is_complete, decide
from task_outline.config import PropagationSettings
from task_outline.indentation import ChildTask


def children_with(*statuses: str) -> list[ChildTask]:
    return [
        ChildTask(line_number=index + 2, status=status, text=f"  - [{status}] child")
        for index, status in enumerate(statuses)
    ]


SETTINGS = PropagationSettings()


class TestDecide:
    """Decision rules in priority order."""

    def test_no_children(self) -> None:
        """Test that a parent without children is left alone."""
        assert decide([], " ", SETTINGS) == Decision(ParentAction.KEEP)

    def test_all_children_complete(self) -> None:
        """Test completing the parent."""
        decision = decide(children_with("x", "X"), " ", SETTINGS)

        assert decision == Decision(ParentAction.COMPLETE, "x")
        assert decision.changes_parent

    def test_in_progress_parent_is_completed(self) -> None:
        """Test that an in-progress parent is completed too."""
        assert decide(children_with("x"), "/", SETTINGS).action is ParentAction.COMPLETE

    def test_complete_parent_stays(self) -> None:
        """Test that nothing happens when parent and children are done."""
        decision = decide(children_with("x", "x"), "x", SETTINGS)

        assert decision.action is ParentAction.KEEP
        assert not decision.changes_parent

    def test_revert_on_partial_completion(self) -> None:
        """Test moving a completed parent back to in-progress."""
        assert decide(children_with("x", " "), "x", SETTINGS) == Decision(
            ParentAction.IN_PROGRESS, "/"
        )
        assert decide(children_with("x", " "), "X", SETTINGS).marker == "/"

    def test_revert_disabled(self) -> None:
        """Test that the completed parent is kept when reverting is off."""
        settings = PropagationSettings(revert_parent_on_partial_completion=False)

        assert decide(children_with("x", " "), "x", settings).action is ParentAction.KEEP

    def test_partial_activity(self) -> None:
        """Test marking an empty parent in-progress."""
        assert decide(children_with("x", " "), " ", SETTINGS).action is ParentAction.IN_PROGRESS
        assert decide(children_with("/", " "), " ", SETTINGS).marker == "/"

    def test_partial_activity_disabled(self) -> None:
        """Test that an empty parent is kept when activity marking is off."""
        settings = PropagationSettings(mark_parent_in_progress_on_partial_activity=False)

        assert decide(children_with("x", " "), " ", settings).action is ParentAction.KEEP

    def test_untouched_children(self) -> None:
        """Test that no activity keeps the parent."""
        assert decide(children_with(" ", " "), " ", SETTINGS).action is ParentAction.KEEP

    def test_other_parent_status_is_kept(self) -> None:
        """Test that only an empty parent is moved on partial activity."""
        assert decide(children_with("x", " "), "/", SETTINGS).action is ParentAction.KEEP
        assert decide(children_with("x", " "), "-", SETTINGS).action is ParentAction.KEEP

    def test_custom_marker_cycle(self) -> None:
        """Test that the first marker of the cycle is written."""
        settings = PropagationSettings(in_progress_markers=">|/")

        assert decide(children_with("x", " "), " ", settings) == Decision(
            ParentAction.IN_PROGRESS, ">"
        )

    def test_marker_already_set(self) -> None:
        """Test that writing the parent's current marker is skipped."""
        settings = PropagationSettings(in_progress_markers="x")

        assert decide(children_with("x", " "), "x", settings).action is ParentAction.KEEP


class TestWorkflowStages:
    """Strict terminal stage checking."""

    def test_strict_check_uses_oracle(self) -> None:
        """Test that [x] children at an intermediate stage are not complete."""
        settings = PropagationSettings(workflow_enabled=True, workflow_strict_terminal_check=True)
        seen = []

        def not_final(child: ChildTask) -> bool:
            seen.append(child.line_number)
            return False

        decision = decide(children_with("x", "x"), " ", settings, not_final)

        assert decision == Decision(ParentAction.IN_PROGRESS, "/")
        assert seen == [2]

    def test_strict_check_at_final_stage(self) -> None:
        """Test completion when every child is at its final stage."""
        settings = PropagationSettings(workflow_enabled=True, workflow_strict_terminal_check=True)

        decision = decide(children_with("x", "x"), " ", settings, lambda child: True)

        assert decision.action is ParentAction.COMPLETE

    def test_oracle_ignored_unless_strict(self) -> None:
        """Test that the oracle is not consulted without strict checking."""
        for settings in (
            PropagationSettings(workflow_enabled=True),
            PropagationSettings(workflow_strict_terminal_check=True),
        ):
            child = children_with("x")[0]
            assert child_is_complete(child, settings, lambda c: False)

    def test_open_child_is_never_complete(self) -> None:
        """Test that the oracle cannot complete an open child."""
        settings = PropagationSettings(workflow_enabled=True, workflow_strict_terminal_check=True)

        assert not child_is_complete(children_with(" ")[0], settings, lambda c: True)

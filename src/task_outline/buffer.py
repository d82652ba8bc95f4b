"""
Line-indexed document snapshots and edit transactions.

A LineBuffer is an immutable view of a document: its lines plus the offset
each line starts at. A Transaction describes a set of changes against one
such snapshot, together with the annotations that record where the
transaction came from.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Iterator, Optional, Sequence


@dataclass(frozen=True)
class Line:
    """A single line of a buffer; ``end`` excludes the line break."""

    number: int
    start: int
    end: int
    text: str


class LineBuffer:
    """
    Immutable, line-indexed snapshot of a document.

    Line numbers are 1-based, offsets are 0-based character positions into
    the full text, and every line but the last is followed by a single
    ``\\n``.
    """

    def __init__(self, text: str = "") -> None:
        self._text = text
        self._lines = tuple(text.split("\n"))
        starts = []
        offset = 0
        for line in self._lines:
            starts.append(offset)
            offset += len(line) + 1
        self._starts = tuple(starts)

    @classmethod
    def from_lines(cls, lines: Sequence[str]) -> LineBuffer:
        return cls("\n".join(lines))

    @property
    def text(self) -> str:
        return self._text

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def __len__(self) -> int:
        return len(self._text)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LineBuffer):
            return NotImplemented
        return self._text == other._text

    def __hash__(self) -> int:
        return hash(self._text)

    def __repr__(self) -> str:
        return f"LineBuffer(lines={self.line_count}, length={len(self)})"

    def line(self, number: int) -> Line:
        """
        Get a line by its 1-based number.

        Raises:
            IndexError: If the line number is out of range
        """
        if not 1 <= number <= self.line_count:
            raise IndexError(f"Line {number} out of range 1..{self.line_count}")
        start = self._starts[number - 1]
        text = self._lines[number - 1]
        return Line(number=number, start=start, end=start + len(text), text=text)

    def line_at(self, offset: int) -> Line:
        """
        Get the line containing a character offset.

        Raises:
            IndexError: If the offset lies outside the document
        """
        if not 0 <= offset <= len(self._text):
            raise IndexError(f"Offset {offset} out of range 0..{len(self._text)}")
        return self.line(bisect_right(self._starts, offset))

    def apply(self, changes: Sequence[Change]) -> LineBuffer:
        """
        Apply non-overlapping changes expressed in this buffer's coordinates.

        Args:
            changes: Changes to apply

        Returns:
            A new buffer with the changes applied
        """
        parts = []
        position = 0
        for change in sorted(changes, key=lambda c: (c.start, c.end)):
            parts.append(self._text[position : change.start])
            parts.append(change.insert)
            position = change.end
        parts.append(self._text[position:])
        return LineBuffer("".join(parts))


@dataclass(frozen=True)
class Change:
    """Replace ``[start, end)`` of the original document with ``insert``."""

    start: int
    end: int
    insert: str = ""

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid change range: {self.start}..{self.end}")


@dataclass(frozen=True)
class MappedChange:
    """A change seen in both the old (``*_a``) and new (``*_b``) document."""

    from_a: int
    to_a: int
    from_b: int
    to_b: int
    inserted: str


@dataclass(frozen=True)
class Annotation:
    """Provenance tag attached to a transaction."""

    key: str
    value: str


@dataclass(frozen=True)
class Transaction:
    """
    An atomic set of changes against a document snapshot.

    ``user_event`` names the kind of user action that produced the
    transaction (for example ``"input.paste"``), ``annotations`` record which
    internal mechanism produced it.
    """

    before: LineBuffer
    changes: tuple[Change, ...] = ()
    annotations: tuple[Annotation, ...] = ()
    user_event: Optional[str] = None
    after: LineBuffer = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.changes, key=lambda c: (c.start, c.end)))
        for previous, current in zip(ordered, ordered[1:]):
            if current.start < previous.end:
                raise ValueError("Transaction changes must not overlap")
        if ordered and ordered[-1].end > len(self.before):
            raise ValueError("Transaction change extends past end of document")
        object.__setattr__(self, "changes", ordered)
        object.__setattr__(self, "after", self.before.apply(ordered))

    @property
    def doc_changed(self) -> bool:
        return any(
            change.end > change.start or change.insert for change in self.changes
        )

    def annotation(self, key: str) -> Optional[str]:
        """Return the value of the first annotation with this key, if any."""
        for annotation in self.annotations:
            if annotation.key == key:
                return annotation.value
        return None

    def is_user_event(self, event: str) -> bool:
        """Check the user event, matching dotted prefixes ("input" matches "input.paste")."""
        if self.user_event is None:
            return False
        return self.user_event == event or self.user_event.startswith(event + ".")

    def mapped_changes(self) -> Iterator[MappedChange]:
        """Iterate changes with their positions in both documents."""
        delta = 0
        for change in self.changes:
            from_b = change.start + delta
            to_b = from_b + len(change.insert)
            yield MappedChange(
                from_a=change.start,
                to_a=change.end,
                from_b=from_b,
                to_b=to_b,
                inserted=change.insert,
            )
            delta += len(change.insert) - (change.end - change.start)

    def map_to_before(self, position: int) -> Optional[int]:
        """
        Map an offset in the new document back to the original document.

        Returns:
            The original offset, or None if the position lies inside text
            inserted by this transaction
        """
        delta = 0
        for mapped in self.mapped_changes():
            if position < mapped.from_b:
                break
            if position < mapped.to_b:
                return None
            delta = mapped.to_a - mapped.to_b
        return position + delta

    def with_change(self, change: Change, annotation: Annotation) -> Transaction:
        """Return a copy with one more change and an extra annotation."""
        return Transaction(
            before=self.before,
            changes=self.changes + (change,),
            annotations=self.annotations + (annotation,),
            user_event=self.user_event,
        )

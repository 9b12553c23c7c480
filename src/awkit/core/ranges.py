"""Structured helpers for representing and tracking text spans.

:class:`TextRange` is an immutable ``(start, end)`` value used for selections.
:class:`RangeTracker` keeps a set of live :class:`TrackedRange` objects valid
while their document is edited, using marker semantics: each boundary either
stays put or advances when text is inserted exactly at it.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator

from .errors import InvalidRangeError

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TextRange(Sequence[int]):
    """Canonical representation of a text selection using absolute offsets.

    Reversed bounds are swapped; negative offsets are rejected rather than
    clamped so a bad selection never silently becomes a different one.
    """

    start: int
    end: int

    def __post_init__(self) -> None:
        start = self._coerce_index(self.start, "start")
        end = self._coerce_index(self.end, "end")
        if end < start:
            start, end = end, start
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @staticmethod
    def _coerce_index(value: Any, label: str) -> int:
        try:
            number = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"TextRange {label} must be an integer") from exc
        if number < 0:
            raise InvalidRangeError(
                message=f"TextRange {label} must not be negative (got {number})",
                **{label: number},
            )
        return number

    def __len__(self) -> int:
        return 2

    def __getitem__(self, index: int | slice) -> int | tuple[int, ...]:
        if isinstance(index, slice):
            return self.to_tuple()[index]
        if index == 0:
            return self.start
        if index == 1:
            return self.end
        raise IndexError("TextRange index out of range")

    def __iter__(self) -> Iterator[int]:
        yield self.start
        yield self.end

    @property
    def length(self) -> int:
        """Return the width of the range."""

        return self.end - self.start

    @property
    def is_caret(self) -> bool:
        """Return ``True`` when the range collapses to a caret."""

        return self.start == self.end

    def to_tuple(self) -> tuple[int, int]:
        """Return the range as a ``(start, end)`` tuple."""

        return (self.start, self.end)

    @classmethod
    def from_value(cls, value: TextRange | Sequence[int]) -> TextRange:
        """Coerce a ``TextRange`` or a ``(start, end)`` pair."""

        if isinstance(value, TextRange):
            return value
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            seq = list(value)
            if len(seq) != 2:
                raise ValueError("TextRange sequences must have exactly two entries")
            return cls(seq[0], seq[1])
        raise TypeError(f"Unsupported TextRange input: {value!r}")


class GrowPolicy(Enum):
    """How a tracked range reacts to text inserted exactly at its boundaries.

    Values are ``(absorb_start, absorb_end)``. Absorbing at the start means
    the start marker stays put so the inserted text lands inside the range;
    absorbing at the end means the end marker advances past it.
    """

    FIXED = (False, False)
    ANCHORED_START = (True, False)  # never moves on inserts at either boundary
    TRAILING = (False, True)
    BOTH = (True, True)

    @property
    def absorb_start(self) -> bool:
        return self.value[0]

    @property
    def absorb_end(self) -> bool:
        return self.value[1]

    def start_advances(self) -> bool:
        return not self.absorb_start

    def end_advances(self) -> bool:
        return self.absorb_end


_RANGE_IDS = itertools.count(1)


@dataclass(slots=True, eq=False)
class TrackedRange:
    """A named span whose offsets are rebased by its :class:`RangeTracker`.

    ``annotation`` holds display-only text attached to the range (previews are
    shown there rather than written into the document). ``vanished`` is set
    when a deletion swallowed the whole, previously non-empty range.
    """

    start: int
    end: int
    policy: GrowPolicy = GrowPolicy.FIXED
    name: str = ""
    id: int = field(default_factory=lambda: next(_RANGE_IDS))
    annotation: str | None = None
    vanished: bool = False
    released: bool = False

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def span(self) -> TextRange:
        """Return the current offsets as an immutable :class:`TextRange`."""

        return TextRange(self.start, self.end)

    def overlaps(self, other: TrackedRange) -> bool:
        """Return ``True`` when both ranges share at least one character."""

        return self.start < other.end and other.start < self.end

    def __repr__(self) -> str:
        flags = " vanished" if self.vanished else ""
        return f"<TrackedRange {self.name or self.id} [{self.start}, {self.end}){flags}>"


def rebase_offset(
    offset: int,
    edit_start: int,
    edit_end: int,
    inserted_length: int,
    *,
    advances: bool,
) -> int:
    """Map ``offset`` across an edit replacing ``[edit_start, edit_end)``.

    ``advances`` decides which side of text inserted exactly at the offset the
    marker ends up on.
    """

    if offset < edit_start:
        return offset
    if offset > edit_end:
        return offset + inserted_length - (edit_end - edit_start)
    # Inside or bordering the replaced span: the deletion collapses the offset
    # to edit_start, then the insertion happens exactly at it.
    return edit_start + (inserted_length if advances else 0)


class RangeTracker:
    """Arena of offset-tracked ranges for a single document.

    The tracker holds plain offsets and must be told about every mutation via
    :meth:`on_document_edit`; :meth:`attach` wires that up through a surface's
    edit notifications so rebasing happens synchronously with each edit.
    """

    def __init__(self, document_length: int = 0) -> None:
        self._ranges: list[TrackedRange] = []
        self._document_length = max(0, int(document_length))
        self._disconnect: Callable[[], None] | None = None

    @classmethod
    def attach(cls, surface: Any, doc: Any) -> RangeTracker:
        """Create a tracker kept in sync with ``doc`` through ``surface``."""

        tracker = cls(surface.document_length(doc))
        tracker._disconnect = surface.notify_on_edit(doc, tracker.on_document_edit)
        return tracker

    def detach(self) -> None:
        """Release every range and stop listening for edits."""

        self.clear()
        disconnect, self._disconnect = self._disconnect, None
        if disconnect is not None:
            disconnect()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    @property
    def document_length(self) -> int:
        return self._document_length

    @property
    def ranges(self) -> tuple[TrackedRange, ...]:
        return tuple(self._ranges)

    def create_range(
        self,
        start: int,
        end: int,
        policy: GrowPolicy | None = None,
        *,
        name: str = "",
    ) -> TrackedRange:
        """Register a range over ``[start, end)``.

        Raises:
            InvalidRangeError: if ``start > end`` or either offset lies
                outside the document.
        """

        self._validate(start, end, name)
        tracked = TrackedRange(start=start, end=end, policy=policy or GrowPolicy.FIXED, name=name)
        self._ranges.append(tracked)
        LOGGER.debug("Tracking %r", tracked)
        return tracked

    def set_span(self, tracked: TrackedRange, start: int, end: int) -> None:
        """Reposition ``tracked`` explicitly, clearing its vanished flag."""

        self._validate(start, end, tracked.name)
        tracked.start = start
        tracked.end = end
        tracked.vanished = False

    def destroy_range(self, tracked: TrackedRange) -> None:
        """Stop tracking ``tracked``; document text is left untouched."""

        if tracked.released:
            return
        tracked.released = True
        try:
            self._ranges.remove(tracked)
        except ValueError:
            LOGGER.debug("Range %r was not tracked by this tracker", tracked)

    def clear(self) -> None:
        for tracked in list(self._ranges):
            self.destroy_range(tracked)

    def _validate(self, start: int, end: int, name: str) -> None:
        if start > end or start < 0 or end > self._document_length:
            raise InvalidRangeError(
                message=f"Invalid range {name!r} [{start}, {end}) for a document of length {self._document_length}",
                start=start,
                end=end,
                document_length=self._document_length,
            )

    # ------------------------------------------------------------------
    # Rebasing
    # ------------------------------------------------------------------

    def on_document_edit(self, edit_start: int, edit_end: int, inserted_length: int) -> None:
        """Rebase every tracked range across an edit.

        The edit replaced ``[edit_start, edit_end)`` (offsets before the edit)
        with ``inserted_length`` characters.
        """

        deleted = edit_end - edit_start
        self._document_length = max(0, self._document_length + inserted_length - deleted)
        for tracked in self._ranges:
            if (
                deleted > 0
                and not tracked.is_empty
                and edit_start <= tracked.start
                and tracked.end <= edit_end
            ):
                tracked.start = tracked.end = edit_start
                tracked.vanished = True
                LOGGER.debug("Edit [%d, %d) swallowed %r", edit_start, edit_end, tracked)
                continue
            start = rebase_offset(
                tracked.start,
                edit_start,
                edit_end,
                inserted_length,
                advances=tracked.policy.start_advances(),
            )
            end = rebase_offset(
                tracked.end,
                edit_start,
                edit_end,
                inserted_length,
                advances=tracked.policy.end_advances(),
            )
            tracked.start = start
            tracked.end = max(start, end)

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    @staticmethod
    def text_of(text: str, tracked: TrackedRange) -> str:
        """Return the live substring of ``text`` covered by ``tracked``."""

        return text[tracked.start : tracked.end]


__all__ = [
    "TextRange",
    "GrowPolicy",
    "TrackedRange",
    "RangeTracker",
    "rebase_offset",
]

"""Context expansion planning around diff hunks.

The planner decides which block of new-file lines to request next when a
reviewer reveals more context above ("before") or below ("after") a hunk, and
whether anything remains in that direction. It never stores state: callers own
one ``HunkExpansion`` per ``(file_path, hunk_index)`` for the session and pass
it back in. Requests for the same key must be serialized by the caller, since
the next range depends on how many lines are already loaded.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Literal, Protocol

from diff_review.diff_parser import DiffLine, FileDiff, Hunk

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 20

Direction = Literal["before", "after"]


@dataclass(slots=True)
class HunkExpansion:
    """Extra context loaded around one hunk; flags only ever go from True to False."""

    before_lines: list[DiffLine] = field(default_factory=list)
    after_lines: list[DiffLine] = field(default_factory=list)
    can_expand_before: bool = True
    can_expand_after: bool = True


@dataclass(frozen=True, slots=True)
class LineRange:
    """Closed, 1-based range of new-file line numbers."""

    start: int
    end: int

    @property
    def size(self) -> int:
        return max(0, self.end - self.start + 1)


@dataclass(frozen=True, slots=True)
class ExpansionPlan:
    direction: Direction
    request: LineRange | None
    can_expand: bool
    line_offset: int


@dataclass(frozen=True, slots=True)
class NumberedLine:
    line_num: int
    content: str


@dataclass(slots=True)
class FileLines:
    """Response of a line-range fetch."""

    lines: list[NumberedLine]
    has_more: bool
    total_lines: int


class LineSource(Protocol):
    """Fetches concrete file lines for a planned range."""

    def get_lines(self, path: str, start: int, end: int) -> FileLines:
        """Return lines ``start..end`` (clamped to the file) of ``path``."""


def effective_start(hunk: Hunk, state: HunkExpansion | None = None) -> int:
    """First new-file line shown for the hunk, including loaded context."""
    loaded = len(state.before_lines) if state is not None else 0
    return _first_new_line(hunk) - loaded


def effective_end(hunk: Hunk, state: HunkExpansion | None = None) -> int:
    """Last new-file line shown for the hunk, including loaded context."""
    loaded = len(state.after_lines) if state is not None else 0
    return _first_new_line(hunk) + hunk.new_count - 1 + loaded


def plan_expansion(
    hunk: Hunk,
    prev_hunk: Hunk | None,
    next_hunk: Hunk | None,
    state: HunkExpansion | None,
    direction: Direction,
    *,
    window: int = DEFAULT_WINDOW,
    prev_state: HunkExpansion | None = None,
    next_state: HunkExpansion | None = None,
    total_lines: int | None = None,
) -> ExpansionPlan:
    """Compute the next range to fetch for one hunk and direction.

    ``can_expand`` tells whether more lines remain once this request is
    loaded. An exhausted direction returns no request and ``can_expand=False``
    on every call.
    """
    state = state or HunkExpansion()
    window = max(1, window)

    if direction == "before":
        offset = _first_new_line(hunk) - _first_old_line(hunk)
        if not state.can_expand_before:
            return ExpansionPlan(direction, None, False, offset)

        end = effective_start(hunk, state) - 1
        floor = 1
        if prev_hunk is not None:
            floor = max(floor, effective_end(prev_hunk, prev_state) + 1)
        start = max(floor, end - window + 1)
        if start > end:
            return ExpansionPlan(direction, None, False, offset)
        return ExpansionPlan(direction, LineRange(start, end), start > floor, offset)

    offset = (_first_new_line(hunk) + hunk.new_count) - (_first_old_line(hunk) + hunk.old_count)
    if not state.can_expand_after:
        return ExpansionPlan(direction, None, False, offset)

    start = max(1, effective_end(hunk, state) + 1)
    end = start + window - 1
    ceiling: int | None = None
    if next_hunk is not None:
        ceiling = effective_start(next_hunk, next_state) - 1
    if total_lines is not None:
        ceiling = total_lines if ceiling is None else min(ceiling, total_lines)
    if ceiling is not None:
        end = min(end, ceiling)
    if start > end:
        return ExpansionPlan(direction, None, False, offset)
    return ExpansionPlan(direction, LineRange(start, end), ceiling is None or end < ceiling, offset)


def apply_fetched_lines(
    state: HunkExpansion | None,
    plan: ExpansionPlan,
    fetched: FileLines | None,
) -> HunkExpansion:
    """Return a new state with fetched rows inserted as context lines."""
    state = state or HunkExpansion()
    flag_name = "can_expand_before" if plan.direction == "before" else "can_expand_after"
    if plan.request is None or fetched is None:
        return replace(
            state,
            before_lines=list(state.before_lines),
            after_lines=list(state.after_lines),
            **{flag_name: False},
        )

    request = plan.request
    new_lines = [
        DiffLine(
            type="context",
            content=row.content,
            old_line_num=row.line_num - plan.line_offset,
            new_line_num=row.line_num,
        )
        for row in fetched.lines
        if request.start <= row.line_num <= request.end
    ]

    if plan.direction == "before":
        return replace(
            state,
            before_lines=new_lines + state.before_lines,
            after_lines=list(state.after_lines),
            can_expand_before=state.can_expand_before and plan.can_expand and bool(new_lines),
        )
    return replace(
        state,
        before_lines=list(state.before_lines),
        after_lines=state.after_lines + new_lines,
        can_expand_after=(
            state.can_expand_after and plan.can_expand and fetched.has_more and bool(new_lines)
        ),
    )


def can_expand_before(
    hunks: Sequence[Hunk], index: int, states: Mapping[int, HunkExpansion]
) -> bool:
    """Whether an expand-above affordance should be offered for ``hunks[index]``."""
    state = states.get(index)
    if state is not None and not state.can_expand_before:
        return False
    start = effective_start(hunks[index], state)
    if index > 0:
        return start > effective_end(hunks[index - 1], states.get(index - 1)) + 1
    return start > 1


def can_expand_after(
    hunks: Sequence[Hunk], index: int, states: Mapping[int, HunkExpansion]
) -> bool:
    """Whether an expand-below affordance should be offered for ``hunks[index]``."""
    state = states.get(index)
    if state is not None and not state.can_expand_after:
        return False
    if index + 1 < len(hunks):
        end = effective_end(hunks[index], state)
        return end + 1 < effective_start(hunks[index + 1], states.get(index + 1))
    return True


def refresh_expansion_flags(
    hunks: Sequence[Hunk], states: Mapping[int, HunkExpansion]
) -> dict[int, HunkExpansion]:
    """Recompute flags from the latest states.

    Loading lines below one hunk can close the gap above the next one, so
    both neighbours are re-evaluated. Flags never turn back on.
    """
    refreshed: dict[int, HunkExpansion] = dict(states)
    touched = {
        neighbour
        for index in states
        for neighbour in (index - 1, index, index + 1)
        if 0 <= neighbour < len(hunks)
    }
    for index in sorted(touched):
        state = states.get(index)
        before_open = can_expand_before(hunks, index, states)
        after_open = can_expand_after(hunks, index, states)
        if state is None:
            if before_open and after_open:
                continue
            state = HunkExpansion()
        refreshed[index] = replace(
            state,
            can_expand_before=state.can_expand_before and before_open,
            can_expand_after=state.can_expand_after and after_open,
        )
    return refreshed


def expand_hunk(
    file_diff: FileDiff,
    hunk_index: int,
    direction: Direction,
    states: Mapping[int, HunkExpansion],
    source: LineSource,
    *,
    window: int = DEFAULT_WINDOW,
) -> dict[int, HunkExpansion]:
    """Plan, fetch and apply one expansion step for a file's hunk.

    ``states`` maps hunk indexes of ``file_diff`` to their session state; a
    new mapping is returned.
    """
    hunks = file_diff.hunks
    if not 0 <= hunk_index < len(hunks):
        raise IndexError(f"{file_diff.path} has no hunk {hunk_index}")

    state = states.get(hunk_index) or HunkExpansion()
    if file_diff.status == "deleted" or file_diff.is_binary:
        updated = dict(states)
        updated[hunk_index] = replace(state, can_expand_before=False, can_expand_after=False)
        return updated

    plan = plan_expansion(
        hunks[hunk_index],
        hunks[hunk_index - 1] if hunk_index > 0 else None,
        hunks[hunk_index + 1] if hunk_index + 1 < len(hunks) else None,
        state,
        direction,
        window=window,
        prev_state=states.get(hunk_index - 1),
        next_state=states.get(hunk_index + 1),
    )
    logger.debug(
        "expansion plan for %s hunk %d (%s): %s", file_diff.path, hunk_index, direction, plan
    )

    fetched = None
    if plan.request is not None:
        fetched = source.get_lines(file_diff.path, plan.request.start, plan.request.end)

    updated = dict(states)
    updated[hunk_index] = apply_fetched_lines(state, plan, fetched)
    return refresh_expansion_flags(hunks, updated)


def _first_new_line(hunk: Hunk) -> int:
    # An empty side reports the line *before* the change as its start.
    return hunk.new_start + 1 if hunk.new_count == 0 else hunk.new_start


def _first_old_line(hunk: Hunk) -> int:
    return hunk.old_start + 1 if hunk.old_count == 0 else hunk.old_start

"""Tests for context expansion planning."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from diff_review.diff_parser import DiffLine, FileDiff, Hunk
from diff_review.expansion import (
    FileLines,
    HunkExpansion,
    LineRange,
    NumberedLine,
    apply_fetched_lines,
    can_expand_after,
    can_expand_before,
    expand_hunk,
    plan_expansion,
    refresh_expansion_flags,
)


def _hunk(old_start: int, old_count: int, new_start: int, new_count: int) -> Hunk:
    return Hunk(
        header=f"@@ -{old_start},{old_count} +{new_start},{new_count} @@",
        old_start=old_start,
        old_count=old_count,
        new_start=new_start,
        new_count=new_count,
    )


def _fetch(start: int, end: int, total: int) -> FileLines:
    clamped_start = max(1, min(start, total))
    clamped_end = max(1, min(end, total))
    return FileLines(
        lines=[
            NumberedLine(line_num=num, content=f"line {num}")
            for num in range(clamped_start, clamped_end + 1)
        ],
        has_more=end < total,
        total_lines=total,
    )


@dataclass
class _FakeSource:
    total: int
    calls: list[tuple[str, int, int]] = field(default_factory=list)

    def get_lines(self, path: str, start: int, end: int) -> FileLines:
        self.calls.append((path, start, end))
        return _fetch(start, end, self.total)


def test_before_expansion_walks_up_to_line_one() -> None:
    hunk = _hunk(50, 3, 50, 3)
    state = HunkExpansion()

    plan = plan_expansion(hunk, None, None, state, "before", window=20)
    assert plan.request == LineRange(30, 49)
    assert plan.can_expand is True
    state = apply_fetched_lines(state, plan, _fetch(30, 49, 200))
    assert len(state.before_lines) == 20
    assert state.can_expand_before is True

    plan = plan_expansion(hunk, None, None, state, "before", window=20)
    assert plan.request == LineRange(10, 29)
    state = apply_fetched_lines(state, plan, _fetch(10, 29, 200))

    plan = plan_expansion(hunk, None, None, state, "before", window=20)
    assert plan.request == LineRange(1, 9)
    assert plan.can_expand is False
    state = apply_fetched_lines(state, plan, _fetch(1, 9, 200))
    assert [line.new_line_num for line in state.before_lines] == list(range(1, 50))
    assert state.can_expand_before is False


def test_exhausted_direction_is_idempotent() -> None:
    hunk = _hunk(5, 1, 5, 1)
    state = HunkExpansion(can_expand_before=False)
    first = plan_expansion(hunk, None, None, state, "before", window=20)
    second = plan_expansion(hunk, None, None, state, "before", window=20)
    assert first == second
    assert first.request is None
    assert first.can_expand is False


def test_before_range_stops_at_previous_hunk() -> None:
    previous = _hunk(10, 3, 10, 3)
    hunk = _hunk(20, 3, 20, 3)
    plan = plan_expansion(hunk, previous, None, None, "before", window=20)
    assert plan.request == LineRange(13, 19)
    assert plan.can_expand is False

    loaded = HunkExpansion(after_lines=[_context(13 + offset) for offset in range(7)])
    closed = plan_expansion(hunk, previous, None, None, "before", window=20, prev_state=loaded)
    assert closed.request is None
    assert closed.can_expand is False


def test_after_range_clamps_to_next_hunk_and_total_lines() -> None:
    hunk = _hunk(10, 3, 10, 3)
    following = _hunk(20, 3, 20, 3)
    plan = plan_expansion(hunk, None, following, None, "after", window=20)
    assert plan.request == LineRange(13, 19)
    assert plan.can_expand is False

    open_ended = plan_expansion(hunk, None, None, None, "after", window=5)
    assert open_ended.request == LineRange(13, 17)
    assert open_ended.can_expand is True

    bounded = plan_expansion(hunk, None, None, None, "after", window=20, total_lines=15)
    assert bounded.request == LineRange(13, 15)
    assert bounded.can_expand is False


def test_after_flag_uses_has_more_signal() -> None:
    hunk = _hunk(1, 3, 1, 3)
    plan = plan_expansion(hunk, None, None, None, "after", window=20)
    assert plan.request == LineRange(4, 23)

    state = apply_fetched_lines(None, plan, _fetch(4, 23, 10))
    assert [line.new_line_num for line in state.after_lines] == list(range(4, 11))
    assert state.can_expand_after is False

    more = apply_fetched_lines(None, plan, _fetch(4, 23, 100))
    assert more.can_expand_after is True


def test_line_offsets_translate_old_numbers() -> None:
    hunk = _hunk(10, 2, 12, 3)
    before = plan_expansion(hunk, None, None, None, "before", window=3)
    assert before.line_offset == 2
    state = apply_fetched_lines(None, before, _fetch(9, 11, 100))
    assert [(line.old_line_num, line.new_line_num) for line in state.before_lines] == [
        (7, 9),
        (8, 10),
        (9, 11),
    ]
    assert all(line.type == "context" for line in state.before_lines)

    after = plan_expansion(hunk, None, None, None, "after", window=2)
    assert after.line_offset == 3
    assert after.request == LineRange(15, 16)
    state = apply_fetched_lines(state, after, _fetch(15, 16, 100))
    assert [(line.old_line_num, line.new_line_num) for line in state.after_lines] == [
        (12, 15),
        (13, 16),
    ]


def test_pure_deletion_hunk_boundaries() -> None:
    hunk = _hunk(5, 2, 4, 0)
    before = plan_expansion(hunk, None, None, None, "before", window=20)
    assert before.request == LineRange(1, 4)
    assert before.line_offset == 0

    after = plan_expansion(hunk, None, None, None, "after", window=3)
    assert after.request == LineRange(5, 7)
    assert after.line_offset == -2


def test_apply_without_request_only_clears_the_flag() -> None:
    hunk = _hunk(1, 1, 1, 1)
    plan = plan_expansion(hunk, None, None, None, "before", window=20)
    assert plan.request is None
    state = apply_fetched_lines(HunkExpansion(), plan, None)
    assert state.can_expand_before is False
    assert state.can_expand_after is True
    assert state.before_lines == []


def test_affordance_predicates() -> None:
    hunks = [_hunk(1, 3, 1, 3), _hunk(10, 3, 10, 3), _hunk(14, 2, 14, 2)]
    states: dict[int, HunkExpansion] = {}
    assert can_expand_before(hunks, 0, states) is False
    assert can_expand_before(hunks, 1, states) is True
    assert can_expand_after(hunks, 1, states) is True
    assert can_expand_before(hunks, 2, {1: HunkExpansion(after_lines=[_context(13)])}) is False
    assert can_expand_after(hunks, 2, states) is True
    assert can_expand_after(hunks, 2, {2: HunkExpansion(can_expand_after=False)}) is False


def test_refresh_closes_the_gap_on_both_neighbours() -> None:
    hunks = [_hunk(10, 3, 10, 3), _hunk(20, 3, 20, 3)]
    states = {0: HunkExpansion(after_lines=[_context(num) for num in range(13, 20)])}
    refreshed = refresh_expansion_flags(hunks, states)
    assert refreshed[0].can_expand_after is False
    assert refreshed[1].can_expand_before is False
    assert refreshed[1].can_expand_after is True
    assert states[0].can_expand_after is True


def test_refresh_never_turns_flags_back_on() -> None:
    hunks = [_hunk(10, 3, 10, 3)]
    states = {0: HunkExpansion(can_expand_before=False)}
    assert refresh_expansion_flags(hunks, states)[0].can_expand_before is False


def test_expand_hunk_fetches_and_merges_state() -> None:
    file_diff = FileDiff(
        old_path="src/app.py",
        new_path="src/app.py",
        status="modified",
        hunks=[_hunk(30, 2, 30, 2), _hunk(40, 2, 40, 2)],
    )
    source = _FakeSource(total=60)

    states = expand_hunk(file_diff, 0, "after", {}, source, window=5)
    assert source.calls == [("src/app.py", 32, 36)]
    assert [line.new_line_num for line in states[0].after_lines] == [32, 33, 34, 35, 36]
    assert states[0].can_expand_after is True

    states = expand_hunk(file_diff, 1, "before", states, source, window=5)
    assert source.calls[-1] == ("src/app.py", 37, 39)
    assert states[1].can_expand_before is False
    assert states[0].can_expand_after is False

    states = expand_hunk(file_diff, 1, "before", states, source, window=5)
    assert len(source.calls) == 2


def test_expand_hunk_on_deleted_file_skips_the_source() -> None:
    file_diff = FileDiff(
        old_path="gone.txt", new_path="gone.txt", status="deleted", hunks=[_hunk(1, 2, 0, 0)]
    )
    source = _FakeSource(total=10)
    states = expand_hunk(file_diff, 0, "after", {}, source)
    assert source.calls == []
    assert states[0].can_expand_before is False
    assert states[0].can_expand_after is False


def test_expand_hunk_rejects_unknown_hunk() -> None:
    file_diff = FileDiff(old_path="a", new_path="a", status="modified", hunks=[])
    with pytest.raises(IndexError):
        expand_hunk(file_diff, 0, "before", {}, _FakeSource(total=1))


def _context(num: int) -> DiffLine:
    return DiffLine(type="context", content=f"line {num}", old_line_num=num, new_line_num=num)

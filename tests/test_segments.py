"""Tests for segment composition and the highlighting pass."""

from pathlib import Path

from diff_review.diff_parser import DiffLine, TextSegment, parse_unified_diff
from diff_review.languages import get_language_for_path
from diff_review.segments import compose_segments, highlight_files, highlight_lines

FIXTURE_DIR = Path(__file__).parent / "fixtures" / "diffs"


def _triples(segments) -> list[tuple[str, bool, str | None]]:
    return [(segment.text, segment.highlighted, segment.syntax_type) for segment in segments]


def test_syntax_only_segments_for_unpaired_lines() -> None:
    segments = compose_segments("x = 1", get_language_for_path("a.py"))
    assert _triples(segments) == [
        ("x ", False, None),
        ("=", False, "operator"),
        (" ", False, None),
        ("1", False, "number"),
    ]


def test_word_and_syntax_boundaries_are_both_kept() -> None:
    word_segments = [
        TextSegment(text="const x = ", highlighted=False),
        TextSegment(text="1;", highlighted=True),
    ]
    segments = compose_segments("const x = 1;", get_language_for_path("a.ts"), word_segments)
    assert _triples(segments) == [
        ("const", False, "keyword"),
        (" x ", False, None),
        ("=", False, "operator"),
        (" ", False, None),
        ("1", True, "number"),
        (";", True, "punctuation"),
    ]


def test_word_segment_split_inside_a_token() -> None:
    word_segments = [
        TextSegment(text="ab", highlighted=False),
        TextSegment(text="cd", highlighted=True),
    ]
    segments = compose_segments("abcd", get_language_for_path("a.py"), word_segments)
    assert _triples(segments) == [("ab", False, None), ("cd", True, None)]


def test_highlight_files_is_pure_and_covers_every_line() -> None:
    files = parse_unified_diff((FIXTURE_DIR / "simple.diff").read_text(encoding="utf-8"))
    highlighted = highlight_files(files)

    assert all(line.segments is None for line in files[0].hunks[0].lines)

    lines = highlighted[0].hunks[0].lines
    assert lines[0].type == "hunk-header"
    assert lines[0].segments is None
    for line in lines[1:]:
        assert line.segments is not None
        assert "".join(segment.text for segment in line.segments) == line.content

    deletion, first_addition, second_addition = lines[2], lines[3], lines[4]
    assert any(segment.highlighted for segment in deletion.segments or ())
    assert any(segment.highlighted for segment in first_addition.segments or ())
    assert not any(segment.highlighted for segment in second_addition.segments or ())
    assert {segment.syntax_type for segment in first_addition.segments or ()} >= {
        "string",
        "punctuation",
    }


def test_highlight_files_can_skip_word_diff_and_syntax() -> None:
    files = parse_unified_diff((FIXTURE_DIR / "simple.diff").read_text(encoding="utf-8"))
    plain = highlight_files(files, word_diff=False, syntax=False)
    for line in plain[0].hunks[0].lines[1:]:
        assert _triples(line.segments or ()) == [(line.content, False, None)]


def test_highlight_lines_for_expanded_context() -> None:
    lines = [DiffLine(type="context", content="return None", old_line_num=3, new_line_num=4)]
    highlighted = highlight_lines(lines, "mod.py")
    assert _triples(highlighted[0].segments or ()) == [
        ("return", False, "keyword"),
        (" ", False, None),
        ("None", False, "keyword"),
    ]
    assert lines[0].segments is None

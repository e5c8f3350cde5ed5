"""Compose word-diff and syntax spans into renderable line segments."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from diff_review.diff_parser import DiffLine, FileDiff, Hunk, TextSegment
from diff_review.languages import LanguageConfig, get_language_for_path
from diff_review.syntax import SyntaxToken, tokenize_line
from diff_review.word_diff import (
    DEFAULT_MAX_LINE_LENGTH,
    compute_word_diff,
    merge_segments,
    pair_changed_lines,
)


def compose_segments(
    content: str,
    language: LanguageConfig | None,
    word_segments: Sequence[TextSegment] | None = None,
) -> tuple[TextSegment, ...]:
    """Build the final segments of one line.

    Without word-diff segments every syntax token becomes an unhighlighted
    segment. With them, both span lists are walked by character offset and
    split at every boundary of either, so each output segment carries the
    syntax type of one token and the highlight flag of one word-diff span.
    """
    tokens = tokenize_line(content, language)
    if word_segments is None:
        return tuple(
            TextSegment(text=token.text, highlighted=False, syntax_type=token.type)
            for token in tokens
        )
    return tuple(merge_segments(_interleave(tokens, word_segments)))


def highlight_files(
    files: Sequence[FileDiff],
    *,
    word_diff: bool = True,
    syntax: bool = True,
    max_line_length: int | None = DEFAULT_MAX_LINE_LENGTH,
) -> list[FileDiff]:
    """Return copies of ``files`` with segments attached to every content line.

    The input records are left untouched.
    """
    highlighted: list[FileDiff] = []
    for file_diff in files:
        language = get_language_for_path(file_diff.path) if syntax else None
        hunks = [
            _highlight_hunk(
                hunk,
                language,
                word_diff=word_diff,
                max_line_length=max_line_length,
            )
            for hunk in file_diff.hunks
        ]
        highlighted.append(replace(file_diff, hunks=hunks))
    return highlighted


def highlight_lines(lines: Sequence[DiffLine], path: str) -> list[DiffLine]:
    """Attach syntax-only segments to standalone lines such as expanded context."""
    language = get_language_for_path(path)
    return [replace(line, segments=compose_segments(line.content, language)) for line in lines]


def _highlight_hunk(
    hunk: Hunk,
    language: LanguageConfig | None,
    *,
    word_diff: bool,
    max_line_length: int | None,
) -> Hunk:
    word_segments: dict[int, list[TextSegment]] = {}
    if word_diff:
        for deletion_index, addition_index in pair_changed_lines(hunk.lines):
            result = compute_word_diff(
                hunk.lines[deletion_index].content,
                hunk.lines[addition_index].content,
                max_line_length=max_line_length,
            )
            word_segments[deletion_index] = result.deletion_segments
            word_segments[addition_index] = result.addition_segments

    lines: list[DiffLine] = []
    for index, line in enumerate(hunk.lines):
        if line.type == "hunk-header":
            lines.append(replace(line))
            continue
        segments = compose_segments(line.content, language, word_segments.get(index))
        lines.append(replace(line, segments=segments))
    return replace(hunk, lines=lines)


def _interleave(
    tokens: Sequence[SyntaxToken], word_segments: Sequence[TextSegment]
) -> list[TextSegment]:
    output: list[TextSegment] = []
    token_index = segment_index = 0
    token_offset = segment_offset = 0

    while token_index < len(tokens) and segment_index < len(word_segments):
        token = tokens[token_index]
        segment = word_segments[segment_index]
        take = min(len(token.text) - token_offset, len(segment.text) - segment_offset)
        if take > 0:
            output.append(
                TextSegment(
                    text=token.text[token_offset : token_offset + take],
                    highlighted=segment.highlighted,
                    syntax_type=token.type,
                )
            )
        token_offset += take
        segment_offset += take
        if token_offset >= len(token.text):
            token_index += 1
            token_offset = 0
        if segment_offset >= len(segment.text):
            segment_index += 1
            segment_offset = 0

    # Word segments always cover the content; anything left is plain syntax.
    if token_index < len(tokens):
        token = tokens[token_index]
        output.append(
            TextSegment(text=token.text[token_offset:], highlighted=False, syntax_type=token.type)
        )
        output.extend(
            TextSegment(text=rest.text, highlighted=False, syntax_type=rest.type)
            for rest in tokens[token_index + 1 :]
        )
    return output

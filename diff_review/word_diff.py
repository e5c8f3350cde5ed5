"""Word-level intra-line diff between paired deletion/addition lines."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from re import compile

from diff_review.diff_parser import DiffLine, TextSegment

logger = logging.getLogger(__name__)

DEFAULT_MAX_LINE_LENGTH = 1000

_WORD_RE = compile(r"\s+|\S+")


@dataclass(slots=True)
class WordDiff:
    """Highlight segments for one deletion/addition pair."""

    deletion_segments: list[TextSegment]
    addition_segments: list[TextSegment]


def tokenize_words(text: str) -> list[str]:
    """Split text into alternating whitespace and non-whitespace runs."""
    return _WORD_RE.findall(text)


def longest_common_subsequence(a: Sequence[str], b: Sequence[str]) -> list[str]:
    """Classic dynamic-programming LCS over two token lists."""
    m, n = len(a), len(b)
    table = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(1, m + 1):
        row, prev_row = table[i], table[i - 1]
        token = a[i - 1]
        for j in range(1, n + 1):
            if token == b[j - 1]:
                row[j] = prev_row[j - 1] + 1
            else:
                row[j] = max(prev_row[j], row[j - 1])

    lcs: list[str] = []
    i, j = m, n
    while i > 0 and j > 0:
        if a[i - 1] == b[j - 1]:
            lcs.append(a[i - 1])
            i -= 1
            j -= 1
        elif table[i - 1][j] > table[i][j - 1]:
            i -= 1
        else:
            j -= 1
    lcs.reverse()
    return lcs


def compute_word_diff(
    deletion: str,
    addition: str,
    *,
    max_line_length: int | None = DEFAULT_MAX_LINE_LENGTH,
) -> WordDiff:
    """Mark which tokens of a paired deletion/addition changed."""
    if max_line_length is not None and max(len(deletion), len(addition)) > max_line_length:
        logger.debug(
            "line pair exceeds %d characters, using coarse highlighting", max_line_length
        )
        return _coarse_word_diff(deletion, addition)

    deletion_tokens = tokenize_words(deletion)
    addition_tokens = tokenize_words(addition)
    lcs = longest_common_subsequence(deletion_tokens, addition_tokens)
    return WordDiff(
        deletion_segments=merge_segments(_mark_tokens(deletion_tokens, lcs)),
        addition_segments=merge_segments(_mark_tokens(addition_tokens, lcs)),
    )


def pair_changed_lines(lines: Sequence[DiffLine]) -> list[tuple[int, int]]:
    """Pair deletions with additions inside replace blocks of a hunk.

    A maximal run of deletions immediately followed by a maximal run of
    additions is paired index by index; the surplus on either side stays
    unpaired. This is a positional heuristic, not an alignment.
    """
    pairs: list[tuple[int, int]] = []
    index = 0
    total = len(lines)
    while index < total:
        if lines[index].type != "deletion":
            index += 1
            continue

        deletions: list[int] = []
        while index < total and lines[index].type == "deletion":
            deletions.append(index)
            index += 1

        additions: list[int] = []
        while index < total and lines[index].type == "addition":
            additions.append(index)
            index += 1

        pairs.extend(zip(deletions, additions))
    return pairs


def merge_segments(segments: Sequence[TextSegment]) -> list[TextSegment]:
    """Join neighbours sharing the same highlight flag and syntax type."""
    merged: list[TextSegment] = []
    for segment in segments:
        if (
            merged
            and merged[-1].highlighted == segment.highlighted
            and merged[-1].syntax_type == segment.syntax_type
        ):
            last = merged[-1]
            merged[-1] = TextSegment(
                text=last.text + segment.text,
                highlighted=last.highlighted,
                syntax_type=last.syntax_type,
            )
        else:
            merged.append(
                TextSegment(
                    text=segment.text,
                    highlighted=segment.highlighted,
                    syntax_type=segment.syntax_type,
                )
            )
    return merged


def _mark_tokens(tokens: list[str], lcs: list[str]) -> list[TextSegment]:
    segments: list[TextSegment] = []
    lcs_index = 0
    for token in tokens:
        if lcs_index < len(lcs) and token == lcs[lcs_index]:
            segments.append(TextSegment(text=token, highlighted=False))
            lcs_index += 1
        else:
            segments.append(TextSegment(text=token, highlighted=True))
    return segments


def _coarse_word_diff(deletion: str, addition: str) -> WordDiff:
    changed = deletion != addition
    return WordDiff(
        deletion_segments=[TextSegment(text=deletion, highlighted=changed)] if deletion else [],
        addition_segments=[TextSegment(text=addition, highlighted=changed)] if addition else [],
    )

"""Unified diff parser primitives."""

from __future__ import annotations

from dataclasses import dataclass, field
from re import Match, compile
from typing import Literal

from diff_review.paths import (
    file_extension,
    is_null_path,
    parse_git_header_paths,
    parse_marker_path,
)

HUNK_HEADER_RE = compile(
    r"^@@ -(?P<old_start>\d+)(?:,(?P<old_count>\d*))? "
    r"\+(?P<new_start>\d+)(?:,(?P<new_count>\d*))? @@(?P<section>.*)$"
)

IMAGE_EXTENSIONS = frozenset(
    {"png", "jpg", "jpeg", "gif", "svg", "webp", "ico", "bmp", "tiff", "tif"}
)

LineType = Literal["context", "addition", "deletion", "hunk-header"]
FileStatus = Literal["added", "modified", "deleted"]
SyntaxType = Literal["keyword", "string", "comment", "number", "operator", "type", "punctuation"]


@dataclass(slots=True)
class TextSegment:
    """A contiguous span of a line's text."""

    text: str
    highlighted: bool = False
    syntax_type: SyntaxType | None = None


@dataclass(slots=True)
class DiffLine:
    """A single rendered row within a hunk."""

    type: LineType
    content: str
    old_line_num: int | None = None
    new_line_num: int | None = None
    segments: tuple[TextSegment, ...] | None = None


@dataclass(slots=True)
class Hunk:
    """A diff hunk. ``lines[0]`` is always the synthetic hunk-header row."""

    header: str
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: list[DiffLine] = field(default_factory=list)

    @property
    def old_end(self) -> int:
        return self.old_start + self.old_count - 1

    @property
    def new_end(self) -> int:
        return self.new_start + self.new_count - 1


@dataclass(slots=True)
class FileDiff:
    """A parsed file-level diff."""

    old_path: str
    new_path: str
    status: FileStatus
    hunks: list[Hunk] = field(default_factory=list)
    additions: int = 0
    deletions: int = 0
    is_binary: bool = False
    is_image: bool = False

    @property
    def path(self) -> str:
        """Display path used for lookups, comments and expansion keys."""
        if self.new_path and not is_null_path(self.new_path):
            return self.new_path
        return self.old_path


@dataclass(slots=True)
class HunkHeader:
    """Parsed hunk header values."""

    old_start: int
    old_count: int
    new_start: int
    new_count: int
    section: str


@dataclass(slots=True)
class _FileBuilder:
    old_path: str
    new_path: str
    status: FileStatus | None = None
    hunks: list[Hunk] = field(default_factory=list)
    additions: int = 0
    deletions: int = 0
    is_binary: bool = False
    is_image: bool = False

    def classify_from_markers(self) -> None:
        if is_null_path(self.new_path):
            self.status = "deleted"
            self.new_path = self.old_path
        elif is_null_path(self.old_path):
            self.status = "added"
        else:
            self.status = "modified"

    def build(self) -> FileDiff:
        if self.status is None:
            self.classify_from_markers()
        return FileDiff(
            old_path=self.old_path,
            new_path=self.new_path,
            status=self.status or "modified",
            hunks=self.hunks,
            additions=self.additions,
            deletions=self.deletions,
            is_binary=self.is_binary,
            is_image=self.is_image,
        )


@dataclass(slots=True)
class _ParserState:
    """Scan accumulator: the open file, the open hunk and both line counters."""

    files: list[FileDiff] = field(default_factory=list)
    current_file: _FileBuilder | None = None
    current_hunk: Hunk | None = None
    old_lineno: int = 0
    new_lineno: int = 0

    def flush_hunk(self) -> None:
        if self.current_file is not None and self.current_hunk is not None:
            self.current_file.hunks.append(self.current_hunk)
        self.current_hunk = None

    def flush_file(self) -> None:
        self.flush_hunk()
        if self.current_file is not None:
            self.files.append(self.current_file.build())
        self.current_file = None

    def hunk_expects_old(self) -> bool:
        hunk = self.current_hunk
        return hunk is not None and self.old_lineno < hunk.old_start + hunk.old_count

    def hunk_expects_new(self) -> bool:
        hunk = self.current_hunk
        return hunk is not None and self.new_lineno < hunk.new_start + hunk.new_count


def parse_unified_diff(diff_text: str) -> list[FileDiff]:
    """Parse unified diff text into file/hunk/line models.

    Never raises: malformed or truncated input yields a best-effort partial
    model, so hunk line lists may not match their declared counts.
    """
    state = _ParserState()

    for raw_line in _split_lines(diff_text):
        if raw_line.startswith("diff --git "):
            state.flush_file()
            paths = parse_git_header_paths(raw_line)
            old_path, new_path = paths if paths is not None else ("", "")
            state.current_file = _FileBuilder(old_path=old_path, new_path=new_path)
            continue

        if raw_line.startswith("--- ") and not state.hunk_expects_old():
            marker_file = _start_marker_section(state)
            marker_file.old_path = parse_marker_path(raw_line[4:])
            continue

        if raw_line.startswith("+++ ") and not state.hunk_expects_new():
            if state.current_file is None:
                state.current_file = _FileBuilder(old_path="", new_path="")
            state.flush_hunk()
            state.current_file.new_path = parse_marker_path(raw_line[4:])
            state.current_file.classify_from_markers()
            continue

        current_file = state.current_file
        if current_file is None:
            continue

        if state.current_hunk is None:
            if raw_line.startswith("new file mode"):
                current_file.status = "added"
            elif raw_line.startswith("deleted file mode"):
                current_file.status = "deleted"
            elif raw_line.startswith("Binary files "):
                current_file.is_binary = True
                display_path = current_file.new_path or current_file.old_path
                if display_path and file_extension(display_path) in IMAGE_EXTENSIONS:
                    current_file.is_image = True

        if raw_line.startswith("@@"):
            parsed = _parse_hunk_header(raw_line)
            if parsed is not None:
                state.flush_hunk()
                state.current_hunk = Hunk(
                    header=raw_line,
                    old_start=parsed.old_start,
                    old_count=parsed.old_count,
                    new_start=parsed.new_start,
                    new_count=parsed.new_count,
                )
                state.current_hunk.lines.append(
                    DiffLine(type="hunk-header", content=parsed.section)
                )
                state.old_lineno = parsed.old_start
                state.new_lineno = parsed.new_start
                continue

        hunk = state.current_hunk
        if hunk is None:
            continue

        if raw_line.startswith("+"):
            hunk.lines.append(
                DiffLine(type="addition", content=raw_line[1:], new_line_num=state.new_lineno)
            )
            state.new_lineno += 1
            current_file.additions += 1
        elif raw_line.startswith("-"):
            hunk.lines.append(
                DiffLine(type="deletion", content=raw_line[1:], old_line_num=state.old_lineno)
            )
            state.old_lineno += 1
            current_file.deletions += 1
        elif raw_line.startswith(" ") or raw_line == "":
            hunk.lines.append(
                DiffLine(
                    type="context",
                    content=raw_line[1:],
                    old_line_num=state.old_lineno,
                    new_line_num=state.new_lineno,
                )
            )
            state.old_lineno += 1
            state.new_lineno += 1

    state.flush_file()
    return state.files


def _start_marker_section(state: _ParserState) -> _FileBuilder:
    # Plain unified diffs (no "diff --git" header) open a new file at "---".
    current = state.current_file
    if current is not None and (current.hunks or state.current_hunk is not None):
        state.flush_file()
    if state.current_file is None:
        state.current_file = _FileBuilder(old_path="", new_path="")
    return state.current_file


def _split_lines(diff_text: str) -> list[str]:
    lines = diff_text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def _parse_hunk_header(header: str) -> HunkHeader | None:
    match: Match[str] | None = HUNK_HEADER_RE.match(header)
    if match is None:
        return None

    old_count = int(match.group("old_count")) if match.group("old_count") else 1
    new_count = int(match.group("new_count")) if match.group("new_count") else 1

    return HunkHeader(
        old_start=int(match.group("old_start")),
        old_count=old_count,
        new_start=int(match.group("new_start")),
        new_count=new_count,
        section=match.group("section"),
    )

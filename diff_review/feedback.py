"""Review comments and the markdown feedback prompt handed back to a coding agent."""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Literal

from diff_review.diff_parser import DiffLine, FileDiff
from diff_review.expansion import HunkExpansion

CommentLineType = Literal["addition", "deletion", "context", "file"]

COMMENT_LINE_TYPES = frozenset({"addition", "deletion", "context", "file"})
EMPTY_FEEDBACK = "No comments to include in the prompt."
TRUNCATION_MARKER = "\n... [feedback truncated to max-bytes] ...\n"


@dataclass(slots=True)
class ReviewComment:
    """One reviewer note attached to a line, or to a whole file."""

    file_path: str
    content: str
    line_number: int | None = None
    line_type: CommentLineType = "file"
    hunk_index: int | None = None

    @property
    def key(self) -> str:
        return comment_key(self.file_path, self.line_number, self.line_type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "line_number": self.line_number,
            "line_type": self.line_type,
            "hunk_index": self.hunk_index,
            "content": self.content,
        }


def comment_key(file_path: str, line_number: int | None, line_type: str) -> str:
    """Identity of a comment within a session; saving again replaces the earlier one."""
    if line_type == "file" or line_number is None:
        return f"{file_path}:file-level"
    return f"{file_path}:{line_number}:{line_type}"


def find_line_content(
    files: Sequence[FileDiff],
    expansions: Mapping[tuple[str, int], HunkExpansion] | None,
    file_path: str,
    line_number: int,
    line_type: str,
) -> str | None:
    """Return the text of the commented line, searching expanded context too."""
    file_diff = next(
        (item for item in files if file_path in {item.new_path, item.old_path}), None
    )
    if file_diff is None:
        return None

    expansions = expansions or {}
    for hunk_index, hunk in enumerate(file_diff.hunks):
        expansion = expansions.get((file_path, hunk_index))
        candidates: list[DiffLine] = []
        if expansion is not None:
            candidates.extend(expansion.before_lines)
        candidates.extend(hunk.lines)
        if expansion is not None:
            candidates.extend(expansion.after_lines)
        for line in candidates:
            if _matches_line(line, line_number, line_type):
                return line.content
    return None


def build_feedback_markdown(
    comments: Iterable[ReviewComment],
    files: Sequence[FileDiff],
    expansions: Mapping[tuple[str, int], HunkExpansion] | None = None,
    *,
    redact: bool = False,
    max_bytes: int | None = None,
) -> str:
    """Build the markdown prompt listing every comment grouped by file."""
    unique: dict[str, ReviewComment] = {}
    for comment in comments:
        unique[comment.key] = comment
    if not unique:
        return EMPTY_FEEDBACK

    by_file: dict[str, list[ReviewComment]] = {}
    for comment in unique.values():
        by_file.setdefault(comment.file_path, []).append(comment)

    lines: list[str] = [
        "# Code Review Feedback",
        "",
        "Please address the following code review comments:",
        "",
    ]
    for file_path in sorted(by_file):
        file_comments = sorted(
            by_file[file_path],
            key=lambda item: (item.line_number is not None, item.line_number or 0),
        )
        lines.append(f"## File: {file_path}")
        lines.append("")
        fence = "```" + PurePosixPath(file_path).suffix.lstrip(".")

        for comment in file_comments:
            if comment.line_type == "file" or comment.line_number is None:
                lines.append("### File comment")
            else:
                lines.append(f"### Line {comment.line_number} ({comment.line_type})")
                content = find_line_content(
                    files, expansions, file_path, comment.line_number, comment.line_type
                )
                if content:
                    lines.extend([fence, content, "```"])
            lines.append(f"**Comment:** {comment.content}")
            lines.append("")

    markdown = "\n".join(lines)
    if redact:
        markdown = redact_text(markdown)
    if max_bytes is not None:
        markdown, _was_truncated = truncate_text_to_bytes(
            markdown, max_bytes=max_bytes, marker=TRUNCATION_MARKER
        )
    return markdown


def load_comments(path: Path) -> list[ReviewComment]:
    """Read comments from a JSON file: a list, or an object with a ``comments`` list."""
    try:
        loaded = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc

    if isinstance(loaded, dict):
        loaded = loaded.get("comments")
    if not isinstance(loaded, list):
        raise ValueError(f"{path} must contain a list of comments")
    return [_comment_from_mapping(item, index) for index, item in enumerate(loaded)]


def redact_text(text: str) -> str:
    """Redact common secret-like tokens from text outputs."""
    redacted = text
    redacted = _PRIVATE_KEY_BLOCK_RE.sub("<redacted-private-key>", redacted)
    redacted = _BEARER_TOKEN_RE.sub("Bearer <redacted-token>", redacted)
    redacted = _ASSIGNMENT_SECRET_RE.sub(r"\1\2<redacted>", redacted)
    redacted = _AWS_ACCESS_KEY_RE.sub("AKIA<redacted>", redacted)
    redacted = _GITHUB_TOKEN_RE.sub("ghp_<redacted>", redacted)
    return redacted


def truncate_text_to_bytes(text: str, *, max_bytes: int, marker: str) -> tuple[str, bool]:
    """Truncate utf-8 text to max bytes with deterministic marker."""
    if max_bytes <= 0:
        return ("", True)
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return (text, False)

    marker_bytes = marker.encode("utf-8")
    if len(marker_bytes) >= max_bytes:
        clipped = marker_bytes[:max_bytes].decode("utf-8", errors="ignore")
        return (clipped, True)

    keep = max_bytes - len(marker_bytes)
    clipped = encoded[:keep].decode("utf-8", errors="ignore")
    return (clipped + marker, True)


def _matches_line(line: DiffLine, line_number: int, line_type: str) -> bool:
    if line.type != line_type:
        return False
    if line_type == "deletion":
        return line.old_line_num == line_number
    return line.new_line_num == line_number


def _comment_from_mapping(item: Any, index: int) -> ReviewComment:
    field_name = f"comments[{index}]"
    if not isinstance(item, dict):
        raise ValueError(f"{field_name} must be an object")

    file_path = item.get("file_path")
    content = item.get("content")
    if not isinstance(file_path, str) or not file_path:
        raise ValueError(f"{field_name}.file_path must be a non-empty string")
    if not isinstance(content, str):
        raise ValueError(f"{field_name}.content must be a string")

    line_number = _as_optional_int(item.get("line_number"), f"{field_name}.line_number")

    line_type = str(item.get("line_type", "file" if line_number is None else "context")).lower()
    if line_type not in COMMENT_LINE_TYPES:
        choices = ", ".join(sorted(COMMENT_LINE_TYPES))
        raise ValueError(f"{field_name}.line_type must be one of: {choices}")
    if line_type != "file" and line_number is None:
        raise ValueError(f"{field_name}.line_number is required for {line_type} comments")

    hunk_index = _as_optional_int(item.get("hunk_index"), f"{field_name}.hunk_index")

    return ReviewComment(
        file_path=file_path,
        content=content,
        line_number=line_number if line_type != "file" else None,
        line_type=line_type,  # type: ignore[arg-type]
        hunk_index=hunk_index,
    )


def _as_optional_int(raw: Any, field_name: str) -> int | None:
    if raw is None:
        return None
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ValueError(f"{field_name} must be an integer")
    return raw


_PRIVATE_KEY_BLOCK_RE = re.compile(
    r"-----BEGIN [A-Z ]*PRIVATE KEY-----.*?-----END [A-Z ]*PRIVATE KEY-----",
    re.DOTALL,
)
_BEARER_TOKEN_RE = re.compile(r"Bearer\s+[A-Za-z0-9._~+/=-]{10,}")
_ASSIGNMENT_SECRET_RE = re.compile(
    r"(?i)\b(api[_-]?key|secret|token|password)\b(\s*[:=]\s*)(['\"]?)[^\s'\"`]{6,}\3"
)
_AWS_ACCESS_KEY_RE = re.compile(r"\bAKIA[0-9A-Z]{16}\b")
_GITHUB_TOKEN_RE = re.compile(r"\bghp_[A-Za-z0-9]{20,}\b")

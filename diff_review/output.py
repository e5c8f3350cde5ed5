"""Output rendering."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

import click

from diff_review import __version__
from diff_review.diff_parser import DiffLine, FileDiff, Hunk, TextSegment
from diff_review.expansion import FileLines, HunkExpansion
from diff_review.paths import file_extension, is_null_path

ExpansionMap = Mapping[tuple[str, int], HunkExpansion]

IMAGE_MIME_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "webp": "image/webp",
    "ico": "image/x-icon",
    "bmp": "image/bmp",
    "tiff": "image/tiff",
    "tif": "image/tiff",
}

STATUS_LABELS = {"added": "A", "modified": "M", "deleted": "D"}

_SYNTAX_COLORS = {
    "keyword": "magenta",
    "string": "green",
    "comment": "bright_black",
    "number": "cyan",
    "operator": "yellow",
    "type": "blue",
}
_LINE_MARKERS = {"addition": "+", "deletion": "-", "context": " "}
_LINE_COLORS = {"addition": "green", "deletion": "red"}


def image_mime_type(path: str) -> str:
    """Return the MIME type served for an image path."""
    return IMAGE_MIME_TYPES.get(file_extension(path), "application/octet-stream")


def render_human(
    files: Sequence[FileDiff],
    *,
    show_segments: bool = True,
    expansions: ExpansionMap | None = None,
) -> str:
    """Render a colorized, line-numbered diff view."""
    if not files:
        return "No changes."

    blocks: list[str] = []
    for file_diff in files:
        lines = [_file_heading(file_diff)]
        if file_diff.is_binary:
            kind = f"image, {image_mime_type(file_diff.path)}" if file_diff.is_image else "binary"
            lines.append(click.style(f"  Binary file ({kind})", dim=True))
        for hunk_index, hunk in enumerate(file_diff.hunks):
            expansion = (expansions or {}).get((file_diff.path, hunk_index))
            lines.extend(_render_hunk(hunk, expansion, show_segments=show_segments))
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def render_status(files: Sequence[FileDiff], *, diff_hash: str) -> str:
    """Render a one-line-per-file change summary."""
    lines = [click.style(f"hash: {diff_hash}", bold=True)]
    for file_diff in files:
        lines.append(
            f"{STATUS_LABELS[file_diff.status]} {_display_paths(file_diff)} "
            f"+{file_diff.additions} -{file_diff.deletions}"
        )
    if not files:
        lines.append("No changes.")
    return "\n".join(lines)


def render_file_lines(path: str, fetched: FileLines) -> str:
    """Render a fetched line range with line numbers."""
    lines = [click.style(f"{path} ({fetched.total_lines} lines)", bold=True)]
    for row in fetched.lines:
        lines.append(f"{row.line_num:>6}  {row.content}")
    if fetched.has_more:
        lines.append(click.style("  ...", dim=True))
    return "\n".join(lines)


def render_json(
    files: Sequence[FileDiff],
    *,
    directory: str | None,
    diff_hash: str,
    input_source: str,
    expansions: ExpansionMap | None = None,
) -> str:
    """Render stable JSON output for tooling."""
    payload = build_json_payload(
        files,
        directory=directory,
        diff_hash=diff_hash,
        input_source=input_source,
        expansions=expansions,
    )
    return json.dumps(payload, sort_keys=True)


def build_json_payload(
    files: Sequence[FileDiff],
    *,
    directory: str | None,
    diff_hash: str,
    input_source: str,
    expansions: ExpansionMap | None = None,
) -> dict[str, Any]:
    """Build stable JSON payload for tooling."""
    meta: dict[str, Any] = {
        "generated_at": datetime.now(tz=UTC)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z"),
        "directory": directory,
        "hash": diff_hash,
        "input_source": input_source,
        "version": __version__,
    }
    return {
        "files": [_serialize_file(item, expansions or {}) for item in files],
        "meta": meta,
    }


def serialize_file_lines(path: str, fetched: FileLines) -> dict[str, Any]:
    return {
        "path": path,
        "lines": [{"line_num": row.line_num, "content": row.content} for row in fetched.lines],
        "has_more": fetched.has_more,
        "total_lines": fetched.total_lines,
    }


def _serialize_file(file_diff: FileDiff, expansions: ExpansionMap) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "path": file_diff.path,
        "old_path": file_diff.old_path,
        "new_path": file_diff.new_path,
        "status": file_diff.status,
        "additions": file_diff.additions,
        "deletions": file_diff.deletions,
        "is_binary": file_diff.is_binary,
        "is_image": file_diff.is_image,
        "hunks": [
            _serialize_hunk(hunk, expansions.get((file_diff.path, index)))
            for index, hunk in enumerate(file_diff.hunks)
        ],
    }
    if file_diff.is_image:
        payload["mime_type"] = image_mime_type(file_diff.path)
    return payload


def _serialize_hunk(hunk: Hunk, expansion: HunkExpansion | None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "header": hunk.header,
        "old_start": hunk.old_start,
        "old_count": hunk.old_count,
        "new_start": hunk.new_start,
        "new_count": hunk.new_count,
        "lines": [_serialize_line(line) for line in hunk.lines],
    }
    if expansion is not None:
        payload["expansion"] = {
            "before_lines": [_serialize_line(line) for line in expansion.before_lines],
            "after_lines": [_serialize_line(line) for line in expansion.after_lines],
            "can_expand_before": expansion.can_expand_before,
            "can_expand_after": expansion.can_expand_after,
        }
    return payload


def _serialize_line(line: DiffLine) -> dict[str, Any]:
    return {
        "type": line.type,
        "content": line.content,
        "old_line_num": line.old_line_num,
        "new_line_num": line.new_line_num,
        "segments": (
            [_serialize_segment(segment) for segment in line.segments]
            if line.segments is not None
            else None
        ),
    }


def _serialize_segment(segment: TextSegment) -> dict[str, Any]:
    return {
        "text": segment.text,
        "highlighted": segment.highlighted,
        "syntax_type": segment.syntax_type,
    }


def _file_heading(file_diff: FileDiff) -> str:
    label = STATUS_LABELS[file_diff.status]
    counts = (
        click.style(f"+{file_diff.additions}", fg="green")
        + " "
        + click.style(f"-{file_diff.deletions}", fg="red")
    )
    return f"{click.style(label + ' ' + _display_paths(file_diff), bold=True)}  {counts}"


def _display_paths(file_diff: FileDiff) -> str:
    old_path, new_path = file_diff.old_path, file_diff.new_path
    renamed = old_path and new_path and old_path != new_path
    if renamed and not (is_null_path(old_path) or is_null_path(new_path)):
        return f"{old_path} -> {new_path}"
    return file_diff.path


def _render_hunk(
    hunk: Hunk, expansion: HunkExpansion | None, *, show_segments: bool
) -> list[str]:
    rendered = [click.style(hunk.header, fg="cyan")]
    if expansion is not None and expansion.before_lines:
        rendered.extend(_render_line(line, show_segments) for line in expansion.before_lines)
    rendered.extend(
        _render_line(line, show_segments) for line in hunk.lines if line.type != "hunk-header"
    )
    if expansion is not None and expansion.after_lines:
        rendered.extend(_render_line(line, show_segments) for line in expansion.after_lines)
    return rendered


def _render_line(line: DiffLine, show_segments: bool) -> str:
    old_num = "" if line.old_line_num is None else str(line.old_line_num)
    new_num = "" if line.new_line_num is None else str(line.new_line_num)
    gutter = click.style(f"{old_num:>5} {new_num:>5} ", dim=True)
    marker = click.style(_LINE_MARKERS.get(line.type, " "), fg=_LINE_COLORS.get(line.type))

    if show_segments and line.segments is not None:
        body = "".join(_style_segment(segment, line.type) for segment in line.segments)
    else:
        body = click.style(line.content, fg=_LINE_COLORS.get(line.type))
    return f"{gutter}{marker} {body}"


def _style_segment(segment: TextSegment, line_type: str) -> str:
    color = _SYNTAX_COLORS.get(segment.syntax_type or "") or _LINE_COLORS.get(line_type)
    if segment.highlighted:
        return click.style(segment.text, fg=color, bold=True, reverse=True)
    return click.style(segment.text, fg=color)

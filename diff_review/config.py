"""Configuration loading for diff-review."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from diff_review.expansion import DEFAULT_WINDOW
from diff_review.word_diff import DEFAULT_MAX_LINE_LENGTH

CONFIG_FILENAMES = (".diff-review.toml", "diff-review.toml")
PYPROJECT_FILENAME = "pyproject.toml"
PYPROJECT_TOOL_KEYS = ("diff_review", "diff-review")
DEFAULT_MAX_BYTES = 200000


@dataclass(slots=True)
class SourceConfig:
    """Which working-tree changes make up the reviewed diff."""

    staged: bool = True
    untracked: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"staged": self.staged, "untracked": self.untracked}


@dataclass(slots=True)
class HighlightConfig:
    """Word-diff and syntax highlighting controls."""

    word_diff: bool = True
    syntax: bool = True
    max_line_length: int = DEFAULT_MAX_LINE_LENGTH

    def to_dict(self) -> dict[str, Any]:
        return {
            "word_diff": self.word_diff,
            "syntax": self.syntax,
            "max_line_length": self.max_line_length,
        }


@dataclass(slots=True)
class ExpandConfig:
    window: int = DEFAULT_WINDOW

    def to_dict(self) -> dict[str, Any]:
        return {"window": self.window}


@dataclass(slots=True)
class FeedbackConfig:
    """Feedback prompt defaults."""

    redact_secrets: bool = False
    max_bytes: int = DEFAULT_MAX_BYTES

    def to_dict(self) -> dict[str, Any]:
        return {"redact_secrets": self.redact_secrets, "max_bytes": self.max_bytes}


@dataclass(slots=True)
class AppConfig:
    """Settings resolved for one repository; ``source`` names the file they came from."""

    format: str = "human"
    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    source_options: SourceConfig = field(default_factory=SourceConfig)
    highlight: HighlightConfig = field(default_factory=HighlightConfig)
    expand: ExpandConfig = field(default_factory=ExpandConfig)
    feedback: FeedbackConfig = field(default_factory=FeedbackConfig)
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": self.format,
            "include": list(self.include),
            "exclude": list(self.exclude),
            "source_options": self.source_options.to_dict(),
            "highlight": self.highlight.to_dict(),
            "expand": self.expand.to_dict(),
            "feedback": self.feedback.to_dict(),
            "source": self.source,
        }


def load_app_config(repo: Path, config_path: Path | None = None) -> AppConfig:
    """Resolve configuration for ``repo``.

    An explicit ``config_path`` (relative paths are taken from ``repo``) must
    exist. Otherwise the first of ``.diff-review.toml``, ``diff-review.toml``
    and a ``[tool.diff_review]`` table in ``pyproject.toml`` wins, and with
    none of them the defaults apply.
    """
    root = repo.resolve()
    if config_path is not None:
        explicit = config_path if config_path.is_absolute() else root / config_path
        if not explicit.exists():
            raise ValueError(f"Config file does not exist: {explicit}")
        return _from_mapping(_read_config_table(explicit), source=str(explicit))

    candidates = [root / name for name in CONFIG_FILENAMES]
    candidates.append(root / PYPROJECT_FILENAME)
    for candidate in candidates:
        if not candidate.is_file():
            continue
        table = _read_config_table(candidate)
        if candidate.name == PYPROJECT_FILENAME and not table:
            continue
        return _from_mapping(table, source=str(candidate))
    return AppConfig()


def default_config_template() -> str:
    """Return a starter config template."""
    return "\n".join(
        [
            'format = "human"',
            'include = ["src/**"]',
            'exclude = ["docs/**", "*.lock"]',
            "",
            "[source]",
            "staged = true",
            "untracked = true",
            "",
            "[highlight]",
            "word_diff = true",
            "syntax = true",
            f"max_line_length = {DEFAULT_MAX_LINE_LENGTH}",
            "",
            "[expand]",
            f"window = {DEFAULT_WINDOW}",
            "",
            "[feedback]",
            "redact_secrets = false",
            f"max_bytes = {DEFAULT_MAX_BYTES}",
            "",
        ]
    )


def _read_config_table(path: Path) -> dict[str, Any]:
    # pyproject.toml only contributes its tool table; dedicated files may also
    # use top-level keys.
    try:
        document = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in {path}: {exc}") from exc

    tool = document.get("tool")
    if isinstance(tool, dict):
        for key in PYPROJECT_TOOL_KEYS:
            table = tool.get(key)
            if isinstance(table, dict):
                return table
    if path.name == PYPROJECT_FILENAME:
        return {}
    return document


def _from_mapping(mapping: dict[str, Any], *, source: str) -> AppConfig:
    source_mapping = _as_table(mapping.get("source"), "source")
    highlight_mapping = _as_table(mapping.get("highlight"), "highlight")
    expand_mapping = _as_table(mapping.get("expand"), "expand")
    feedback_mapping = _as_table(mapping.get("feedback"), "feedback")

    return AppConfig(
        format=_as_choice(mapping.get("format", "human"), {"human", "json"}, "format"),
        include=_as_str_list(mapping.get("include"), "include"),
        exclude=_as_str_list(mapping.get("exclude"), "exclude"),
        source_options=SourceConfig(
            staged=_as_bool(source_mapping.get("staged", True), "source.staged"),
            untracked=_as_bool(source_mapping.get("untracked", True), "source.untracked"),
        ),
        highlight=_parse_highlight_config(highlight_mapping),
        expand=ExpandConfig(
            window=_as_positive_int(expand_mapping.get("window", DEFAULT_WINDOW), "expand.window")
        ),
        feedback=FeedbackConfig(
            redact_secrets=_as_bool(
                feedback_mapping.get("redact_secrets", False), "feedback.redact_secrets"
            ),
            max_bytes=_as_positive_int(
                feedback_mapping.get("max_bytes", DEFAULT_MAX_BYTES), "feedback.max_bytes"
            ),
        ),
        source=source,
    )


def _parse_highlight_config(value: dict[str, Any]) -> HighlightConfig:
    return HighlightConfig(
        word_diff=_as_bool(value.get("word_diff", True), "highlight.word_diff"),
        syntax=_as_bool(value.get("syntax", True), "highlight.syntax"),
        max_line_length=_as_positive_int(
            value.get("max_line_length", DEFAULT_MAX_LINE_LENGTH), "highlight.max_line_length"
        ),
    )


def _as_table(value: Any, field_name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{field_name} must be a table/object")
    return value


def _as_str_list(value: Any, field_name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{field_name} must be a list of strings")
    items: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"{field_name} must be a list of strings")
        items.append(item)
    return items


def _as_choice(raw: Any, allowed: set[str], field_name: str) -> str:
    value = str(raw).lower()
    if value not in allowed:
        choices = ", ".join(sorted(allowed))
        raise ValueError(f"{field_name} must be one of: {choices}")
    return value


def _as_int(raw: Any, field_name: str) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ValueError(f"{field_name} must be an integer")
    return raw


def _as_positive_int(raw: Any, field_name: str) -> int:
    value = _as_int(raw, field_name)
    if value <= 0:
        raise ValueError(f"{field_name} must be > 0")
    return value


def _as_bool(raw: Any, field_name: str) -> bool:
    if not isinstance(raw, bool):
        raise ValueError(f"{field_name} must be a boolean")
    return raw

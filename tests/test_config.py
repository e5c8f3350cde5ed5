"""Tests for configuration loading and validation."""

from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

from diff_review.config import (
    AppConfig,
    FeedbackConfig,
    default_config_template,
    load_app_config,
)


def _repo(tmp_path: Path) -> Path:
    repo = tmp_path / "repo"
    repo.mkdir()
    return repo


def test_defaults_without_config_files(tmp_path: Path) -> None:
    config = load_app_config(_repo(tmp_path))
    assert config == AppConfig()
    assert config.expand.window == 20
    assert config.source is None


def test_dot_file_wins_over_pyproject(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    (repo / "pyproject.toml").write_text(
        "\n".join(["[tool.diff_review]", 'format = "human"', "", "[expand]", "window = 5"]),
        encoding="utf-8",
    )
    (repo / ".diff-review.toml").write_text(
        "\n".join(
            [
                'format = "JSON"',
                'exclude = ["*.lock"]',
                "",
                "[source]",
                "untracked = false",
                "",
                "[highlight]",
                "syntax = false",
                "",
                "[expand]",
                "window = 8",
            ]
        ),
        encoding="utf-8",
    )

    config = load_app_config(repo)
    assert config.format == "json"
    assert config.exclude == ["*.lock"]
    assert config.source_options.staged is True
    assert config.source_options.untracked is False
    assert config.highlight.syntax is False
    assert config.highlight.word_diff is True
    assert config.expand.window == 8
    assert config.source == str(repo.resolve() / ".diff-review.toml")


def test_pyproject_hyphenated_tool_key(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    (repo / "pyproject.toml").write_text(
        "\n".join(
            [
                "[project]",
                'name = "demo"',
                "",
                '[tool."diff-review".feedback]',
                "redact_secrets = true",
                "max_bytes = 512",
            ]
        ),
        encoding="utf-8",
    )
    config = load_app_config(repo)
    assert config.feedback.redact_secrets is True
    assert config.feedback.max_bytes == 512
    assert config.source == str(repo.resolve() / "pyproject.toml")


def test_pyproject_without_tool_section_is_ignored(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    (repo / "pyproject.toml").write_text('[project]\nname = "demo"\n', encoding="utf-8")
    assert load_app_config(repo).source is None


def test_explicit_config_path(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    (repo / ".diff-review.toml").write_text('format = "json"\n', encoding="utf-8")
    (repo / "custom.toml").write_text('include = ["lib/**"]\n', encoding="utf-8")

    config = load_app_config(repo, Path("custom.toml"))
    assert config.format == "human"
    assert config.include == ["lib/**"]

    with pytest.raises(ValueError) as excinfo:
        load_app_config(repo, Path("nope.toml"))
    assert "does not exist" in str(excinfo.value)


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ('format = "yaml"', "format must be one of: human, json"),
        ('include = "src/**"', "include must be a list of strings"),
        ("source = 1", "source must be a table/object"),
        ("[source]\nstaged = 1", "source.staged must be a boolean"),
        ("[expand]\nwindow = 0", "expand.window must be > 0"),
        ("[highlight]\nmax_line_length = true", "highlight.max_line_length must be an integer"),
        ("[feedback]\nmax_bytes = -4", "feedback.max_bytes must be > 0"),
        ("format = ", "Invalid TOML"),
    ],
)
def test_invalid_config_values(tmp_path: Path, content: str, message: str) -> None:
    repo = _repo(tmp_path)
    (repo / ".diff-review.toml").write_text(content + "\n", encoding="utf-8")
    with pytest.raises(ValueError) as excinfo:
        load_app_config(repo)
    assert message in str(excinfo.value)


def test_template_round_trips_through_the_loader(tmp_path: Path) -> None:
    template = default_config_template()
    assert tomllib.loads(template)["expand"]["window"] == 20

    repo = _repo(tmp_path)
    (repo / ".diff-review.toml").write_text(template, encoding="utf-8")
    payload = load_app_config(repo).to_dict()
    assert payload["include"] == ["src/**"]
    assert payload["source_options"] == {"staged": True, "untracked": True}
    assert payload["feedback"] == FeedbackConfig().to_dict()
    assert payload["feedback"] == {"redact_secrets": False, "max_bytes": 200000}
    assert set(payload) == {
        "format",
        "include",
        "exclude",
        "source_options",
        "highlight",
        "expand",
        "feedback",
        "source",
    }

"""Integration tests for the working-tree diff source and file-range source."""

from __future__ import annotations

from pathlib import Path

import pytest

from diff_review.diff_parser import parse_unified_diff
from diff_review.git import (
    NotAGitRepoError,
    WorkingTreeLineSource,
    diff_hash,
    get_full_diff,
    read_file_lines,
    resolve_git_root,
)
from tests.helpers_git import (
    build_numbered_lines,
    commit_all,
    init_repo,
    plain_dir,
    stage,
    write_file,
)


def test_resolve_git_root_from_subdirectory(tmp_path: Path) -> None:
    repo = init_repo(tmp_path)
    write_file(repo, "pkg/sub/module.py", "VALUE = 1\n")
    assert resolve_git_root(repo / "pkg" / "sub").resolve() == repo.resolve()


def test_resolve_git_root_outside_repository(tmp_path: Path) -> None:
    with pytest.raises(NotAGitRepoError) as excinfo:
        resolve_git_root(plain_dir(tmp_path))
    assert "Not a git repository" in str(excinfo.value)


def test_full_diff_combines_unstaged_staged_and_untracked(tmp_path: Path) -> None:
    repo = init_repo(tmp_path)
    write_file(repo, "src/unstaged.py", "a = 1\n")
    write_file(repo, "src/staged.py", "b = 1\n")
    commit_all(repo, "baseline")

    write_file(repo, "src/unstaged.py", "a = 2\n")
    write_file(repo, "src/staged.py", "b = 2\n")
    stage(repo, "src/staged.py")
    write_file(repo, "notes/new file.md", "# hello\nworld\n")
    write_file(repo, ".gitignore", "*.log\n")
    write_file(repo, "debug.log", "ignored\n")

    files = {item.path: item for item in parse_unified_diff(get_full_diff(repo))}
    assert set(files) == {"src/unstaged.py", "src/staged.py", "notes/new file.md", ".gitignore"}
    assert files["notes/new file.md"].status == "added"
    assert files["notes/new file.md"].additions == 2
    assert files["src/staged.py"].status == "modified"


def test_full_diff_can_skip_staged_and_untracked(tmp_path: Path) -> None:
    repo = init_repo(tmp_path)
    write_file(repo, "one.txt", "1\n")
    write_file(repo, "two.txt", "2\n")
    commit_all(repo, "baseline")

    write_file(repo, "one.txt", "one\n")
    write_file(repo, "two.txt", "two\n")
    stage(repo, "two.txt")
    write_file(repo, "three.txt", "3\n")

    files = parse_unified_diff(get_full_diff(repo, staged=False, untracked=False))
    assert [item.path for item in files] == ["one.txt"]


def test_diff_hash_tracks_changes(tmp_path: Path) -> None:
    repo = init_repo(tmp_path)
    write_file(repo, "a.txt", "a\n")
    commit_all(repo, "baseline")

    clean = diff_hash(get_full_diff(repo))
    write_file(repo, "a.txt", "b\n")
    changed = diff_hash(get_full_diff(repo))
    assert clean != changed
    assert changed == diff_hash(get_full_diff(repo))
    assert len(changed) == 16


def test_read_file_lines_clamps_and_reports_has_more(tmp_path: Path) -> None:
    repo = init_repo(tmp_path)
    write_file(repo, "src/data.txt", build_numbered_lines("row", 10))

    head = read_file_lines(repo, "src/data.txt", 1, 3)
    assert [(row.line_num, row.content) for row in head.lines] == [
        (1, "row-1"),
        (2, "row-2"),
        (3, "row-3"),
    ]
    assert head.has_more is True
    assert head.total_lines == 10

    tail = read_file_lines(repo, "src/data.txt", 8, 40)
    assert [row.line_num for row in tail.lines] == [8, 9, 10]
    assert tail.has_more is False

    clamped = read_file_lines(repo, "src/data.txt", 0, 1)
    assert [row.line_num for row in clamped.lines] == [1]


def test_read_file_lines_rejects_bad_paths(tmp_path: Path) -> None:
    repo = init_repo(tmp_path)
    (tmp_path / "secret.txt").write_text("nope\n", encoding="utf-8")

    with pytest.raises(ValueError):
        read_file_lines(repo, "../secret.txt", 1, 1)
    with pytest.raises(FileNotFoundError):
        read_file_lines(repo, "missing.txt", 1, 1)


def test_working_tree_line_source(tmp_path: Path) -> None:
    repo = init_repo(tmp_path)
    write_file(repo, "empty.txt", "")
    write_file(repo, "two.txt", "x\ny")

    source = WorkingTreeLineSource(repo)
    assert source.get_lines("empty.txt", 1, 5).lines == []
    fetched = source.get_lines("two.txt", 2, 2)
    assert [row.content for row in fetched.lines] == ["y"]
    assert fetched.total_lines == 2


def test_full_diff_paths_with_spaces_and_non_ascii(tmp_path: Path) -> None:
    repo = init_repo(tmp_path)
    write_file(repo, "docs/café menu.md", "espresso\n")
    commit_all(repo, "baseline")

    write_file(repo, "docs/café menu.md", "cortado\n")
    write_file(repo, "dir/é name.py", "x = 1\n")

    files = {item.path: item for item in parse_unified_diff(get_full_diff(repo))}
    assert set(files) == {"docs/café menu.md", "dir/é name.py"}
    assert files["dir/é name.py"].status == "added"
    assert files["dir/é name.py"].additions == 1
    assert files["docs/café menu.md"].status == "modified"
    assert (files["docs/café menu.md"].additions, files["docs/café menu.md"].deletions) == (1, 1)

"""Git subprocess helpers and the working-tree file-range source."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from subprocess import run

from diff_review.expansion import FileLines, NumberedLine

logger = logging.getLogger(__name__)

DIFF_HASH_LENGTH = 16


class GitError(RuntimeError):
    """Raised when git command execution fails."""


class NotAGitRepoError(GitError):
    """Raised when the target directory is not inside a git work tree."""

    def __init__(self, directory: Path | str) -> None:
        super().__init__(
            f"Not a git repository: {directory}\n\n"
            "diff-review requires a git repository to display changes. "
            "Run it from within a git repository or pass a path to one."
        )
        self.directory = str(directory)


def resolve_git_root(path: Path) -> Path:
    """Return the top-level directory of the repository containing ``path``."""
    try:
        output = _run_git(path, ["rev-parse", "--show-toplevel"])
    except (GitError, OSError) as exc:
        raise NotAGitRepoError(path) from exc
    return Path(output.strip())


def get_full_diff(repo: Path, *, staged: bool = True, untracked: bool = True) -> str:
    """Return unstaged, staged and untracked changes as one unified diff.

    Untracked files are synthesized as added-file diffs against ``/dev/null``.
    """
    chunks = [_run_git(repo, ["diff", "--no-color"])]
    if staged:
        chunks.append(_run_git(repo, ["diff", "--no-color", "--cached"]))
    if untracked:
        for path in list_untracked_files(repo):
            chunks.append(get_untracked_file_diff(repo, path))
    return "".join(chunks)


def list_untracked_files(repo: Path) -> list[str]:
    """Return untracked, non-ignored paths relative to the repository root."""
    output = _run_git(repo, ["ls-files", "--others", "--exclude-standard", "-z"])
    return [item for item in output.split("\0") if item]


def get_untracked_file_diff(repo: Path, path: str) -> str:
    """Diff one untracked file against an empty file."""
    # --no-index exits with 1 whenever the inputs differ.
    return _run_git(
        repo,
        ["diff", "--no-color", "--no-index", "--", "/dev/null", path],
        ok_codes=(0, 1),
    )


def diff_hash(diff_text: str) -> str:
    """Return a short content fingerprint used to detect working-tree changes."""
    digest = hashlib.sha256(diff_text.encode("utf-8"))
    return digest.hexdigest()[:DIFF_HASH_LENGTH]


def read_file_lines(repo: Path, path: str, start: int, end: int) -> FileLines:
    """Read lines ``start..end`` (1-based, inclusive) of a working-tree file.

    Both bounds are clamped into ``[1, total_lines]``. ``has_more`` reports
    whether the file continues past the requested ``end``.
    """
    target = _resolve_inside(repo, path)
    if not target.is_file():
        raise FileNotFoundError(f"File not found: {path}")

    content = target.read_text(encoding="utf-8", errors="replace")
    all_lines = content.split("\n")
    if all_lines and all_lines[-1] == "":
        all_lines.pop()
    total_lines = len(all_lines)
    if total_lines == 0:
        return FileLines(lines=[], has_more=False, total_lines=0)

    clamped_start = max(1, min(start, total_lines))
    clamped_end = max(1, min(end, total_lines))
    lines = [
        NumberedLine(line_num=line_num, content=all_lines[line_num - 1])
        for line_num in range(clamped_start, clamped_end + 1)
    ]
    return FileLines(lines=lines, has_more=end < total_lines, total_lines=total_lines)


class WorkingTreeLineSource:
    """Line source reading the current working tree of one repository."""

    def __init__(self, repo: Path) -> None:
        self.repo = repo

    def get_lines(self, path: str, start: int, end: int) -> FileLines:
        return read_file_lines(self.repo, path, start, end)


def _resolve_inside(repo: Path, path: str) -> Path:
    root = repo.resolve()
    target = (root / path).resolve()
    if not target.is_relative_to(root):
        raise ValueError(f"Path escapes the repository: {path}")
    return target


def _run_git(repo: Path, args: list[str], *, ok_codes: tuple[int, ...] = (0,)) -> str:
    logger.debug("running git %s in %s", " ".join(args), repo)
    completed = run(
        ["git", *args],
        cwd=repo,
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
    )
    if completed.returncode not in ok_codes:
        stderr = (completed.stderr or "").strip()
        raise GitError(stderr or f"git {' '.join(args)} failed")
    return completed.stdout

"""CLI entrypoint for diff-review."""

from __future__ import annotations

import fnmatch
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Annotated, Literal

import typer

from diff_review import __version__
from diff_review.config import AppConfig, default_config_template, load_app_config
from diff_review.diff_parser import FileDiff, parse_unified_diff
from diff_review.expansion import HunkExpansion, expand_hunk
from diff_review.feedback import build_feedback_markdown, load_comments
from diff_review.git import (
    GitError,
    WorkingTreeLineSource,
    diff_hash,
    get_full_diff,
    read_file_lines,
    resolve_git_root,
)
from diff_review.output import (
    render_file_lines,
    render_human,
    render_json,
    render_status,
    serialize_file_lines,
)
from diff_review.segments import highlight_files, highlight_lines

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="diff-review",
    no_args_is_help=True,
    help="Review uncommitted git changes and hand curated feedback to a coding agent.",
)


def version_callback(value: bool) -> None:
    """Print version and exit when --version is provided."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option("--version", help="Show version and exit.", callback=version_callback),
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", help="Log debug details to stderr.")
    ] = False,
) -> None:
    """Root command callback."""
    _ = version
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command("show")
def show_command(
    diff_file: Annotated[Path | None, typer.Option(help="Path to unified diff file.")] = None,
    stdin: Annotated[bool, typer.Option(help="Read unified diff from stdin.")] = False,
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    format: Annotated[
        str | None, typer.Option(help="Output format: human|json.", show_default="human")
    ] = None,
    include: Annotated[list[str] | None, typer.Option(help="Include glob pattern.")] = None,
    exclude: Annotated[list[str] | None, typer.Option(help="Exclude glob pattern.")] = None,
    word_diff: Annotated[
        bool | None,
        typer.Option("--word-diff/--no-word-diff", help="Highlight changed words."),
    ] = None,
    syntax: Annotated[
        bool | None,
        typer.Option("--syntax/--no-syntax", help="Apply syntax highlighting."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Show the reviewed diff with word-level and syntax highlighting."""
    app_config = _load_config_or_raise(repo, config_file)
    output_format = _format_or_raise(format or app_config.format)
    diff_ctx = _prepare_diff_context(
        diff_file=diff_file,
        stdin=stdin,
        repo=repo,
        include=include,
        exclude=exclude,
        app_config=app_config,
        word_diff=word_diff,
        syntax=syntax,
    )

    if output_format == "json":
        typer.echo(
            render_json(
                diff_ctx.files,
                directory=diff_ctx.directory,
                diff_hash=diff_ctx.hash,
                input_source=diff_ctx.input_source,
            )
        )
        return
    typer.echo(render_human(diff_ctx.files))


@app.command("status")
def status_command(
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Print the change fingerprint and a per-file summary of the working tree."""
    output_format = _format_or_raise(format)
    app_config = _load_config_or_raise(repo, config_file)
    diff_ctx = _prepare_diff_context(
        diff_file=None,
        stdin=False,
        repo=repo,
        include=None,
        exclude=None,
        app_config=app_config,
        word_diff=False,
        syntax=False,
    )

    if output_format == "json":
        payload = {
            "hash": diff_ctx.hash,
            "directory": diff_ctx.directory,
            "files": [
                {
                    "path": file_diff.path,
                    "status": file_diff.status,
                    "additions": file_diff.additions,
                    "deletions": file_diff.deletions,
                }
                for file_diff in diff_ctx.files
            ],
        }
        typer.echo(json.dumps(payload, sort_keys=True))
        return
    typer.echo(render_status(diff_ctx.files, diff_hash=diff_ctx.hash))


@app.command("context")
def context_command(
    path: Annotated[str, typer.Argument(help="File path relative to the repository root.")],
    start: Annotated[int, typer.Option(help="First line (1-based).")] = 1,
    end: Annotated[int, typer.Option(help="Last line (inclusive).")] = 1,
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
) -> None:
    """Print a range of lines from a working-tree file."""
    output_format = _format_or_raise(format)
    root = _resolve_root_or_raise(repo)
    try:
        fetched = read_file_lines(root, path, start, end)
    except (FileNotFoundError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="path") from exc

    if output_format == "json":
        typer.echo(json.dumps(serialize_file_lines(path, fetched), sort_keys=True))
        return
    typer.echo(render_file_lines(path, fetched))


@app.command("expand")
def expand_command(
    path: Annotated[str, typer.Argument(help="Changed file to expand.")],
    hunk: Annotated[int, typer.Option(help="Hunk index within the file (0-based).")] = 0,
    direction: Annotated[
        Literal["before", "after"],
        typer.Option(help="Reveal context above or below the hunk."),
    ] = "before",
    times: Annotated[int, typer.Option(min=1, help="Number of expansion steps.")] = 1,
    window: Annotated[
        int | None, typer.Option(min=1, help="Lines revealed per step.", show_default="20")
    ] = None,
    diff_file: Annotated[Path | None, typer.Option(help="Path to unified diff file.")] = None,
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Show one changed file with extra context revealed around a hunk."""
    output_format = _format_or_raise(format)
    app_config = _load_config_or_raise(repo, config_file)
    diff_ctx = _prepare_diff_context(
        diff_file=diff_file,
        stdin=False,
        repo=repo,
        include=None,
        exclude=None,
        app_config=app_config,
        word_diff=None,
        syntax=None,
    )
    file_diff = _find_file_or_raise(diff_ctx.files, path)
    if not 0 <= hunk < len(file_diff.hunks):
        raise typer.BadParameter(
            f"{file_diff.path} has {len(file_diff.hunks)} hunk(s)", param_hint="--hunk"
        )

    source = WorkingTreeLineSource(Path(diff_ctx.directory))
    states: dict[int, HunkExpansion] = {}
    for _step in range(times):
        try:
            states = expand_hunk(
                file_diff,
                hunk,
                direction,
                states,
                source,
                window=window or app_config.expand.window,
            )
        except (FileNotFoundError, ValueError) as exc:
            raise typer.BadParameter(str(exc), param_hint="path") from exc

    expansions = {
        (file_diff.path, index): _highlight_expansion(state, file_diff.path, app_config)
        for index, state in states.items()
    }
    if output_format == "json":
        typer.echo(
            render_json(
                [file_diff],
                directory=diff_ctx.directory,
                diff_hash=diff_ctx.hash,
                input_source=diff_ctx.input_source,
                expansions=expansions,
            )
        )
        return
    typer.echo(render_human([file_diff], expansions=expansions))


@app.command("prompt")
def prompt_command(
    comments: Annotated[
        Path, typer.Option("--comments", help="JSON file with review comments.")
    ],
    diff_file: Annotated[Path | None, typer.Option(help="Path to unified diff file.")] = None,
    stdin: Annotated[bool, typer.Option(help="Read unified diff from stdin.")] = False,
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    max_bytes: Annotated[int | None, typer.Option("--max-bytes")] = None,
    redact_secrets: Annotated[
        bool | None,
        typer.Option("--redact-secrets/--no-redact-secrets", help="Redact secret-like values."),
    ] = None,
    format: Annotated[
        Literal["markdown", "json"],
        typer.Option(help="Output format."),
    ] = "markdown",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Generate a paste-ready review feedback prompt for a coding agent."""
    app_config = _load_config_or_raise(repo, config_file)
    resolved_max_bytes = max_bytes if max_bytes is not None else app_config.feedback.max_bytes
    resolved_redact = (
        redact_secrets if redact_secrets is not None else app_config.feedback.redact_secrets
    )

    try:
        review_comments = load_comments(comments)
    except (OSError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--comments") from exc

    diff_ctx = _prepare_diff_context(
        diff_file=diff_file,
        stdin=stdin,
        repo=repo,
        include=None,
        exclude=None,
        app_config=app_config,
        word_diff=False,
        syntax=False,
    )
    prompt_md = build_feedback_markdown(
        review_comments,
        diff_ctx.files,
        redact=resolved_redact,
        max_bytes=resolved_max_bytes,
    )

    if format == "markdown":
        typer.echo(prompt_md)
        return

    payload = {
        "prompt_markdown": prompt_md,
        "comments": [comment.to_dict() for comment in review_comments],
        "meta": {
            "max_bytes": resolved_max_bytes,
            "redact_secrets": resolved_redact,
            "input_source": diff_ctx.input_source,
            "hash": diff_ctx.hash,
        },
    }
    typer.echo(json.dumps(payload, sort_keys=True))


@app.command("config")
def config_command(
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Show resolved configuration."""
    output_format = _format_or_raise(format)
    app_config = _load_config_or_raise(repo, config_file)
    payload = app_config.to_dict()

    if output_format == "json":
        typer.echo(json.dumps(payload, sort_keys=True))
        return

    lines = [
        "Resolved configuration:",
        f"- source: {payload['source'] or 'defaults'}",
        f"- format: {payload['format']}",
        f"- include: {payload['include']}",
        f"- exclude: {payload['exclude']}",
        f"- source.staged: {payload['source_options']['staged']}",
        f"- source.untracked: {payload['source_options']['untracked']}",
        f"- highlight.word_diff: {payload['highlight']['word_diff']}",
        f"- highlight.syntax: {payload['highlight']['syntax']}",
        f"- highlight.max_line_length: {payload['highlight']['max_line_length']}",
        f"- expand.window: {payload['expand']['window']}",
        f"- feedback.redact_secrets: {payload['feedback']['redact_secrets']}",
        f"- feedback.max_bytes: {payload['feedback']['max_bytes']}",
    ]
    typer.echo("\n".join(lines))


@app.command("config-init")
def config_init_command(
    out: Annotated[Path, typer.Option(help="Output path for starter config TOML.")] = Path(
        ".diff-review.toml"
    ),
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite if file already exists."),
    ] = False,
) -> None:
    """Create a starter repository config file."""
    out_path = out.resolve()
    if out_path.exists() and not force:
        raise typer.BadParameter(
            f"Refusing to overwrite existing file: {out_path}. Use --force to overwrite."
        )
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(default_config_template(), encoding="utf-8")
    typer.echo(f"Wrote starter config: {out_path}")


@app.command("config-validate")
def config_validate_command(
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    config_file: Annotated[
        Path,
        typer.Option("--config", help="Path to config TOML file to validate."),
    ] = Path(".diff-review.toml"),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
) -> None:
    """Validate a config file."""
    output_format = _format_or_raise(format)
    app_config = _load_config_or_raise(repo, config_file)
    payload = {"ok": True, "source": app_config.source}
    if output_format == "json":
        typer.echo(json.dumps(payload, sort_keys=True))
        return
    typer.echo("\n".join(["Config is valid.", f"- source: {payload['source']}"]))


def main() -> None:
    """Console script entrypoint."""
    app()


class _DiffContext:
    """Resolved diff input shared by the viewing commands."""

    def __init__(
        self,
        *,
        files: list[FileDiff],
        diff_text: str,
        input_source: str,
        directory: str,
    ) -> None:
        self.files = files
        self.diff_text = diff_text
        self.input_source = input_source
        self.directory = directory
        self.hash = diff_hash(diff_text)


def _prepare_diff_context(
    *,
    diff_file: Path | None,
    stdin: bool,
    repo: Path,
    include: list[str] | None,
    exclude: list[str] | None,
    app_config: AppConfig,
    word_diff: bool | None,
    syntax: bool | None,
) -> _DiffContext:
    if diff_file and stdin:
        raise typer.BadParameter("Use either --diff-file or --stdin, not both.")

    try:
        diff_text, input_source, directory = _resolve_diff_input(
            diff_file=diff_file,
            stdin=stdin,
            repo=repo,
            app_config=app_config,
        )
    except (GitError, OSError) as exc:
        raise typer.BadParameter(str(exc)) from exc

    include_patterns = include if include is not None else app_config.include
    exclude_patterns = exclude if exclude is not None else app_config.exclude

    files = parse_unified_diff(diff_text)
    filtered_files = _filter_files(files, includes=include_patterns, excludes=exclude_patterns)
    logger.debug("parsed %d file(s), %d after filtering", len(files), len(filtered_files))

    highlight = app_config.highlight
    highlighted = highlight_files(
        filtered_files,
        word_diff=highlight.word_diff if word_diff is None else word_diff,
        syntax=highlight.syntax if syntax is None else syntax,
        max_line_length=highlight.max_line_length,
    )
    return _DiffContext(
        files=highlighted,
        diff_text=diff_text,
        input_source=input_source,
        directory=directory,
    )


def _resolve_diff_input(
    *,
    diff_file: Path | None,
    stdin: bool,
    repo: Path,
    app_config: AppConfig,
) -> tuple[str, str, str]:
    if diff_file is not None:
        diff_text = diff_file.read_text(encoding="utf-8")
        return (diff_text, f"diff_file:{diff_file}", str(repo.resolve()))

    if stdin:
        return (sys.stdin.read(), "stdin", str(repo.resolve()))

    root = resolve_git_root(repo)
    diff_text = get_full_diff(
        root,
        staged=app_config.source_options.staged,
        untracked=app_config.source_options.untracked,
    )
    return (diff_text, "git_working_tree", str(root))


def _filter_files(
    files: list[FileDiff], *, includes: list[str], excludes: list[str]
) -> list[FileDiff]:
    filtered: list[FileDiff] = []
    for file_diff in files:
        path = file_diff.path
        if includes and not any(fnmatch.fnmatch(path, pattern) for pattern in includes):
            continue
        if excludes and any(fnmatch.fnmatch(path, pattern) for pattern in excludes):
            continue
        filtered.append(file_diff)
    return filtered


def _find_file_or_raise(files: list[FileDiff], path: str) -> FileDiff:
    for file_diff in files:
        if path in {file_diff.path, file_diff.old_path, file_diff.new_path}:
            return file_diff
    raise typer.BadParameter(f"No changes for {path}", param_hint="path")


def _highlight_expansion(
    state: HunkExpansion, path: str, app_config: AppConfig
) -> HunkExpansion:
    if not app_config.highlight.syntax:
        return state
    return replace(
        state,
        before_lines=highlight_lines(state.before_lines, path),
        after_lines=highlight_lines(state.after_lines, path),
    )


def _resolve_root_or_raise(repo: Path) -> Path:
    try:
        return resolve_git_root(repo)
    except GitError as exc:
        raise typer.BadParameter(str(exc), param_hint="--repo") from exc


def _format_or_raise(value: str) -> str:
    output_format = value.lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")
    return output_format


def _load_config_or_raise(repo: Path, config_file: Path | None = None) -> AppConfig:
    try:
        return load_app_config(repo, config_path=config_file)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="config") from exc

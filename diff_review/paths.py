"""Git path quoting helpers."""

from __future__ import annotations

from re import Match, compile

NULL_PATHS = frozenset({"/dev/null", "dev/null"})

_OCTAL_RUN_RE = compile(r"(?:\\[0-7]{3})+")
_OCTAL_RE = compile(r"\\([0-7]{3})")
_QUOTED_HEADER_RE = compile(r'^"a/(.+)" "b/(.+)"$')
_SIMPLE_ESCAPE_RE = compile(r'\\([nt"\\])')
_SIMPLE_ESCAPES = {"n": "\n", "t": "\t", '"': '"', "\\": "\\"}


def unescape_git_path(raw: str) -> str:
    """Decode git's quoted path format into literal text.

    Runs of octal escapes are decoded together as one UTF-8 byte sequence so
    multi-byte characters survive; C-style escapes are handled afterwards.
    """
    value = raw
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1]

    value = _OCTAL_RUN_RE.sub(_decode_octal_run, value)
    return _SIMPLE_ESCAPE_RE.sub(lambda match: _SIMPLE_ESCAPES[match.group(1)], value)


def parse_git_header_paths(line: str) -> tuple[str, str] | None:
    """Extract old/new paths from a ``diff --git`` header line."""
    remainder = line[len("diff --git ") :] if line.startswith("diff --git ") else line

    quoted = _QUOTED_HEADER_RE.match(remainder)
    if quoted is not None:
        return (unescape_git_path(quoted.group(1)), unescape_git_path(quoted.group(2)))

    if not remainder.startswith("a/"):
        return None
    rest = remainder[2:]

    # Same path on both sides: "X b/X" has length 2 * len(X) + 3.
    if len(rest) > 3 and (len(rest) - 3) % 2 == 0:
        path_len = (len(rest) - 3) // 2
        first = rest[:path_len]
        separator = rest[path_len : path_len + 3]
        second = rest[path_len + 3 :]
        if separator == " b/" and first == second:
            return (first, second)

    split_index = rest.rfind(" b/")
    if split_index != -1:
        return (rest[:split_index], rest[split_index + 3 :])
    return None


def parse_marker_path(value: str) -> str:
    """Return the path carried by a ``---``/``+++`` marker line.

    Anything after the first tab is dropped: git appends one to names that
    contain spaces, and plain unified diffs put a timestamp there.
    """
    token = value.split("\t", 1)[0]
    if len(token) >= 2 and token.startswith('"') and token.endswith('"'):
        return unescape_git_path(_strip_ab_prefix(token[1:-1]))
    return _strip_ab_prefix(token)


def is_null_path(path: str | None) -> bool:
    return path in NULL_PATHS


def file_extension(path: str) -> str:
    """Lower-cased text after the last dot (the whole name when there is none)."""
    return path.rsplit(".", 1)[-1].lower()


def _strip_ab_prefix(path: str) -> str:
    if path.startswith("a/") or path.startswith("b/"):
        return path[2:]
    return path


def _decode_octal_run(match: Match[str]) -> str:
    # \400 and above do not fit a byte; 0xff never decodes, so it becomes U+FFFD.
    data = bytes(min(int(code, 8), 0xFF) for code in _OCTAL_RE.findall(match.group(0)))
    return data.decode("utf-8", errors="replace")

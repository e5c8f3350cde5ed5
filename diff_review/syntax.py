"""Lightweight per-line syntax tokenizer for presentational highlighting."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache
from re import IGNORECASE, Pattern, compile, escape

from diff_review.diff_parser import SyntaxType
from diff_review.languages import LanguageConfig

MULTI_CHAR_OPERATORS = (
    "===", "!==", "==", "!=", "<=", ">=", "&&", "||", "=>", "??", "?.", "...",
    "<<", ">>", ">>>", "++", "--", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=",
    "<<=", ">>=",
)  # fmt: skip


@dataclass(slots=True)
class SyntaxToken:
    """A run of text with an optional syntax type (None means plain text)."""

    text: str
    type: SyntaxType | None = None


@dataclass(frozen=True, slots=True)
class _Rule:
    type: SyntaxType | None
    pattern: Pattern[str]
    after_colon: bool = False


def tokenize_line(line: str, language: LanguageConfig | None) -> list[SyntaxToken]:
    """Split one line into typed tokens using the language's rule list.

    The first rule matching at the scan position wins; characters no rule
    matches accumulate into plain-text runs. Adjacent same-type tokens are
    merged.
    """
    if language is None:
        return [SyntaxToken(text=line)] if line else []

    rules = _build_rules(language)
    tokens: list[SyntaxToken] = []
    plain_start: int | None = None
    pos = 0
    length = len(line)
    last_visible = ""

    while pos < length:
        matched_end = -1
        matched_type: SyntaxType | None = None
        for rule in rules:
            if rule.after_colon and not _follows_colon(line[pos], last_visible):
                continue
            match = rule.pattern.match(line, pos)
            if match is not None and match.end() > pos:
                matched_end = match.end()
                matched_type = rule.type
                break

        if matched_end < 0:
            if plain_start is None:
                plain_start = pos
            if not line[pos].isspace():
                last_visible = line[pos]
            pos += 1
            continue

        if plain_start is not None:
            tokens.append(SyntaxToken(text=line[plain_start:pos]))
            plain_start = None
        tokens.append(SyntaxToken(text=line[pos:matched_end], type=matched_type))
        visible = line[pos:matched_end].rstrip()
        if visible:
            last_visible = visible[-1]
        pos = matched_end

    if plain_start is not None:
        tokens.append(SyntaxToken(text=line[plain_start:]))
    return merge_tokens(tokens)


def merge_tokens(tokens: Sequence[SyntaxToken]) -> list[SyntaxToken]:
    merged: list[SyntaxToken] = []
    for token in tokens:
        if merged and merged[-1].type == token.type:
            merged[-1] = SyntaxToken(text=merged[-1].text + token.text, type=token.type)
        else:
            merged.append(SyntaxToken(text=token.text, type=token.type))
    return merged


@lru_cache(maxsize=None)
def _build_rules(language: LanguageConfig) -> tuple[_Rule, ...]:
    rules: list[_Rule] = []

    for style in language.comment_styles:
        if style == "c-style":
            rules.append(_Rule("comment", compile(r"//.*")))
            rules.append(_Rule("comment", compile(r"/\*.*?\*/")))
        elif style == "hash":
            rules.append(_Rule("comment", compile(r"#.*")))
        elif style == "html":
            rules.append(_Rule("comment", compile(r"<!--.*?-->")))
        elif style == "sql":
            rules.append(_Rule("comment", compile(r"--.*")))

    if language.is_markup:
        rules.extend(
            [
                _Rule("keyword", compile(r"<!DOCTYPE[^>]*>", IGNORECASE)),
                _Rule("comment", compile(r"<!\[CDATA\[.*?\]\]>")),
                _Rule("keyword", compile(r"<\?.*?\?>")),
                _Rule("keyword", compile(r"</[a-zA-Z][a-zA-Z0-9-]*\s*>")),
                _Rule("keyword", compile(r"<[a-zA-Z][a-zA-Z0-9-]*")),
                _Rule("keyword", compile(r"/?>")),
                _Rule("type", compile(r"[a-zA-Z_:][a-zA-Z0-9_:.-]*(?=\s*=)")),
            ]
        )

    if language.has_triple_quotes:
        rules.append(_Rule("string", compile(r'""".*?"""')))
        rules.append(_Rule("string", compile(r"'''.*?'''")))
    rules.extend(
        [
            _Rule("string", compile(r"`(?:[^`\\]|\\.)*`")),
            _Rule("string", compile(r'"(?:[^"\\]|\\.)*"')),
            _Rule("string", compile(r"'(?:[^'\\]|\\.)*'")),
        ]
    )

    if language.is_css:
        rules.append(_Rule("number", compile(r"#[0-9a-fA-F]{3,8}\b")))
    rules.extend(
        [
            _Rule("number", compile(r"0[xX][0-9a-fA-F]+")),
            _Rule("number", compile(r"0[bB][01]+")),
            _Rule("number", compile(r"0[oO][0-7]+")),
            _Rule("number", compile(r"[0-9]+\.?[0-9]*(?:[eE][+-]?[0-9]+)?")),
            _Rule("number", compile(r"\.[0-9]+(?:[eE][+-]?[0-9]+)?")),
        ]
    )

    if not language.is_markup:
        longest_first = sorted(MULTI_CHAR_OPERATORS, key=len, reverse=True)
        rules.append(_Rule("operator", compile("|".join(escape(op) for op in longest_first))))
        rules.append(_Rule("operator", compile(r"[+\-*/%=<>!&|^~?:]")))

    if language.keywords:
        ordered = sorted(set(language.keywords), key=lambda keyword: (-len(keyword), keyword))
        alternatives = "|".join(escape(keyword) for keyword in ordered)
        flags = IGNORECASE if language.is_sql else 0
        rules.append(
            _Rule(
                "keyword",
                compile(rf"(?<![a-zA-Z0-9_])(?:{alternatives})(?![a-zA-Z0-9_])", flags),
            )
        )

    if not language.is_markup:
        rules.append(_Rule("type", compile(r"[A-Z][a-zA-Z0-9_]*"), after_colon=True))

    rules.append(_Rule(None, compile(r"[a-zA-Z_][a-zA-Z0-9_]*")))
    rules.append(_Rule("punctuation", compile(r"[{}\[\](),;.]")))
    return tuple(rules)


def _follows_colon(char: str, last_visible: str) -> bool:
    return "A" <= char <= "Z" and last_visible == ":"

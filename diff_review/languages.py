"""Static file-extension to language lookup for syntax highlighting."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal

from diff_review.paths import file_extension

CommentStyle = Literal["c-style", "hash", "html", "sql", "none"]


@dataclass(frozen=True, slots=True)
class LanguageConfig:
    """Comment styles and keyword list for one language."""

    name: str
    comment_styles: tuple[CommentStyle, ...]
    keywords: tuple[str, ...] = ()

    @property
    def is_markup(self) -> bool:
        return self.name in {"HTML", "XML"}

    @property
    def is_css(self) -> bool:
        return self.name == "CSS"

    @property
    def is_sql(self) -> bool:
        return self.name == "SQL"

    @property
    def has_triple_quotes(self) -> bool:
        return self.name in {"Python", "Kotlin", "Swift"}


C_STYLE_KEYWORDS = (
    "if", "else", "for", "while", "do", "switch", "case", "default", "break", "continue",
    "return", "function", "class", "extends", "implements", "interface", "type", "enum",
    "const", "let", "var", "static", "public", "private", "protected", "readonly",
    "new", "this", "super", "try", "catch", "finally", "throw", "async", "await",
    "import", "export", "from", "as", "typeof", "instanceof", "in", "of",
    "void", "null", "undefined", "true", "false", "get", "set", "yield",
)  # fmt: skip

GO_KEYWORDS = (
    "break", "case", "chan", "const", "continue", "default", "defer", "else", "fallthrough",
    "for", "func", "go", "goto", "if", "import", "interface", "map", "package", "range",
    "return", "select", "struct", "switch", "type", "var", "true", "false", "nil",
)  # fmt: skip

RUST_KEYWORDS = (
    "as", "async", "await", "break", "const", "continue", "crate", "dyn", "else", "enum",
    "extern", "false", "fn", "for", "if", "impl", "in", "let", "loop", "match", "mod",
    "move", "mut", "pub", "ref", "return", "self", "Self", "static", "struct", "super",
    "trait", "true", "type", "unsafe", "use", "where", "while",
)  # fmt: skip

PYTHON_KEYWORDS = (
    "and", "as", "assert", "async", "await", "break", "class", "continue", "def", "del",
    "elif", "else", "except", "False", "finally", "for", "from", "global", "if", "import",
    "in", "is", "lambda", "None", "nonlocal", "not", "or", "pass", "raise", "return",
    "True", "try", "while", "with", "yield",
)  # fmt: skip

RUBY_KEYWORDS = (
    "alias", "and", "begin", "break", "case", "class", "def", "defined?", "do", "else",
    "elsif", "end", "ensure", "false", "for", "if", "in", "module", "next", "nil", "not",
    "or", "redo", "rescue", "retry", "return", "self", "super", "then", "true", "undef",
    "unless", "until", "when", "while", "yield",
)  # fmt: skip

SHELL_KEYWORDS = (
    "if", "then", "else", "elif", "fi", "for", "do", "done", "while", "until", "case",
    "esac", "function", "in", "select", "return", "exit", "break", "continue", "local",
    "export", "readonly", "declare", "typeset", "unset", "shift", "source", "true", "false",
)  # fmt: skip

JAVA_KEYWORDS = (
    "abstract", "assert", "boolean", "break", "byte", "case", "catch", "char", "class",
    "const", "continue", "default", "do", "double", "else", "enum", "extends", "final",
    "finally", "float", "for", "goto", "if", "implements", "import", "instanceof", "int",
    "interface", "long", "native", "new", "package", "private", "protected", "public",
    "return", "short", "static", "strictfp", "super", "switch", "synchronized", "this",
    "throw", "throws", "transient", "try", "void", "volatile", "while", "true", "false", "null",
)  # fmt: skip

# Matched case-insensitively.
SQL_KEYWORDS = (
    "SELECT", "FROM", "WHERE", "AND", "OR", "NOT", "IN", "IS", "NULL", "TRUE", "FALSE",
    "INSERT", "INTO", "VALUES", "UPDATE", "SET", "DELETE", "CREATE", "DROP", "ALTER",
    "TABLE", "INDEX", "VIEW", "DATABASE", "SCHEMA", "CONSTRAINT", "PRIMARY", "KEY",
    "FOREIGN", "REFERENCES", "UNIQUE", "CHECK", "DEFAULT", "AUTO_INCREMENT",
    "JOIN", "INNER", "LEFT", "RIGHT", "OUTER", "FULL", "CROSS", "ON", "USING",
    "GROUP", "BY", "HAVING", "ORDER", "ASC", "DESC", "LIMIT", "OFFSET", "FETCH",
    "UNION", "INTERSECT", "EXCEPT", "ALL", "DISTINCT", "AS", "CASE", "WHEN", "THEN",
    "ELSE", "END", "IF", "EXISTS", "BETWEEN", "LIKE", "ILIKE", "SIMILAR", "TO",
    "CAST", "CONVERT", "COALESCE", "NULLIF", "COUNT", "SUM", "AVG", "MIN", "MAX",
    "BEGIN", "COMMIT", "ROLLBACK", "TRANSACTION", "SAVEPOINT", "GRANT", "REVOKE",
    "WITH", "RECURSIVE", "RETURNING", "OVER", "PARTITION", "ROW", "ROWS", "RANGE",
    "INT", "INTEGER", "BIGINT", "SMALLINT", "DECIMAL", "NUMERIC", "FLOAT", "REAL",
    "DOUBLE", "PRECISION", "VARCHAR", "CHAR", "TEXT", "BOOLEAN", "DATE", "TIME",
    "TIMESTAMP", "INTERVAL", "SERIAL", "BIGSERIAL", "UUID", "JSON", "JSONB", "ARRAY",
)  # fmt: skip

LANGUAGES: MappingProxyType[str, LanguageConfig] = MappingProxyType(
    {
        "typescript": LanguageConfig("TypeScript", ("c-style",), C_STYLE_KEYWORDS),
        "javascript": LanguageConfig("JavaScript", ("c-style",), C_STYLE_KEYWORDS),
        "json": LanguageConfig("JSON", ("none",)),
        "jsonc": LanguageConfig("JSON with Comments", ("c-style",)),
        "css": LanguageConfig("CSS", ("c-style",)),
        "html": LanguageConfig("HTML", ("html",)),
        "xml": LanguageConfig("XML", ("html",)),
        "sql": LanguageConfig("SQL", ("sql", "c-style"), SQL_KEYWORDS),
        "markdown": LanguageConfig("Markdown", ("none",)),
        "yaml": LanguageConfig(
            "YAML", ("hash",), ("true", "false", "null", "yes", "no", "on", "off")
        ),
        "toml": LanguageConfig("TOML", ("hash",), ("true", "false")),
        "python": LanguageConfig("Python", ("hash",), PYTHON_KEYWORDS),
        "ruby": LanguageConfig("Ruby", ("hash",), RUBY_KEYWORDS),
        "shell": LanguageConfig("Shell", ("hash",), SHELL_KEYWORDS),
        "go": LanguageConfig("Go", ("c-style",), GO_KEYWORDS),
        "rust": LanguageConfig("Rust", ("c-style",), RUST_KEYWORDS),
        "c": LanguageConfig("C", ("c-style",), C_STYLE_KEYWORDS),
        "cpp": LanguageConfig("C++", ("c-style",), C_STYLE_KEYWORDS),
        "java": LanguageConfig("Java", ("c-style",), JAVA_KEYWORDS),
        "php": LanguageConfig("PHP", ("c-style", "hash"), C_STYLE_KEYWORDS),
        "swift": LanguageConfig("Swift", ("c-style",), C_STYLE_KEYWORDS),
        "kotlin": LanguageConfig("Kotlin", ("c-style",), C_STYLE_KEYWORDS),
    }
)

EXTENSION_LANGUAGES: MappingProxyType[str, str] = MappingProxyType(
    {
        "ts": "typescript", "tsx": "typescript", "mts": "typescript", "cts": "typescript",
        "js": "javascript", "jsx": "javascript", "mjs": "javascript", "cjs": "javascript",
        "json": "json", "jsonc": "jsonc",
        "css": "css", "scss": "css", "sass": "css", "less": "css",
        "html": "html", "htm": "html",
        "xml": "xml", "xsl": "xml", "xslt": "xml", "xsd": "xml", "svg": "xml",
        "plist": "xml", "xaml": "xml", "csproj": "xml", "fsproj": "xml", "vbproj": "xml",
        "vcxproj": "xml", "props": "xml", "targets": "xml", "nuspec": "xml", "resx": "xml",
        "pom": "xml",
        "sql": "sql",
        "md": "markdown", "mdx": "markdown",
        "yaml": "yaml", "yml": "yaml",
        "toml": "toml",
        "py": "python", "pyw": "python",
        "rb": "ruby",
        "sh": "shell", "bash": "shell", "zsh": "shell",
        "go": "go",
        "rs": "rust",
        "c": "c", "h": "c",
        "cpp": "cpp", "hpp": "cpp", "cc": "cpp", "cxx": "cpp",
        "java": "java",
        "php": "php",
        "swift": "swift",
        "kt": "kotlin", "kts": "kotlin",
    }
)  # fmt: skip


def get_language_for_path(path: str) -> LanguageConfig | None:
    """Resolve a language from the file extension, or None when unknown."""
    if not path:
        return None
    language_key = EXTENSION_LANGUAGES.get(file_extension(path))
    if language_key is None:
        return None
    return LANGUAGES.get(language_key)

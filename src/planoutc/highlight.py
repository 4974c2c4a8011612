"""Pygments lexer for PlanOut scripts."""

from pygments.lexer import RegexLexer, words
from pygments.token import (
    Comment,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Text,
)


class PlanOutLexer(RegexLexer):
    """Pygments lexer for the PlanOut experiment language."""

    name = "PlanOut"
    aliases = ["planout"]
    filenames = ["*.planout"]
    mimetypes = ["text/x-planout"]

    tokens = {
        "root": [
            # Whitespace
            (r"\s+", Text),
            # Line comments (# ...)
            (r"#.*$", Comment.Single),
            # Regular strings with escape support
            (r'"', String.Double, "string"),
            # Single-quoted strings are verbatim
            (r"'[^']*'", String.Single),
            # Numbers
            (r"[0-9]*\.[0-9]+([eE][-+]?[0-9]+)?", Number.Float),
            (r"[0-9]+[eE][-+]?[0-9]+", Number.Float),
            (r"[0-9]+", Number.Integer),
            # Core keywords
            (
                words(
                    ("switch", "if", "else", "return"),
                    prefix=r"\b",
                    suffix=r"\b",
                ),
                Keyword,
            ),
            (r"\b(true|false|null)\b", Keyword.Constant),
            # Embedded JSON literal marker
            (r"@", Keyword.Pseudo),
            # Operators (multi-char before single-char)
            (r"<-|=>", Operator),
            (r"==|!=|<=|>=|&&|\|\||\?\?", Operator),
            (r"[+\-*/%<>!=]", Operator),
            # Operator calls
            (r"[a-zA-Z][a-zA-Z0-9_]*(?=\s*\()", Name.Function),
            # Named arguments and map keys
            (r"[a-zA-Z][a-zA-Z0-9_]*(?=\s*:)", Name.Attribute),
            # Identifiers
            (r"[a-zA-Z][a-zA-Z0-9_]*", Name.Variable),
            # Punctuation
            (r"[(),;\[\]{}:]", Punctuation),
        ],
        # Double-quoted string escapes
        "string": [
            (r'\\(["\\/bfnrt]|u[0-9a-fA-F]{4})', String.Escape),
            (r'[^"\\]+', String.Double),
            (r'"', String.Double, "#pop"),
        ],
    }

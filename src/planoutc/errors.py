"""Diagnostics, their rendering, and the compile error taxonomy."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from planoutc.source import SourceFile
from planoutc.tokens import describe

if TYPE_CHECKING:
    from planoutc.source import Span
    from planoutc.tokens import Token, TokenKind


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"


# ANSI color codes
_COLORS = {
    Severity.ERROR: "\033[1;31m",    # bold red
    Severity.WARNING: "\033[1;33m",  # bold yellow
    Severity.NOTE: "\033[1;36m",     # bold cyan
}
_BOLD = "\033[1m"
_BLUE = "\033[1;34m"
_RESET = "\033[0m"


@dataclass(frozen=True)
class DiagnosticLabel:
    """Points to a specific source location."""

    span: Span
    message: str


@dataclass
class Diagnostic:
    """A single diagnostic message with optional labels and notes."""

    severity: Severity
    code: str
    message: str
    labels: list[DiagnosticLabel] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)


class DiagnosticRenderer:
    """Renders diagnostics in Rust-style format with colors.

    Source lines are looked up in ``sources`` first (keyed by file name),
    then read from disk when the name is a readable path.
    """

    def __init__(
        self,
        *,
        color: bool = True,
        sources: dict[str, str] | None = None,
    ) -> None:
        self.color = color
        self._files: dict[str, SourceFile] = {
            name: SourceFile(name, text) for name, text in (sources or {}).items()
        }

    def _c(self, code: str) -> str:
        return code if self.color else ""

    def _get_source_line(self, filename: str, line_num: int) -> str | None:
        if filename not in self._files:
            path = Path(filename)
            try:
                text = path.read_text(encoding="utf-8") if path.is_file() else ""
            except OSError:
                text = ""
            self._files[filename] = SourceFile(filename, text)
        source = self._files[filename]
        if 1 <= line_num <= len(source.lines):
            return source.line_at(line_num)
        return None

    def render(self, diag: Diagnostic) -> str:
        lines: list[str] = []
        sev = diag.severity
        color = _COLORS[sev]

        # Header: error[E200]: message
        lines.append(
            f"{self._c(color)}{sev.value}[{diag.code}]{self._c(_RESET)}"
            f"{self._c(_BOLD)}: {diag.message}{self._c(_RESET)}"
        )

        for label in diag.labels:
            span = label.span
            lines.append(f"  {self._c(_BLUE)}-->{self._c(_RESET)} {span}")
            gutter = f"{span.start_line:>4}"
            lines.append(f"  {self._c(_BLUE)}   |{self._c(_RESET)}")

            source_line = self._get_source_line(span.file, span.start_line)
            if source_line is not None:
                lines.append(
                    f"  {self._c(_BLUE)}{gutter} |{self._c(_RESET)} {source_line}"
                )
                if span.start_line == span.end_line:
                    caret_len = max(1, span.end_col - span.start_col + 1)
                else:
                    caret_len = 1
                padding = " " * (span.start_col - 1)
                lines.append(
                    f"  {self._c(_BLUE)}   |{self._c(_RESET)} "
                    f"{padding}{self._c(color)}{'^' * caret_len}{self._c(_RESET)}"
                )

            if label.message:
                lines.append(
                    f"  {self._c(_BLUE)}   |{self._c(_RESET)}   "
                    f"{self._c(color)}{label.message}{self._c(_RESET)}"
                )

        for note in diag.notes:
            lines.append(f"  {self._c(_BLUE)}={self._c(_RESET)} note: {note}")

        return "\n".join(lines)


class CompileError(Exception):
    """Base of every front-end failure; carries its diagnostics."""

    def __init__(self, diagnostics: list[Diagnostic]) -> None:
        self.diagnostics = diagnostics
        messages = [d.message for d in diagnostics]
        super().__init__("; ".join(messages))

    @property
    def span(self) -> Span | None:
        for diag in self.diagnostics:
            if diag.labels:
                return diag.labels[0].span
        return None

    @property
    def line(self) -> int | None:
        span = self.span
        return span.start_line if span is not None else None


class LexError(CompileError):
    """No lexical rule matches at the current position."""

    code = "E100"

    def __init__(self, message: str, span: Span) -> None:
        super().__init__([
            Diagnostic(
                severity=Severity.ERROR,
                code=self.code,
                message=message,
                labels=[DiagnosticLabel(span=span, message="")],
            )
        ])
        self.col = span.start_col


class ParseError(CompileError):
    """The token stream does not continue the grammar.

    ``expected`` is the set of token kinds that would have been accepted
    at the failing position. The parser never recovers, so
    ``recoverable`` is always false.
    """

    code = "E200"

    def __init__(
        self,
        message: str,
        found: Token,
        expected: frozenset[TokenKind] = frozenset(),
    ) -> None:
        notes = []
        if expected:
            names = sorted(describe(kind) for kind in expected)
            notes.append("expected one of: " + ", ".join(names))
        super().__init__([
            Diagnostic(
                severity=Severity.ERROR,
                code=self.code,
                message=message,
                labels=[DiagnosticLabel(span=found.span, message="")],
                notes=notes,
            )
        ])
        self.found = found
        self.expected = expected
        self.recoverable = False


class EmbeddedLiteralError(ParseError):
    """Malformed ``@`` literal, or a string scalar that is not valid JSON."""

    code = "E300"

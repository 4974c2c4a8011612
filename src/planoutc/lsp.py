"""PlanOut Language Server: pygls-based LSP for .planout files.

Provides syntax diagnostics, document symbols for assignments, and
whole-document formatting via stdio transport.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from lsprotocol import types as lsp
from pygls.lsp.server import LanguageServer
from pygls.uris import to_fs_path

from planoutc import __version__
from planoutc.ast_nodes import Assign, Sequence
from planoutc.config import PlanOutConfig, resolve_config
from planoutc.errors import CompileError, Diagnostic, Severity
from planoutc.formatter import ScriptFormatter
from planoutc.lexer import Lexer
from planoutc.parser import Parser
from planoutc.source import Span
from planoutc.tokens import Token

# ── Conversion helpers ────────────────────────────────────────────

_SEVERITY_MAP = {
    Severity.ERROR: lsp.DiagnosticSeverity.Error,
    Severity.WARNING: lsp.DiagnosticSeverity.Warning,
    Severity.NOTE: lsp.DiagnosticSeverity.Information,
}

_ORIGIN = lsp.Range(start=lsp.Position(0, 0), end=lsp.Position(0, 0))


def span_to_range(span: Span) -> lsp.Range:
    """Map a 1-indexed inclusive Span onto a 0-indexed, end-exclusive Range."""
    return lsp.Range(
        start=lsp.Position(line=span.start_line - 1, character=span.start_col - 1),
        end=lsp.Position(line=span.end_line - 1, character=span.end_col),
    )


# ── Per-document state ────────────────────────────────────────────


@dataclass
class DocumentState:
    """Cached analysis results for a single open document."""

    source: str = ""
    config: PlanOutConfig = field(default_factory=PlanOutConfig)
    tokens: list[Token] = field(default_factory=list)
    script: Sequence | None = None
    diagnostics: list[lsp.Diagnostic] = field(default_factory=list)


# ── Server ────────────────────────────────────────────────────────

server = LanguageServer(
    "planout-lsp", __version__,
    text_document_sync_kind=lsp.TextDocumentSyncKind.Full,
)
_state: dict[str, DocumentState] = {}


def _compile_diag(diag: Diagnostic) -> lsp.Diagnostic:
    """Turn a front-end Diagnostic into the LSP shape; notes join the message."""
    where = span_to_range(diag.labels[0].span) if diag.labels else _ORIGIN
    message = "\n".join([f"[{diag.code}] {diag.message}", *diag.notes])
    return lsp.Diagnostic(
        range=where,
        severity=_SEVERITY_MAP[diag.severity],
        source="planout",
        code=diag.code,
        message=message,
    )


def _config_for(uri: str) -> PlanOutConfig:
    path = to_fs_path(uri) if uri.startswith("file:") else None
    return resolve_config(Path(path)) if path else PlanOutConfig()


def _analyze(uri: str, source: str, config: PlanOutConfig | None = None) -> DocumentState:
    """Run Lexer → Parser, cache results, return state."""
    if config is None:
        config = _config_for(uri)
    ds = DocumentState(source=source, config=config)
    _state[uri] = ds

    try:
        ds.tokens = Lexer(source, uri).lex()
        ds.script = Parser(
            ds.tokens, uri,
            strict_embedded_scalars=config.parser.strict_embedded_scalars,
        ).parse()
    except CompileError as e:
        ds.diagnostics = [_compile_diag(d) for d in e.diagnostics]
    return ds


def _publish(uri: str, ds: DocumentState) -> None:
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(
        uri=uri,
        diagnostics=ds.diagnostics,
    ))


# ── LSP Feature Handlers ─────────────────────────────────────────


@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: lsp.DidOpenTextDocumentParams) -> None:
    uri = params.text_document.uri
    _publish(uri, _analyze(uri, params.text_document.text))


@server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: lsp.DidChangeTextDocumentParams) -> None:
    uri = params.text_document.uri
    # Full sync: take last content change
    source = params.content_changes[-1].text if params.content_changes else ""
    previous = _state.get(uri)
    config = previous.config if previous is not None else None
    _publish(uri, _analyze(uri, source, config))


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
def did_close(params: lsp.DidCloseTextDocumentParams) -> None:
    _state.pop(params.text_document.uri, None)


@server.feature(lsp.TEXT_DOCUMENT_DOCUMENT_SYMBOL)
def document_symbol(params: lsp.DocumentSymbolParams) -> list[lsp.DocumentSymbol]:
    ds = _state.get(params.text_document.uri)
    if ds is None or ds.script is None:
        return []
    return assignment_symbols(ds.script)


def assignment_symbols(script: Sequence) -> list[lsp.DocumentSymbol]:
    """One Variable symbol per top-level assignment, in source order."""
    symbols: list[lsp.DocumentSymbol] = []
    for stmt in script.statements:
        if not isinstance(stmt, Assign) or stmt.span is None:
            continue
        rng = span_to_range(stmt.span)
        symbols.append(lsp.DocumentSymbol(
            name=stmt.name,
            kind=lsp.SymbolKind.Variable,
            range=rng,
            selection_range=lsp.Range(
                start=rng.start,
                end=lsp.Position(rng.start.line, rng.start.character + len(stmt.name)),
            ),
        ))
    return symbols


@server.feature(lsp.TEXT_DOCUMENT_FORMATTING)
def formatting(params: lsp.DocumentFormattingParams) -> list[lsp.TextEdit] | None:
    ds = _state.get(params.text_document.uri)
    if ds is None or ds.script is None:
        return None
    return format_edits(ds)


def format_edits(ds: DocumentState) -> list[lsp.TextEdit] | None:
    """A single whole-document edit, or None when already formatted."""
    formatted = ScriptFormatter(
        ds.config.format.indent,
        strict_embedded_scalars=ds.config.parser.strict_embedded_scalars,
    ).format(ds.script)
    if formatted == ds.source:
        return None

    # Replace entire document
    lines = ds.source.split("\n")
    return [lsp.TextEdit(
        range=lsp.Range(
            start=lsp.Position(0, 0),
            end=lsp.Position(len(lines) - 1, len(lines[-1])),
        ),
        new_text=formatted,
    )]


def main() -> None:
    """Start the language server on stdio."""
    server.start_io()

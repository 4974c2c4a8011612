"""PlanOut compiler CLI."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from planoutc import __version__
from planoutc.ast_nodes import NamedArgs, Sequence
from planoutc.config import PlanOutConfig, resolve_config
from planoutc.errors import CompileError, DiagnosticRenderer
from planoutc.formatter import ScriptFormatter
from planoutc.lexer import Lexer
from planoutc.parser import Parser
from planoutc.wire import dumps

SCRIPT_SUFFIX = ".planout"


def _parse_source(source: str, filename: str, config: PlanOutConfig) -> Sequence:
    tokens = Lexer(source, filename).lex()
    return Parser(
        tokens, filename,
        strict_embedded_scalars=config.parser.strict_embedded_scalars,
    ).parse()


def _report(error: CompileError, sources: dict[str, str]) -> None:
    renderer = DiagnosticRenderer(color=True, sources=sources)
    for diag in error.diagnostics:
        click.echo(renderer.render(diag), err=True)


def _script_files(target: Path) -> list[Path]:
    if target.is_dir():
        return sorted(target.rglob(f"*{SCRIPT_SUFFIX}"))
    return [target]


@click.group()
@click.version_option(__version__, prog_name="planoutc")
def main() -> None:
    """The PlanOut script compiler."""


@main.command(name="compile")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Write JSON here.")
@click.option("--indent", type=int, default=None, help="JSON indent (overrides config).")
@click.option("--compact", is_flag=True, help="Emit JSON on a single line.")
def compile_cmd(file: str, output: str | None, indent: int | None, compact: bool) -> None:
    """Compile a script to interpreter JSON."""
    path = Path(file)
    config = resolve_config(path)
    source = path.read_text(encoding="utf-8")
    try:
        script = _parse_source(source, file, config)
    except CompileError as e:
        _report(e, {file: source})
        raise SystemExit(1)

    if compact:
        indent = None
    elif indent is None:
        indent = config.output.indent
    text = dumps(
        script, indent=indent,
        case_condition_key=config.output.case_condition_key,
    )
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        click.echo(f"compiled {file} -> {output}")
    else:
        click.echo(text)


@main.command()
@click.argument("path", default=".", type=click.Path(exists=True))
def check(path: str) -> None:
    """Parse scripts and report syntax errors."""
    target = Path(path)
    files = _script_files(target)
    if not files:
        click.echo(f"warning: no {SCRIPT_SUFFIX} files found", err=True)
        return

    had_errors = False
    for script_file in files:
        config = resolve_config(script_file)
        source = script_file.read_text(encoding="utf-8")
        filename = str(script_file)
        try:
            _parse_source(source, filename, config)
        except CompileError as e:
            had_errors = True
            _report(e, {filename: source})

    if had_errors:
        raise SystemExit(1)
    click.echo(f"checked {len(files)} file(s), no errors")


@main.command(name="format")
@click.argument("path", default=".", type=click.Path(exists=True))
@click.option("--check", is_flag=True, help="Check formatting without modifying files.")
@click.option("--stdin", "use_stdin", is_flag=True, help="Read from stdin, write to stdout.")
def format_cmd(path: str, check: bool, use_stdin: bool) -> None:
    """Format PlanOut scripts."""
    if use_stdin:
        config = resolve_config(Path(path))
        source = sys.stdin.read()
        try:
            script = _parse_source(source, "<stdin>", config)
        except CompileError as e:
            _report(e, {"<stdin>": source})
            raise SystemExit(1)
        formatted = _formatter(config).format(script)
        if check:
            if formatted != source:
                raise SystemExit(1)
        else:
            click.echo(formatted, nl=False)
        return

    files = _script_files(Path(path))
    if not files:
        click.echo(f"no {SCRIPT_SUFFIX} files found", err=True)
        return

    needs_formatting = False
    had_errors = False
    for script_file in files:
        config = resolve_config(script_file)
        source = script_file.read_text(encoding="utf-8")
        filename = str(script_file)
        try:
            script = _parse_source(source, filename, config)
        except CompileError as e:
            had_errors = True
            _report(e, {filename: source})
            continue

        formatted = _formatter(config).format(script)
        if formatted != source:
            if check:
                click.echo(f"would reformat {filename}")
                needs_formatting = True
            else:
                script_file.write_text(formatted, encoding="utf-8")
                click.echo(f"formatted {filename}")

    if had_errors or (check and needs_formatting):
        raise SystemExit(1)


def _formatter(config: PlanOutConfig) -> ScriptFormatter:
    return ScriptFormatter(
        config.format.indent,
        strict_embedded_scalars=config.parser.strict_embedded_scalars,
    )


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def tokens(file: str) -> None:
    """List the tokens of a script."""
    source = Path(file).read_text(encoding="utf-8")
    try:
        toks = Lexer(source, file).lex()
    except CompileError as e:
        _report(e, {file: source})
        raise SystemExit(1)
    for tok in toks:
        span = tok.span
        click.echo(f"{span.start_line}:{span.start_col}\t{tok.kind.name}\t{tok.value!r}")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def view(file: str) -> None:
    """View the AST of a script."""
    path = Path(file)
    source = path.read_text(encoding="utf-8")
    try:
        script = _parse_source(source, file, resolve_config(path))
    except CompileError as e:
        _report(e, {file: source})
        raise SystemExit(1)

    _dump_ast(script, 0)


@main.command()
def lsp() -> None:
    """Start the PlanOut language server."""
    from planoutc.lsp import main as lsp_main

    lsp_main()


def _dump_ast(node: object, depth: int) -> None:
    """Print a readable AST dump."""
    indent = "  " * depth
    name = type(node).__name__

    if isinstance(node, NamedArgs):
        click.echo(f"{indent}{name}")
        for key, value in node.args.items():
            click.echo(f"{indent}  {key}:")
            _dump_ast(value, depth + 2)
    elif hasattr(node, "__dataclass_fields__"):
        click.echo(f"{indent}{name}")
        for field_name in node.__dataclass_fields__:
            if field_name == "span":
                continue
            value = getattr(node, field_name)
            if isinstance(value, list):
                if value:
                    click.echo(f"{indent}  {field_name}:")
                    for item in value:
                        _dump_ast(item, depth + 2)
                else:
                    click.echo(f"{indent}  {field_name}: []")
            elif hasattr(value, "__dataclass_fields__"):
                click.echo(f"{indent}  {field_name}:")
                _dump_ast(value, depth + 2)
            else:
                click.echo(f"{indent}  {field_name}: {value!r}")
    else:
        click.echo(f"{indent}{name}: {node!r}")

"""
fluentattr CLI.

Inspection commands for attribute bodies and mutator methods:

- args: show how an attribute body splits into arguments
- mutator: show the builder-side signature and forwarding call of a mutator
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from fluentattr._version import get_version
from fluentattr.core.attr_args import parse_attr_args
from fluentattr.core.config import FluentAttrConfig, find_config, load_config
from fluentattr.core.errors import FluentAttrError
from fluentattr.core.lexer import TokenType, tokenize
from fluentattr.core.mutator import parse_mutator
from fluentattr.core.report import describe_arg, describe_mutator
from fluentattr.core.syntax import MetaKind
from fluentattr.core.syntax_parser import parse_attribute, parse_str, parse_tokens, parse_type

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Inspect annotation arguments and mutator rewrites",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"fluentattr {get_version()}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to fluentattr.toml or pyproject.toml"),
    ] = None,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version",
        ),
    ] = None,
) -> None:
    """Load configuration and set up logging."""
    try:
        config_path = config or find_config(Path.cwd())
        settings = load_config(config_path) if config_path else FluentAttrConfig()
    except FluentAttrError as e:
        typer.echo(f"Error loading config: {e}", err=True)
        raise typer.Exit(code=1)

    logging.basicConfig(level=settings.log_level)
    logger.debug("Loaded configuration from %s", config_path or "defaults")
    ctx.obj = settings


def _read_source(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        typer.echo(f"Error reading {path}: {e}", err=True)
        raise typer.Exit(code=1)


@app.command(name="args")
def show_args(
    file: Annotated[Path, typer.Argument(help="File holding an attribute body or `#[name(…)]`")],
    output_json: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Parse an attribute body and list its arguments."""
    text = _read_source(file)
    try:
        tokens = tokenize(text, str(file))
        if tokens[0].type is TokenType.POUND:
            attr = parse_tokens(parse_attribute, tokens)
            if attr.kind is not MetaKind.LIST:
                typer.echo(f"Parse error: expected `{attr.path}(…)`", err=True)
                raise typer.Exit(code=1)
            args = parse_attr_args(attr.tokens, attr.body_location)
        else:
            args = parse_attr_args(tokens)
    except FluentAttrError as e:
        typer.echo(f"Parse error: {e}", err=True)
        raise typer.Exit(code=1)

    reports = [describe_arg(arg) for arg in args]
    if output_json:
        typer.echo("[" + ", ".join(report.model_dump_json() for report in reports) + "]")
        return

    table = Table(title=f"Arguments in {file.name}")
    table.add_column("Kind", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Payload")
    for report in reports:
        table.add_row(report.kind, escape(report.name), escape(report.payload or ""))
    console.print(table)


@app.command(name="mutator")
def show_mutator(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(help="File holding one annotated method")],
    output: Annotated[
        str, typer.Option("--output", "-o", help="Return type of the builder-side method")
    ] = "Self",
    output_json: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show the builder-side signature and forwarding arguments of a mutator."""
    settings: FluentAttrConfig = ctx.obj or FluentAttrConfig()
    text = _read_source(file)
    try:
        output_type = parse_str(parse_type, output, "<--output>")
        mutator = parse_mutator(text, str(file), attribute_name=settings.mutator_attribute)
    except FluentAttrError as e:
        typer.echo(f"Parse error: {e}", err=True)
        raise typer.Exit(code=1)

    report = describe_mutator(mutator, output_type)
    if output_json:
        typer.echo(report.model_dump_json(indent=2))
        return

    console.print(f"[bold]{escape(report.outer_signature)}[/bold]", soft_wrap=True)
    console.print(f"forwards: {report.name}({', '.join(report.arguments)})", soft_wrap=True)
    required = ", ".join(report.required_fields) or "(none)"
    console.print(f"requires: {escape(required)}", soft_wrap=True)


def main() -> None:
    app()


if __name__ == "__main__":
    main()

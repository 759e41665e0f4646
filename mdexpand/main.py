"""mdexpand CLI: expand import directives in a markdown document."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
from jinja2 import TemplateError
from pydantic import ValidationError
from rich.logging import RichHandler

from .console import console
from .errors import ImportExpansionError
from .imports import ImportContext
from .imports import ImportStack
from .imports import expand_command_imports
from .imports import expand_content_imports
from .imports.files import to_canonical_path
from .logging_setup import init_json_logging
from .settings import load_settings
from .templating import render_template
from .templating import unwrap_literals
from .url_cache import UrlCache
from .utils.error_format import escape_markup
from .utils.error_format import format_error_message

logger = logging.getLogger(__name__)


def _parse_vars(values: tuple[str, ...]) -> dict[str, str]:
    variables: dict[str, str] = {}
    for item in values:
        if "=" not in item:
            raise click.BadParameter(f"Expected name=value, got '{item}'", param_hint="--var")
        name, value = item.split("=", 1)
        variables[name.strip()] = value
    return variables


async def run_pipeline(
    content: str,
    base_dir: Path,
    ctx: ImportContext,
    variables: dict[str, str],
    content_only: bool = False,
    stack: ImportStack | None = None,
) -> str:
    """Content imports -> template stage -> command imports."""
    expanded = await expand_content_imports(content, base_dir, stack, ctx)
    rendered = render_template(expanded, variables)
    if content_only:
        return rendered
    ctx.template_vars = variables
    return await expand_command_imports(rendered, base_dir, ctx)


@click.group(invoke_without_command=True)
@click.version_option(package_name="mdexpand")
@click.pass_context
def cli(ctx: click.Context):
    """Expand @file, @url and !`command` directives in markdown."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit()


@cli.command()
@click.argument("file", type=click.Path(allow_dash=True, dir_okay=False, path_type=Path))
@click.option("--var", "variables", multiple=True, metavar="NAME=VALUE", help="Template variable (repeatable)")
@click.option("--dry-run", is_flag=True, help="Show commands instead of running them")
@click.option("--content-only", is_flag=True, help="Skip command inlines and code fences")
@click.option(
    "--cwd",
    "invocation_cwd",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Working directory for commands (default: the document's directory)",
)
@click.option("--no-cache", is_flag=True, help="Bypass the URL cache")
@click.option("--list-imports", is_flag=True, help="Print resolved imports to stderr")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Write JSONL logs to this file")
@click.option("--verbose", "-v", is_flag=True, help="Log progress to stderr")
def expand(
    file: Path,
    variables: tuple[str, ...],
    dry_run: bool,
    content_only: bool,
    invocation_cwd: Path | None,
    no_cache: bool,
    list_imports: bool,
    log_file: str | None,
    verbose: bool,
):
    """Expand FILE and print the result ('-' reads stdin)."""
    if log_file:
        init_json_logging(log_file)
    if verbose:
        handler = RichHandler(console=console, show_path=False)
        logging.getLogger().addHandler(handler)
        logging.getLogger().setLevel(logging.DEBUG)

    template_vars = _parse_vars(variables)

    if str(file) == "-":
        content = sys.stdin.read()
        base_dir = Path.cwd()
        stack = ImportStack()
    else:
        if not file.is_file():
            raise click.BadParameter(f"File not found: {file}", param_hint="FILE")
        content = file.read_text(encoding="utf-8")
        base_dir = file.resolve().parent
        stack = ImportStack((to_canonical_path(file),))

    try:
        settings = load_settings()
    except ValidationError as e:
        console.print(f"[red]Invalid settings:[/red] {escape_markup(e)}")
        sys.exit(1)

    if no_cache:
        settings = settings.model_copy(update={"use_cache": False})

    resolved: list[str] = []
    ctx = ImportContext(
        resolved_imports=resolved,
        invocation_cwd=invocation_cwd.resolve() if invocation_cwd else None,
        dry_run=dry_run,
        settings=settings,
        url_cache=UrlCache(ttl=settings.cache_ttl),
    )

    try:
        result = asyncio.run(run_pipeline(content, base_dir, ctx, template_vars, content_only, stack))
    except ImportExpansionError as e:
        logger.error(f"Expansion failed: {e}")
        console.print(f"[red]Error:[/red] {escape_markup(format_error_message(e))}")
        sys.exit(1)
    except TemplateError as e:
        console.print(f"[red]Template error:[/red] {escape_markup(format_error_message(e))}")
        sys.exit(1)

    if list_imports:
        for item in resolved:
            console.print(f"[dim]{escape_markup(item)}[/dim]")

    click.echo(unwrap_literals(result), nl=False)


@cli.group(invoke_without_command=True)
@click.pass_context
def cache(ctx: click.Context):
    """Manage the URL import cache."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit()


@cache.command(name="path")
def cache_path():
    """Show the cache directory path."""
    cache_dir = UrlCache().cache_dir
    console.print(f"[cyan]{cache_dir}[/cyan]")
    status = "exists" if cache_dir.exists() else "not created yet"
    console.print(f"[dim]Status: {status}[/dim]")


@cache.command(name="clear")
def cache_clear():
    """Delete all cached URL bodies."""
    removed = UrlCache().clear()
    console.print(f"[green]✓[/green] Removed {removed} cache file(s)")


def main():
    cli()


if __name__ == "__main__":
    main()

"""
toolgate CLI - Serve, inspect and try out the tool catalog.

`toolgate serve` speaks JSON-RPC on stdout, so every diagnostic goes to
stderr through a rich handler.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from toolgate import __version__
from toolgate.config import Config, ConfigError, Settings
from toolgate.gateway.dispatcher import ToolDispatcher
from toolgate.gateway.errors import ConfigurationError
from toolgate.server import PROFILES, build_registry, create_server

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)

PROFILE_OPTION = click.option(
    "--profile",
    "-p",
    type=click.Choice(list(PROFILES)),
    default="local",
    show_default=True,
    help="Which tool groups to expose",
)


def setup_logging(level: str) -> None:
    """Route all logging to stderr through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False, rich_tracebacks=True)],
        force=True,
    )


def load_settings(ctx: click.Context) -> Settings:
    """Settings for the workspace given on the command line; exits on bad config."""
    workspace: Optional[Path] = ctx.obj.get("workspace")
    try:
        settings = Config.load(workspace).settings(log_level=ctx.obj.get("log_level"))
    except ConfigError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)
    setup_logging(settings.log_level)
    return settings


def load_registry(settings: Settings, profile: str):
    try:
        return build_registry(settings, profile)
    except ConfigurationError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)


@click.group()
@click.version_option(__version__, "--version", "-v", prog_name="toolgate")
@click.option(
    "--workspace",
    "-w",
    type=click.Path(file_okay=False, path_type=Path),
    help="Workspace root (default: WORKSPACE_PATH or current directory)",
)
@click.option("--log-level", help="Log level (DEBUG, INFO, WARNING, ...)")
@click.pass_context
def cli(ctx: click.Context, workspace: Optional[Path], log_level: Optional[str]) -> None:
    """
    toolgate - tool-dispatch server for coding agents.

    \b
    Examples:
        toolgate serve                          # stdio server, local tools
        toolgate serve --profile gitops         # GitHub Actions + GitLab
        toolgate tools                          # list the catalog
        toolgate call read_file --args '{"path": "README.md"}'
    """
    ctx.ensure_object(dict)
    ctx.obj["workspace"] = workspace
    ctx.obj["log_level"] = log_level


@cli.command()
@PROFILE_OPTION
@click.pass_context
def serve(ctx: click.Context, profile: str) -> None:
    """Serve the tool catalog over stdin/stdout."""
    settings = load_settings(ctx)
    try:
        server = create_server(settings, profile)
    except ConfigurationError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)
    logger.info("workspace: %s", settings.workspace_root)
    server.serve()


@cli.command()
@PROFILE_OPTION
@click.option("--json", "as_json", is_flag=True, help="Print the catalog as JSON")
@click.option("--plain", is_flag=True, help="Print the catalog as plain text, one line per tool")
@click.pass_context
def tools(ctx: click.Context, profile: str, as_json: bool, plain: bool) -> None:
    """List the tools a profile exposes."""
    registry = load_registry(load_settings(ctx), profile)

    if as_json:
        click.echo(json.dumps(registry.catalog(), indent=2))
        return
    if plain:
        click.echo(registry.build_catalog_text())
        return

    table = Table(title=f"toolgate tools ({profile})")
    table.add_column("Tool", style="cyan", no_wrap=True)
    table.add_column("Group", style="dim")
    table.add_column("Description")
    for tool in registry.list():
        table.add_row(tool.name, tool.group, tool.description)
    console.print(table)
    console.print(f"[dim]{len(registry)} tools[/dim]")


@cli.command()
@click.argument("name")
@click.option("--args", "-a", "raw_args", default="{}", help="Tool arguments as a JSON object")
@PROFILE_OPTION
@click.pass_context
def call(ctx: click.Context, name: str, raw_args: str, profile: str) -> None:
    """Run one tool call through the gateway and print the result."""
    try:
        arguments = json.loads(raw_args)
    except json.JSONDecodeError as e:
        err_console.print(f"[red]Error: --args is not valid JSON: {escape(str(e))}[/red]")
        sys.exit(2)

    dispatcher = ToolDispatcher(load_registry(load_settings(ctx), profile))
    result = dispatcher.call(name, arguments)

    if result.success:
        click.echo(result.text)
        return
    err_console.print(f"[red]{result.error.category.value}: {escape(result.error.message)}[/red]")
    if result.error.details:
        err_console.print_json(data=result.error.details, default=str)
    sys.exit(1)


@cli.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Write a starter .toolgate/config.yaml into the workspace."""
    workspace = ctx.obj.get("workspace") or Path.cwd()
    path = Config.create_default_local(workspace)
    console.print(f"[green]Config written to {path}[/green]")


def main() -> None:
    """Entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()

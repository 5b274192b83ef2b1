"""
restcrud CLI.

Commands:
- serve:  expose the tables of a SQLite database as CRUD resources
- routes: list the routes that would be generated
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from restcrud._version import get_version
from restcrud.runtime.app_factory import build_sqlite_resources, run_app
from restcrud.runtime.server import CrudBackendApp, ServerConfig

app = typer.Typer(
    help="REST CRUD endpoints for SQLite tables",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"restcrud {get_version()}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """restcrud command line interface."""


def _build_config(
    database: Path,
    resources: list[str] | None,
    read_only: bool,
    mount_path: str,
    **overrides: object,
) -> ServerConfig:
    return ServerConfig.from_env(
        database_path=database,
        resources=resources or None,
        read_only=read_only or None,
        mount_path=mount_path or None,
        **overrides,
    )


@app.command(name="serve")
def serve_command(
    database: Path = typer.Argument(..., help="SQLite database file"),
    resource: list[str] = typer.Option(
        None,
        "--resource",
        "-r",
        help="Table to expose (repeatable; default: all tables)",
    ),
    host: str = typer.Option(None, "--host", help="Host to bind to"),
    port: int = typer.Option(None, "--port", "-p", help="Port to bind to"),
    read_only: bool = typer.Option(False, "--read-only", help="Only register GET routes"),
    mount_path: str = typer.Option("", "--mount-path", help="Route prefix (e.g. /api)"),
) -> None:
    """Serve CRUD routes for the tables of DATABASE."""
    config = _build_config(database, resource, read_only, mount_path, host=host, port=port)

    try:
        run_app(config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Cannot serve {database}: {e}[/red]")
        raise typer.Exit(1)


@app.command(name="routes")
def routes_command(
    database: Path = typer.Argument(..., help="SQLite database file"),
    resource: list[str] = typer.Option(
        None,
        "--resource",
        "-r",
        help="Table to expose (repeatable; default: all tables)",
    ),
    read_only: bool = typer.Option(False, "--read-only", help="Only register GET routes"),
    mount_path: str = typer.Option("", "--mount-path", help="Route prefix (e.g. /api)"),
) -> None:
    """List the routes generated for the tables of DATABASE."""
    from fastapi.routing import APIRoute

    config = _build_config(database, resource, read_only, mount_path)

    try:
        backend = CrudBackendApp(build_sqlite_resources(config), config)
        routers = backend.build_routers()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Cannot read {database}: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Routes for {database}")
    table.add_column("Method", style="cyan")
    table.add_column("Path")
    table.add_column("Summary", style="dim")

    for _, router in routers:
        for route in router.routes:
            if not isinstance(route, APIRoute):
                continue
            for method in sorted(route.methods):
                table.add_row(method, f"{backend.prefix}{route.path}", route.summary or "")

    console.print(table)


def main() -> None:
    """Entry point for the restcrud command."""
    app()


if __name__ == "__main__":
    main()

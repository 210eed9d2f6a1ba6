"""Thin CLI wrapper for gearforge.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console

from gearforge import __version__
from gearforge.config import get_settings, print_settings_json

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, sessionmaker

    from gearforge.builds.schema import TemporaryBuild

app = typer.Typer(
    name="gearforge",
    help="gearforge - compose, validate and share drone builds",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"gearforge version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """gearforge - compose, validate and share drone builds."""
    logging.basicConfig(level=get_settings().log_level)


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings))
    else:
        public_base = settings.public_base_url or "(relative URLs)"
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Storage:[/bold]")
        console.print(f"  Database URL:        {settings.db_url}")
        console.print()
        console.print("[bold]API:[/bold]")
        console.print(f"  API base URL:        {settings.api_base_url}")
        console.print(f"  Public base URL:     {public_base}")
        console.print(
            f"  Access token:        {'(set)' if settings.access_token else '(not set)'}"
        )
        console.print()
        console.print("[bold]Temporary builds:[/bold]")
        console.print(f"  TTL (hours):         {settings.temp_build_ttl_hours}")
        console.print(f"  Log level:           {settings.log_level}")
        console.print()
        console.print("[bold]Timeouts (seconds):[/bold]")
        console.print(f"  Request timeout:     {settings.request_timeout}")
        console.print(f"  Asset timeout:       {settings.asset_timeout}")


builds_app = typer.Typer(help="Validate and manage temporary builds")
app.add_typer(builds_app, name="builds")


def _open_session_factory() -> "sessionmaker[Session]":
    from gearforge.db import create_all_tables, get_engine, get_session_factory

    engine = get_engine()
    create_all_tables(engine)
    return get_session_factory(engine)


def _print_build(
    build: "TemporaryBuild", token: str | None = None, url: str | None = None
) -> None:
    from gearforge.types import CATEGORY_LABELS

    console.print(f"[bold]{build.title}[/bold]  ({build.status.value})")
    if token:
        console.print(f"  Token:    {token}")
    if url:
        console.print(f"  URL:      {url}")
    if build.expires_at:
        console.print(f"  Expires:  {build.expires_at.isoformat()}")
    else:
        console.print("  Expires:  never")
    console.print(f"  Verified: {build.verified}")
    if build.description:
        console.print(f"  {build.description}")
    console.print()
    if not build.parts:
        console.print("  [yellow]No parts selected[/yellow]")
    for part in build.parts:
        label = CATEGORY_LABELS[part.gear_category]
        name = part.catalog_item.display_name() if part.catalog_item else ""
        console.print(f"  {label:<18} {name or part.catalog_item_id}")


@builds_app.command("validate")
def builds_validate(
    path: Annotated[Path, typer.Argument(help="Build file (YAML or JSON)")],
    require_published: Annotated[
        bool,
        typer.Option(
            "--require-published",
            help="Also require parts to be published catalog items",
        ),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Validate a build file against the completeness rules.

    Exits with code 1 if the build is incomplete.
    """
    from gearforge.builds.assembly import PartAssembly
    from gearforge.builds.io import BuildFileError, load_build_file
    from gearforge.builds.validation import validation_result

    try:
        build_file = load_build_file(path)
    except BuildFileError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from None

    result = validation_result(
        PartAssembly.from_parts(build_file.parts),
        require_published=require_published,
    )

    if json_output:
        console.print(json.dumps(result.model_dump(mode="json"), indent=2))
    elif result.valid:
        console.print(f"[green]✓ {path.name} is complete[/green]")
    else:
        console.print(f"[red]✗ {path.name} is incomplete:[/red]")
        for failure in result.errors:
            category = getattr(failure.category, "value", failure.category)
            console.print(f"  [yellow]{category}[/yellow]: {failure.message}")

    if not result.valid:
        raise typer.Exit(code=1)


@builds_app.command("create")
def builds_create(
    path: Annotated[
        Path | None,
        typer.Argument(help="Optional build file to seed title and parts"),
    ] = None,
    title: Annotated[
        str | None,
        typer.Option("--title", "-t", help="Build title"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Create a temporary build and print its private token."""
    from gearforge.builds.io import BuildFile, BuildFileError, load_build_file
    from gearforge.builds.schema import CreateTempBuildParams
    from gearforge.builds.service import create_temp_build
    from gearforge.db import get_session

    build_file = BuildFile()
    if path is not None:
        try:
            build_file = load_build_file(path)
        except BuildFileError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1) from None

    params = CreateTempBuildParams(
        title=title if title is not None else build_file.title,
        description=build_file.description,
        parts=build_file.parts,
    )
    with get_session(_open_session_factory()) as session:
        created = create_temp_build(session, params, settings=get_settings())

    if json_output:
        console.print(json.dumps(created.model_dump(mode="json"), indent=2))
    else:
        console.print("[green]✓ Temporary build created[/green]")
        _print_build(created.build, token=created.token, url=created.url)


@builds_app.command("show")
def builds_show(
    token: Annotated[str, typer.Argument(help="Build access token")],
    yaml_output: Annotated[
        bool,
        typer.Option("--yaml", help="Output as a YAML build file"),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show a temporary or shared build."""
    from gearforge.builds.errors import BuildNotFoundError
    from gearforge.builds.io import build_to_yaml_string
    from gearforge.builds.service import load_by_token
    from gearforge.db import get_session

    try:
        with get_session(_open_session_factory()) as session:
            build = load_by_token(session, token)
    except BuildNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from None

    if json_output:
        console.print(json.dumps(build.model_dump(mode="json"), indent=2))
    elif yaml_output:
        console.print(build_to_yaml_string(build))
    else:
        _print_build(build)


@builds_app.command("share")
def builds_share(
    token: Annotated[str, typer.Argument(help="Private token of a TEMP build")],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Promote a temporary build to a permanent shared link.

    The private token stops working; use the printed token from now on.
    """
    from gearforge.builds.errors import BuildNotFoundError, InvalidStateError
    from gearforge.builds.service import promote_temp_build
    from gearforge.db import get_session

    try:
        with get_session(_open_session_factory()) as session:
            result = promote_temp_build(session, token, settings=get_settings())
    except BuildNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from None
    except InvalidStateError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from None

    if json_output:
        console.print(json.dumps(result.model_dump(mode="json"), indent=2))
    else:
        console.print("[green]✓ Build shared. This link will not expire.[/green]")
        _print_build(result.build, token=result.token, url=result.url)


@builds_app.command("cleanup")
def builds_cleanup() -> None:
    """Delete expired temporary builds."""
    from gearforge.builds.service import delete_expired_temp_builds
    from gearforge.db import get_session

    with get_session(_open_session_factory()) as session:
        deleted = delete_expired_temp_builds(session)
    console.print(f"Deleted {deleted} expired temporary build(s)")


if __name__ == "__main__":
    app()

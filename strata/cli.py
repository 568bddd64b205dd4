"""CLI commands for Strata."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from uuid import UUID

import click

from strata.config import get_settings
from strata.core.status import Mode
from strata.lib import observability


@click.group()
@click.version_option(package_name="strata")
@click.option(
    "--log-level",
    default="warning",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Logging level",
)
def cli(log_level):
    """Strata - versioned page trees with live and dev URL resolution."""
    logging.basicConfig(level=log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    observability.configure(get_settings())


def _run_alembic(args: list[str]) -> None:
    """Build an Alembic Config programmatically and run the given command."""
    from alembic.config import CommandLine, Config

    strata_dir = Path(__file__).parent
    alembic_ini = Path.cwd() / "alembic.ini"
    if not alembic_ini.exists():
        alembic_ini = strata_dir / "alembic.ini"
        if not alembic_ini.exists():
            click.echo("Error: Could not find alembic.ini", err=True)
            sys.exit(1)

    cfg = Config(str(alembic_ini))
    cfg.set_main_option("script_location", str(strata_dir / "alembic"))
    cfg.set_main_option("version_locations", str(strata_dir / "alembic" / "versions"))

    command_line = CommandLine(prog="strata db")
    options = command_line.parser.parse_args(args)
    if not hasattr(options, "cmd"):
        command_line.parser.error("too few arguments")
    command_line.run_cmd(cfg, options)


@cli.command(
    context_settings={"ignore_unknown_options": True, "allow_extra_args": True},
    add_help_option=False,
)
@click.pass_context
def db(ctx):
    """Run Alembic migrations, e.g. ``strata db upgrade head``."""
    _run_alembic(ctx.args or ["--help"])


def _root_id(root: str | None) -> UUID:
    if root:
        return UUID(root)
    configured = get_settings().pages.root_id
    if configured is None:
        raise click.UsageError("No root page: pass --root or set pages.root_id in app.yaml")
    return configured


def _mode(dev: bool) -> Mode:
    return Mode.DEV if dev else Mode.LIVE


@cli.command()
@click.argument("path")
@click.option("--root", default=None, help="Root page UUID (defaults to pages.root_id)")
@click.option("--dev", is_flag=True, help="Resolve in dev mode, drafts included")
def resolve(path, root, dev):
    """Print the page state PATH resolves to as JSON."""
    from strata.db.session import open_storage
    from strata.services import page_service

    settings = get_settings()
    root_id = _root_id(root)

    async def run():
        async with open_storage(settings) as storage:
            return await page_service.resolve_url(
                storage, root_id, path, _mode(dev), fallback_kind=settings.pages.fallback_kind
            )

    resolution = asyncio.run(run())
    payload = {"found": resolution.found, "state": resolution.state.to_dict() if resolution.state else None}
    click.echo(json.dumps(payload, indent=2))
    if resolution.state is None:
        sys.exit(1)


@cli.command()
@click.option("--root", default=None, help="Root page UUID (defaults to pages.root_id)")
@click.option("--dev", is_flag=True, help="Show the tree as dev mode sees it")
def tree(root, dev):
    """Print the visible page hierarchy with each page's URL."""
    from strata.db.session import open_storage

    settings = get_settings()
    root_id = _root_id(root)
    mode = _mode(dev)

    async def run():
        lines: list[str] = []
        async with open_storage(settings) as storage:
            root_page = await storage.load_page(root_id)
            if root_page is None:
                raise click.ClickException(f"Root page {root_id} does not exist")

            seen = set()

            async def walk(page, url, depth):
                if page.id in seen:
                    return
                seen.add(page.id)
                state = page.current(mode)
                marker = "" if state.status is None else f" [{state.status.name.lower()}]"
                lines.append(f"{'  ' * depth}{url}  {state.title}{marker}")
                for child in await page.current_children(storage, mode):
                    await walk(child, f"{url}{child.current(mode).slug}/", depth + 1)

            await walk(root_page, "/", 0)
        return lines

    for line in asyncio.run(run()):
        click.echo(line)


def main():
    cli()


if __name__ == "__main__":
    main()

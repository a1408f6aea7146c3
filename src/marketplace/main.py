#!/usr/bin/env python3
"""
Add-on Marketplace - command line front end
Description: search mod/plugin catalogs, resolve dependencies and install add-ons
"""

import asyncio
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.table import Table

from .config_manager import ConfigManager
from .modules.catalog_client import StaticCatalogClient
from .modules.errors import EmptyConfirmation, InstallFailure, MarketplaceError
from .modules.models import InstallProgress, Item, ProjectKind, Provider, SearchContext, SortOrder
from .modules.providers import categories_for, providers_for
from .modules.review import ReviewModel
from .modules.session import MarketplaceSession
from .utils.logger import get_cli_logger, init_logging
from .utils.text_utils import format_downloads, truncate_description


console = Console()

LOG_STYLES = {
    "success": "green",
    "error": "red",
    "info": "blue",
}


def _print_log(message: str, log_type: str) -> None:
    style = LOG_STYLES.get(log_type, "dim")
    console.print(f"[{style}]{escape(message)}[/{style}]", highlight=False)


def _parse_kind(value: str) -> ProjectKind:
    return ProjectKind(value)


def _parse_provider(value: Optional[str]) -> Optional[Provider]:
    if value is None or value.lower() == "all":
        return None
    try:
        return Provider.parse(value)
    except ValueError as e:
        raise click.BadParameter(str(e))


def _parse_item_ref(ref: str) -> Tuple[Provider, str]:
    """Parse ``provider:id`` references given on the command line."""
    if ":" not in ref:
        raise click.BadParameter(f"Expected PROVIDER:ID, got '{ref}'")
    provider_value, item_id = ref.split(":", 1)
    try:
        return Provider.parse(provider_value), item_id
    except ValueError as e:
        raise click.BadParameter(str(e))


def _build_session(ctx: click.Context, kind: ProjectKind) -> Tuple[MarketplaceSession, StaticCatalogClient]:
    config_manager: ConfigManager = ctx.obj["config_manager"]
    marketplace_config = config_manager.get_marketplace_config(kind)
    client = StaticCatalogClient.from_config(config_manager, kind)
    session = MarketplaceSession.from_config(client, marketplace_config, log_callback=_print_log)
    return session, client


def _render_results(items: List[Item], page: int) -> None:
    table = Table(title=f"Page {page}", show_lines=False)
    table.add_column("Provider", style="cyan")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Author")
    table.add_column("Downloads", justify="right")
    table.add_column("Description")

    for item in items:
        table.add_row(item.provider.value, item.id, item.title, item.author,
                      format_downloads(item.downloads), truncate_description(item.description, 60))
    console.print(table)


def _render_review(review: ReviewModel) -> None:
    table = Table(title="Review Selection")
    table.add_column("", width=3)
    table.add_column("Title", style="bold")
    table.add_column("Provider", style="cyan")
    table.add_column("Origin")

    for entry in review.entries():
        mark = "[green]✓[/green]" if entry.chosen else "[bright_black]○[/bright_black]"
        table.add_row(mark, entry.item.title, entry.item.provider.value, entry.origin)
    console.print(table)


@click.group()
@click.option('--config-dir', '-c', default='config', help='Configuration directory path')
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def main(ctx: click.Context, config_dir: str, debug: bool):
    """Search add-on catalogs and install mods or plugins with their dependencies."""
    ctx.ensure_object(dict)
    init_logging(Path(config_dir), debug=debug)

    config_manager = ConfigManager(Path(config_dir))
    ctx.obj["config_manager"] = config_manager
    ctx.obj["debug"] = debug

    if debug:
        try:
            app_config = config_manager.get_app_config()
            console.print(f"[blue]{app_config.name} v{app_config.version}[/blue]")
        except (FileNotFoundError, KeyError):
            pass
        console.print(f"[dim]Config directory: {config_dir}[/dim]")


@main.command()
@click.argument('query', default='')
@click.option('--kind', '-k', type=click.Choice(['mod', 'plugin']), default='mod', help='What to search for')
@click.option('--provider', '-p', default=None, help='Catalog provider, or "all"')
@click.option('--category', default=None, help='Category id of the chosen provider')
@click.option('--sort', '-s', default=None, help='Relevance, Downloads, Follows, Newest or Updated')
@click.option('--page', default=1, type=int, help='Result page (1-based)')
@click.option('--page-size', default=None, type=int, help='Results per page, one of the configured page sizes')
@click.option('--game-version', default=None, help='Game version to filter for')
@click.option('--loader', default=None, help='Mod loader or server type to filter for')
@click.pass_context
def search(ctx, query, kind, provider, category, sort, page, page_size, game_version, loader):
    """Search the catalog."""
    asyncio.run(_search(ctx, query, _parse_kind(kind), provider, category, sort, page,
                        page_size, game_version, loader))


async def _search(ctx, query, kind, provider, category, sort, page, page_size, game_version, loader):
    logger = get_cli_logger()
    session, _ = _build_session(ctx, kind)

    changes = {"query": query}
    if provider is not None:
        changes["provider"] = _parse_provider(provider)
    if page_size is not None:
        changes["page_size"] = page_size

    try:
        if sort is not None:
            changes["sort"] = SortOrder.parse(sort)
        # Filters are applied before the context so that only one request is made
        await session.search.update(**changes)
        if category is not None:
            await session.search.update(category=category)
        if page > 1:
            await session.search.update(page=page)
        results = await session.load_context(SearchContext(game_version=game_version, loader=loader))
    except ValueError as e:
        raise click.BadParameter(str(e))
    except MarketplaceError as e:
        logger.error(f"Search failed: {e}")
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)

    if not results:
        console.print("[yellow]No results[/yellow]")
        return
    _render_results(results, session.search.page)
    if session.search.has_next_page:
        console.print(f"[dim]More results: --page {session.search.page + 1}[/dim]")


@main.command()
@click.option('--kind', '-k', type=click.Choice(['mod', 'plugin']), default='mod')
@click.option('--provider', '-p', default='Modrinth', help='Catalog provider')
def categories(kind, provider):
    """List the categories a provider offers."""
    project_kind = _parse_kind(kind)
    selected = _parse_provider(provider)
    if selected is None:
        console.print("[yellow]Categories are provider specific; choose a provider[/yellow]")
        return
    if selected not in providers_for(project_kind):
        raise click.BadParameter(f"{selected.value} does not serve {kind}s")

    table = Table(title=f"{selected.value} {kind} categories")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    for category in categories_for(project_kind, selected):
        table.add_row(category.id, f"{category.icon} {category.name}")
    console.print(table)


@main.command()
@click.argument('items', nargs=-1, required=True)
@click.option('--kind', '-k', type=click.Choice(['mod', 'plugin']), default='mod')
@click.option('--game-version', default=None, help='Game version of the target server')
@click.option('--loader', default=None, help='Mod loader or server type of the target server')
@click.option('--with-optional', is_flag=True, help='Also install optional dependencies')
@click.option('--skip', multiple=True, help='PROVIDER:ID of a listed item or dependency to leave out')
@click.option('--yes', '-y', is_flag=True, help='Install without asking for confirmation')
@click.pass_context
def install(ctx, items, kind, game_version, loader, with_optional, skip, yes):
    """Install ITEMS (PROVIDER:ID ...) together with their dependencies."""
    refs = [_parse_item_ref(ref) for ref in items]
    skipped = [_parse_item_ref(ref) for ref in skip]
    project_kind = _parse_kind(kind)

    session = asyncio.run(_review(ctx, project_kind, refs, game_version, loader, with_optional, skipped))
    if session is None:
        sys.exit(1)

    review = session.review
    _render_review(review)
    if not review.can_confirm:
        console.print(f"[yellow]{escape(str(EmptyConfirmation()))}[/yellow]")
        sys.exit(1)

    # Prompt outside the event loop
    if not yes and not click.confirm(f"Install {review.chosen_count} items?", default=True):
        session.close_review()
        console.print("[dim]Cancelled[/dim]")
        sys.exit(0)

    sys.exit(asyncio.run(_install(session, review.chosen_count)))


async def _review(ctx, kind, refs, game_version, loader, with_optional,
                  skipped) -> Optional[MarketplaceSession]:
    """Select ``refs`` and open a review with their dependencies; ``None`` when a ref is unknown."""
    session, client = _build_session(ctx, kind)
    session.set_context(SearchContext(game_version=game_version, loader=loader))

    try:
        for provider, item_id in refs:
            session.toggle(client.get_item(provider, item_id))
    except MarketplaceError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        return None

    with console.status("Finding dependencies..."):
        review = await session.request_review()
    if session.resolution_error:
        console.print(f"[yellow]{escape(str(session.resolution_error))}[/yellow]")
        console.print("[yellow]Continuing with the selected items only[/yellow]")

    if with_optional:
        for dependency in review.optional_dependencies():
            if not review.is_chosen(dependency.key):
                review.toggle_choice(dependency.key)
    for key in skipped:
        if review.is_chosen(key):
            review.toggle_choice(key)
    return session


async def _install(session: MarketplaceSession, count: int) -> int:
    logger = get_cli_logger()

    with Progress(TextColumn("{task.description}"), BarColumn(), MofNCompleteColumn(),
                  console=console) as progress:
        task_id = progress.add_task("Installing", total=count)

        def on_progress(update: InstallProgress) -> None:
            progress.update(task_id, completed=update.current, total=update.total,
                            description=f"Installing {update.name}")

        session.add_progress_callback(on_progress)
        try:
            result = await session.install()
        except InstallFailure as e:
            logger.error(str(e))
            console.print(f"[red]Installation failed at {escape(e.item.title)}: {escape(str(e.cause))}[/red]")
            console.print(f"[yellow]{e.completed} of {e.total} items were installed; "
                          f"{e.remaining} remain[/yellow]")
            return 1

    console.print(f"[green]Successfully installed {len(result.installed)} {session.kind.value}s![/green]")
    return 0


if __name__ == "__main__":
    main()

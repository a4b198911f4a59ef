"""Main CLI entry point for nativeplug.

This module provides the command-line interface for fetching plugins and
installing them into native platform projects.
"""

import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Coroutine, Optional, Sequence, TypeVar

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from nativeplug import __version__
from nativeplug.core.config import FetchOptions, config_manager
from nativeplug.core.errors import NativeplugError
from nativeplug.core.fetch import fetch_plugin
from nativeplug.core.installer import PluginInstaller
from nativeplug.core.ledger import InstalledPluginLedger, default_ledger_path
from nativeplug.core.local_index import LocalPluginIndex
from nativeplug.core.registry import RegistryClient
from nativeplug.core.resolver import SourceResolver
from nativeplug.utils.log import get_logger

console = Console()
logger = get_logger()

T = TypeVar("T")

_PROJECT_OPTION = click.option(
    "--project",
    "project_root",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Project root directory",
)
_LINK_OPTION = click.option(
    "--link", is_flag=True, help="Symlink local plugins instead of copying them"
)
_SEARCHPATH_OPTION = click.option(
    "--searchpath",
    multiple=True,
    help=f"Extra directories to search for plugins by id ({os.pathsep}-separated, repeatable)",
)
_NOREGISTRY_OPTION = click.option(
    "--noregistry", is_flag=True, help="Never fall back to the plugin registry"
)


def _build_options(
    link: bool,
    searchpath: Sequence[str],
    noregistry: bool,
    expected_id: Optional[str] = None,
) -> FetchOptions:
    config = config_manager.get_global_config()
    search_path = list(config_manager.effective_search_path())
    for entry in searchpath:
        search_path.extend(Path(item).expanduser() for item in entry.split(os.pathsep) if item)
    no_registry = noregistry or config.no_registry
    registry = None
    if not no_registry:
        registry = RegistryClient(
            config.registry_url,
            config.resolved_cache_dir(),
            timeout=config.registry_timeout,
        )
    return FetchOptions(
        link=link,
        search_path=search_path,
        no_registry=no_registry,
        expected_id=expected_id,
        registry_client=registry,
    )


def _run(coro: Coroutine[Any, Any, T]) -> T:
    try:
        return asyncio.run(coro)
    except NativeplugError as e:
        logger.debug("[cli] Command failed: %s: %s", type(e).__name__, e)
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write debug logs to this file",
)
def cli(verbose: bool, log_file: Optional[Path]) -> None:
    """nativeplug - plugin manager for native platform projects"""
    if verbose:
        logger.set_console_level(logging.DEBUG)
    if log_file:
        logger.attach_file_handler(log_file)
    logger.debug("[cli] Starting CLI invocation", extra={"cwd": str(Path.cwd())})


@cli.command(name="fetch")
@click.argument("reference")
@click.option(
    "--plugins-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default="plugins",
    show_default=True,
    help="Directory plugins are fetched into",
)
@_LINK_OPTION
@_SEARCHPATH_OPTION
@_NOREGISTRY_OPTION
@click.option("--expected-id", help="Fail unless the plugin has this id (or id@version)")
def fetch_cmd(
    reference: str,
    plugins_dir: Path,
    link: bool,
    searchpath: Sequence[str],
    noregistry: bool,
    expected_id: Optional[str],
) -> None:
    """Fetch a plugin from a git URL, local path or registry id"""
    options = _build_options(link, searchpath, noregistry, expected_id)
    resolver = SourceResolver(LocalPluginIndex())
    final_dir = _run(fetch_plugin(reference, plugins_dir, options, resolver=resolver))
    console.print(f"Fetched plugin into [bold]{escape(str(final_dir))}[/bold]")


@cli.command(name="install")
@click.argument("platform")
@click.argument("reference")
@_PROJECT_OPTION
@_LINK_OPTION
@_SEARCHPATH_OPTION
@_NOREGISTRY_OPTION
def install_cmd(
    platform: str,
    reference: str,
    project_root: Path,
    link: bool,
    searchpath: Sequence[str],
    noregistry: bool,
) -> None:
    """Fetch a plugin and install it into a platform project"""
    options = _build_options(link, searchpath, noregistry)
    installer = PluginInstaller(project_root, platform, options, index=LocalPluginIndex())
    descriptor = _run(installer.install(reference))
    console.print(
        f"Installed [bold]{escape(descriptor.spec)}[/bold] on [cyan]{escape(platform)}[/cyan]"
    )


@cli.command(name="uninstall")
@click.argument("platform")
@click.argument("plugin_id")
@_PROJECT_OPTION
@click.option("--keep-files", is_flag=True, help="Leave the plugin in the plugins directory")
def uninstall_cmd(platform: str, plugin_id: str, project_root: Path, keep_files: bool) -> None:
    """Remove a plugin from a platform project"""
    installer = PluginInstaller(project_root, platform)
    _run(installer.uninstall(plugin_id, keep_files=keep_files))
    console.print(
        f"Uninstalled [bold]{escape(plugin_id)}[/bold] from [cyan]{escape(platform)}[/cyan]"
    )


@cli.command(name="prepare")
@click.argument("platform")
@_PROJECT_OPTION
def prepare_cmd(platform: str, project_root: Path) -> None:
    """Refresh a platform project from config.xml, www and merges"""
    try:
        PluginInstaller(project_root, platform).prepare()
    except NativeplugError as e:
        raise click.ClickException(str(e)) from e
    console.print(f"Prepared [cyan]{escape(platform)}[/cyan]")


@cli.command(name="list")
@click.argument("platform")
@_PROJECT_OPTION
@click.option("--json", "as_json", is_flag=True, help="Print installed plugins as JSON")
def list_cmd(platform: str, project_root: Path, as_json: bool) -> None:
    """List plugins recorded as installed on a platform"""
    ledger = InstalledPluginLedger(default_ledger_path(project_root))
    records = ledger.records_for(platform)
    if as_json:
        payload = [
            {
                "id": record.plugin_id,
                "version": record.version,
                "status": record.status,
                "changes": len(record.mutations),
            }
            for record in records
        ]
        click.echo(json.dumps(payload, indent=2))
        return

    if not records:
        console.print(f"[dim]No plugins installed on {escape(platform)}[/dim]")
        return
    table = Table(title=f"Plugins on {platform}")
    table.add_column("Plugin")
    table.add_column("Version")
    table.add_column("Status")
    table.add_column("Changes", justify="right")
    for record in records:
        status = record.status if record.status == "committed" else f"[yellow]{record.status}[/yellow]"
        table.add_row(
            escape(record.plugin_id),
            escape(record.version or ""),
            status,
            str(len(record.mutations)),
        )
    console.print(table)


@cli.command(name="version")
def version_cmd() -> None:
    """Show version information"""
    console.print(f"nativeplug version {__version__}")


def main() -> None:
    """Main entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except SystemExit:
        raise
    except (
        RuntimeError,
        ValueError,
        OSError,
    ) as e:
        console.print(f"[red]Fatal error: {escape(str(e))}[/red]")
        logger.warning(
            "[cli] Fatal error in main CLI entrypoint: %s: %s",
            type(e).__name__,
            e,
        )
        sys.exit(1)


if __name__ == "__main__":
    main()

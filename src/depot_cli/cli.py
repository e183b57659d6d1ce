"""Command-line interface for the prebuilt depot."""

import sys

import click
from colorama import init, Fore, Style

from depot_cli.commands.inspect import inspect
from depot_cli.commands.options import build_options, load_build
from depot_cli.config import get_config, parse_setting, update_config, CONFIG_FILE
from depot_cli.deps.depot import Depot, emit_directives
from depot_cli.deps.fetcher import SourceFetcher
from depot_cli.errors import DeliveryFailed, DepotError
from depot_cli.utils.console import (
    _rich_success, _rich_error, _rich_info, _create_table, _get_console
)
from depot_cli.version import get_version

# Initialize colorama for fallback
init(autoreset=True)

TITLE = f"{Fore.CYAN}{Style.BRIGHT}"
ERROR = f"{Fore.RED}{Style.BRIGHT}"
RESET = Style.RESET_ALL


def print_version(ctx, param, value):
    """Print version and exit."""
    if not value or ctx.resilient_parsing:
        return

    console = _get_console()
    if console:
        from rich.text import Text
        from rich.panel import Panel
        version_text = Text()
        version_text.append("Prebuilt Depot", style="bold cyan")
        version_text.append(f" version {get_version()}", style="white")
        console.print(Panel(version_text, border_style="cyan", padding=(0, 1)))
    else:
        click.echo(f"{TITLE}Prebuilt Depot{RESET} version {get_version()}")

    ctx.exit()


@click.group(help="Prebuilt Depot: inject pre-built artifacts over dummy-compiled dependencies")
@click.option('--version', is_flag=True, callback=print_version,
              expose_value=False, is_eager=True, help="Show version and exit.")
@click.pass_context
def cli(ctx):
    """Main entry point for the depot CLI."""
    ctx.ensure_object(dict)


# Register command groups
cli.add_command(inspect)


@cli.command(help="Fetch configured artifacts and inject them into the deps directory")
@build_options
@click.option('--jobs', '-j', type=int, default=None, help="Packages to deliver concurrently")
@click.option('--emit-directives', 'directives', is_flag=True,
              help="Print build-script directives (rerun-if-changed, warnings)")
@click.option('--quiet', '-q', is_flag=True, help="Only report failures")
@click.pass_context
def deliver(ctx, manifest_path, project_root, out_dir, target, profile, jobs, directives, quiet):
    """Deliver every configured package for the current build."""
    try:
        context, manifest = load_build(manifest_path, project_root, out_dir, target, profile)
    except DepotError as e:
        _rich_error(str(e), symbol="error")
        sys.exit(1)

    settings = get_config()
    fetcher = SourceFetcher(
        timeout=float(settings["http_timeout"]),
        max_redirects=int(settings["max_redirects"]),
        verify_tls=bool(settings["verify_tls"]),
    )

    if not quiet:
        _rich_info(f"Delivering {len(manifest.packages)} package(s) into {context.deps_dir}", symbol="running")

    try:
        with fetcher:
            depot = Depot(
                fetcher=fetcher,
                jobs=jobs if jobs is not None else int(settings["jobs"]),
                verbose=not quiet,
            )
            summary = depot.deliver(manifest, context)
    except DeliveryFailed as e:
        if directives:
            emit_directives(e.summary, e.failures)
        if quiet:
            _rich_error(str(e), symbol="error")
        sys.exit(1)
    except DepotError as e:
        _rich_error(str(e), symbol="error")
        sys.exit(1)

    if directives:
        emit_directives(summary)
    if not quiet:
        _rich_success(f"Delivered {len(summary.delivered)} package(s)", symbol="success")


@cli.command(help="Show or change depot settings")
@click.option('--show', is_flag=True, help="Show current configuration")
@click.option('--set', 'assignments', multiple=True, metavar="KEY=VALUE", help="Update a setting")
@click.pass_context
def config(ctx, show, assignments):
    """Configure depot CLI settings."""
    if assignments:
        updates = {}
        for assignment in assignments:
            key, sep, raw = assignment.partition("=")
            if not sep:
                _rich_error(f"Invalid setting '{assignment}', expected KEY=VALUE", symbol="error")
                sys.exit(1)
            try:
                updates[key.strip()] = parse_setting(key.strip(), raw)
            except ValueError as e:
                _rich_error(str(e), symbol="error")
                sys.exit(1)
        update_config(updates)
        _rich_success(f"Updated {', '.join(sorted(updates))} in {CONFIG_FILE}", symbol="success")

    if show:
        settings = get_config()
        rows = [(key, settings[key]) for key in sorted(settings)]
        rows.append(("version", get_version()))
        table = _create_table("Depot Configuration", ["Setting", "Value"], rows)
        console = _get_console()
        if table is not None and console is not None:
            console.print(table)
        else:
            _rich_info("Current depot configuration:")
            for key, value in rows:
                click.echo(f"  {key}: {value}")
    elif not assignments:
        _rich_info("Use --show to display configuration or --set KEY=VALUE to change it")


def main():
    """Main entry point for the CLI."""
    try:
        cli(obj={})
    except Exception as e:
        click.echo(f"{ERROR}Error: {e}{RESET}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

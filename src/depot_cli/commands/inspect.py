"""Depot inspection commands."""

import sys
from datetime import datetime

import click

from ..deps.depot import Depot
from ..deps.recipients import OutputLocator
from ..errors import DepotError
from ..utils.console import _create_table, _get_console, _rich_error, _rich_info, _rich_warning
from .options import build_options, load_build


@click.group(help="Inspect resolved sources and injection targets")
def inspect():
    """Depot inspection commands."""
    pass


@inspect.command(name="sources", help="Show each package's resolved source locator")
@build_options
def sources(manifest_path, project_root, out_dir, target, profile):
    """Resolve every package locator without fetching anything."""
    try:
        context, manifest = load_build(manifest_path, project_root, out_dir, target, profile)
    except DepotError as e:
        _rich_error(str(e), symbol="error")
        sys.exit(1)

    if not manifest.packages:
        _rich_info("No packages configured", symbol="info")
        return

    resolved, errors = Depot(verbose=False).inspect(manifest, context)
    rows = []
    for name in sorted(manifest.packages):
        spec = manifest.packages[name]
        if name in resolved:
            rows.append((name, spec.source, str(resolved[name]), spec.link.value))
        else:
            rows.append((name, spec.source, f"error: {errors[name].message}", spec.link.value))

    _print_rows("Package Sources", ["Package", "Template", "Resolved", "Link"], rows)

    if errors:
        _rich_error(f"{len(errors)} package(s) have configuration errors", symbol="error")
        sys.exit(1)


@inspect.command(name="targets", help="List the dummy artifacts found in the deps directory")
@build_options
def targets(manifest_path, project_root, out_dir, target, profile):
    """Show which configured packages have a dummy artifact to inject onto."""
    try:
        context, manifest = load_build(manifest_path, project_root, out_dir, target, profile)
    except DepotError as e:
        _rich_error(str(e), symbol="error")
        sys.exit(1)

    locator = OutputLocator(context, verbose=False)
    rows = []
    missing = 0
    for name in sorted(manifest.packages):
        address = locator.addresses.get(manifest.packages[name].crate_name)
        if address is None:
            missing += 1
            rows.append((name, "(not compiled)", "-"))
            continue
        modified = datetime.fromtimestamp(address.modified).isoformat(timespec="seconds") if address.modified else "-"
        rows.append((name, address.file_name, modified))

    _print_rows(f"Targets in {context.deps_dir}", ["Package", "Artifact", "Modified"], rows)

    if missing:
        _rich_warning(f"{missing} package(s) have no dummy artifact yet", symbol="warning")


def _print_rows(title, columns, rows):
    table = _create_table(title, columns, rows)
    console = _get_console()
    if table is not None and console is not None:
        console.print(table)
        return

    click.echo(f"{title}:")
    for row in rows:
        click.echo("  " + " | ".join(str(value) for value in row))

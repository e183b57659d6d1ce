"""Build context options shared by the depot commands."""

import os
from pathlib import Path
from typing import Optional, Tuple

import click

from ..models.depot_package import BuildContext, detect_compiler_version
from ..models.manifest import DEPOT_MANIFEST, HOST_MANIFEST, Manifest


def build_options(command):
    """Attach the manifest and build-environment options to a command.

    Every option falls back to the variable the build orchestrator exports to
    build scripts, so the commands run unchanged from inside a build.
    """
    options = [
        click.option('--manifest', '-m', 'manifest_path', type=click.Path(dir_okay=False),
                     help=f"Manifest to read (default: {HOST_MANIFEST} or {DEPOT_MANIFEST} in the project root)"),
        click.option('--project-root', envvar='CARGO_MANIFEST_DIR', type=click.Path(file_okay=False),
                     help="Project root for relative file sources [env: CARGO_MANIFEST_DIR]"),
        click.option('--out-dir', envvar='OUT_DIR', type=click.Path(file_okay=False),
                     help="Build script output directory [env: OUT_DIR]"),
        click.option('--target', envvar='TARGET', help="Target triple [env: TARGET]"),
        click.option('--profile', envvar='PROFILE', help="Build profile [env: PROFILE]"),
    ]

    for option in reversed(options):
        command = option(command)
    return command


def default_manifest(project_root: Path) -> Path:
    """The manifest used when none is given explicitly."""
    depot_manifest = project_root / DEPOT_MANIFEST
    if depot_manifest.exists() and not (project_root / HOST_MANIFEST).exists():
        return depot_manifest
    return project_root / HOST_MANIFEST


def load_build(manifest_path: Optional[str], project_root: Optional[str], out_dir: Optional[str],
               target: Optional[str], profile: Optional[str]) -> Tuple[BuildContext, Manifest]:
    """Assemble the build context and manifest from command options.

    Raises:
        click.UsageError: If a required build value is neither given nor exported
        DepotError: If the manifest or OUT_DIR is invalid
    """
    missing = [name for name, value in (("--out-dir", out_dir), ("--target", target), ("--profile", profile))
               if not value]
    if missing:
        raise click.UsageError(f"Missing build context: {', '.join(missing)} (or the matching environment variable)")

    if manifest_path:
        manifest = Manifest.from_file(Path(manifest_path))
    else:
        manifest = Manifest.from_file(default_manifest(Path(project_root or Path.cwd())))

    # Without --project-root, relative sources resolve against the manifest's directory
    root = Path(project_root).resolve() if project_root else manifest.project_root
    context = BuildContext(
        target=target,
        profile=profile,
        project_root=root,
        deps_dir=BuildContext.deps_dir_from_out_dir(out_dir),
        compiler_version=detect_compiler_version(os.environ),
    )
    return context, manifest

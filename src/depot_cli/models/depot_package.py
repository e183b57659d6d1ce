"""Depot package data models."""

import os
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Mapping, Optional

from ..errors import InvalidOutDir, InvalidPlacement, MissingEnvironmentVariable


DEFAULT_EXPORT = "export.rlib"

# Scheme identifiers a resolved locator may carry
FILE_SCHEME = "file"
HTTP_SCHEME = "http"
HTTPS_SCHEME = "https"
SUPPORTED_SCHEMES = (FILE_SCHEME, HTTP_SCHEME, HTTPS_SCHEME)


class PlacementStrategy(Enum):
    """How an artifact is placed at its injection target."""
    COPY = "copy"
    HARD_LINK = "hard-link"
    SYMBOLIC_LINK = "symbolic-link"

    @classmethod
    def parse(cls, value: Optional[str], package_name: Optional[str] = None) -> "PlacementStrategy":
        """Parse a manifest spelling of a placement strategy.

        Args:
            value: Strategy name from the manifest, ``None`` for the default
            package_name: Package the value belongs to (for error reporting)

        Returns:
            PlacementStrategy: Parsed strategy

        Raises:
            InvalidPlacement: If the spelling is not recognized
        """
        if value is None:
            return cls.COPY
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        strategy = _PLACEMENT_ALIASES.get(key)
        if strategy is None:
            raise InvalidPlacement(
                f"Unknown link strategy '{value}' (expected copy, hard or symbolic)",
                package_name,
            )
        return strategy

    @property
    def is_link(self) -> bool:
        return self is not PlacementStrategy.COPY


_PLACEMENT_ALIASES = {
    "copy": PlacementStrategy.COPY,
    "hard": PlacementStrategy.HARD_LINK,
    "hard-link": PlacementStrategy.HARD_LINK,
    "hardlink": PlacementStrategy.HARD_LINK,
    "symbolic": PlacementStrategy.SYMBOLIC_LINK,
    "symbolic-link": PlacementStrategy.SYMBOLIC_LINK,
    "symlink": PlacementStrategy.SYMBOLIC_LINK,
    "soft": PlacementStrategy.SYMBOLIC_LINK,
}


@dataclass
class Substitution:
    """A template variable: a literal value or an environment variable indirection."""
    name: str
    value: str
    from_env: bool = False

    def __str__(self) -> str:
        if self.from_env:
            return f"${self.value}"
        return self.value


@dataclass
class PackageSpec:
    """A package whose dummy artifact is replaced by a pre-built one."""
    name: str
    source: str  # Locator template, before substitution
    link: PlacementStrategy = PlacementStrategy.COPY
    version: Optional[str] = None  # Dependency version declared by the host manifest
    export_name: str = DEFAULT_EXPORT

    @property
    def crate_name(self) -> str:
        """Name as it appears in compiled artifact file names."""
        return self.name.replace("-", "_")


@dataclass(frozen=True)
class ResolvedLocator:
    """A substituted source locator with its classified scheme."""
    scheme: str
    location: str  # Absolute path for file, URL for http(s)

    @property
    def is_remote(self) -> bool:
        return self.scheme in (HTTP_SCHEME, HTTPS_SCHEME)

    @property
    def path(self) -> Path:
        return Path(self.location)

    def __str__(self) -> str:
        if self.scheme == FILE_SCHEME:
            return f"file://{self.location}"
        return self.location


@dataclass
class FetchedResource:
    """A fully materialized local copy (or the local path) of a package source."""
    path: Path
    is_archive: bool
    locator: ResolvedLocator
    downloaded: bool = False


@dataclass
class ArchiveEntry:
    """A file extracted from a container archive, under its original name."""
    name: str
    path: Path


@dataclass
class ArchiveManifest:
    """Contents recovered from a container archive."""
    primary: ArchiveEntry
    auxiliaries: List[ArchiveEntry] = field(default_factory=list)


@dataclass
class RawArtifact:
    """A fetched resource that is itself the artifact to inject."""
    path: Path


@dataclass(frozen=True)
class InjectionTarget:
    """Absolute output path inside the deps directory for one artifact."""
    package_name: str
    path: Path
    primary: bool = True

    @property
    def file_name(self) -> str:
        return self.path.name


@dataclass
class BuildContext:
    """Build environment of the current invocation.

    Passed explicitly into the template resolver and output locator so both
    can run against synthetic environments.
    """
    target: str
    profile: str
    project_root: Path
    deps_dir: Path
    compiler_version: Optional[str] = None

    @staticmethod
    def deps_dir_from_out_dir(out_dir) -> Path:
        """Derive the shared deps directory from a build script's OUT_DIR.

        OUT_DIR is ``<target-dir>/<profile>/build/<pkg>-<hash>/out``; the
        dependency artifacts live in ``<target-dir>/<profile>/deps``.
        """
        out_dir = Path(out_dir)
        parents = out_dir.parents
        if len(parents) < 3:
            raise InvalidOutDir(out_dir)
        return parents[2] / "deps"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BuildContext":
        """Build the context from the variables the orchestrator exports.

        Args:
            environ: Environment mapping (defaults to os.environ)

        Returns:
            BuildContext: Context for this build invocation

        Raises:
            MissingEnvironmentVariable: If a required variable is unset
            InvalidOutDir: If OUT_DIR does not sit inside a target directory
        """
        if environ is None:
            environ = os.environ

        def require(name: str) -> str:
            value = environ.get(name)
            if value is None:
                raise MissingEnvironmentVariable(name)
            return value

        out_dir = require("OUT_DIR")
        project_root = Path(require("CARGO_MANIFEST_DIR"))
        return cls(
            target=require("TARGET"),
            profile=require("PROFILE"),
            project_root=project_root,
            deps_dir=cls.deps_dir_from_out_dir(out_dir),
            compiler_version=detect_compiler_version(environ),
        )


def detect_compiler_version(environ: Mapping[str, str]) -> Optional[str]:
    """Return the compiler's short version string, or None if it is unavailable."""
    explicit = environ.get("DEPOT_COMPILER_VERSION")
    if explicit:
        return explicit.strip()

    compiler = environ.get("RUSTC", "rustc")
    try:
        result = subprocess.run(
            [compiler, "--version"],
            capture_output=True,
            text=True,
            timeout=30,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    if result.returncode != 0:
        return None
    output = result.stdout.strip()
    return output.splitlines()[0] if output else None

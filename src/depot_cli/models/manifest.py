"""Host manifest loading.

Reads the depot configuration out of the host project's manifest, either the
``[package.metadata.depot]`` table of a ``Cargo.toml`` or a standalone
``depot.yml``. Both produce the same typed ``Manifest`` structure.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import toml
import yaml

from ..errors import ManifestError
from .depot_package import DEFAULT_EXPORT, PackageSpec, PlacementStrategy, Substitution


HOST_MANIFEST = "Cargo.toml"
DEPOT_MANIFEST = "depot.yml"


@dataclass
class Manifest:
    """Depot configuration of a project."""
    packages: Dict[str, PackageSpec] = field(default_factory=dict)
    substitutions: Dict[str, Substitution] = field(default_factory=dict)
    project_root: Optional[Path] = None

    @classmethod
    def from_file(cls, manifest_path: Path) -> "Manifest":
        """Load the depot configuration from a manifest file.

        Args:
            manifest_path: Path to a ``.toml`` host manifest or a ``.yml``/``.yaml`` file

        Returns:
            Manifest: Parsed configuration, rooted at the manifest's directory

        Raises:
            ManifestError: If the file can't be read or doesn't hold valid configuration
        """
        manifest_path = Path(manifest_path)
        try:
            content = manifest_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ManifestError(f"Could not read manifest {manifest_path}: {e}") from e

        project_root = manifest_path.resolve().parent
        if manifest_path.suffix in (".yml", ".yaml"):
            return cls.from_yaml(content, project_root)
        return cls.from_toml(content, project_root)

    @classmethod
    def from_toml(cls, content: str, project_root: Optional[Path] = None) -> "Manifest":
        """Parse ``[package.metadata.depot]`` out of a host manifest."""
        try:
            data = toml.loads(content)
        except toml.TomlDecodeError as e:
            raise ManifestError(f"Invalid TOML format: {e}") from e

        depot = data.get("package", {}).get("metadata", {}).get("depot")
        if not isinstance(depot, dict):
            raise ManifestError("Missing [package.metadata.depot] table in manifest")

        versions = {}
        for name, dependency in data.get("dependencies", {}).items():
            if isinstance(dependency, str):
                versions[name] = dependency
            elif isinstance(dependency, dict) and dependency.get("version"):
                versions[name] = str(dependency["version"])

        return cls._from_mapping(depot, versions, project_root)

    @classmethod
    def from_yaml(cls, content: str, project_root: Optional[Path] = None) -> "Manifest":
        """Parse a standalone ``depot.yml``."""
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ManifestError(f"Invalid YAML format: {e}") from e

        if not isinstance(data, dict):
            raise ManifestError(f"{DEPOT_MANIFEST} must contain a YAML object, got {type(data).__name__}")

        versions = {}
        for name, entry in (data.get("packages") or {}).items():
            if isinstance(entry, dict) and entry.get("version") is not None:
                versions[name] = str(entry["version"])

        return cls._from_mapping(data, versions, project_root)

    @classmethod
    def _from_mapping(cls, data: Dict[str, Any], versions: Dict[str, str],
                      project_root: Optional[Path]) -> "Manifest":
        raw_packages = data.get("packages")
        if not isinstance(raw_packages, dict):
            raise ManifestError("Missing required 'packages' table")

        packages = {}
        for name, entry in raw_packages.items():
            packages[name] = _parse_package(name, entry, versions.get(name))

        substitutions = {}
        for name, entry in (data.get("substitutions") or {}).items():
            substitutions[name] = _parse_substitution(name, entry)

        return cls(packages=packages, substitutions=substitutions, project_root=project_root)


def _parse_package(name: str, entry: Any, version: Optional[str]) -> PackageSpec:
    if isinstance(entry, str):
        return PackageSpec(name=name, source=entry, version=version)

    if not isinstance(entry, dict):
        raise ManifestError(f"Package '{name}' must be a locator string or a table", name)
    if not isinstance(entry.get("source"), str):
        raise ManifestError(f"Missing required field 'source' for package '{name}'", name)

    return PackageSpec(
        name=name,
        source=entry["source"],
        link=PlacementStrategy.parse(entry.get("link"), name),
        version=version,
        export_name=str(entry.get("export", DEFAULT_EXPORT)),
    )


def _parse_substitution(name: str, entry: Any) -> Substitution:
    if isinstance(entry, dict):
        if "value" not in entry:
            raise ManifestError(f"Missing required field 'value' for substitution '{name}'")
        return Substitution(name=name, value=str(entry["value"]), from_env=bool(entry.get("env", False)))
    if isinstance(entry, (str, int, float)) and not isinstance(entry, bool):
        return Substitution(name=name, value=str(entry))
    raise ManifestError(f"Substitution '{name}' must be a string or a table with 'value'")

"""Discovery of injection targets in the orchestrator's deps directory."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..errors import DummyArtifactNotFound
from ..models.depot_package import BuildContext, InjectionTarget
from ..utils.console import _rich_warning


ARTIFACT_PREFIX = "lib"
ARTIFACT_SUFFIX = ".rlib"


@dataclass
class Address:
    """A compiled library file found in the deps directory."""
    file_name: str
    modified: Optional[float]

    def is_newer(self, other: "Address") -> bool:
        if self.modified is None or other.modified is None:
            return True
        return self.modified >= other.modified


def library_name(file_name: str) -> Optional[str]:
    """Extract the library name from a fingerprinted artifact file name.

    ``libfoo_bar-1a2b3c4d.rlib`` yields ``foo_bar``; anything that isn't a
    library artifact yields None.
    """
    if not (file_name.startswith(ARTIFACT_PREFIX) and file_name.endswith(ARTIFACT_SUFFIX)):
        return None
    stem = file_name[len(ARTIFACT_PREFIX):-len(ARTIFACT_SUFFIX)]
    name = stem.split("-", 1)[0]
    return name or None


class OutputLocator:
    """Maps package names to the dummy artifacts the orchestrator already produced."""

    def __init__(self, context: BuildContext, verbose: bool = True):
        self.context = context
        self.deps_dir = Path(context.deps_dir)
        self.verbose = verbose
        self._watched: List[Path] = []
        self.notices: List[str] = []
        self.addresses = self._scan()

    def _scan(self) -> Dict[str, Address]:
        addresses: Dict[str, Address] = {}
        if not self.deps_dir.is_dir():
            return addresses

        with os.scandir(self.deps_dir) as entries:
            for entry in entries:
                name = library_name(entry.name)
                if name is None:
                    continue
                try:
                    modified = entry.stat().st_mtime
                except OSError:
                    modified = None
                address = Address(file_name=entry.name, modified=modified)

                existing = addresses.get(name)
                if existing is None:
                    addresses[name] = address
                elif existing.is_newer(address):
                    self._warn(f"Duplicate entry for {name}: '{address.file_name}' ignored")
                else:
                    self._warn(
                        f"Duplicate entry for {name}: '{existing.file_name}' replaced with '{address.file_name}'"
                    )
                    addresses[name] = address
        return addresses

    def _warn(self, message: str) -> None:
        self.notices.append(message)
        if self.verbose:
            _rich_warning(message, symbol="warning")

    def locate_primary(self, package_name: str) -> InjectionTarget:
        """Find the dummy artifact a package's real artifact must replace.

        Args:
            package_name: Dependency name as declared in the manifest

        Returns:
            InjectionTarget: Path of the dummy artifact

        Raises:
            DummyArtifactNotFound: If the orchestrator never compiled the dummy
        """
        address = self.addresses.get(package_name.replace("-", "_"))
        if address is None:
            raise DummyArtifactNotFound(package_name, self.deps_dir)

        path = self.deps_dir / address.file_name
        if path not in self._watched:
            self._watched.append(path)
        return InjectionTarget(package_name=package_name, path=path, primary=True)

    def locate(self, package_name: str, auxiliary_names: Iterable[str] = ()) -> List[InjectionTarget]:
        """Primary target plus one target per auxiliary artifact, in that order."""
        targets = [self.locate_primary(package_name)]
        for name in auxiliary_names:
            targets.append(InjectionTarget(package_name=package_name, path=self.deps_dir / name, primary=False))
        return targets

    def watched_paths(self) -> List[Path]:
        """Located dummy artifacts, relative to the project root where possible."""
        root = Path(self.context.project_root)
        paths = []
        for path in self._watched:
            try:
                paths.append(path.relative_to(root))
            except ValueError:
                paths.append(path)
        return paths

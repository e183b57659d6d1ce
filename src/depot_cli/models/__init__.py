"""Models for depot data structures."""

from .depot_package import (
    DEFAULT_EXPORT,
    ArchiveEntry,
    ArchiveManifest,
    BuildContext,
    FetchedResource,
    InjectionTarget,
    PackageSpec,
    PlacementStrategy,
    RawArtifact,
    ResolvedLocator,
    Substitution,
)
from .manifest import Manifest

__all__ = [
    "DEFAULT_EXPORT",
    "ArchiveEntry",
    "ArchiveManifest",
    "BuildContext",
    "FetchedResource",
    "InjectionTarget",
    "Manifest",
    "PackageSpec",
    "PlacementStrategy",
    "RawArtifact",
    "ResolvedLocator",
    "Substitution",
]

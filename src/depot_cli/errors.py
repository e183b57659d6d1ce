"""Error taxonomy for prebuilt artifact delivery.

Every failure raised by the depot carries the name of the package it concerns
(when there is one) so the orchestrator can report all broken packages of a run
together instead of stopping at the first one.
"""

from typing import Dict, Optional


class DepotError(Exception):
    """Base class for all depot failures."""

    def __init__(self, message: str, package_name: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.package_name = package_name

    def __str__(self) -> str:
        if self.package_name:
            return f"{self.package_name}: {self.message}"
        return self.message


# Configuration errors are always fatal and are raised before any network activity.

class ConfigurationError(DepotError):
    """Invalid manifest, template or package configuration."""


class ManifestError(ConfigurationError):
    """The host manifest could not be read or decoded."""


class UnknownVariable(ConfigurationError):
    """A template references a variable that is not declared."""

    def __init__(self, name: str, package_name: Optional[str] = None):
        super().__init__(f"Unknown template variable '{name}'", package_name)
        self.name = name


class MalformedTemplate(ConfigurationError):
    """A template has unbalanced or unrecognized placeholder syntax."""

    def __init__(self, template: str, reason: str, package_name: Optional[str] = None):
        super().__init__(f"Malformed template '{template}': {reason}", package_name)
        self.template = template
        self.reason = reason


class MissingEnvironmentVariable(ConfigurationError):
    """An environment variable required for resolution is not set."""

    def __init__(self, variable: str, package_name: Optional[str] = None):
        super().__init__(f"Undefined environment variable '{variable}'", package_name)
        self.variable = variable


class UnsupportedScheme(ConfigurationError):
    """A resolved locator uses a scheme other than file, http or https."""

    def __init__(self, scheme: str, locator: str, package_name: Optional[str] = None):
        super().__init__(
            f"Unsupported scheme '{scheme}' in '{locator}' (expected file, http or https)",
            package_name,
        )
        self.scheme = scheme
        self.locator = locator


class InvalidPlacement(ConfigurationError):
    """Unknown placement strategy, or a link strategy combined with a remote source."""


# Fetch errors

class FetchError(DepotError):
    """The artifact could not be retrieved."""


class NotFound(FetchError):
    """A local source path does not exist."""


class TransportError(FetchError):
    """Connection, timeout, TLS or redirect failure while downloading."""


class UnexpectedStatus(FetchError):
    """The server answered with a non-success status code."""

    def __init__(self, url: str, status_code: int, package_name: Optional[str] = None):
        super().__init__(f"Download of '{url}' failed with HTTP {status_code}", package_name)
        self.url = url
        self.status_code = status_code


# Archive errors

class ArchiveError(DepotError):
    """The fetched container archive cannot be used."""


class CorruptArchive(ArchiveError):
    """The archive could not be decoded or contains unusable entries."""


class MissingPrimaryArtifact(ArchiveError):
    """The archive has no entry with the canonical export name."""

    def __init__(self, export_name: str, package_name: Optional[str] = None):
        super().__init__(f"Archive does not contain a '{export_name}' entry", package_name)
        self.export_name = export_name


class AmbiguousPrimaryArtifact(ArchiveError):
    """The archive has more than one entry with the canonical export name."""

    def __init__(self, export_name: str, count: int, package_name: Optional[str] = None):
        super().__init__(
            f"Archive contains {count} '{export_name}' entries, expected exactly one",
            package_name,
        )
        self.export_name = export_name
        self.count = count


# Precondition errors signal build-ordering problems outside the depot's control.

class PreconditionError(DepotError):
    """The build environment is not in the state delivery requires."""


class DummyArtifactNotFound(PreconditionError):
    """The orchestrator never compiled the dummy artifact for a package."""

    def __init__(self, package_name: str, deps_dir):
        super().__init__(
            f"No library file to inject onto in '{deps_dir}' "
            f"(was the dummy dependency compiled?)",
            package_name,
        )
        self.deps_dir = deps_dir


class InvalidOutDir(PreconditionError):
    """The build output directory does not sit inside a target directory."""

    def __init__(self, out_dir):
        super().__init__(f"Could not find the deps directory from OUT_DIR '{out_dir}'")
        self.out_dir = out_dir


# Injection errors

class InjectionError(DepotError):
    """The artifact could not be placed at its target path."""


class CrossDeviceLink(InjectionError):
    """A hard link was requested across filesystem boundaries."""


class DeliveryFailed(DepotError):
    """One or more packages failed to deliver."""

    def __init__(self, failures: Dict[str, DepotError], summary=None):
        lines = [f"{len(failures)} package(s) failed to deliver:"]
        for name in sorted(failures):
            lines.append(f"  - {name}: {failures[name].message}")
        super().__init__("\n".join(lines))
        self.failures = failures
        self.summary = summary

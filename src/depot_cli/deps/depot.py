"""Delivery of pre-built artifacts over dummy-compiled dependencies."""

import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

import click

from ..config import get_config
from ..core.template import TemplateResolver
from ..errors import DeliveryFailed, DepotError, InvalidPlacement
from ..models.depot_package import (
    ArchiveManifest,
    BuildContext,
    InjectionTarget,
    PackageSpec,
    PlacementStrategy,
    ResolvedLocator,
)
from ..models.manifest import HOST_MANIFEST, Manifest
from ..utils.console import _rich_error, _rich_info, _rich_success, _rich_warning
from .archive import ArchiveExtractor
from .fetcher import SourceFetcher, classify_locator
from .injector import Injector
from .recipients import OutputLocator


@dataclass
class PackageDelivery:
    """Outcome of one successfully delivered package."""
    package_name: str
    locator: ResolvedLocator
    strategy: PlacementStrategy
    targets: List[InjectionTarget] = field(default_factory=list)

    @property
    def primary_target(self) -> InjectionTarget:
        return next(target for target in self.targets if target.primary)


class DeliverySummary:
    """Summary of a delivery run."""

    def __init__(self):
        self.delivered: List[PackageDelivery] = []
        self.failed: Dict[str, DepotError] = {}
        self.watched: List[Path] = []
        self.notices: List[str] = []

    def add_delivered(self, delivery: PackageDelivery):
        """Add a package to the delivered list."""
        self.delivered.append(delivery)

    def add_failed(self, package_name: str, error: DepotError):
        """Record the failure of a package."""
        self.failed[package_name] = error

    def has_failures(self) -> bool:
        return bool(self.failed)

    def log_summary(self):
        """Log a summary of delivery results."""
        if self.delivered:
            names = sorted(d.package_name for d in self.delivered)
            _rich_success(f"Delivered: {', '.join(names)}", symbol="success")

        for name in sorted(self.failed):
            _rich_error(f"Failed {name}: {self.failed[name].message}", symbol="error")


class Depot:
    """Resolves, fetches, unpacks and injects the configured packages."""

    def __init__(self, fetcher: Optional[SourceFetcher] = None, injector: Optional[Injector] = None,
                 jobs: int = 1, verbose: bool = True, environ: Optional[Mapping[str, str]] = None):
        """Initialize the depot.

        Args:
            fetcher: Source fetcher (a default one is created if omitted)
            injector: Artifact injector (a default one is created if omitted)
            jobs: Number of packages delivered concurrently
            verbose: Report progress on the console
            environ: Environment used for env-backed substitutions
        """
        self.fetcher = fetcher or SourceFetcher()
        self.injector = injector or Injector()
        self.jobs = max(1, int(jobs))
        self.verbose = verbose
        self.environ = environ

    def inspect(self, manifest: Manifest, context: BuildContext
                ) -> Tuple[Dict[str, ResolvedLocator], Dict[str, DepotError]]:
        """Resolve and validate every package's locator without touching the network.

        Returns:
            (resolved locators by package, configuration errors by package)
        """
        resolver = TemplateResolver(context, manifest.substitutions, self.environ)
        resolved: Dict[str, ResolvedLocator] = {}
        errors: Dict[str, DepotError] = {}

        for name, spec in manifest.packages.items():
            try:
                resolved[name] = self._resolve_package(spec, resolver, context)
            except DepotError as e:
                errors[name] = e
        return resolved, errors

    @staticmethod
    def _resolve_package(spec: PackageSpec, resolver: TemplateResolver, context: BuildContext) -> ResolvedLocator:
        source = resolver.resolve(spec.source, version=spec.version, package_name=spec.name)
        locator = classify_locator(source, context.project_root, spec.name)
        if locator.is_remote and spec.link.is_link:
            raise InvalidPlacement(
                f"Link strategy '{spec.link.value}' is only supported for local files, "
                f"not for {locator.scheme} source '{locator}'",
                spec.name,
            )
        return locator

    def deliver(self, manifest: Manifest, context: BuildContext) -> DeliverySummary:
        """Deliver every configured package.

        A failing package doesn't stop the others; all failures are reported
        together at the end.

        Returns:
            DeliverySummary: Successfully delivered packages

        Raises:
            DeliveryFailed: If any package failed, listing each one with its cause
        """
        summary = DeliverySummary()
        resolved, errors = self.inspect(manifest, context)
        for name, error in errors.items():
            summary.add_failed(name, error)
            self._log_failure(name, error)

        recipients = OutputLocator(context, verbose=self.verbose)
        with tempfile.TemporaryDirectory(prefix="depot-") as staging:
            staging_root = Path(staging)
            work = [(manifest.packages[name], locator) for name, locator in resolved.items()]

            if self.jobs > 1 and len(work) > 1:
                with ThreadPoolExecutor(max_workers=self.jobs) as executor:
                    futures = {
                        spec.name: executor.submit(self._deliver_safely, spec, locator, recipients, staging_root)
                        for spec, locator in work
                    }
                    outcomes = [(name, future.result()) for name, future in futures.items()]
            else:
                outcomes = [
                    (spec.name, self._deliver_safely(spec, locator, recipients, staging_root))
                    for spec, locator in work
                ]

        for name, outcome in outcomes:
            if isinstance(outcome, DepotError):
                summary.add_failed(name, outcome)
            else:
                summary.add_delivered(outcome)
        summary.watched = recipients.watched_paths()
        summary.notices = list(recipients.notices)

        if self.verbose:
            summary.log_summary()
        if summary.has_failures():
            raise DeliveryFailed(summary.failed, summary)
        return summary

    def _deliver_safely(self, spec: PackageSpec, locator: ResolvedLocator, recipients: OutputLocator,
                        staging_root: Path):
        try:
            return self._deliver_package(spec, locator, recipients, staging_root)
        except DepotError as e:
            self._log_failure(spec.name, e)
            return e

    def _deliver_package(self, spec: PackageSpec, locator: ResolvedLocator, recipients: OutputLocator,
                         staging_root: Path) -> PackageDelivery:
        # The dummy must exist before anything is downloaded or written
        primary = recipients.locate_primary(spec.name)

        if self.verbose:
            _rich_info(f"Fetching {spec.name} from {locator}", symbol="download")
        staging = staging_root / spec.crate_name
        resource = self.fetcher.fetch(locator, staging / "download", spec.name)
        extracted = ArchiveExtractor(staging / "extract").extract(resource, spec.export_name, spec.name)

        strategy = spec.link
        if isinstance(extracted, ArchiveManifest):
            if strategy.is_link:
                self._warn(f"{spec.name}: archive contents can't be linked, copying instead of {strategy.value}")
                strategy = PlacementStrategy.COPY
            aux_targets = recipients.locate(spec.name, [entry.name for entry in extracted.auxiliaries])[1:]
            placements = list(zip([entry.path for entry in extracted.auxiliaries], aux_targets))
            placements.append((extracted.primary.path, primary))
        else:
            placements = [(extracted.path, primary)]

        # Auxiliaries first so the primary only appears once its companions are in place
        for source_path, target in placements:
            self.injector.inject(source_path, target.path, strategy, spec.name)
            if self.verbose:
                _rich_info(f"  {target.file_name}", symbol="link")

        return PackageDelivery(
            package_name=spec.name,
            locator=locator,
            strategy=strategy,
            targets=[target for _, target in placements],
        )

    def _warn(self, message: str):
        if self.verbose:
            _rich_warning(message, symbol="warning")

    def _log_failure(self, package_name: str, error: DepotError):
        if self.verbose:
            _rich_error(f"  {package_name}: {error.message}", symbol="error")


def emit_directives(summary: Optional[DeliverySummary], failures: Optional[Mapping[str, DepotError]] = None):
    """Print the directives a build script passes back to the orchestrator.

    Located dummies become ``cargo:rerun-if-changed`` lines; duplicate-dummy
    notices and package failures become ``cargo:warning`` lines.
    """
    if summary is not None:
        for path in summary.watched:
            click.echo(f"cargo:rerun-if-changed={path}")
        for notice in summary.notices:
            click.echo(f"cargo:warning=depot: {notice}")
    failures = failures or {}
    for name in sorted(failures):
        click.echo(f"cargo:warning=depot: {name}: {failures[name].message}")


def simply_deliver(environ: Optional[Mapping[str, str]] = None, manifest_path: Optional[Path] = None,
                   jobs: Optional[int] = None, verbose: bool = True,
                   directives: bool = True) -> DeliverySummary:
    """Deliver every package configured for the current build.

    The single call a build script makes: reads the build context from the
    environment, loads the host manifest, delivers and prints the build-script
    directives.

    Args:
        environ: Build environment (defaults to os.environ)
        manifest_path: Manifest to load (defaults to the project's host manifest)
        jobs: Concurrent package deliveries (defaults to the configured value)
        verbose: Report progress on the console
        directives: Print ``cargo:`` directives for the orchestrator

    Returns:
        DeliverySummary: Result of the run

    Raises:
        DepotError: If the build context or manifest is invalid, or any package fails
    """
    if environ is None:
        environ = os.environ

    context = BuildContext.from_env(environ)
    manifest = Manifest.from_file(manifest_path or context.project_root / HOST_MANIFEST)

    settings = get_config()
    fetcher = SourceFetcher(
        timeout=float(settings["http_timeout"]),
        max_redirects=int(settings["max_redirects"]),
        verify_tls=bool(settings["verify_tls"]),
    )
    with fetcher:
        depot = Depot(
            fetcher=fetcher,
            jobs=jobs if jobs is not None else int(settings["jobs"]),
            verbose=verbose,
            environ=environ,
        )
        try:
            summary = depot.deliver(manifest, context)
        except DeliveryFailed as e:
            if directives:
                emit_directives(e.summary, e.failures)
            raise

    if directives:
        emit_directives(summary)
    return summary

"""Artifact delivery package for the depot CLI."""

from .archive import ArchiveExtractor, sniff_archive
from .depot import Depot, DeliverySummary, PackageDelivery, emit_directives, simply_deliver
from .fetcher import SourceFetcher, classify_locator
from .injector import Injector
from .recipients import OutputLocator, library_name

__all__ = [
    'ArchiveExtractor',
    'sniff_archive',
    'Depot',
    'DeliverySummary',
    'PackageDelivery',
    'emit_directives',
    'simply_deliver',
    'SourceFetcher',
    'classify_locator',
    'Injector',
    'OutputLocator',
    'library_name',
]

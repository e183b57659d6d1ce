"""Prebuilt depot: inject pre-built artifacts over dummy-compiled dependencies."""

from .deps.depot import Depot, DeliverySummary, simply_deliver
from .errors import DeliveryFailed, DepotError
from .models import BuildContext, Manifest, PackageSpec, PlacementStrategy, Substitution
from .version import __version__

__all__ = [
    "BuildContext",
    "Depot",
    "DeliveryFailed",
    "DeliverySummary",
    "DepotError",
    "Manifest",
    "PackageSpec",
    "PlacementStrategy",
    "Substitution",
    "simply_deliver",
    "__version__",
]

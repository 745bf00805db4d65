"""taxotariff - product description to taxonomy category and tariff code resolution."""

from .errors import ClassificationError, ResolverError, StoreError, UpstreamAuthError
from .version import __version__

__all__ = [
    "ClassificationError",
    "ResolverError",
    "StoreError",
    "UpstreamAuthError",
    "__version__",
]

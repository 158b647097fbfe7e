"""Usage: regulatory schedule reference lookup and enrichment."""

from fbr_engine.services.sro.base import BaseSroLookupClient
from fbr_engine.services.sro.enrichment import ReferencePair, apply_reference_guard, enrich_items
from fbr_engine.services.sro.fbr_client import FbrSroClient

__all__ = [
    "BaseSroLookupClient",
    "FbrSroClient",
    "ReferencePair",
    "apply_reference_guard",
    "enrich_items",
]

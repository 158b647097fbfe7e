"""Usage: scenario catalog helpers."""

from fbr_engine.services.catalog.scenario_catalog import (
    SaleCategory,
    ScenarioCatalog,
    ScenarioCatalogError,
    ScenarioDefinition,
    get_catalog,
    load_scenario_catalog,
    normalize_label,
)

__all__ = [
    "SaleCategory",
    "ScenarioCatalog",
    "ScenarioCatalogError",
    "ScenarioDefinition",
    "get_catalog",
    "load_scenario_catalog",
    "normalize_label",
]

"""Usage: static sale-type → scenario catalog loaded from the bundled JSON file."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from fbr_engine.core.config import settings

logger = logging.getLogger(__name__)

CATALOG_PATH = Path(__file__).resolve().parents[2] / "data" / "scenarios.json"


class ScenarioCatalogError(ValueError):
    """Raised when the scenario catalog file is malformed."""


class SaleCategory(str, Enum):
    STANDARD = "standard"
    EXEMPT = "exempt"
    ZERO_RATED = "zero_rated"
    FIXED_PER_UNIT = "fixed_per_unit"
    FIXED_HYBRID = "fixed_hybrid"
    RETAIL_PRICE = "retail_price"


@dataclass(frozen=True)
class ScenarioDefinition:
    scenario_code: str
    label: str
    fbr_sale_type: str
    display_name: str
    requires_reference: bool
    category: SaleCategory
    buyer_dependent: bool = False
    unregistered_scenario_code: str | None = None
    fixed_rate: Decimal | None = None
    fixed_unit: str = ""
    reference_exempt_in_validation: bool = False
    aliases: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScenarioDefinition":
        fixed_rate = data.get("fixed_rate")
        return cls(
            scenario_code=str(data["scenario_code"]).strip().upper(),
            label=str(data["label"]).strip(),
            fbr_sale_type=str(data["fbr_sale_type"]).strip(),
            display_name=str(data.get("display_name") or data["label"]).strip(),
            requires_reference=bool(data.get("requires_reference", False)),
            category=SaleCategory(data.get("regime", "standard")),
            buyer_dependent=bool(data.get("buyer_dependent", False)),
            unregistered_scenario_code=data.get("unregistered_scenario_code"),
            fixed_rate=Decimal(str(fixed_rate)) if fixed_rate is not None else None,
            fixed_unit=str(data.get("fixed_unit") or ""),
            reference_exempt_in_validation=bool(data.get("reference_exempt_in_validation", False)),
            aliases=tuple(str(alias).strip() for alias in data.get("aliases") or []),
        )


def normalize_label(value: str | None) -> str:
    """Trim and case-fold a sale-type label for catalog lookups."""

    if not value:
        return ""
    return " ".join(value.split()).casefold()


class ScenarioCatalog:
    """Read-only view over the scenario definitions.

    Labels and aliases share one normalized key space; authority sale-type
    texts are looked up separately because several scenarios share one.
    """

    def __init__(self, definitions: list[ScenarioDefinition], *, default_code: str) -> None:
        by_key: dict[str, ScenarioDefinition] = {}
        by_code: dict[str, ScenarioDefinition] = {}
        by_fbr_type: dict[str, ScenarioDefinition] = {}

        for definition in definitions:
            if definition.scenario_code in by_code:
                raise ScenarioCatalogError(f"Duplicate scenario code: {definition.scenario_code}")
            by_code[definition.scenario_code] = definition
            for name in (definition.label, *definition.aliases):
                key = normalize_label(name)
                if not key:
                    continue
                if key in by_key and by_key[key] is not definition:
                    raise ScenarioCatalogError(
                        f"Sale type '{name}' maps to both {by_key[key].scenario_code} "
                        f"and {definition.scenario_code}"
                    )
                by_key[key] = definition
            by_fbr_type.setdefault(normalize_label(definition.fbr_sale_type), definition)

        if default_code not in by_code:
            raise ScenarioCatalogError(f"Default scenario {default_code} is not defined")
        for definition in definitions:
            target = definition.unregistered_scenario_code
            if definition.buyer_dependent and (not target or target not in by_code):
                raise ScenarioCatalogError(
                    f"Scenario {definition.scenario_code} is buyer dependent but has no valid unregistered variant"
                )

        self._by_key: Mapping[str, ScenarioDefinition] = MappingProxyType(by_key)
        self._by_code: Mapping[str, ScenarioDefinition] = MappingProxyType(by_code)
        self._by_fbr_type: Mapping[str, ScenarioDefinition] = MappingProxyType(by_fbr_type)
        self._default_code = default_code

    def __iter__(self) -> Iterator[ScenarioDefinition]:
        return iter(self._by_code.values())

    def __len__(self) -> int:
        return len(self._by_code)

    @property
    def default(self) -> ScenarioDefinition:
        return self._by_code[self._default_code]

    def by_code(self, scenario_code: str) -> ScenarioDefinition | None:
        return self._by_code.get((scenario_code or "").strip().upper())

    def find(self, sale_type: str | None) -> ScenarioDefinition | None:
        """Resolve a free-text sale type: exact label/alias, authority text, then substring."""

        key = normalize_label(sale_type)
        if not key:
            return None

        exact = self._by_key.get(key) or self._by_fbr_type.get(key)
        if exact is not None:
            return exact

        for candidate_key, definition in self._by_key.items():
            if candidate_key in key or key in candidate_key:
                logger.debug("Sale type '%s' matched '%s' by substring", sale_type, candidate_key)
                return definition
        return None

    def get(self, sale_type: str | None) -> ScenarioDefinition:
        """Like :meth:`find` but falls back to the baseline standard-rate scenario."""

        definition = self.find(sale_type)
        if definition is None:
            if sale_type and sale_type.strip():
                logger.warning(
                    "Unmatched sale type '%s', falling back to %s",
                    sale_type,
                    self._default_code,
                )
            return self.default
        return definition

    def to_fbr_sale_type(self, sale_type: str | None) -> str:
        return self.get(sale_type).fbr_sale_type

    def to_short_label(self, sale_type: str | None) -> str:
        return self.get(sale_type).label

    def list_sale_types(self) -> list[str]:
        return sorted(definition.label for definition in self)


def _read_catalog(path: Path) -> ScenarioCatalog:
    if not path.exists():
        raise ScenarioCatalogError(f"Scenario catalog not found: {path}")
    data = json.loads(path.read_text(encoding="utf-8"))
    entries = data.get("scenarios")
    if not isinstance(entries, list) or not entries:
        raise ScenarioCatalogError(f"Scenario catalog {path} has no scenarios")

    definitions: list[ScenarioDefinition] = []
    for entry in entries:
        for key in ("scenario_code", "label", "fbr_sale_type"):
            if key not in entry:
                raise ScenarioCatalogError(f"Scenario catalog {path} entry missing required key: {key}")
        try:
            definitions.append(ScenarioDefinition.from_dict(entry))
        except ValueError as exc:
            raise ScenarioCatalogError(f"Invalid scenario entry {entry.get('scenario_code')}: {exc}") from exc

    catalog = ScenarioCatalog(definitions, default_code=str(data.get("default_scenario", "SN001")))
    logger.info("Loaded %d scenarios from %s", len(catalog), path)
    return catalog


@lru_cache(maxsize=4)
def load_scenario_catalog(path: Path | None = None) -> ScenarioCatalog:
    return _read_catalog(path or CATALOG_PATH)


def get_catalog() -> ScenarioCatalog:
    """Return the process-wide catalog, honoring SCENARIO_CATALOG_PATH."""

    return load_scenario_catalog(settings.scenario_catalog_path)

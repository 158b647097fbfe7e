"""Usage: resolve scenario code and reference requirement for a sale type."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from fbr_engine.core.config import settings
from fbr_engine.schemas.ledger import BuyerRegistrationStatus
from fbr_engine.services.catalog import ScenarioCatalog, ScenarioDefinition, get_catalog


@dataclass(frozen=True)
class TaxResolution:
    scenario_code: str
    requires_reference: bool
    definition: ScenarioDefinition


class TaxResolver:
    def __init__(
        self,
        catalog: ScenarioCatalog | None = None,
        *,
        standard_rate: Decimal | None = None,
    ) -> None:
        self.catalog = catalog or get_catalog()
        self.standard_rate = settings.standard_tax_rate if standard_rate is None else standard_rate

    def resolve(
        self,
        sale_type: str | None,
        buyer_registration_status: BuyerRegistrationStatus,
        tax_rate: Decimal,
    ) -> TaxResolution:
        definition = self.catalog.get(sale_type)
        scenario_code = definition.scenario_code
        if definition.buyer_dependent and buyer_registration_status is BuyerRegistrationStatus.UNREGISTERED:
            scenario_code = definition.unregistered_scenario_code or scenario_code

        # Any non-standard rate needs a schedule reference, whatever the category says.
        requires_reference = definition.requires_reference or tax_rate != self.standard_rate
        return TaxResolution(
            scenario_code=scenario_code,
            requires_reference=requires_reference,
            definition=definition,
        )

    def document_scenario(self, scenario_codes: list[str]) -> str:
        """Pick the document-level scenario: first special scenario, else first seen."""

        baseline = {self.catalog.default.scenario_code}
        if self.catalog.default.unregistered_scenario_code:
            baseline.add(self.catalog.default.unregistered_scenario_code)
        for code in scenario_codes:
            if code not in baseline:
                return code
        return scenario_codes[0] if scenario_codes else self.catalog.default.scenario_code

"""Usage: scenario resolution and tax computation."""

from fbr_engine.services.tax.calculator import TaxCalculator, TaxComputation, TaxInput, TaxRegime
from fbr_engine.services.tax.resolver import TaxResolution, TaxResolver

__all__ = [
    "TaxCalculator",
    "TaxComputation",
    "TaxInput",
    "TaxRegime",
    "TaxResolution",
    "TaxResolver",
]

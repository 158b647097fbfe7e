from decimal import Decimal

import pytest

from fbr_engine.schemas.ledger import BuyerRegistrationStatus
from fbr_engine.services.catalog import load_scenario_catalog
from fbr_engine.services.tax.resolver import TaxResolver


@pytest.fixture
def resolver() -> TaxResolver:
    return TaxResolver(load_scenario_catalog(), standard_rate=Decimal("18"))


def test_standard_rate_registered_buyer(resolver: TaxResolver) -> None:
    resolution = resolver.resolve("Standard rate", BuyerRegistrationStatus.REGISTERED, Decimal("18"))

    assert resolution.scenario_code == "SN001"
    assert resolution.requires_reference is False


def test_standard_rate_unregistered_buyer(resolver: TaxResolver) -> None:
    resolution = resolver.resolve("Standard rate", BuyerRegistrationStatus.UNREGISTERED, Decimal("18"))

    assert resolution.scenario_code == "SN002"
    assert resolution.definition.scenario_code == "SN001"


def test_non_standard_rate_requires_reference(resolver: TaxResolver) -> None:
    resolution = resolver.resolve("Standard rate", BuyerRegistrationStatus.REGISTERED, Decimal("5"))

    assert resolution.requires_reference is True


def test_category_flag_requires_reference(resolver: TaxResolver) -> None:
    resolution = resolver.resolve("exempt", BuyerRegistrationStatus.UNREGISTERED, Decimal("18"))

    assert resolution.scenario_code == "SN006"
    assert resolution.requires_reference is True


def test_authority_text_and_unknown_labels(resolver: TaxResolver) -> None:
    by_text = resolver.resolve("Goods at standard rate (default)", BuyerRegistrationStatus.REGISTERED, Decimal("18"))
    unknown = resolver.resolve("Mystery supplies", BuyerRegistrationStatus.REGISTERED, Decimal("18"))
    missing = resolver.resolve(None, BuyerRegistrationStatus.REGISTERED, Decimal("18"))

    assert by_text.scenario_code == "SN001"
    assert unknown.scenario_code == "SN001"
    assert missing.scenario_code == "SN001"


def test_document_scenario(resolver: TaxResolver) -> None:
    assert resolver.document_scenario(["SN001", "SN019", "SN006"]) == "SN019"
    assert resolver.document_scenario(["SN002", "SN001"]) == "SN002"
    assert resolver.document_scenario([]) == "SN001"

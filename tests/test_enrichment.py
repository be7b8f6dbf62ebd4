import asyncio

import pytest

from probate_monitor.core.errors import ConfigurationError, ProviderFailure
from probate_monitor.schemas.enrichment import StandardizedAddress
from probate_monitor.schemas.scraped_case import ScrapedCase, ScrapedContact
from probate_monitor.services.address_providers import (
    FreeAddressProvider,
    UPSAddressProvider,
    create_address_provider,
    split_address,
)
from probate_monitor.services.address_service import AddressService
from probate_monitor.services.enrichment_pipeline import EnrichmentPipeline
from probate_monitor.services.phone_providers import CsvPhoneProvider
from probate_monitor.services.phone_service import PhoneService


class RecordingProvider:
    name = "recording"

    def __init__(self):
        self.calls = []

    async def standardize(self, address):
        self.calls.append(address)
        return StandardizedAddress(original=address, standardized=address.upper(), deliverable=True,
                                   confidence=0.9, provider=self.name)


class FailingProvider:
    def __init__(self, name="ups"):
        self.name = name

    async def standardize(self, address):
        raise ProviderFailure(self.name, "connection reset")


def test_empty_address_never_reaches_provider():
    provider = RecordingProvider()
    service = AddressService(provider=provider)

    for address in (None, "", "   "):
        result = asyncio.run(service.standardize(address))
        assert result.provider == "none"
        assert result.confidence == 0.0
        assert result.deliverable is False
    assert provider.calls == []


def test_provider_failure_falls_back_to_free_normalizer():
    service = AddressService(provider=FailingProvider())
    result = asyncio.run(service.standardize("456 Oak Avenue, Marietta, GA 30060"))
    assert result.provider == "free"
    assert result.standardized == "456 OAK AVE, MARIETTA, GA 30060-0000"
    assert result.deliverable is True


def test_both_providers_failing_returns_error_result():
    service = AddressService(provider=FailingProvider(), fallback=FailingProvider("free"))
    result = asyncio.run(service.standardize("456 Oak Ave"))
    assert result.provider == "error"
    assert result.standardized == "456 Oak Ave"
    assert result.confidence == 0.0
    assert result.deliverable is False


def test_free_normalizer():
    provider = FreeAddressProvider()
    assert provider.normalize("10 north main street, atlanta, ga 30303") == "10 N MAIN ST, ATLANTA, GA 30303-0000"
    # existing +4 is kept
    assert provider.normalize("10 Main St, Atlanta, GA 30303-1234") == "10 MAIN ST, ATLANTA, GA 30303-1234"
    assert provider.is_deliverable("10 MAIN ST, ATLANTA, GA 30303-0000")
    assert not provider.is_deliverable("MAIN ST, ATLANTA, GA")
    assert not provider.is_deliverable("PO BOX 12, ATLANTA, GA 30303")


def test_street_type_is_not_mistaken_for_state():
    provider = FreeAddressProvider()
    result = asyncio.run(provider.standardize("123 Main Street Atlanta 30301"))
    assert result.standardized == "123 MAIN ST ATLANTA 30301-0000"
    assert result.deliverable is False
    assert not provider.is_deliverable("9 OAK DR, MARIETTA, ZZ 30060-0000")
    assert provider.is_deliverable("9 OAK CT, MARIETTA GA 30060-0000")


def test_house_number_is_not_mistaken_for_zip():
    provider = FreeAddressProvider()
    assert provider.normalize("12345 Main St") == "12345 MAIN ST"
    assert provider.normalize("12345 Main St, Atlanta, GA 30301") == "12345 MAIN ST, ATLANTA, GA 30301-0000"
    assert provider.normalize("30301") == "30301"


def test_split_address():
    assert split_address("123 Main St, Atlanta, GA 30301") == {
        'line1': "123 Main St", 'city': "Atlanta", 'state': "GA", 'postal_code': "30301",
    }
    assert split_address("123 Main St")['city'] is None


def test_provider_factory():
    assert create_address_provider("free").name == "free"
    with pytest.raises(ConfigurationError):
        create_address_provider("mapquest")
    with pytest.raises(ConfigurationError):
        UPSAddressProvider(None, None, None)


def test_switch_provider_by_name():
    service = AddressService(provider=RecordingProvider())
    service.switch_provider("free")
    assert service.current_provider == "free"


def test_enrich_contacts_fills_address_and_phone():
    csv_provider = CsvPhoneProvider()
    csv_provider.load_csv("name,phone\nJane Smith,(404) 555-0100\n")
    pipeline = EnrichmentPipeline(AddressService(provider=FreeAddressProvider()), PhoneService(csv_provider=csv_provider))
    case = ScrapedCase(
        case_id="GPR-1",
        county="georgia",
        decedent_name="JOHN SMITH",
        decedent_address="123 Main Street, Atlanta, GA 30301",
        contacts=[
            ScrapedContact(type="petitioner", name="Jane Smith"),
            ScrapedContact(type="executor", name="Zed Nobody", address="PO Box 7", phone="+15550000000"),
        ],
    )

    enriched = asyncio.run(pipeline.enrich_contacts(case))

    jane, zed = enriched.contacts
    assert jane.standardized_address == "123 MAIN ST, ATLANTA, GA 30301-0000"
    assert jane.deliverable is True
    assert jane.phone == "+14045550100"
    assert jane.phone_source == "csv"
    assert zed.phone == "+15550000000"
    assert zed.deliverable is False
    # the input case is left untouched
    assert case.contacts[0].phone is None


def test_batch_standardize_keeps_order_and_skips_blanks():
    provider = RecordingProvider()
    service = AddressService(provider=provider)

    results = asyncio.run(service.batch_standardize(["", "1 Main St", None, "2 Oak Ave"], delay_seconds=0))

    assert [r.provider for r in results] == ["none", "recording", "none", "recording"]
    assert [r.standardized for r in results][1::2] == ["1 MAIN ST", "2 OAK AVE"]
    assert provider.calls == ["1 Main St", "2 Oak Ave"]


def test_enrich_contacts_uses_decedent_address_as_fallback():
    provider = RecordingProvider()
    pipeline = EnrichmentPipeline(AddressService(provider=provider), PhoneService(csv_provider=CsvPhoneProvider()),
                                  delay_seconds=0)
    case = ScrapedCase(
        case_id="GPR-2",
        county="georgia",
        decedent_name="JOHN SMITH",
        decedent_address="123 Main St",
        contacts=[
            ScrapedContact(type="petitioner", name="Jane Smith", address="9 Elm St"),
            ScrapedContact(type="heir", name="Carl Smith"),
        ],
    )

    enriched = asyncio.run(pipeline.enrich_contacts(case))

    assert provider.calls == ["9 Elm St", "123 Main St"]
    assert [c.standardized_address for c in enriched.contacts] == ["9 ELM ST", "123 MAIN ST"]
    assert [c.phone for c in enriched.contacts] == [None, None]

from typing import List, Optional

from loguru import logger

from probate_monitor.schemas.enrichment import PhoneResult, StandardizedAddress
from probate_monitor.schemas.scraped_case import ScrapedCase, ScrapedContact
from probate_monitor.services.address_service import AddressService
from probate_monitor.services.phone_service import PhoneService


class EnrichmentPipeline:
    """Standardizes contact addresses and fills missing phones; never raises for provider errors"""

    def __init__(self, address_service: AddressService, phone_service: PhoneService, delay_seconds: float = 0.1):
        self.address_service = address_service
        self.phone_service = phone_service
        self.delay_seconds = delay_seconds

    def apply(self, contact: ScrapedContact, standardized: StandardizedAddress,
              phone: Optional[PhoneResult]) -> ScrapedContact:
        updates = {'deliverable': standardized.deliverable}
        if standardized.confidence > 0:
            updates['standardized_address'] = standardized.standardized
        if phone is not None:
            updates['phone'] = phone.phone
            updates['phone_source'] = phone.source
            updates['phone_confidence'] = phone.confidence
        return contact.model_copy(update=updates)

    async def enrich_contacts(self, case: ScrapedCase) -> ScrapedCase:
        addresses = [contact.address or case.decedent_address for contact in case.contacts]
        standardized = await self.address_service.batch_standardize(addresses, self.delay_seconds)

        # Contacts that already carry a phone are not looked up
        missing = [index for index, contact in enumerate(case.contacts) if not contact.phone]
        found = await self.phone_service.batch_search(
            [(case.contacts[index].name, addresses[index]) for index in missing], self.delay_seconds
        )
        phones = dict(zip(missing, found))

        contacts: List[ScrapedContact] = [
            self.apply(contact, standardized[index], phones.get(index))
            for index, contact in enumerate(case.contacts)
        ]
        with_phone = sum(1 for c in contacts if c.phone)
        logger.info(f"Enriched {len(contacts)} contacts for case {case.case_id} ({with_phone} with phone)")
        return case.model_copy(update={'contacts': contacts})

    async def close(self) -> None:
        await self.address_service.close()
        await self.phone_service.close()

import asyncio
from typing import List, Optional, Tuple

from loguru import logger

from probate_monitor.core.config import settings
from probate_monitor.schemas.enrichment import PhoneResult
from probate_monitor.services.phone_providers import CsvPhoneProvider, create_phone_provider


class PhoneService:
    """Active phone provider with the CSV table as fallback on error or no result"""

    def __init__(self, provider=None, csv_provider: CsvPhoneProvider = None):
        self.csv_provider = csv_provider or CsvPhoneProvider()
        self.provider = provider or create_phone_provider(csv_provider=self.csv_provider)

    @classmethod
    def from_settings(cls) -> "PhoneService":
        service = cls()
        if settings.PHONE_CSV_PATH:
            try:
                service.csv_provider.load_file(settings.PHONE_CSV_PATH)
            except OSError as e:
                logger.warning(f"Could not load phone CSV {settings.PHONE_CSV_PATH}: {e}")
        return service

    @property
    def current_provider(self) -> str:
        return self.provider.name

    def switch_provider(self, provider) -> None:
        if isinstance(provider, str):
            provider = create_phone_provider(provider, csv_provider=self.csv_provider)
        logger.info(f"Switching phone provider {self.provider.name} -> {provider.name}")
        self.provider = provider

    def upload_csv(self, content: str) -> int:
        return self.csv_provider.load_csv(content)

    async def search(self, name: Optional[str], address: Optional[str] = None) -> Optional[PhoneResult]:
        if not name or not name.strip():
            return None
        name = name.strip()
        address = address.strip() if address else None

        if self.provider is self.csv_provider:
            return await self.csv_provider.search(name, address)
        try:
            result = await self.provider.search(name, address)
            if result is not None:
                return result
        except Exception as e:
            logger.warning(f"Phone provider {self.provider.name} failed, falling back to CSV: {e}")
        return await self.csv_provider.search(name, address)

    async def batch_search(self, contacts: List[Tuple[str, Optional[str]]], delay_seconds: float = 0.2) -> List[Optional[PhoneResult]]:
        results = []
        for name, address in contacts:
            if results and delay_seconds:
                await asyncio.sleep(delay_seconds)
            results.append(await self.search(name, address))
        return results

    async def close(self) -> None:
        close = getattr(self.provider, 'close_session', None)
        if close:
            await close()

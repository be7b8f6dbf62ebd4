import asyncio
from typing import List, Optional

from loguru import logger

from probate_monitor.schemas.enrichment import StandardizedAddress
from probate_monitor.services.address_providers import FreeAddressProvider, create_address_provider


class AddressService:
    """Active address provider with a fallback to the free normalizer"""

    def __init__(self, provider=None, fallback=None):
        self.provider = provider or create_address_provider()
        self.fallback = fallback or FreeAddressProvider()

    @property
    def current_provider(self) -> str:
        return self.provider.name

    def switch_provider(self, provider) -> None:
        """Swap the active provider (an instance or a configured provider name)"""
        if isinstance(provider, str):
            provider = create_address_provider(provider)
        logger.info(f"Switching address provider {self.provider.name} -> {provider.name}")
        self.provider = provider

    async def standardize(self, address: Optional[str]) -> StandardizedAddress:
        if not address or not address.strip():
            return StandardizedAddress(original=address, standardized=address, deliverable=False,
                                       confidence=0.0, provider="none")
        address = address.strip()
        try:
            return await self.provider.standardize(address)
        except Exception as e:
            logger.warning(f"Address provider {self.provider.name} failed, falling back to {self.fallback.name}: {e}")
        if self.fallback.name != self.provider.name:
            try:
                return await self.fallback.standardize(address)
            except Exception as e:
                logger.error(f"Fallback address standardization failed: {e}")
                logger.exception("Full traceback:")
        return StandardizedAddress(original=address, standardized=address, deliverable=False,
                                   confidence=0.0, provider="error")

    async def batch_standardize(self, addresses: List[Optional[str]], delay_seconds: float = 0.1) -> List[StandardizedAddress]:
        results = []
        for address in addresses:
            if results and delay_seconds:
                await asyncio.sleep(delay_seconds)
            results.append(await self.standardize(address))
        return results

    async def close(self) -> None:
        for provider in (self.provider, self.fallback):
            close = getattr(provider, 'close_session', None)
            if close:
                await close()

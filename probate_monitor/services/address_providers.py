import asyncio
import re
import time
from typing import Optional

import aiohttp
from loguru import logger

from probate_monitor.core.config import settings
from probate_monitor.core.errors import ConfigurationError, ProviderFailure
from probate_monitor.schemas.enrichment import StandardizedAddress
from probate_monitor.utils.text import DIRECTIONALS, STATE_CODES, STREET_TYPES

STREET_TOKEN_PATTERN = re.compile(
    r'\b(' + '|'.join(sorted(set(STREET_TYPES) | set(STREET_TYPES.values()), key=len, reverse=True)) + r')\b'
)
STATE_ZIP_PATTERN = re.compile(r'\b([A-Z]{2}),?\s+\d{5}(?:-\d{4})?\b')


class FreeAddressProvider:
    """Offline normalization: abbreviation tables plus a deliverability heuristic"""

    name = "free"

    async def standardize(self, address: str) -> StandardizedAddress:
        standardized = self.normalize(address)
        return StandardizedAddress(
            original=address,
            standardized=standardized,
            deliverable=self.is_deliverable(standardized),
            confidence=0.6,
            provider=self.name,
        )

    def normalize(self, address: str) -> str:
        normalized = address.upper().strip()
        for abbreviation, full in STREET_TYPES.items():
            normalized = re.sub(rf'\b{full}\b', abbreviation, normalized)
        for abbreviation, full in DIRECTIONALS.items():
            normalized = re.sub(rf'\b{full}\b', abbreviation, normalized)
        normalized = re.sub(r'\s+', ' ', normalized).strip()
        # A trailing five digit ZIP gets a placeholder +4
        return re.sub(r'(?<=[\s,])(\d{5})$', r'\1-0000', normalized)

    def is_deliverable(self, address: str) -> bool:
        has_number = bool(re.search(r'\d', address))
        has_street = bool(STREET_TOKEN_PATTERN.search(address))
        has_state = any(match.group(1) in STATE_CODES for match in STATE_ZIP_PATTERN.finditer(address))
        has_zip = bool(re.search(r'\b\d{5}(-\d{4})?\b', address))
        return has_number and has_street and has_state and has_zip


def split_address(address: str) -> dict:
    """Best-effort split of a one-line US address into line/city/state/zip"""
    parts = [part.strip() for part in address.split(',') if part.strip()]
    result = {'line1': parts[0] if parts else address, 'city': None, 'state': None, 'postal_code': None}
    tail = " ".join(parts[1:]) if len(parts) > 1 else ""
    match = re.search(r'\b([A-Z]{2})\s+(\d{5})(?:-\d{4})?\s*$', tail.upper())
    if match:
        result['state'] = match.group(1)
        result['postal_code'] = match.group(2)
        if len(parts) > 2:
            result['city'] = parts[1]
        else:
            result['city'] = tail[:match.start()].strip() or None
    elif len(parts) > 1:
        result['city'] = parts[1]
    return result


class UPSAddressProvider:
    """UPS XAV address validation (OAuth client credentials)"""

    name = "ups"

    def __init__(self, base_url: str, client_id: str, client_secret: str, timeout: int = None):
        if not (base_url and client_id and client_secret):
            raise ConfigurationError("UPS address validation is not configured")
        self.base_url = base_url.rstrip('/')
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = aiohttp.ClientTimeout(total=timeout or settings.ENRICHMENT_TIMEOUT_SECONDS)
        self._token: Optional[str] = None
        self._token_expires = 0.0
        self.session = None

    async def init_session(self):
        """Initialize aiohttp session"""
        if not self.session:
            self.session = aiohttp.ClientSession(timeout=self.timeout)

    async def close_session(self):
        """Close aiohttp session"""
        if self.session:
            await self.session.close()
            self.session = None

    async def get_token(self) -> str:
        now = time.monotonic()
        if self._token and now < self._token_expires:
            return self._token
        await self.init_session()
        async with self.session.post(
            f"{self.base_url}/security/v1/oauth/token",
            data={'grant_type': 'client_credentials', 'client_id': self.client_id, 'client_secret': self.client_secret},
        ) as response:
            if response.status != 200:
                raise ProviderFailure(self.name, f"OAuth failed with status {response.status}")
            data = await response.json()
        self._token = data['access_token']
        logger.info("Fetched UPS OAuth token")
        # Refresh a minute before the token actually expires
        self._token_expires = now + int(data.get('expires_in', 0)) - 60
        return self._token

    async def standardize(self, address: str) -> StandardizedAddress:
        parts = split_address(address)
        payload = {
            'XAVRequest': {
                'AddressKeyFormat': {
                    'AddressLine': [parts['line1']],
                    'PoliticalDivision2': parts['city'],
                    'PoliticalDivision1': parts['state'],
                    'PostcodePrimaryLow': parts['postal_code'],
                    'CountryCode': 'US',
                }
            }
        }
        try:
            token = await self.get_token()
            url = f"{self.base_url}/api/addressvalidation/1/3?regionalrequestindicator=true&maximumcandidatelistsize=10"
            async with self.session.post(url, json=payload, headers={'Authorization': f"Bearer {token}"}) as response:
                if response.status != 200:
                    raise ProviderFailure(self.name, f"Address validation failed with status {response.status}")
                data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderFailure(self.name, str(e)) from e

        xav = data.get('XAVResponse')
        if not isinstance(xav, dict):
            raise ProviderFailure(self.name, "Unexpected response shape")
        candidates = xav.get('Candidate') or []
        if isinstance(candidates, dict):
            candidates = [candidates]
        if not candidates:
            return StandardizedAddress(original=address, standardized=address.upper(), deliverable=False,
                                       confidence=0.0, provider=self.name)

        best = candidates[0].get('AddressKeyFormat', {})
        lines = best.get('AddressLine') or []
        if isinstance(lines, str):
            lines = [lines]
        zip_code = best.get('PostcodePrimaryLow')
        if zip_code and best.get('PostcodeExtendedLow'):
            zip_code = f"{zip_code}-{best['PostcodeExtendedLow']}"
        standardized = ", ".join(filter(None, [
            " ".join(lines),
            best.get('PoliticalDivision2'),
            " ".join(filter(None, [best.get('PoliticalDivision1'), zip_code])),
        ]))
        valid = 'ValidAddressIndicator' in xav
        return StandardizedAddress(
            original=address,
            standardized=standardized or address.upper(),
            deliverable=valid,
            confidence=0.9 if valid else 0.7,
            provider=self.name,
        )


def create_address_provider(name: str = None):
    """Build the configured address provider"""
    name = (name or settings.ADDRESS_PROVIDER).lower()
    if name == "free":
        return FreeAddressProvider()
    if name == "ups":
        return UPSAddressProvider(settings.UPS_BASE_URL, settings.UPS_CLIENT_ID, settings.UPS_CLIENT_SECRET)
    raise ConfigurationError(f"Unknown address provider: {name}")

import asyncio
import csv
import io
import re
from typing import Dict, Optional

import aiohttp
from loguru import logger

from probate_monitor.core.config import settings
from probate_monitor.core.errors import ConfigurationError, ProviderFailure
from probate_monitor.schemas.enrichment import PhoneResult
from probate_monitor.services.matching import name_score, normalize_name

FUZZY_MIN_SCORE = 0.5
FUZZY_DISCOUNT = 0.9


def normalize_phone(phone: str) -> str:
    """E.164 for 10/11 digit US numbers, otherwise unchanged"""
    digits = re.sub(r'\D', '', phone)
    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith('1'):
        return f"+{digits}"
    return phone


def format_phone_number(phone: str) -> str:
    digits = re.sub(r'\D', '', phone)
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    if len(digits) == 11 and digits.startswith('1'):
        return f"+1 ({digits[1:4]}) {digits[4:7]}-{digits[7:]}"
    return phone


def validate_phone_number(phone: str) -> bool:
    digits = re.sub(r'\D', '', phone or '')
    return bool(re.fullmatch(r'[1-9]\d{9,14}', digits))


class CsvPhoneProvider:
    """Name -> phone table loaded from an uploaded CSV (name, phone, address)"""

    name = "csv"

    def __init__(self):
        self._table: Dict[str, PhoneResult] = {}

    @property
    def size(self) -> int:
        return len(self._table)

    def load_csv(self, content: str) -> int:
        """Parse ``content`` into a fresh table and swap it in; returns rows loaded"""
        table = {}
        reader = csv.reader(io.StringIO(content))
        next(reader, None)
        for line_number, row in enumerate(reader, start=2):
            if not row or not any(field.strip() for field in row):
                continue
            name = row[0].strip() if len(row) > 0 else ""
            phone = row[1].strip() if len(row) > 1 else ""
            if not name or not phone:
                logger.warning(f"Skipping CSV line {line_number}: missing name or phone")
                continue
            key = normalize_name(name)
            if not key:
                continue
            table[key] = PhoneResult(phone=normalize_phone(phone), source=self.name, confidence=1.0)
        # Lookups in flight keep reading the previous table
        self._table = table
        logger.info(f"Loaded {len(table)} phone records from CSV")
        return len(table)

    def load_file(self, path: str) -> int:
        with open(path, encoding='utf-8') as f:
            return self.load_csv(f.read())

    def clear(self) -> None:
        self._table = {}

    async def search(self, name: str, address: Optional[str] = None) -> Optional[PhoneResult]:
        table = self._table
        key = normalize_name(name)
        if not key:
            return None
        exact = table.get(key)
        if exact:
            return exact

        best_score, best = 0.0, None
        for candidate_name, result in table.items():
            score = name_score(key, candidate_name)
            if score > best_score:
                best_score, best = score, result
        if best is None or best_score <= FUZZY_MIN_SCORE:
            return None
        return PhoneResult(phone=best.phone, source=best.source, confidence=best_score * FUZZY_DISCOUNT * best.confidence)


class ApiPhoneProvider:
    """JSON phone lookup API: GET {base}/search?name=..&address=.. -> {phone, confidence}"""

    name = "api"

    def __init__(self, base_url: str, api_key: str, timeout: int = None):
        if not (base_url and api_key):
            raise ConfigurationError("Phone lookup API is not configured")
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout or settings.ENRICHMENT_TIMEOUT_SECONDS)
        self.session = None

    async def init_session(self):
        """Initialize aiohttp session"""
        if not self.session:
            self.session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={'Authorization': f"Bearer {self.api_key}", 'Accept': 'application/json'},
            )

    async def close_session(self):
        """Close aiohttp session"""
        if self.session:
            await self.session.close()
            self.session = None

    async def search(self, name: str, address: Optional[str] = None) -> Optional[PhoneResult]:
        await self.init_session()
        params = {'name': name}
        if address:
            params['address'] = address
        try:
            async with self.session.get(f"{self.base_url}/search", params=params) as response:
                if response.status == 404:
                    return None
                if response.status != 200:
                    raise ProviderFailure(self.name, f"Lookup failed with status {response.status}")
                data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderFailure(self.name, str(e)) from e
        phone = data.get('phone') if isinstance(data, dict) else None
        if not phone:
            return None
        return PhoneResult(phone=normalize_phone(phone), source=self.name, confidence=float(data.get('confidence', 0.8)))


def create_phone_provider(name: str = None, csv_provider: CsvPhoneProvider = None):
    """Build the configured phone provider; ``csv`` reuses the given table"""
    name = (name or settings.PHONE_PROVIDER).lower()
    if name == "csv":
        return csv_provider or CsvPhoneProvider()
    if name == "api":
        return ApiPhoneProvider(settings.PHONE_API_BASE_URL, settings.PHONE_API_KEY)
    raise ConfigurationError(f"Unknown phone provider: {name}")

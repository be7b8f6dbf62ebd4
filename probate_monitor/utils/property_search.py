from typing import List, Optional, Protocol

from loguru import logger

from probate_monitor.core.config import settings
from probate_monitor.core.errors import NavigationFailure
from probate_monitor.core.sites import SITE_REGISTRY, SiteConfig
from probate_monitor.schemas.scraped_case import PropertyCandidate
from probate_monitor.services.matching import address_score, name_score
from probate_monitor.utils.retry import CancellationToken, retry
from probate_monitor.utils.site_crawler import parse_result_rows

ADDRESS_INPUT_SELECTORS = ['input[name*="address"]', 'input[id*="Address"]', 'input[name*="search"]', 'input[type="text"]']


class PropertySearch(Protocol):
    async def search_by_owner(self, name: str, county: str) -> List[PropertyCandidate]:
        ...

    async def search_by_address(self, address: str, county: str) -> List[PropertyCandidate]:
        ...


class InMemoryPropertySearch:
    """Property search over a fixed list of parcels"""

    def __init__(self, candidates: List[PropertyCandidate], min_score: float = 0.5):
        self.candidates = list(candidates)
        self.min_score = min_score

    def _in_county(self, candidate: PropertyCandidate, county: str) -> bool:
        return not county or not candidate.county or candidate.county.lower() == county.lower()

    async def search_by_owner(self, name: str, county: str) -> List[PropertyCandidate]:
        return [
            c for c in self.candidates
            if self._in_county(c, county) and c.current_owner and name_score(name, c.current_owner) > self.min_score
        ]

    async def search_by_address(self, address: str, county: str) -> List[PropertyCandidate]:
        found = []
        for c in self.candidates:
            if not self._in_county(c, county):
                continue
            best = max(address_score(address, c.situs_address or ""), address_score(address, c.tax_mailing_address or ""))
            if best > self.min_score:
                found.append(c)
        return found


class QPublicPropertySearch:
    """Owner/address search against the county qPublic sites through a browser session"""

    def __init__(self, browser, token: Optional[CancellationToken] = None, max_results: int = None):
        self.browser = browser
        self.token = token or CancellationToken()
        self.max_results = max_results or settings.CRAWL_MAX_RESULTS_PER_SITE

    def _site(self, county: str) -> Optional[SiteConfig]:
        site = SITE_REGISTRY.get(f"qpublic_{(county or '').lower()}")
        if site is None:
            logger.warning(f"No qPublic search configured for county {county}")
            return None
        # Owner/address lookups return every row, not only estate-like owners
        return site.model_copy(update={'row_text_filter': []})

    async def search_by_owner(self, name: str, county: str) -> List[PropertyCandidate]:
        site = self._site(county)
        if site is None or not name:
            return []
        return await self._search(site, site.search_input_selectors, name)

    async def search_by_address(self, address: str, county: str) -> List[PropertyCandidate]:
        site = self._site(county)
        if site is None or not address:
            return []
        return await self._search(site, ADDRESS_INPUT_SELECTORS, address)

    async def _search(self, site: SiteConfig, input_selectors: List[str], query: str) -> List[PropertyCandidate]:
        page = await self.browser.acquire_page()
        try:
            await retry(
                lambda: page.goto(site.search_url),
                max_attempts=settings.RETRY_MAX_ATTEMPTS,
                base_delay=settings.RETRY_BASE_DELAY_MS / 1000,
                token=self.token,
                retry_on=(NavigationFailure,),
                description=f"qPublic search {site.county}",
            )
            for selector in input_selectors:
                if await page.is_visible(selector):
                    await page.fill(selector, query)
                    break
            else:
                logger.warning(f"No search input on {site.name}")
                return []
            for selector in site.submit_selectors:
                if await page.is_visible(selector):
                    await page.click(selector)
                    break
            else:
                await page.press("Enter")
            await page.wait_for_results()

            rows, _ = parse_result_rows(await page.content(), site, page.url, self.max_results)
            logger.info(f"qPublic {site.county} search for '{query}' returned {len(rows)} parcels")
            return [
                PropertyCandidate(
                    parcel_id=row.case_number,
                    county=site.county,
                    situs_address=row.address,
                    current_owner=row.decedent_name,
                    last_sale_date=row.filing_date,
                    qpublic_url=row.detail_url,
                )
                for row in rows
            ]
        except NavigationFailure as e:
            logger.warning(f"qPublic search on {site.name} failed: {e}")
            return []
        finally:
            await self.browser.release_page(page)

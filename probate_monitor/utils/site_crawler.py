"""Per-site crawl: search form, result grid, detail pages, admission.

One ``SiteCrawler`` drives one site through
Idle -> Navigating -> FormSubmitted -> ResultsListed -> (DetailOpened ->
DetailExtracted)* -> SiteDone, or Aborted when navigation retries are
exhausted, the form cannot be submitted, or a block page does not clear.
Row-level problems are recorded on the result and never abort the site.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import List, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from loguru import logger
from soupsieve import SelectorSyntaxError

from probate_monitor.core.config import settings
from probate_monitor.core.errors import (
    BlockedOrCaptcha,
    CrawlCancelled,
    MalformedRow,
    NavigationFailure,
    ProbateMonitorError,
)
from probate_monitor.core.sites import SiteConfig
from probate_monitor.schemas.scraped_case import ScrapedCase
from probate_monitor.utils.admission import admit, today_in
from probate_monitor.utils.detail_extractor import DetailExtractor
from probate_monitor.utils.retry import CancellationToken, polite_delay, retry
from probate_monitor.utils.text import clean_text, parse_date

MAX_RESULT_PAGES = 5


class SiteState(str, Enum):
    IDLE = "idle"
    NAVIGATING = "navigating"
    FORM_SUBMITTED = "form_submitted"
    RESULTS_LISTED = "results_listed"
    DETAIL_OPENED = "detail_opened"
    DETAIL_EXTRACTED = "detail_extracted"
    SITE_DONE = "site_done"
    ABORTED = "aborted"


@dataclass
class ResultRow:
    case_number: str
    decedent_name: str
    filing_date: Optional[date] = None
    address: Optional[str] = None
    detail_url: Optional[str] = None


@dataclass
class SiteCrawlResult:
    site: str
    cases: List[ScrapedCase] = field(default_factory=list)
    skipped: int = 0
    skip_reasons: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    error: Optional[str] = None
    cancelled: bool = False
    state: SiteState = SiteState.IDLE

    def skip(self, reason: str, is_error: bool = False) -> None:
        self.skipped += 1
        self.skip_reasons.append(reason)
        if is_error:
            self.errors.append(reason)


def search_window(site: SiteConfig, date_from: Optional[date], today: date) -> Tuple[date, date]:
    """Filed-date range entered into the search form"""
    if date_from is not None:
        return date_from, today
    if site.source_kind == "property":
        return today - timedelta(days=settings.PROPERTY_LOOKBACK_DAYS), today
    return today, today


def _cell_text(cells, index: Optional[int]) -> Optional[str]:
    if index is None or index >= len(cells):
        return None
    return clean_text(cells[index].get_text(" ", strip=True))


def parse_result_rows(html: str, site: SiteConfig, base_url: str, limit: int) -> Tuple[List[ResultRow], List[str]]:
    """Read up to ``limit`` result rows from a search page.

    Returns the usable rows in page order and one message per malformed row.
    Rows that do not contain any of the site's row filter terms are not results
    and are ignored without counting toward the limit.
    """
    soup = BeautifulSoup(html, 'html.parser')
    grid = None
    for selector in site.grid_selectors:
        try:
            grid = soup.select_one(selector)
        except SelectorSyntaxError as e:
            logger.warning(f"Invalid grid selector {selector}: {e}")
            continue
        if grid is not None:
            break
    if grid is None:
        grid = soup

    elements = []
    for selector in site.row_selectors:
        try:
            elements = grid.select(selector)
        except SelectorSyntaxError as e:
            logger.warning(f"Invalid row selector {selector}: {e}")
            continue
        if elements:
            break

    rows = []
    malformed = []
    enumerated = 0
    for element in elements:
        if enumerated >= limit:
            break
        text = element.get_text(" ", strip=True).lower()
        if site.row_text_filter and not any(term in text for term in site.row_text_filter):
            continue
        cells = element.find_all('td')
        if not cells:
            continue
        enumerated += 1

        case_number = _cell_text(cells, site.columns.get('case_number'))
        decedent_name = _cell_text(cells, site.columns.get('decedent_name'))
        if not case_number or not decedent_name:
            malformed.append(str(MalformedRow(f"Row {enumerated} on {site.key}: missing case number or decedent name")))
            continue

        link = element.find('a', href=True)
        rows.append(ResultRow(
            case_number=case_number,
            decedent_name=decedent_name,
            filing_date=parse_date(_cell_text(cells, site.columns.get('filing_date'))),
            address=_cell_text(cells, site.columns.get('address')),
            detail_url=urljoin(base_url, link['href']) if link else None,
        ))
    return rows, malformed


class SiteCrawler:
    """Crawls one site with one browser session; returns admitted cases and row-level outcomes"""

    def __init__(
        self,
        site: SiteConfig,
        browser,
        extractor: DetailExtractor,
        token: Optional[CancellationToken] = None,
        date_from: Optional[date] = None,
        now: Optional[datetime] = None,
        max_results: int = None,
        polite_delay_ms: Tuple[int, int] = None,
        retry_attempts: int = None,
        retry_base_delay: float = None,
        captcha_pause_seconds: float = None,
        rng=None,
    ):
        self.site = site
        self.browser = browser
        self.extractor = extractor
        self.token = token or CancellationToken()
        self.date_from = date_from
        self.now = now
        self.max_results = max_results or settings.CRAWL_MAX_RESULTS_PER_SITE
        self.polite_delay_ms = polite_delay_ms or (settings.POLITE_DELAY_MIN_MS, settings.POLITE_DELAY_MAX_MS)
        self.retry_attempts = retry_attempts or settings.RETRY_MAX_ATTEMPTS
        self.retry_base_delay = settings.RETRY_BASE_DELAY_MS / 1000 if retry_base_delay is None else retry_base_delay
        self.captcha_pause_seconds = settings.CAPTCHA_PAUSE_SECONDS if captcha_pause_seconds is None else captcha_pause_seconds
        self.rng = rng
        self.state = SiteState.IDLE

    def _transition(self, state: SiteState) -> None:
        logger.debug(f"{self.site.key}: {self.state.value} -> {state.value}")
        self.state = state

    async def crawl(self) -> SiteCrawlResult:
        result = SiteCrawlResult(site=self.site.key)
        logger.info(f"Starting crawl of {self.site.name}")
        page = await self.browser.new_page()
        try:
            rows = await self.collect_rows(page, result)
            self._transition(SiteState.RESULTS_LISTED)
            logger.info(f"{self.site.name}: {len(rows)} result rows to process")

            for index, row in enumerate(rows):
                self.token.raise_if_cancelled()
                await self.process_row(row, result)
                if index < len(rows) - 1:
                    await polite_delay(*self.polite_delay_ms, token=self.token, rng=self.rng)

            self._transition(SiteState.SITE_DONE)
            logger.info(f"Finished {self.site.name}: {len(result.cases)} admitted, {result.skipped} skipped")
        except CrawlCancelled:
            logger.warning(f"Crawl of {self.site.name} cancelled with {len(result.cases)} cases collected")
            result.cancelled = True
        except (NavigationFailure, BlockedOrCaptcha) as e:
            self._transition(SiteState.ABORTED)
            logger.error(f"Aborting {self.site.name}: {e}")
            result.error = str(e)
            result.cases = []
        finally:
            result.state = self.state
            try:
                await page.close()
            except Exception as e:
                logger.warning(f"Error closing search page: {e}")
        return result

    async def collect_rows(self, page, result: SiteCrawlResult) -> List[ResultRow]:
        """Run the search once per search term (once when the site has none) and gather rows"""
        rows: List[ResultRow] = []
        seen = set()
        for term in self.site.search_terms or [None]:
            if len(rows) >= self.max_results:
                break
            self.token.raise_if_cancelled()
            self._transition(SiteState.NAVIGATING)
            await retry(
                lambda: page.goto(self.site.search_url, wait_for=self.site.ready_selector),
                max_attempts=self.retry_attempts,
                base_delay=self.retry_base_delay,
                token=self.token,
                retry_on=(NavigationFailure,),
                description=f"Loading {self.site.name}",
            )
            await self.dismiss_consent(page)
            await self.submit_search(page, term)
            self._transition(SiteState.FORM_SUBMITTED)

            for page_number in range(MAX_RESULT_PAGES):
                await self.check_blocked(page)
                html = await page.content()
                self.extractor.artifacts.save_html("search", f"{self.site.key}-{term or 'all'}-{page_number + 1}", html)

                found, malformed = parse_result_rows(html, self.site, page.url, self.max_results - len(rows))
                for message in malformed:
                    logger.warning(message)
                    result.skip(message, is_error=True)
                for row in found:
                    if row.case_number in seen:
                        continue
                    seen.add(row.case_number)
                    rows.append(row)

                if len(rows) >= self.max_results or not await self.next_page(page):
                    break
        return rows[:self.max_results]

    async def dismiss_consent(self, page) -> None:
        """Click through a terms/consent interstitial when one is shown"""
        for selector in self.site.consent_selectors:
            if await page.is_visible(selector, timeout_ms=1000):
                try:
                    await page.click(selector)
                    logger.info(f"Dismissed consent dialog via {selector}")
                    await page.wait_for_results()
                except NavigationFailure as e:
                    logger.warning(f"Could not dismiss consent dialog: {e}")
                return

    async def _fill_first(self, page, selectors: List[str], value: str) -> bool:
        for selector in selectors:
            if await page.is_visible(selector):
                await page.fill(selector, value)
                return True
        return False

    async def select_jurisdictions(self, page) -> None:
        if not self.site.jurisdiction_dropdown or not self.site.priority_jurisdictions:
            return
        if not await page.is_visible(self.site.jurisdiction_dropdown):
            logger.warning(f"Jurisdiction dropdown not found on {self.site.name}, searching all")
            return
        await page.click(self.site.jurisdiction_dropdown)
        selected = []
        for name in self.site.priority_jurisdictions:
            for template in self.site.jurisdiction_option_templates:
                option = template.format(name=name)
                if await page.is_visible(option, timeout_ms=1000):
                    await page.click(option)
                    selected.append(name)
                    break
            else:
                logger.warning(f"Jurisdiction option {name} not found on {self.site.name}")
        await page.press("Escape")
        logger.info(f"Selected jurisdictions: {selected}")

    async def submit_search(self, page, term: Optional[str] = None) -> None:
        """Fill jurisdictions, date range and search term, then submit"""
        await self.select_jurisdictions(page)

        start, end = search_window(self.site, self.date_from, today_in(settings.ADMISSION_TIMEZONE, self.now))
        if self.site.date_start_selectors:
            if not await self._fill_first(page, self.site.date_start_selectors, start.strftime(self.site.date_format)):
                logger.warning(f"No start date input found on {self.site.name}")
        if self.site.date_end_selectors:
            if not await self._fill_first(page, self.site.date_end_selectors, end.strftime(self.site.date_format)):
                logger.warning(f"No end date input found on {self.site.name}")
        if term and not await self._fill_first(page, self.site.search_input_selectors, term):
            logger.warning(f"No search input found on {self.site.name} for term {term}")

        for selector in self.site.submit_selectors:
            if await page.is_visible(selector):
                logger.info(f"Submitting {self.site.name} search ({start} - {end}) via {selector}")
                await page.click(selector)
                await page.wait_for_results()
                if self.site.results_ready_selector and not await page.wait_for(self.site.results_ready_selector):
                    logger.warning(f"Results grid did not appear on {self.site.name}")
                return
        raise NavigationFailure(f"No search button found on {self.site.name}")

    async def blocking_marker(self, page) -> Optional[str]:
        for selector in self.site.blocker_selectors:
            if await page.is_visible(selector, timeout_ms=500):
                return selector
        return None

    async def check_blocked(self, page) -> None:
        """Pause once for manual resolution of a CAPTCHA/block page, then recheck"""
        marker = await self.blocking_marker(page)
        if marker is None:
            return
        logger.warning(f"{self.site.name} is showing a block page ({marker}), pausing {self.captcha_pause_seconds}s for manual resolution")
        await self.token.sleep(self.captcha_pause_seconds)
        marker = await self.blocking_marker(page)
        if marker is not None:
            raise BlockedOrCaptcha(f"{self.site.name} still blocked after pause ({marker})")
        logger.info(f"{self.site.name} block cleared, continuing")

    async def next_page(self, page) -> bool:
        for selector in self.site.next_page_selectors:
            if await page.is_visible(selector, timeout_ms=1000):
                await page.click(selector)
                await page.wait_for_results()
                return True
        return False

    async def process_row(self, row: ResultRow, result: SiteCrawlResult) -> Optional[ScrapedCase]:
        """Open, extract and admit a single result row"""
        case = ScrapedCase(
            case_id=f"{self.site.case_id_prefix}-{row.case_number}",
            county=self.site.county,
            filing_date=row.filing_date,
            decedent_name=row.decedent_name,
            decedent_address=row.address,
            case_number=row.case_number,
            court_url=row.detail_url,
            source=self.site.key,
        )
        logger.info(f"Processing case {case.case_id}: {case.decedent_name}")

        if row.detail_url:
            self._transition(SiteState.DETAIL_OPENED)
            detail_page = await self.browser.acquire_page()
            try:
                await retry(
                    lambda: detail_page.goto(row.detail_url),
                    max_attempts=self.retry_attempts,
                    base_delay=self.retry_base_delay,
                    token=self.token,
                    retry_on=(NavigationFailure,),
                    description=f"Detail page for {case.case_id}",
                )
                details = await self.extractor.extract(
                    detail_page, row.case_number, self.site, browser=self.browser, token=self.token,
                    decedent_name=case.decedent_name,
                )
                properties = details.pop('properties', [])
                case = case.model_copy(update=details)
                case.merge_properties(properties)
                self._transition(SiteState.DETAIL_EXTRACTED)
            except CrawlCancelled:
                raise
            except ProbateMonitorError as e:
                message = f"{case.case_id}: detail extraction failed: {e}"
                logger.warning(message)
                result.skip(message, is_error=True)
                return None
            except Exception as e:
                message = f"{case.case_id}: unexpected error during extraction: {e}"
                logger.error(message)
                logger.exception("Full traceback:")
                result.skip(message, is_error=True)
                return None
            finally:
                await self.browser.release_page(detail_page)

        if not admit(case.filing_date, self.site.source_kind, now=self.now):
            reason = f"{case.case_id}: filing date {case.filing_date} outside admission window"
            logger.info(f"Skipping {reason}")
            result.skip(reason)
            return None

        result.cases.append(case)
        return case

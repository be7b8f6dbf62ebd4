"""Runs a crawl over several sites and reports one outcome per site.

Per site: crawl (SiteCrawler) -> match parcels -> enrich contacts -> ingest.
A site's failure is recorded on its outcome and its job record; it never
stops the other sites. Only an unknown site key fails the whole call.
"""
import asyncio
from datetime import date, datetime
from typing import Callable, List, Optional

from loguru import logger

from probate_monitor.core.config import settings
from probate_monitor.core.database import SessionLocal
from probate_monitor.core.errors import CrawlCancelled, PersistenceFailure
from probate_monitor.core.sites import SiteConfig, resolve_sites
from probate_monitor.schemas.run_summary import RunSummary, SiteOutcome
from probate_monitor.schemas.scraped_case import ScrapedCase
from probate_monitor.services.address_service import AddressService
from probate_monitor.services.enrichment_pipeline import EnrichmentPipeline
from probate_monitor.services.ingestion_sink import IngestionSink
from probate_monitor.services.job_tracker import JobTracker
from probate_monitor.services.matching import MatchingEngine
from probate_monitor.services.phone_service import PhoneService
from probate_monitor.services.record_repository import RecordRepository
from probate_monitor.utils.artifacts import ArtifactStore
from probate_monitor.utils.browser import BrowserSession
from probate_monitor.utils.detail_extractor import DetailExtractor
from probate_monitor.utils.property_search import QPublicPropertySearch
from probate_monitor.utils.retry import CancellationToken
from probate_monitor.utils.site_crawler import SiteCrawler


class CrawlOrchestrator:
    def __init__(
        self,
        job_tracker: JobTracker,
        sink: IngestionSink,
        extractor: DetailExtractor,
        enrichment: EnrichmentPipeline,
        matching: Optional[MatchingEngine] = None,
        browser_factory: Callable = BrowserSession,
        property_search_factory: Callable = QPublicPropertySearch,
        workers: int = None,
        token: Optional[CancellationToken] = None,
        now: Optional[datetime] = None,
        crawler_options: Optional[dict] = None,
    ):
        self.job_tracker = job_tracker
        self.sink = sink
        self.extractor = extractor
        self.enrichment = enrichment
        self.matching = matching or MatchingEngine()
        self.browser_factory = browser_factory
        self.property_search_factory = property_search_factory
        self.workers = max(1, workers or settings.CRAWL_MAX_WORKERS)
        self.token = token or CancellationToken()
        self.now = now
        self.crawler_options = crawler_options or {}

    async def run_crawl(self, sites: List[str], date_from: Optional[date] = None) -> RunSummary:
        """Crawl ``sites`` (keys or groups); unknown keys raise before any work starts"""
        configs = resolve_sites(sites)
        summary = RunSummary()
        logger.info(f"Starting crawl of {len(configs)} sites with {self.workers} workers")

        if self.workers == 1:
            for site in configs:
                if self.token.cancelled:
                    logger.warning("Crawl cancelled, skipping remaining sites")
                    break
                summary.per_site.append(await self.run_site(site, date_from))
        else:
            semaphore = asyncio.Semaphore(self.workers)

            async def bounded(site: SiteConfig) -> Optional[SiteOutcome]:
                async with semaphore:
                    if self.token.cancelled:
                        return None
                    return await self.run_site(site, date_from)

            outcomes = await asyncio.gather(*(bounded(site) for site in configs))
            summary.per_site = [outcome for outcome in outcomes if outcome is not None]

        summary.cancelled = self.token.cancelled
        logger.info(f"Crawl finished: {summary.total_found} found, {summary.total_saved} saved across {len(summary.per_site)} sites")
        return summary

    async def _track(self, method, *args):
        """Job records are observability only; their failures are logged, not raised"""
        try:
            return await asyncio.to_thread(method, *args)
        except Exception as e:
            logger.error(f"Job tracking call {method.__name__} failed: {e}")
            logger.exception("Full traceback:")
            return None

    async def run_site(self, site: SiteConfig, date_from: Optional[date] = None) -> SiteOutcome:
        outcome = SiteOutcome(site=site.key)
        job_id = await self._track(self.job_tracker.start, site.county, site.key)
        cancelled = False
        try:
            async with self.browser_factory() as browser:
                crawler = SiteCrawler(
                    site, browser, self.extractor, token=self.token, date_from=date_from,
                    now=self.now, **self.crawler_options,
                )
                result = await crawler.crawl()
                outcome.skipped = result.skipped
                outcome.skip_reasons = list(result.skip_reasons)
                outcome.errors = list(result.errors)
                cancelled = result.cancelled

                if result.error is not None:
                    outcome.error = result.error
                    if job_id:
                        await self._track(self.job_tracker.fail, job_id, result.error)
                    return outcome

                outcome.found = len(result.cases)
                cases, cancelled_during = await self.match_and_enrich(result.cases, browser, outcome)
                cancelled = cancelled or cancelled_during
        except CrawlCancelled:
            cancelled = True
            cases = []
        except Exception as e:
            logger.error(f"Error crawling {site.name}: {e}")
            logger.exception("Full traceback:")
            outcome.error = str(e)
            outcome.found = 0
            if job_id:
                await self._track(self.job_tracker.fail, job_id, str(e))
            return outcome

        try:
            ingested = await asyncio.to_thread(self.sink.ingest, cases)
            outcome.saved = ingested.saved
            outcome.skipped += len(ingested.duplicates)
            outcome.skip_reasons.extend(f"{case_id}: already stored" for case_id in ingested.duplicates)
        except PersistenceFailure as e:
            logger.error(f"Could not save cases for {site.name}: {e}")
            outcome.error = str(e)
            outcome.saved = 0
            if job_id:
                await self._track(self.job_tracker.fail, job_id, str(e))
            return outcome

        errors = list(outcome.errors)
        if cancelled:
            errors.append("Crawl cancelled before the site finished")
        if job_id:
            await self._track(self.job_tracker.complete, job_id, outcome.found, errors)
        logger.info(f"{site.name}: found {outcome.found}, saved {outcome.saved}, skipped {outcome.skipped}")
        return outcome

    async def match_and_enrich(self, cases: List[ScrapedCase], browser, outcome: SiteOutcome):
        """Attach matched parcels and enrich contacts; returns (cases, cancelled)"""
        search = self.property_search_factory(browser, self.token)
        done = []
        for case in cases:
            if self.token.cancelled:
                return done, True
            try:
                case.merge_properties(await self.matching.find_matching_properties(case, search))
                case = await self.enrichment.enrich_contacts(case)
            except CrawlCancelled:
                return done, True
            except Exception as e:
                message = f"{case.case_id}: matching/enrichment failed: {e}"
                logger.error(message)
                logger.exception("Full traceback:")
                outcome.errors.append(message)
            done.append(case)
        return done, self.token.cancelled


def build_orchestrator(
    token: Optional[CancellationToken] = None,
    workers: int = None,
    phone_service: Optional[PhoneService] = None,
    session_factory=None,
) -> CrawlOrchestrator:
    """Wire the orchestrator with the configured storage, providers and artifact store"""
    session_factory = session_factory or SessionLocal
    enrichment = EnrichmentPipeline(AddressService(), phone_service or PhoneService.from_settings())
    return CrawlOrchestrator(
        job_tracker=JobTracker(session_factory),
        sink=IngestionSink(RecordRepository(session_factory)),
        extractor=DetailExtractor(ArtifactStore(settings.ARTIFACT_DIR, settings.CAPTURE_PDF)),
        enrichment=enrichment,
        workers=workers,
        token=token,
    )

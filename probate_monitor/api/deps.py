from functools import lru_cache

from probate_monitor.core.database import SessionLocal
from probate_monitor.services.crawl_orchestrator import CrawlOrchestrator, build_orchestrator
from probate_monitor.services.job_tracker import JobTracker
from probate_monitor.services.phone_service import PhoneService
from probate_monitor.services.record_repository import RecordRepository

def get_repository() -> RecordRepository:
    return RecordRepository(SessionLocal)

def get_job_tracker() -> JobTracker:
    return JobTracker(SessionLocal)

@lru_cache()
def get_phone_service() -> PhoneService:
    """Process-wide phone service; uploads replace its CSV table for every later crawl"""
    return PhoneService.from_settings()

def get_orchestrator() -> CrawlOrchestrator:
    return build_orchestrator(phone_service=get_phone_service())

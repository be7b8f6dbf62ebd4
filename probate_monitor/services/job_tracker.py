from datetime import datetime
from typing import List, Optional
import uuid

from loguru import logger
from sqlalchemy.orm import sessionmaker

from probate_monitor.models.crawl_job import CrawlJob
from probate_monitor.schemas.crawl_job import TERMINAL_STATUSES

class JobTracker:
    """Records one crawl job per site; each job reaches a terminal status exactly once"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
    
    def start(self, county: str, source: str) -> str:
        """Create a running job record and return its id"""
        db = self.session_factory()
        try:
            job = CrawlJob(
                id=str(uuid.uuid4()),
                county=county,
                source=source,
                status="running",
                started_at=datetime.now(),
                records_found=0,
            )
            db.add(job)
            db.commit()
            logger.info(f"Started crawl job {job.id} for {source}")
            return job.id
        except Exception as e:
            db.rollback()
            logger.error(f"Error creating crawl job: {str(e)}")
            raise
        finally:
            db.close()
    
    def complete(self, job_id: str, records_found: int, errors: Optional[List[str]] = None) -> None:
        """Mark a job completed, or completed_with_errors when errors were collected"""
        if errors:
            self._finish(job_id, "completed_with_errors", records_found, f"{len(errors)} errors occurred: {errors[0]}")
        else:
            self._finish(job_id, "completed", records_found, None)
    
    def fail(self, job_id: str, message: str) -> None:
        """Mark a job failed"""
        self._finish(job_id, "failed", 0, message)
    
    def get(self, job_id: str) -> Optional[CrawlJob]:
        db = self.session_factory()
        try:
            return db.query(CrawlJob).filter(CrawlJob.id == job_id).first()
        finally:
            db.close()
    
    def list_jobs(self, limit: int = 100) -> List[CrawlJob]:
        db = self.session_factory()
        try:
            return db.query(CrawlJob).order_by(CrawlJob.started_at.desc()).limit(limit).all()
        finally:
            db.close()
    
    def _finish(self, job_id: str, status: str, records_found: int, error_message: Optional[str]) -> None:
        db = self.session_factory()
        try:
            job = db.query(CrawlJob).filter(CrawlJob.id == job_id).first()
            if job is None:
                raise ValueError(f"Unknown crawl job: {job_id}")
            if job.status in TERMINAL_STATUSES:
                raise ValueError(f"Crawl job {job_id} already finished with status {job.status}")
            job.status = status
            job.completed_at = datetime.now()
            job.records_found = records_found
            job.error_message = error_message
            db.commit()
            logger.info(f"Crawl job {job_id} finished: {status} ({records_found} records)")
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

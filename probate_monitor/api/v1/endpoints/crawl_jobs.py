from typing import List

from fastapi import APIRouter, Depends, HTTPException

from probate_monitor.api.deps import get_job_tracker
from probate_monitor.schemas.crawl_job import CrawlJob
from probate_monitor.services.job_tracker import JobTracker

router = APIRouter()

@router.get("/", response_model=List[CrawlJob])
def get_crawl_jobs(limit: int = 100, tracker: JobTracker = Depends(get_job_tracker)):
    """Get recent crawl jobs, newest first"""
    return tracker.list_jobs(limit=limit)

@router.get("/{job_id}", response_model=CrawlJob)
def get_crawl_job(job_id: str, tracker: JobTracker = Depends(get_job_tracker)):
    """Get a specific crawl job"""
    job = tracker.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Crawl job not found")
    return job

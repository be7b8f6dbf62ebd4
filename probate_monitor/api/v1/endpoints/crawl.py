from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from loguru import logger

from probate_monitor.api.deps import get_orchestrator
from probate_monitor.core.errors import ConfigurationError
from probate_monitor.core.sites import SITE_GROUPS, SITE_REGISTRY, resolve_sites
from probate_monitor.schemas.run_summary import CrawlRequest
from probate_monitor.services.crawl_orchestrator import CrawlOrchestrator

router = APIRouter()

async def run_crawl_in_background(orchestrator: CrawlOrchestrator, request: CrawlRequest) -> None:
    try:
        summary = await orchestrator.run_crawl(request.sites, request.date_from)
        logger.info(f"Background crawl finished: {summary.model_dump_json()}")
    except Exception as e:
        logger.error(f"Background crawl failed: {str(e)}")
        logger.exception("Full traceback:")
    finally:
        # The phone service is shared across requests and stays open
        await orchestrator.enrichment.address_service.close()

@router.get("/sites")
def list_sites():
    """List crawlable site keys and site groups"""
    return {
        "sites": [
            {"key": site.key, "name": site.name, "source_kind": site.source_kind, "county": site.county}
            for site in SITE_REGISTRY.values()
        ],
        "groups": SITE_GROUPS,
    }

@router.post("", status_code=202)
async def start_crawl(
    request: CrawlRequest,
    background_tasks: BackgroundTasks,
    orchestrator: CrawlOrchestrator = Depends(get_orchestrator),
):
    """Validate the requested sites and start a crawl; progress is visible under /crawl-jobs"""
    try:
        sites = resolve_sites(request.sites)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not sites:
        raise HTTPException(status_code=400, detail="No sites requested")
    
    logger.info(f"Scheduling crawl of {[site.key for site in sites]}")
    background_tasks.add_task(run_crawl_in_background, orchestrator, request)
    return {
        "message": "Crawl started",
        "sites": [site.key for site in sites],
        "date_from": request.date_from,
    }

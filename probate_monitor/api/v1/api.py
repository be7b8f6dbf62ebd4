from fastapi import APIRouter

from probate_monitor.api.v1.endpoints import cases, crawl, crawl_jobs, phone

api_router = APIRouter()

api_router.include_router(crawl.router, prefix="/crawl", tags=["crawl"])
api_router.include_router(cases.router, prefix="/cases", tags=["cases"])
api_router.include_router(crawl_jobs.router, prefix="/crawl-jobs", tags=["crawl-jobs"])
api_router.include_router(phone.router, prefix="/phone", tags=["phone"])

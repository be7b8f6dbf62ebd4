from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from probate_monitor.api.v1.api import api_router
from probate_monitor.core.config import settings
from probate_monitor.core.database import init_db
from probate_monitor.core.logging import configure_logging

configure_logging()

app = FastAPI(
    title=settings.PROJECT_NAME,
    description=settings.DESCRIPTION,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

# Set up CORS middleware with appropriate origins
origins = ["*"] if settings.ALLOW_ALL_ORIGINS else [str(origin) for origin in settings.BACKEND_CORS_ORIGINS]

# Note: When allow_origins=["*"], allow_credentials must be False according to CORS spec
allow_credentials = not settings.ALLOW_ALL_ORIGINS

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=allow_credentials,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["Content-Type", "Content-Disposition"],
    max_age=600,
)

app.include_router(api_router, prefix=settings.API_V1_STR)

@app.on_event("startup")
async def startup_event():
    """Initialize database on startup"""
    init_db()

@app.get("/")
async def root():
    return {"message": "Welcome to the Probate Monitor API"}

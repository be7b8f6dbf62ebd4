from datetime import date
from typing import List, Optional
from pydantic import BaseModel, Field

class SiteOutcome(BaseModel):
    site: str
    found: int = 0
    saved: int = 0
    skipped: int = 0
    errors: List[str] = Field(default_factory=list)
    skip_reasons: List[str] = Field(default_factory=list)
    error: Optional[str] = None

class RunSummary(BaseModel):
    per_site: List[SiteOutcome] = Field(default_factory=list)
    cancelled: bool = False

    @property
    def total_found(self) -> int:
        return sum(outcome.found for outcome in self.per_site)

    @property
    def total_saved(self) -> int:
        return sum(outcome.saved for outcome in self.per_site)

class CrawlRequest(BaseModel):
    sites: List[str]
    date_from: Optional[date] = None

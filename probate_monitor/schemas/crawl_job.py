from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel

JobStatus = Literal["pending", "running", "completed", "completed_with_errors", "failed"]
TERMINAL_STATUSES = ("completed", "completed_with_errors", "failed")

class CrawlJob(BaseModel):
    id: str
    county: str
    source: str
    status: JobStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    records_found: int = 0
    error_message: Optional[str] = None

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "county": "georgia",
                "source": "georgia_probate_records",
                "status": "completed",
                "started_at": "2024-03-14T12:00:00",
                "completed_at": "2024-03-14T12:05:00",
                "records_found": 4,
                "error_message": None
            }
        }

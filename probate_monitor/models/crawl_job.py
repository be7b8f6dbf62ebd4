from sqlalchemy import Column, String, Integer, DateTime
from sqlalchemy.sql import func
from probate_monitor.core.base import Base

class CrawlJob(Base):
    __tablename__ = "crawl_jobs"

    id = Column(String, primary_key=True, index=True)
    county = Column(String, nullable=False)
    source = Column(String, nullable=False)
    status = Column(String, nullable=False)
    started_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime)
    records_found = Column(Integer, nullable=False, default=0)
    error_message = Column(String)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

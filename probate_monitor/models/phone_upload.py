from sqlalchemy import Column, String, Integer, DateTime
from sqlalchemy.sql import func
from probate_monitor.core.base import Base

class PhoneUpload(Base):
    __tablename__ = "phone_uploads"

    id = Column(String, primary_key=True, index=True)
    filename = Column(String, nullable=False)
    records = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

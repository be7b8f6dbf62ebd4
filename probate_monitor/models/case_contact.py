from sqlalchemy import Column, String, Boolean, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from probate_monitor.core.base import Base

class CaseContact(Base):
    __tablename__ = "case_contacts"

    id = Column(String, primary_key=True, index=True)
    case_pk = Column(String, ForeignKey("probate_cases.id"), index=True, nullable=False)
    type = Column(String, nullable=False)
    name = Column(String, nullable=False)
    original_address = Column(String)
    standardized_address = Column(String)
    deliverable = Column(Boolean, default=False)
    phone = Column(String)
    phone_source = Column(String)
    phone_confidence = Column(Float)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    case = relationship("ProbateCase", back_populates="contacts")

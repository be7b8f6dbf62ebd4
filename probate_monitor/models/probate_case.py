from sqlalchemy import Column, String, Date, DateTime, Float
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from probate_monitor.core.base import Base

class ProbateCase(Base):
    __tablename__ = "probate_cases"

    id = Column(String, primary_key=True, index=True)
    case_id = Column(String, unique=True, index=True, nullable=False)
    county = Column(String, index=True)
    filing_date = Column(Date)
    decedent_name = Column(String, index=True)
    decedent_address = Column(String)
    case_number = Column(String, index=True)
    estate_value = Column(Float)
    attorney = Column(String)
    court_url = Column(String)
    source = Column(String)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    contacts = relationship("CaseContact", back_populates="case", lazy="selectin")
    parcels = relationship("CaseParcel", back_populates="case", lazy="selectin")

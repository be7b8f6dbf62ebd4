from sqlalchemy import Column, String, Float, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from probate_monitor.core.base import Base

class CaseParcel(Base):
    __tablename__ = "case_parcels"
    __table_args__ = (UniqueConstraint("case_pk", "parcel_id", name="uq_case_parcel"),)

    id = Column(String, primary_key=True, index=True)
    case_pk = Column(String, ForeignKey("probate_cases.id"), index=True, nullable=False)
    parcel_id = Column(String, nullable=False)
    county = Column(String)
    situs_address = Column(String)
    tax_mailing_address = Column(String)
    current_owner = Column(String)
    last_sale_date = Column(Date)
    assessed_value = Column(Float)
    legal_description = Column(String)
    qpublic_url = Column(String)
    match_confidence = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    case = relationship("ProbateCase", back_populates="parcels")

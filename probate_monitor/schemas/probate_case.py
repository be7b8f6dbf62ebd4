from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel

class CaseContact(BaseModel):
    type: str
    name: str
    original_address: Optional[str] = None
    standardized_address: Optional[str] = None
    deliverable: Optional[bool] = None
    phone: Optional[str] = None
    phone_source: Optional[str] = None
    phone_confidence: Optional[float] = None

    class Config:
        from_attributes = True

class CaseParcel(BaseModel):
    parcel_id: str
    county: Optional[str] = None
    situs_address: Optional[str] = None
    tax_mailing_address: Optional[str] = None
    current_owner: Optional[str] = None
    last_sale_date: Optional[date] = None
    assessed_value: Optional[float] = None
    legal_description: Optional[str] = None
    qpublic_url: Optional[str] = None
    match_confidence: float

    class Config:
        from_attributes = True

class ProbateCase(BaseModel):
    id: str
    case_id: str
    county: Optional[str] = None
    filing_date: Optional[date] = None
    decedent_name: Optional[str] = None
    decedent_address: Optional[str] = None
    case_number: Optional[str] = None
    estate_value: Optional[float] = None
    attorney: Optional[str] = None
    court_url: Optional[str] = None
    source: Optional[str] = None
    created_at: Optional[datetime] = None
    contacts: List[CaseContact] = []
    parcels: List[CaseParcel] = []

    class Config:
        from_attributes = True

from datetime import date
from typing import Iterable, List, Literal, Optional
from pydantic import BaseModel, Field

ContactType = Literal["executor", "administrator", "petitioner"]
SourceKind = Literal["court", "property"]

class ScrapedContact(BaseModel):
    type: ContactType
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    # Filled by the enrichment pipeline
    standardized_address: Optional[str] = None
    deliverable: Optional[bool] = None
    phone_source: Optional[str] = None
    phone_confidence: Optional[float] = None

class PropertyCandidate(BaseModel):
    parcel_id: str
    county: Optional[str] = None
    situs_address: Optional[str] = None
    tax_mailing_address: Optional[str] = None
    current_owner: Optional[str] = None
    qpublic_url: Optional[str] = None
    last_sale_date: Optional[date] = None
    assessed_value: Optional[float] = None
    legal_description: Optional[str] = None
    match_confidence: float = Field(0.0, ge=0.0, le=1.0)

class ScrapedCase(BaseModel):
    case_id: str
    county: str
    filing_date: Optional[date] = None
    decedent_name: str
    decedent_address: Optional[str] = None
    case_number: Optional[str] = None
    estate_value: Optional[float] = None
    attorney: Optional[str] = None
    court_url: Optional[str] = None
    source: Optional[str] = None
    raw_html_path: Optional[str] = None
    raw_pdf_path: Optional[str] = None
    contacts: List[ScrapedContact] = Field(default_factory=list)
    properties: List[PropertyCandidate] = Field(default_factory=list)

    def merge_properties(self, candidates: Iterable[PropertyCandidate]) -> None:
        """Add candidates, keeping one entry per parcel with the highest confidence"""
        self.properties = merge_candidates(list(self.properties) + list(candidates))

def merge_candidates(candidates: Iterable[PropertyCandidate]) -> List[PropertyCandidate]:
    """Collapse candidates by parcel_id and sort by descending confidence"""
    by_parcel = {}
    for candidate in candidates:
        existing = by_parcel.get(candidate.parcel_id)
        if existing is None or candidate.match_confidence > existing.match_confidence:
            by_parcel[candidate.parcel_id] = candidate
    return sorted(by_parcel.values(), key=lambda c: c.match_confidence, reverse=True)

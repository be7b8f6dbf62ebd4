from datetime import date
from typing import Iterable, List, Optional, Set, Tuple
import uuid

from loguru import logger
from sqlalchemy.orm import sessionmaker

from probate_monitor.core.errors import PersistenceFailure
from probate_monitor.models.case_contact import CaseContact
from probate_monitor.models.case_parcel import CaseParcel
from probate_monitor.models.phone_upload import PhoneUpload
from probate_monitor.models.probate_case import ProbateCase
from probate_monitor.schemas.scraped_case import PropertyCandidate, ScrapedCase, ScrapedContact

class RecordRepository:
    """Case/contact/parcel storage keyed by the source's natural case id"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
    
    def exists_by_case_ids(self, case_ids: Iterable[str]) -> Set[str]:
        """Return the subset of case_ids already stored"""
        ids = list(dict.fromkeys(case_ids))
        if not ids:
            return set()
        db = self.session_factory()
        try:
            rows = db.query(ProbateCase.case_id).filter(ProbateCase.case_id.in_(ids)).all()
            return {row[0] for row in rows}
        finally:
            db.close()
    
    def bulk_insert(
        self,
        cases: List[ScrapedCase],
        contacts: List[Tuple[str, ScrapedContact]],
        parcels: List[Tuple[str, PropertyCandidate]],
    ) -> int:
        """Insert cases, then their contacts and parcels, in a single transaction"""
        db = self.session_factory()
        try:
            primary_keys = {}
            for case in cases:
                row = ProbateCase(
                    id=str(uuid.uuid4()),
                    case_id=case.case_id,
                    county=case.county,
                    filing_date=case.filing_date,
                    decedent_name=case.decedent_name,
                    decedent_address=case.decedent_address,
                    case_number=case.case_number,
                    estate_value=case.estate_value,
                    attorney=case.attorney,
                    court_url=case.court_url,
                    source=case.source,
                )
                primary_keys[case.case_id] = row.id
                db.add(row)
            db.flush()
            
            for case_id, contact in contacts:
                db.add(CaseContact(
                    id=str(uuid.uuid4()),
                    case_pk=primary_keys[case_id],
                    type=contact.type,
                    name=contact.name,
                    original_address=contact.address,
                    standardized_address=contact.standardized_address,
                    deliverable=bool(contact.deliverable),
                    phone=contact.phone,
                    phone_source=contact.phone_source,
                    phone_confidence=contact.phone_confidence,
                ))
            
            for case_id, parcel in parcels:
                db.add(CaseParcel(
                    id=str(uuid.uuid4()),
                    case_pk=primary_keys[case_id],
                    parcel_id=parcel.parcel_id,
                    county=parcel.county,
                    situs_address=parcel.situs_address,
                    tax_mailing_address=parcel.tax_mailing_address,
                    current_owner=parcel.current_owner,
                    last_sale_date=parcel.last_sale_date,
                    assessed_value=parcel.assessed_value,
                    legal_description=parcel.legal_description,
                    qpublic_url=parcel.qpublic_url,
                    match_confidence=parcel.match_confidence,
                ))
            
            db.commit()
            logger.info(f"Inserted {len(cases)} cases, {len(contacts)} contacts and {len(parcels)} parcels")
            return len(cases)
        except Exception as e:
            db.rollback()
            logger.error(f"Bulk insert rolled back: {str(e)}")
            raise PersistenceFailure(str(e)) from e
        finally:
            db.close()
    
    def get_case(self, case_id: str) -> Optional[ProbateCase]:
        """Get a stored case by its natural key"""
        db = self.session_factory()
        try:
            return db.query(ProbateCase).filter(ProbateCase.case_id == case_id).first()
        finally:
            db.close()
    
    def list_cases(
        self,
        skip: int = 0,
        limit: Optional[int] = 100,
        county: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[ProbateCase]:
        """List stored cases, newest filings first"""
        db = self.session_factory()
        try:
            query = db.query(ProbateCase)
            if county:
                query = query.filter(ProbateCase.county == county)
            if date_from:
                query = query.filter(ProbateCase.filing_date >= date_from)
            if date_to:
                query = query.filter(ProbateCase.filing_date <= date_to)
            return query.order_by(ProbateCase.filing_date.desc()).offset(skip).limit(limit).all()
        finally:
            db.close()
    
    def record_phone_upload(self, filename: str, records: int) -> str:
        """Store a phone CSV upload record and return its id"""
        db = self.session_factory()
        try:
            upload = PhoneUpload(id=str(uuid.uuid4()), filename=filename, records=records)
            db.add(upload)
            db.commit()
            logger.info(f"Recorded phone upload {filename} with {records} records")
            return upload.id
        except Exception as e:
            db.rollback()
            logger.error(f"Error recording phone upload: {str(e)}")
            raise PersistenceFailure(str(e)) from e
        finally:
            db.close()

from dataclasses import dataclass, field
from typing import List

from loguru import logger

from probate_monitor.schemas.scraped_case import ScrapedCase
from probate_monitor.services.record_repository import RecordRepository

@dataclass
class IngestionResult:
    saved: int = 0
    duplicates: List[str] = field(default_factory=list)

class IngestionSink:
    """Drops cases already stored (by case_id) and persists the rest in one transaction"""

    def __init__(self, repository: RecordRepository):
        self.repository = repository
    
    def ingest(self, cases: List[ScrapedCase]) -> IngestionResult:
        result = IngestionResult()
        
        # Collapse repeats inside the batch before asking storage
        unique = {}
        for case in cases:
            if case.case_id in unique:
                result.duplicates.append(case.case_id)
                continue
            unique[case.case_id] = case
        
        existing = self.repository.exists_by_case_ids(list(unique))
        new_cases = [case for case_id, case in unique.items() if case_id not in existing]
        result.duplicates.extend(case_id for case_id in unique if case_id in existing)
        
        if not new_cases:
            logger.info(f"No new cases to save ({len(result.duplicates)} already stored)")
            return result
        
        contacts = [(case.case_id, contact) for case in new_cases for contact in case.contacts]
        parcels = [(case.case_id, parcel) for case in new_cases for parcel in case.properties]
        
        # PersistenceFailure propagates to the caller; nothing from this batch is visible
        result.saved = self.repository.bulk_insert(new_cases, contacts, parcels)
        logger.info(f"Saved {result.saved} new cases, skipped {len(result.duplicates)} already stored")
        return result

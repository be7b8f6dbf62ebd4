from datetime import date, datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from loguru import logger

from probate_monitor.api.deps import get_repository
from probate_monitor.schemas.probate_case import ProbateCase
from probate_monitor.services.case_export import case_to_dict, cases_to_csv
from probate_monitor.services.record_repository import RecordRepository

router = APIRouter()

@router.get("/", response_model=List[ProbateCase])
def get_cases(
    skip: int = 0,
    limit: int = 100,
    county: Optional[str] = None,
    repository: RecordRepository = Depends(get_repository)
):
    """Get stored cases with their contacts and parcels"""
    return repository.list_cases(skip=skip, limit=limit, county=county)

@router.get("/export")
def export_cases(
    format: Literal["json", "csv"] = "json",
    county: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    repository: RecordRepository = Depends(get_repository)
):
    """Export cases, contacts and parcels as JSON or CSV"""
    try:
        cases = repository.list_cases(skip=0, limit=None, county=county, date_from=date_from, date_to=date_to)
        logger.info(f"Exporting {len(cases)} cases as {format}")
        if format == "csv":
            filename = f"probate-cases-{date.today().isoformat()}.csv"
            return Response(
                content=cases_to_csv(cases),
                media_type="text/csv",
                headers={"Content-Disposition": f'attachment; filename="{filename}"'},
            )
        return {
            "data": [case_to_dict(case) for case in cases],
            "count": len(cases),
            "exported_at": datetime.now().isoformat(),
        }
    except Exception as e:
        logger.error(f"Error exporting cases: {str(e)}")
        logger.exception("Full traceback:")
        raise HTTPException(status_code=500, detail=str(e))

@router.get("/{case_id}", response_model=ProbateCase)
def get_case(case_id: str, repository: RecordRepository = Depends(get_repository)):
    """Get a specific case by its case id"""
    case = repository.get_case(case_id)
    if not case:
        raise HTTPException(status_code=404, detail="Case not found")
    return case

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from loguru import logger

from probate_monitor.api.deps import get_phone_service, get_repository
from probate_monitor.services.phone_service import PhoneService
from probate_monitor.services.record_repository import RecordRepository

router = APIRouter()

@router.post("/upload")
async def upload_phone_csv(
    file: UploadFile = File(...),
    phone_service: PhoneService = Depends(get_phone_service),
    repository: RecordRepository = Depends(get_repository)
):
    """Replace the phone lookup table with an uploaded CSV (name, phone, address)"""
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="File must be CSV format")
    try:
        content = (await file.read()).decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="File must be UTF-8 encoded")
    
    try:
        records = phone_service.upload_csv(content)
        upload_id = repository.record_phone_upload(file.filename, records)
    except Exception as e:
        logger.error(f"Error uploading phone data: {str(e)}")
        logger.exception("Full traceback:")
        raise HTTPException(status_code=500, detail="Failed to process phone data")
    
    return {
        "message": "Phone data uploaded successfully",
        "records_loaded": records,
        "upload_id": upload_id,
    }

@router.get("/status")
def phone_status(phone_service: PhoneService = Depends(get_phone_service)):
    """Current phone provider and size of the CSV table"""
    return {"provider": phone_service.current_provider, "csv_records": phone_service.csv_provider.size}

from typing import Optional
from pydantic import BaseModel

class StandardizedAddress(BaseModel):
    original: Optional[str] = None
    standardized: Optional[str] = None
    deliverable: bool = False
    confidence: float = 0.0
    provider: str = "none"

class PhoneResult(BaseModel):
    phone: str
    source: str
    confidence: float

from typing import List, Optional, Union
from pydantic import AnyHttpUrl, validator, Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Probate Monitor API"
    VERSION: str = "1.0.0"
    DESCRIPTION: str = "API for crawling probate filings, matching them to property parcels and enriching contacts"
    API_V1_STR: str = "/api/v1"
    
    # CORS
    # Set to True to allow requests from any origin (useful for development)
    ALLOW_ALL_ORIGINS: bool = Field(True, env="ALLOW_ALL_ORIGINS")
    
    BACKEND_CORS_ORIGINS: List[Union[str, AnyHttpUrl]] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ]
    
    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)
    
    # Database
    # DATABASE_URL wins over the DB_* parts when set
    DATABASE_URL: Optional[str] = None
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "probate_monitor"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    
    @property
    def sqlalchemy_database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
    
    # Crawl policy
    CRAWL_MAX_RESULTS_PER_SITE: int = 10
    CRAWL_MAX_WORKERS: int = 1
    CRAWL_MAX_PROPERTY_LINKS: int = 3
    POLITE_DELAY_MIN_MS: int = 15000
    POLITE_DELAY_MAX_MS: int = 30000
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_BASE_DELAY_MS: int = 2000
    NAVIGATION_TIMEOUT_MS: int = 30000
    ELEMENT_TIMEOUT_MS: int = 10000
    CAPTCHA_PAUSE_SECONDS: int = 60
    BROWSER_HEADLESS: bool = True
    BROWSER_USER_AGENT: str = 'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
    
    # Admission windows
    ADMISSION_TIMEZONE: str = "America/New_York"
    PROPERTY_LOOKBACK_DAYS: int = 14
    
    # Matching thresholds
    MATCH_NAME_THRESHOLD: float = 0.7
    MATCH_ADDRESS_THRESHOLD: float = 0.8
    MATCH_CONTACT_THRESHOLD: float = 0.7
    MATCH_CONTACT_DISCOUNT: float = 0.9
    
    # Address standardization
    ADDRESS_PROVIDER: str = "free"
    UPS_BASE_URL: Optional[str] = None
    UPS_CLIENT_ID: Optional[str] = None
    UPS_CLIENT_SECRET: Optional[str] = None
    
    # Phone resolution
    PHONE_PROVIDER: str = "csv"
    PHONE_API_BASE_URL: Optional[str] = None
    PHONE_API_KEY: Optional[str] = None
    PHONE_CSV_PATH: Optional[str] = None
    ENRICHMENT_TIMEOUT_SECONDS: int = 15
    
    # Artifacts
    ARTIFACT_DIR: str = "scraped-data"
    CAPTURE_PDF: bool = True
    
    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/app.log"
    LOG_ROTATION: str = "500 MB"
    
    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"  # Allow extra fields in the .env file

settings = Settings()

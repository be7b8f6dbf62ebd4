from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from loguru import logger
from sqlalchemy import inspect

from probate_monitor.core.config import settings
from probate_monitor.core.base import Base

SQLALCHEMY_DATABASE_URL = settings.sqlalchemy_database_url

engine = create_engine(SQLALCHEMY_DATABASE_URL, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def init_db(bind=None):
    """Initialize the database by creating all tables and adding missing columns"""
    bind = bind or engine
    try:
        # Import all models here to avoid circular imports
        from probate_monitor.models.probate_case import ProbateCase
        from probate_monitor.models.case_contact import CaseContact
        from probate_monitor.models.case_parcel import CaseParcel
        from probate_monitor.models.crawl_job import CrawlJob
        from probate_monitor.models.phone_upload import PhoneUpload
        
        Base.metadata.create_all(bind=bind)
        logger.info("Database tables created successfully")
        
        # Check for missing columns and add them
        inspector = inspect(bind)
        for table_name in Base.metadata.tables.keys():
            existing_columns = [col['name'] for col in inspector.get_columns(table_name)]
            table = Base.metadata.tables[table_name]
            
            for column in table.columns:
                if column.name not in existing_columns:
                    logger.info(f"Adding missing column {column.name} to table {table_name}")
                    column_type = column.type.compile(bind.dialect)
                    nullable = "NULL" if column.nullable else "NOT NULL"
                    default = f"DEFAULT {column.default.arg}" if column.default is not None and column.default.is_scalar else ""
                    
                    with bind.connect() as connection:
                        sql = text(f"ALTER TABLE {table_name} ADD COLUMN {column.name} {column_type} {nullable} {default}")
                        connection.execute(sql)
                        connection.commit()
                    
                    logger.info(f"Successfully added column {column.name} to table {table_name}")
        
    except Exception as e:
        logger.error(f"Error initializing database: {str(e)}")
        raise

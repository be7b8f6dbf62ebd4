from loguru import logger

from probate_monitor.core.database import init_db
from probate_monitor.core.logging import configure_logging

if __name__ == "__main__":
    configure_logging()
    try:
        # Create all tables and add any missing columns
        init_db()
        logger.info("Database initialization completed successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

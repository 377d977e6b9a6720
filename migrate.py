"""
Database migration script.
Creates tables: profiles, universities, application_tasks
"""

import logging

from database import get_db_connection, verify_tables_exist

logger = logging.getLogger(__name__)

def create_tables():
    """Create all tables defined in models that are missing."""
    created = verify_tables_exist(get_db_connection())
    logger.info(f"Tables ready (created: {', '.join(created) or 'none'})")

if __name__ == "__main__":
    create_tables()

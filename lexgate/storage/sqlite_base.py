# lexgate/storage/sqlite_base.py
import sqlite3
import logging
from pathlib import Path
from typing import Optional

from ..settings import settings

logger = logging.getLogger(__name__)

IN_MEMORY_DB_PATH = ":memory:"

# Global connection instance to ensure single connection per application lifecycle
_db_connection: Optional[sqlite3.Connection] = None


async def get_sqlite_db_connection() -> sqlite3.Connection:
    """
    Get or create the control-plane SQLite connection.

    Uses a singleton pattern to maintain a single connection throughout
    the application lifecycle. Ensures the database directory exists
    and initializes the schema on first connection.

    Returns:
        sqlite3.Connection: The database connection instance

    Raises:
        sqlite3.Error: If database connection fails
    """
    global _db_connection
    if _db_connection is None:
        try:
            if settings.sqlite_db_path == IN_MEMORY_DB_PATH:
                db_target = IN_MEMORY_DB_PATH
            else:
                db_path = Path(settings.sqlite_db_path).resolve()
                # Ensure the database directory structure exists
                db_path.parent.mkdir(parents=True, exist_ok=True)
                db_target = str(db_path)

            logger.info(f"Attempting to connect to SQLite DB at: {db_target}")

            # Enable thread-safe access for async/FastAPI compatibility
            _db_connection = sqlite3.connect(db_target, check_same_thread=False)
            # Enable column access by name instead of index
            _db_connection.row_factory = sqlite3.Row

            logger.info(f"Successfully connected to SQLite DB: {db_target}")

            await init_sqlite_db(_db_connection)
        except sqlite3.Error as e:
            logger.error(
                f"Error connecting to SQLite database at {settings.sqlite_db_path}: {e}",
                exc_info=True
            )
            raise
    return _db_connection


async def init_sqlite_db(conn: Optional[sqlite3.Connection] = None):
    """
    Initialize the control-plane schema.

    Tenants are never deleted, so the membership table keeps a plain
    reference to the tenant id without cascading rules.
    """
    db_conn = conn or await get_sqlite_db_connection()
    cursor = db_conn.cursor()

    # Tenant directory: one isolated backend per law firm
    cursor.execute('''
    CREATE TABLE IF NOT EXISTS lexgate_tenants (
        tenant_id TEXT PRIMARY KEY,
        display_name TEXT NOT NULL,
        backend_location TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL DEFAULT 'provisioning',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    ''')
    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_lexgate_tenants_status ON lexgate_tenants (status)"
    )
    logger.info("Ensured 'lexgate_tenants' table exists.")

    # Principal to tenant memberships
    cursor.execute('''
    CREATE TABLE IF NOT EXISTS lexgate_tenant_memberships (
        principal_id TEXT NOT NULL,
        tenant_id TEXT NOT NULL REFERENCES lexgate_tenants (tenant_id),
        role TEXT NOT NULL,
        added_at TEXT NOT NULL,
        PRIMARY KEY (principal_id, tenant_id)
    )
    ''')
    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_lexgate_memberships_tenant "
        "ON lexgate_tenant_memberships (tenant_id)"
    )
    logger.info("Ensured 'lexgate_tenant_memberships' table exists.")

    db_conn.commit()
    logger.info("SQLite database schema initialized/verified.")


async def close_sqlite_db_connection():
    """
    Properly close the global SQLite database connection.

    Should be called during application shutdown to ensure
    proper cleanup of database resources.
    """
    global _db_connection
    if _db_connection is not None:
        logger.info("Closing SQLite DB connection.")
        _db_connection.close()
        _db_connection = None
        logger.info("SQLite DB connection closed.")

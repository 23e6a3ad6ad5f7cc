# lexgate/tenants/sqlite_tenant_store.py
import sqlite3
import logging
from typing import Optional, List
from datetime import datetime, timezone

from .storage_interfaces import AbstractTenantDirectory
from .models import TenantRecord, TenantCreate, TenantStatus
from .errors import (
    TenantDirectoryError,
    TenantNotFoundError,
    TenantAlreadyExistsError,
    InvalidTenantTransitionError,
)
from ..storage.sqlite_base import get_sqlite_db_connection
from ..utils.security import FernetEncryptor

logger = logging.getLogger(__name__)

_TENANT_COLUMNS = "tenant_id, display_name, backend_location, status, created_at, updated_at"


def _parse_timestamp(value) -> datetime:
    if isinstance(value, str):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return value


class SQLiteTenantDirectory(AbstractTenantDirectory):
    """SQLite implementation of the tenant directory."""

    def __init__(self, encryptor: Optional[FernetEncryptor] = None):
        # Backend locations are only encrypted when a valid key is configured
        self._encryptor = encryptor if encryptor and encryptor.key_valid else None

    async def initialize(self) -> None:
        """Initialize the directory by ensuring database and tables exist."""
        await get_sqlite_db_connection()
        logger.info(
            f"SQLiteTenantDirectory initialized "
            f"(backend location encryption {'on' if self._encryptor else 'off'})."
        )

    async def teardown(self) -> None:
        """Clean up resources. Connection is managed globally so no action needed."""
        logger.info("SQLiteTenantDirectory teardown (connection managed globally).")

    async def _execute_query(self, query: str, params: tuple = (), commit: bool = True) -> sqlite3.Cursor:
        """
        Execute a SQL query with error handling and transaction management.

        Raises:
            sqlite3.Error: If query execution fails
        """
        conn = await get_sqlite_db_connection()
        cursor = conn.cursor()
        try:
            cursor.execute(query, params)
            if commit:
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"SQLite error executing query '{query}': {e}", exc_info=True)
            if commit:
                conn.rollback()
            raise
        return cursor

    async def _fetchone(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        cursor = await self._execute_query(query, params, commit=False)
        return cursor.fetchone()

    async def _fetchall(self, query: str, params: tuple = ()) -> List[sqlite3.Row]:
        cursor = await self._execute_query(query, params, commit=False)
        return cursor.fetchall()

    def _seal_location(self, backend_location: str) -> str:
        if not backend_location or not self._encryptor:
            return backend_location
        sealed = self._encryptor.encrypt(backend_location)
        if sealed is None:
            raise TenantDirectoryError(500, "Backend location could not be encrypted.")
        return sealed

    def _open_location(self, tenant_id: str, stored_location: str) -> str:
        if not stored_location or not self._encryptor:
            return stored_location
        opened = self._encryptor.decrypt(stored_location)
        if opened is None:
            logger.error(f"Backend location for tenant '{tenant_id}' could not be decrypted.")
            raise TenantDirectoryError(500, "Tenant directory record is unreadable.")
        return opened

    def _row_to_tenant_record(self, row: sqlite3.Row) -> TenantRecord:
        return TenantRecord(
            tenant_id=row["tenant_id"],
            display_name=row["display_name"],
            backend_location=self._open_location(row["tenant_id"], row["backend_location"]),
            status=TenantStatus(row["status"]),
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
        )

    async def create_tenant(self, tenant_create: TenantCreate) -> TenantRecord:
        now = datetime.now(timezone.utc)
        query = f"""
            INSERT INTO lexgate_tenants ({_TENANT_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?)
        """
        params = (
            tenant_create.tenant_id,
            tenant_create.display_name,
            "",
            TenantStatus.PROVISIONING.value,
            now.isoformat(),
            now.isoformat(),
        )
        try:
            await self._execute_query(query, params)
        except sqlite3.IntegrityError:
            raise TenantAlreadyExistsError(tenant_create.tenant_id)

        logger.info(f"Directory: Tenant '{tenant_create.tenant_id}' registered in provisioning state.")
        return TenantRecord(
            tenant_id=tenant_create.tenant_id,
            display_name=tenant_create.display_name,
            backend_location="",
            status=TenantStatus.PROVISIONING,
            created_at=now,
            updated_at=now,
        )

    async def lookup(self, tenant_id: str) -> TenantRecord:
        row = await self._fetchone(
            f"SELECT {_TENANT_COLUMNS} FROM lexgate_tenants WHERE tenant_id = ?",
            (tenant_id,)
        )
        if row is None:
            raise TenantNotFoundError(tenant_id)
        return self._row_to_tenant_record(row)

    async def list_tenants(
        self, skip: int = 0, limit: int = 100, status: Optional[TenantStatus] = None
    ) -> List[TenantRecord]:
        if status is not None:
            query = f"""
                SELECT {_TENANT_COLUMNS} FROM lexgate_tenants
                WHERE status = ?
                ORDER BY created_at DESC
                LIMIT ? OFFSET ?
            """
            params: tuple = (status.value, limit, skip)
        else:
            query = f"""
                SELECT {_TENANT_COLUMNS} FROM lexgate_tenants
                ORDER BY created_at DESC
                LIMIT ? OFFSET ?
            """
            params = (limit, skip)
        rows = await self._fetchall(query, params)
        return [self._row_to_tenant_record(row) for row in rows]

    async def mark_active(self, tenant_id: str, backend_location: str) -> TenantRecord:
        if not backend_location:
            raise ValueError("backend_location must not be empty for an active tenant.")

        current = await self.lookup(tenant_id)
        if current.status != TenantStatus.PROVISIONING:
            raise InvalidTenantTransitionError(
                tenant_id, current.status.value, TenantStatus.ACTIVE.value
            )

        # Guard on status in the UPDATE so a concurrent transition cannot be overwritten
        cursor = await self._execute_query(
            """
            UPDATE lexgate_tenants
            SET status = ?, backend_location = ?, updated_at = ?
            WHERE tenant_id = ? AND status = ?
            """,
            (
                TenantStatus.ACTIVE.value,
                self._seal_location(backend_location),
                datetime.now(timezone.utc).isoformat(),
                tenant_id,
                TenantStatus.PROVISIONING.value,
            )
        )
        if cursor.rowcount == 0:
            latest = await self.lookup(tenant_id)
            raise InvalidTenantTransitionError(
                tenant_id, latest.status.value, TenantStatus.ACTIVE.value
            )

        logger.info(f"Directory: Tenant '{tenant_id}' is now active.")
        return await self.lookup(tenant_id)

    async def suspend(self, tenant_id: str) -> TenantRecord:
        current = await self.lookup(tenant_id)
        if current.status == TenantStatus.SUSPENDED:
            logger.info(f"Directory: Tenant '{tenant_id}' already suspended; nothing to do.")
            return current
        if current.status != TenantStatus.ACTIVE:
            raise InvalidTenantTransitionError(
                tenant_id, current.status.value, TenantStatus.SUSPENDED.value
            )

        await self._execute_query(
            "UPDATE lexgate_tenants SET status = ?, updated_at = ? WHERE tenant_id = ? AND status = ?",
            (
                TenantStatus.SUSPENDED.value,
                datetime.now(timezone.utc).isoformat(),
                tenant_id,
                TenantStatus.ACTIVE.value,
            )
        )
        logger.info(f"Directory: Tenant '{tenant_id}' suspended.")
        return await self.lookup(tenant_id)


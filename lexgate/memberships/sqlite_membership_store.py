# lexgate/memberships/sqlite_membership_store.py
import sqlite3
import logging
from typing import Optional, List
from datetime import datetime

from .models import PrincipalTenantMembership, TenantRole
from .storage_interfaces import AbstractMembershipStore
from ..storage.sqlite_base import get_sqlite_db_connection

logger = logging.getLogger(__name__)


class SQLiteMembershipStore(AbstractMembershipStore):
    """SQLite implementation of the membership store."""

    async def initialize(self) -> None:
        await get_sqlite_db_connection()
        logger.info("SQLiteMembershipStore initialized (tables ensured by sqlite_base).")

    async def teardown(self) -> None:
        logger.info("SQLiteMembershipStore teardown (connection managed globally).")

    async def _execute_query(self, query: str, params: tuple = ()) -> sqlite3.Cursor:
        """Execute a write query with error handling and transaction management."""
        conn = await get_sqlite_db_connection()
        cursor = conn.cursor()
        try:
            cursor.execute(query, params)
            conn.commit()
        except sqlite3.Error as e:
            logger.error(f"SQLite error executing query '{query}': {e}", exc_info=True)
            conn.rollback()
            raise
        return cursor

    async def _fetchall(self, query: str, params: tuple = ()) -> List[sqlite3.Row]:
        conn = await get_sqlite_db_connection()
        cursor = conn.cursor()
        try:
            cursor.execute(query, params)
            return cursor.fetchall()
        except sqlite3.Error as e:
            logger.error(f"SQLite error during fetchall for query '{query}': {e}", exc_info=True)
            raise

    def _row_to_membership(self, row: sqlite3.Row) -> Optional[PrincipalTenantMembership]:
        try:
            role = TenantRole(row["role"])
        except ValueError:
            # Unknown roles are dropped at the boundary instead of being propagated
            logger.warning(
                f"Ignoring membership P:{row['principal_id']} T:{row['tenant_id']} "
                f"with unknown role '{row['role']}'."
            )
            return None
        added_at = row["added_at"]
        if isinstance(added_at, str):
            added_at = datetime.fromisoformat(added_at.replace("Z", "+00:00"))
        return PrincipalTenantMembership(
            principal_id=row["principal_id"],
            tenant_id=row["tenant_id"],
            role=role,
            added_at=added_at,
        )

    async def add_membership(self, membership: PrincipalTenantMembership) -> PrincipalTenantMembership:
        await self._execute_query(
            """
            INSERT INTO lexgate_tenant_memberships (principal_id, tenant_id, role, added_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (principal_id, tenant_id) DO UPDATE SET role = excluded.role
            """,
            (
                membership.principal_id,
                membership.tenant_id,
                membership.role.value,
                membership.added_at.isoformat(),
            )
        )
        logger.info(
            f"Memberships: P:{membership.principal_id} holds role '{membership.role.value}' "
            f"in T:{membership.tenant_id}."
        )
        return membership

    async def get_memberships_for_principal(self, principal_id: str) -> List[PrincipalTenantMembership]:
        rows = await self._fetchall(
            """
            SELECT principal_id, tenant_id, role, added_at
            FROM lexgate_tenant_memberships
            WHERE principal_id = ?
            ORDER BY tenant_id
            """,
            (principal_id,)
        )
        return [m for row in rows if (m := self._row_to_membership(row)) is not None]

    async def list_members(self, tenant_id: str) -> List[PrincipalTenantMembership]:
        rows = await self._fetchall(
            """
            SELECT principal_id, tenant_id, role, added_at
            FROM lexgate_tenant_memberships
            WHERE tenant_id = ?
            ORDER BY added_at
            """,
            (tenant_id,)
        )
        return [m for row in rows if (m := self._row_to_membership(row)) is not None]

    async def remove_membership(self, principal_id: str, tenant_id: str) -> bool:
        cursor = await self._execute_query(
            "DELETE FROM lexgate_tenant_memberships WHERE principal_id = ? AND tenant_id = ?",
            (principal_id, tenant_id)
        )
        return cursor.rowcount > 0

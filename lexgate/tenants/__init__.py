# lexgate/tenants/__init__.py
"""
Tenant directory module.

Data models, directory abstraction with its SQLite implementation, typed
directory errors, and the tenant lifecycle service.
"""

from .models import TenantStatus, TenantCreate, TenantActivate, TenantRecord
from .errors import (
    TenantDirectoryError,
    TenantNotFoundError,
    TenantAlreadyExistsError,
    InvalidTenantTransitionError,
)
from .storage_interfaces import AbstractTenantDirectory
from .sqlite_tenant_store import SQLiteTenantDirectory
from .service import TenantService

__all__ = [
    # Data models
    "TenantStatus",
    "TenantCreate",
    "TenantActivate",
    "TenantRecord",
    # Errors
    "TenantDirectoryError",
    "TenantNotFoundError",
    "TenantAlreadyExistsError",
    "InvalidTenantTransitionError",
    # Directory abstraction and implementation
    "AbstractTenantDirectory",
    "SQLiteTenantDirectory",
    # Business logic service
    "TenantService",
]

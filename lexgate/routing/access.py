# lexgate/routing/access.py
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from ..memberships.models import PrincipalTenantMembership
from ..tenants.models import TenantRecord

logger = logging.getLogger(__name__)

REASON_NOT_A_MEMBER = "not_a_member"
REASON_TENANT_INACTIVE = "tenant_inactive"


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an access check: allowed, or denied with a reason."""
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "AccessDecision":
        return cls(allowed=False, reason=reason)


class AccessVerifier:
    """Decides whether an authenticated principal may be routed to a tenant. Stateless."""

    def verify(
        self,
        principal_id: str,
        tenant: TenantRecord,
        memberships: Iterable[PrincipalTenantMembership],
    ) -> AccessDecision:
        if not tenant.is_active:
            return AccessDecision.deny(REASON_TENANT_INACTIVE)

        for membership in memberships:
            if membership.principal_id == principal_id and membership.tenant_id == tenant.tenant_id:
                return AccessDecision.allow()

        logger.debug(f"Access: P:{principal_id} holds no membership in T:{tenant.tenant_id}.")
        return AccessDecision.deny(REASON_NOT_A_MEMBER)

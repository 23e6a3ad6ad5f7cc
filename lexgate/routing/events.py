# lexgate/routing/events.py
import logging
from abc import ABC, abstractmethod
from collections import deque
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class RoutingOutcome(str, Enum):
    CACHE_HIT = "cache_hit"
    ESTABLISHED = "established"
    TENANT_NOT_FOUND = "tenant_not_found"
    TENANT_INACTIVE = "tenant_inactive"
    ACCESS_DENIED = "access_denied"
    UPSTREAM_TIMEOUT = "upstream_timeout"
    ESTABLISH_FAILED = "establish_failed"
    INTERNAL_ERROR = "internal_error"


class RoutingEvent(BaseModel):
    """One routing decision, as reported to the observability sink."""
    tenant_id: str
    principal_id: str
    outcome: RoutingOutcome
    latency_ms: float
    reason: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def succeeded(self) -> bool:
        return self.outcome in (RoutingOutcome.CACHE_HIT, RoutingOutcome.ESTABLISHED)


class AbstractRoutingEventSink(ABC):
    """Fire-and-forget receiver of routing events. emit() must not block on I/O."""

    @abstractmethod
    def emit(self, event: RoutingEvent) -> None:
        pass


class LoggingRoutingEventSink(AbstractRoutingEventSink):
    """Writes one structured log line per routing decision."""

    def __init__(self, event_logger: Optional[logging.Logger] = None):
        self._logger = event_logger or logging.getLogger("lexgate.routing.events")

    def emit(self, event: RoutingEvent) -> None:
        level = logging.INFO if event.succeeded else logging.WARNING
        self._logger.log(
            level,
            f"[Routing] outcome={event.outcome.value} tenant={event.tenant_id} "
            f"principal={event.principal_id} latency_ms={event.latency_ms:.2f}"
            + (f" reason={event.reason}" if event.reason else ""),
            extra={"routing_event": event.model_dump(mode="json")},
        )


class BufferedRoutingEventSink(LoggingRoutingEventSink):
    """Logs every event and keeps the most recent ones in memory for the admin API."""

    def __init__(self, max_events: int = 1000, event_logger: Optional[logging.Logger] = None):
        super().__init__(event_logger)
        self._events: Deque[RoutingEvent] = deque(maxlen=max_events)

    def emit(self, event: RoutingEvent) -> None:
        self._events.append(event)
        super().emit(event)

    def recent(self, tenant_id: Optional[str] = None, limit: int = 100) -> List[Dict[str, Any]]:
        """Most recent events, oldest first, optionally for one tenant."""
        events = [e for e in self._events if tenant_id is None or e.tenant_id == tenant_id]
        return [e.model_dump(mode="json") for e in events[-limit:]]

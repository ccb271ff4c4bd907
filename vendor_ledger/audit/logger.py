"""
Audit Logger

DESIGN DECISION: Every successful change to the ledger is logged, and so
is every stored file that could not be cleaned up. The document itself
keeps no history; the audit trail does.

The audit logger:
- Always writes a structured local log line
- Appends to an audit store when one is configured
- Never fails the mutation that triggered it
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from vendor_ledger.config import get_settings
from vendor_ledger.errors import StorageFailure
from vendor_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditEventType, AuditSeverity
from vendor_ledger.services.storage import AuditStorageInterface


def configure_logging(debug: bool = False) -> None:
    """Route structlog through stdlib logging and render JSON lines."""
    logging.basicConfig(format="%(message)s", level=logging.DEBUG if debug else logging.INFO)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging(get_settings().app.debug_mode)


class AuditLogger:
    """
    Writes audit events locally and, optionally, to an audit store.

    With no store the trail only exists in the log output.
    """

    def __init__(self, storage: Optional[AuditStorageInterface] = None):
        self._storage = storage
        self._logger = structlog.get_logger("vendor_ledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Record one event.

        Returns False only when the audit store rejected it.
        """
        emit = {
            AuditSeverity.ERROR: self._logger.error,
            AuditSeverity.WARNING: self._logger.warning,
        }.get(event.severity, self._logger.info)
        emit("audit_event", **event.to_log_dict())

        if self._storage is None:
            return True

        try:
            return await self._storage.append_event(event)
        except (StorageFailure, OSError) as e:
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    async def log_change(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        description: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entity_changed(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_binary_cleanup_failed(
        self,
        filename: str,
        contract_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.binary_cleanup_failed(
            filename=filename,
            contract_id=contract_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def history(self, entity_type: str, entity_id: str) -> list[AuditEvent]:
        """Stored events for one entity, oldest first. Empty without a store."""
        if self._storage is None:
            return []
        return await self._storage.get_events_by_entity(entity_type, entity_id)

    async def recent(self, limit: int = 100) -> list[AuditEvent]:
        """Most recent stored events, newest first."""
        if self._storage is None:
            return []
        return await self._storage.get_recent_events(limit)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a multi-step action (an upload stores a file
    and then attaches it) and pass it through each step.
    """
    return uuid4()

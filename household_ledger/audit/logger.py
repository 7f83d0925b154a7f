"""
Audit Logger

DESIGN DECISION: Every write, sign-in and AI exchange is logged.
This provides:
1. Traceability of changes made from the forms and by the assistant
2. Debugging capability when the backend or the AI misbehaves
3. A short activity history the UI can show in debug mode

The audit logger:
- Is async so flows can await it inline
- Never raises (a logging failure must not break a user action)
- Supports correlation IDs to trace related events
"""

from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from household_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Events go to the structured local log and into a bounded in-memory
    history of the most recent events.
    """

    def __init__(self, history_size: int = 100):
        self._logger = structlog.get_logger("household_ledger.audit")
        self._history: deque[AuditEvent] = deque(maxlen=history_size)

    @property
    def recent_events(self) -> list[AuditEvent]:
        """Most recent events, oldest first."""
        return list(self._history)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be written. Never raises.
        """
        self._history.append(event)
        try:
            log_dict = event.to_log_dict()
            if event.severity is AuditSeverity.ERROR:
                self._logger.error("audit_event", **log_dict)
            elif event.severity is AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity is AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # Never let logging break the caller
            try:
                self._logger.error(
                    "audit_log_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
            except Exception:
                pass
            return False
        return True

    async def log_signed_in(self, user_id: str, email: str) -> None:
        await self.log(AuditEventBuilder.signed_in(user_id, email))

    async def log_signed_up(self, user_id: Optional[str], email: str) -> None:
        await self.log(AuditEventBuilder.signed_up(user_id, email))

    async def log_signed_out(self, user_id: Optional[str]) -> None:
        await self.log(AuditEventBuilder.signed_out(user_id))

    async def log_auth_failed(self, email: str, error_message: str) -> None:
        await self.log(AuditEventBuilder.auth_failed(email, error_message))

    async def log_household_loaded(self, family_id: str, counts: dict[str, int]) -> None:
        await self.log(AuditEventBuilder.household_loaded(family_id, counts))

    async def log_created(
        self,
        entity_type: str,
        entity_id: str,
        family_id: Optional[str],
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log creation of a transaction, goal or budget."""
        event = AuditEventBuilder.record_created(
            entity_type=entity_type,
            entity_id=entity_id,
            family_id=family_id,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_bulk_created(
        self,
        count: int,
        family_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.records_bulk_created(
            count=count,
            family_id=family_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_updated(
        self,
        entity_type: str,
        entity_id: str,
        family_id: Optional[str],
        changes: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.record_updated(
            entity_type=entity_type,
            entity_id=entity_id,
            family_id=family_id,
            changes=changes,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_deleted(
        self,
        entity_type: str,
        entity_id: str,
        family_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.record_deleted(
            entity_type=entity_type,
            entity_id=entity_id,
            family_id=family_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_assistant_reply_rejected(
        self,
        raw_text: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a model reply that failed to decode."""
        await self.log(AuditEventBuilder.assistant_reply_rejected(raw_text, correlation_id))

    async def log_assistant_action(
        self,
        action: str,
        entity_id: Optional[str],
        family_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.assistant_action_performed(
            action=action,
            entity_id=entity_id,
            family_id=family_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_ai_text(self, purpose: str, length: int) -> None:
        await self.log(AuditEventBuilder.ai_text_generated(purpose, length))

    async def log_storage_error(
        self,
        operation: str,
        table: str,
        error_message: str,
        family_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed backend read or write."""
        event = AuditEventBuilder.storage_error(
            operation=operation,
            table=table,
            error_message=error_message,
            family_id=family_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., a chat message) and
    pass it through all subsequent operations.
    """
    return uuid4()

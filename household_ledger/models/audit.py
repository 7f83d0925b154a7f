"""
Audit Models for Household Ledger

Every write to the household's records, every sign-in, and every AI
exchange is logged. This provides:
1. Traceability of who changed what, and through which screen
2. Debugging information when a backend or AI call fails
3. A record of every change the assistant made on the user's behalf

DESIGN DECISION: Audit events are structured records, not free text.
They are emitted through structlog so they can be shipped anywhere.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Session
    USER_SIGNED_IN = "user_signed_in"
    USER_SIGNED_UP = "user_signed_up"
    USER_SIGNED_OUT = "user_signed_out"
    AUTH_FAILED = "auth_failed"
    HOUSEHOLD_LOADED = "household_loaded"

    # Transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTIONS_BULK_CREATED = "transactions_bulk_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Goals and budgets
    GOAL_CREATED = "goal_created"
    GOAL_UPDATED = "goal_updated"
    GOAL_DELETED = "goal_deleted"
    BUDGET_SET = "budget_set"
    BUDGET_DELETED = "budget_deleted"

    # Assistant
    ASSISTANT_REPLY_REJECTED = "assistant_reply_rejected"
    ASSISTANT_ACTION_PERFORMED = "assistant_action_performed"
    AI_TEXT_GENERATED = "ai_text_generated"

    # System events
    STORAGE_ERROR = "storage_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What record is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'goal', 'budget')"
    )
    entity_id: Optional[str] = None

    family_id: Optional[str] = Field(
        default=None,
        description="Household the event belongs to"
    )
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate events caused by one user action"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "family_id": self.family_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created("transaction", row_id, family_id)
        event = AuditEventBuilder.storage_error("insert", "transactions", message)
    """

    _CREATED = {
        "transaction": AuditEventType.TRANSACTION_CREATED,
        "goal": AuditEventType.GOAL_CREATED,
        "budget": AuditEventType.BUDGET_SET,
    }
    _UPDATED = {
        "transaction": AuditEventType.TRANSACTION_UPDATED,
        "goal": AuditEventType.GOAL_UPDATED,
        "budget": AuditEventType.BUDGET_SET,
    }
    _DELETED = {
        "transaction": AuditEventType.TRANSACTION_DELETED,
        "goal": AuditEventType.GOAL_DELETED,
        "budget": AuditEventType.BUDGET_DELETED,
    }

    @staticmethod
    def signed_in(user_id: str, email: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_SIGNED_IN,
            entity_type="user",
            entity_id=user_id,
            description=f"User signed in: {email}",
            is_user_action=True,
        )

    @staticmethod
    def signed_up(user_id: Optional[str], email: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_SIGNED_UP,
            entity_type="user",
            entity_id=user_id,
            description=f"User signed up: {email}",
            is_user_action=True,
        )

    @staticmethod
    def signed_out(user_id: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_SIGNED_OUT,
            entity_type="user",
            entity_id=user_id,
            description="User signed out",
            is_user_action=True,
        )

    @staticmethod
    def auth_failed(email: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTH_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            description=f"Authentication failed for {email}",
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def household_loaded(
        family_id: str,
        counts: dict[str, int],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HOUSEHOLD_LOADED,
            entity_type="household",
            entity_id=family_id,
            family_id=family_id,
            description="Household data loaded",
            details=counts,
        )

    @staticmethod
    def record_created(
        entity_type: str,
        entity_id: str,
        family_id: Optional[str],
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventBuilder._CREATED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            family_id=family_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} created",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def records_bulk_created(
        count: int,
        family_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_BULK_CREATED,
            entity_type="transaction",
            family_id=family_id,
            correlation_id=correlation_id,
            description=f"{count} transactions created in bulk",
            details={"count": count},
            is_user_action=True,
        )

    @staticmethod
    def record_updated(
        entity_type: str,
        entity_id: str,
        family_id: Optional[str],
        changes: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventBuilder._UPDATED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            family_id=family_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} updated",
            details={"changes": changes or {}},
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        entity_type: str,
        entity_id: str,
        family_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventBuilder._DELETED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            family_id=family_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} deleted",
            is_user_action=True,
        )

    @staticmethod
    def assistant_reply_rejected(
        raw_text: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ASSISTANT_REPLY_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="assistant",
            correlation_id=correlation_id,
            description="Assistant reply did not match the expected schema",
            details={"raw_text": raw_text[:500]},
        )

    @staticmethod
    def assistant_action_performed(
        action: str,
        entity_id: Optional[str],
        family_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ASSISTANT_ACTION_PERFORMED,
            entity_type="transaction",
            entity_id=entity_id,
            family_id=family_id,
            correlation_id=correlation_id,
            description=f"Assistant performed: {action}",
            details={"action": action},
        )

    @staticmethod
    def ai_text_generated(purpose: str, length: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AI_TEXT_GENERATED,
            severity=AuditSeverity.DEBUG,
            entity_type="assistant",
            description=f"AI {purpose} generated",
            details={"purpose": purpose, "length": length},
        )

    @staticmethod
    def storage_error(
        operation: str,
        table: str,
        error_message: str,
        family_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            entity_type=table,
            family_id=family_id,
            correlation_id=correlation_id,
            description=f"Storage error during {operation} on {table}",
            error_message=error_message,
            details={"operation": operation, "table": table},
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )

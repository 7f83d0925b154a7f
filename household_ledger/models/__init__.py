"""
Data Models Package

This package contains all Pydantic models used in Household Ledger.
All data flowing between the UI, the backend and the AI must conform to
these schemas.
"""

from household_ledger.models.finance import (
    ALL_CATEGORIES,
    BOTH_PERSON,
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    OTHER_CATEGORY,
    Budget,
    BudgetDraft,
    ChatMessage,
    ChatSender,
    FamilyMember,
    Flow,
    Goal,
    GoalChanges,
    GoalDraft,
    Profile,
    Session,
    Theme,
    Transaction,
    TransactionChanges,
    TransactionDraft,
    TransactionKind,
    canonical_category,
    categories_for,
    person_options,
)
from household_ledger.models.assistant import (
    ASSISTANT_RESPONSE_SCHEMA,
    AddTransaction,
    AnswerQuery,
    AssistantAction,
    AssistantReply,
    DeleteTransaction,
    NewTransactionPayload,
    TransactionIdentifier,
    UpdateTransaction,
    decode_assistant_reply,
)
from household_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "ALL_CATEGORIES",
    "BOTH_PERSON",
    "EXPENSE_CATEGORIES",
    "INCOME_CATEGORIES",
    "OTHER_CATEGORY",
    "Budget",
    "BudgetDraft",
    "ChatMessage",
    "ChatSender",
    "FamilyMember",
    "Flow",
    "Goal",
    "GoalChanges",
    "GoalDraft",
    "Profile",
    "Session",
    "Theme",
    "Transaction",
    "TransactionChanges",
    "TransactionDraft",
    "TransactionKind",
    "canonical_category",
    "categories_for",
    "person_options",
    # Assistant models
    "ASSISTANT_RESPONSE_SCHEMA",
    "AddTransaction",
    "AnswerQuery",
    "AssistantAction",
    "AssistantReply",
    "DeleteTransaction",
    "NewTransactionPayload",
    "TransactionIdentifier",
    "UpdateTransaction",
    "decode_assistant_reply",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]

"""AI Agents package."""

from household_ledger.agents.assistant import (
    AssistantError,
    AssistantUnavailableError,
    FinanceAssistantAgent,
)

__all__ = [
    "AssistantError",
    "AssistantUnavailableError",
    "FinanceAssistantAgent",
]

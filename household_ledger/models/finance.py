"""
Core Data Models for Household Ledger

These models define the schemas for every record we exchange with the
backend. They are designed to:
1. Decode backend rows strictly (wrong shapes fail loudly)
2. Validate user input before it is written
3. Serialize back to the exact column names the tables use

DESIGN DECISION: Rows are persisted verbatim in the remote tables, so the
models keep the stored column names as aliases (``type``, ``targetAmount``,
``currentAmount``) and expose pythonic attribute names in code.
"""

import datetime as dt
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


# =============================================================================
# ENUMS AND CONSTANTS
# =============================================================================

class Flow(str, Enum):
    """Whether money comes in or goes out."""
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def label(self) -> str:
        return "Income" if self is Flow.INCOME else "Expense"


class TransactionKind(str, Enum):
    """
    Recurring versus discretionary spending.

    The stored values match the existing ``transactions.type`` column.
    """
    FIXED = "fixo"
    VARIABLE = "variável"

    @property
    def label(self) -> str:
        return "Fixed" if self is TransactionKind.FIXED else "Variable"


class Theme(str, Enum):
    """Display theme."""
    LIGHT = "light"
    DARK = "dark"

    def toggled(self) -> "Theme":
        return Theme.DARK if self is Theme.LIGHT else Theme.LIGHT


EXPENSE_CATEGORIES = [
    "Food",
    "Monthly Groceries",
    "Housing",
    "Leisure",
    "Medical",
    "Transport",
    "Credit Card",
    "Church",
    "Debts",
    "Pharmacy",
    "Other",
]

INCOME_CATEGORIES = [
    "Salary",
    "Freelance",
    "Services",
    "Other",
]

# Union of both lists, first occurrence order
ALL_CATEGORIES = list(dict.fromkeys(EXPENSE_CATEGORIES + INCOME_CATEGORIES))

OTHER_CATEGORY = "Other"

# Person label for expenses shared by the whole household
BOTH_PERSON = "Both"


def categories_for(flow: Flow) -> list[str]:
    """Categories offered for a given flow."""
    return list(EXPENSE_CATEGORIES if flow is Flow.EXPENSE else INCOME_CATEGORIES)


def canonical_category(name: Optional[str]) -> Optional[str]:
    """
    Match a category name case-insensitively against the known list.

    Returns the canonical spelling, or None when the name is unknown.
    """
    if not isinstance(name, str) or not name:
        return None
    wanted = name.strip().casefold()
    for category in ALL_CATEGORIES:
        if category.casefold() == wanted:
            return category
    return None


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionDraft(BaseModel):
    """
    A transaction that has not been persisted yet.

    This is what forms, bulk entry and the assistant produce.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="What the money was for"
    )
    amount: float = Field(
        ...,
        gt=0,
        description="Amount in BRL"
    )
    category: str = Field(
        default=OTHER_CATEGORY,
        min_length=1,
    )
    person: str = Field(
        default=BOTH_PERSON,
        min_length=1,
        description="Household member the transaction belongs to, or 'Both'"
    )
    kind: TransactionKind = Field(
        default=TransactionKind.VARIABLE,
        alias="type",
    )
    flow: Flow = Flow.EXPENSE
    date: dt.date = Field(default_factory=dt.date.today)
    family_id: Optional[str] = None

    def to_row(self) -> dict:
        """Convert to a row for the ``transactions`` table."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Transaction(BaseModel):
    """
    A persisted transaction, as echoed back by the backend.

    Amounts read back are trusted as-is: the backend is the source of truth.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    id: str
    description: str = ""
    amount: float
    category: str
    person: str
    kind: TransactionKind = Field(
        default=TransactionKind.VARIABLE,
        alias="type",
    )
    flow: Flow
    date: dt.date
    family_id: Optional[str] = None

    @property
    def is_income(self) -> bool:
        return self.flow is Flow.INCOME

    @property
    def is_expense(self) -> bool:
        return self.flow is Flow.EXPENSE

    @property
    def signed_amount(self) -> float:
        return self.amount if self.is_income else -self.amount

    def to_row(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TransactionChanges(BaseModel):
    """
    Partial update for a transaction.

    Only fields that are set are sent to the backend.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    amount: Optional[float] = Field(default=None, gt=0)
    category: Optional[str] = Field(default=None, min_length=1)
    person: Optional[str] = Field(default=None, min_length=1)
    kind: Optional[TransactionKind] = Field(default=None, alias="type")
    flow: Optional[Flow] = None

    @model_validator(mode='after')
    def require_some_change(self) -> 'TransactionChanges':
        if not self.to_row():
            raise ValueError("At least one field must be changed")
        return self

    def to_row(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# GOALS AND BUDGETS
# =============================================================================

class GoalDraft(BaseModel):
    """A savings goal before it is persisted."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    name: str = Field(
        ...,
        min_length=1,
        max_length=120,
        description="What the household is saving for"
    )
    target_amount: float = Field(
        ...,
        gt=0,
        alias="targetAmount",
    )
    current_amount: float = Field(
        default=0.0,
        ge=0,
        alias="currentAmount",
    )
    family_id: Optional[str] = None

    def to_row(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Goal(BaseModel):
    """A persisted savings goal."""
    model_config = ConfigDict(
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    id: str
    name: str
    target_amount: float = Field(alias="targetAmount")
    current_amount: float = Field(default=0.0, alias="currentAmount")
    family_id: Optional[str] = None

    def to_row(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class GoalChanges(BaseModel):
    """Partial update for a goal (rename, new target, new saved amount)."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    target_amount: Optional[float] = Field(default=None, gt=0, alias="targetAmount")
    current_amount: Optional[float] = Field(default=None, ge=0, alias="currentAmount")

    @model_validator(mode='after')
    def require_some_change(self) -> 'GoalChanges':
        if not self.to_row():
            raise ValueError("At least one field must be changed")
        return self

    def to_row(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class BudgetDraft(BaseModel):
    """A monthly spending limit for one category, before it is persisted."""
    model_config = ConfigDict(str_strip_whitespace=True)

    category: str = Field(..., min_length=1)
    amount: float = Field(
        ...,
        gt=0,
        description="Monthly limit in BRL"
    )
    family_id: Optional[str] = None

    def to_row(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class Budget(BaseModel):
    """
    A persisted budget row.

    One row per category by convention - the backend does not enforce it.
    """
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    category: str
    amount: float
    family_id: Optional[str] = None

    @property
    def limit(self) -> float:
        return self.amount

    def to_row(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


# =============================================================================
# PEOPLE
# =============================================================================

class FamilyMember(BaseModel):
    """A household member as shown in person pickers and splits."""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    display_name: str


class Profile(BaseModel):
    """A row of the ``profiles`` table."""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    display_name: Optional[str] = None
    family_id: Optional[str] = None

    def as_member(self) -> FamilyMember:
        return FamilyMember(id=self.id, display_name=self.display_name or "")


def person_options(members: list[FamilyMember]) -> list[str]:
    """Member names followed by the shared 'Both' label."""
    return [member.display_name for member in members] + [BOTH_PERSON]


class Session(BaseModel):
    """An authenticated user session issued by the auth service."""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    user_id: str
    email: str = ""
    access_token: str = Field(default="", repr=False)


# =============================================================================
# CHAT
# =============================================================================

class ChatSender(str, Enum):
    USER = "user"
    AI = "ai"
    SYSTEM = "system"


class ChatMessage(BaseModel):
    """One entry of the assistant conversation."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    sender: ChatSender
    text: str
    created_at: dt.datetime = Field(default_factory=dt.datetime.now)

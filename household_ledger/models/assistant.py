"""
Assistant Reply Models

The chat assistant answers with JSON constrained to a fixed schema. The
``action`` field is the discriminator that selects what the application
does next.

CRITICAL: The model's output is EXTERNAL input. It is decoded as a tagged
union and anything that does not match exactly - bad JSON, an unknown
action, a missing payload field - decodes to ``None``. Callers treat
``None`` as "could not understand" and never write to the backend.
"""

import datetime as dt
import json
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from household_ledger.models.finance import (
    ALL_CATEGORIES,
    OTHER_CATEGORY,
    Flow,
    TransactionChanges,
    TransactionKind,
    canonical_category,
)


class AssistantAction(str, Enum):
    """Actions the assistant may ask the application to perform."""
    ANSWER_QUERY = "answerQuery"
    ADD_TRANSACTION = "addTransaction"
    UPDATE_TRANSACTION = "updateTransaction"
    DELETE_TRANSACTION = "deleteTransaction"


class TransactionIdentifier(BaseModel):
    """How the assistant points at an existing transaction."""
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(
        ...,
        min_length=1,
        description="Text expected to appear in the transaction description"
    )


class TransactionUpdatePayload(BaseModel):
    identifier: TransactionIdentifier
    updates: TransactionChanges

    @field_validator('updates')
    @classmethod
    def known_category_only(cls, v: TransactionChanges) -> TransactionChanges:
        """Updates may not invent categories."""
        if v.category is not None:
            category = canonical_category(v.category)
            if category is None:
                raise ValueError(f"Unknown category: {v.category}")
            v.category = category
        return v


class NewTransactionPayload(BaseModel):
    """
    A transaction the assistant wants to record.

    Unset optional fields get the same defaults as the bulk entry screen.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    description: str = Field(..., min_length=1, max_length=200)
    amount: float = Field(..., gt=0)
    flow: Flow = Flow.EXPENSE
    category: str = OTHER_CATEGORY
    person: Optional[str] = None
    kind: TransactionKind = Field(default=TransactionKind.VARIABLE, alias="type")
    date: Optional[dt.date] = None

    @field_validator('category', mode='before')
    @classmethod
    def normalize_category(cls, v):
        """Unknown or missing categories become 'Other'; a non-string is left to fail."""
        if v is not None and not isinstance(v, str):
            return v
        return canonical_category(v) or OTHER_CATEGORY


class AnswerQuery(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    action: Literal["answerQuery"]
    answer: str = Field(..., min_length=1)


class AddTransaction(BaseModel):
    action: Literal["addTransaction"]
    transaction: NewTransactionPayload


class UpdateTransaction(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: Literal["updateTransaction"]
    transaction_update: TransactionUpdatePayload = Field(alias="transactionUpdate")


class DeleteTransaction(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: Literal["deleteTransaction"]
    transaction_identifier: TransactionIdentifier = Field(alias="transactionIdentifier")


AssistantReply = Annotated[
    Union[AnswerQuery, AddTransaction, UpdateTransaction, DeleteTransaction],
    Field(discriminator="action"),
]

_reply_adapter: TypeAdapter[AssistantReply] = TypeAdapter(AssistantReply)


def extract_json_object(text: str) -> Optional[str]:
    """
    Return the outermost ``{...}`` span of a model response.

    Models occasionally wrap JSON in prose or code fences even when asked
    not to.
    """
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}") + 1
    if start >= 0 and end > start:
        return text[start:end]
    return None


def decode_assistant_reply(text: str) -> Optional[AssistantReply]:
    """
    Decode raw model output into an assistant reply.

    Returns None on ANY mismatch. Never raises.
    """
    json_str = extract_json_object(text)
    if json_str is None:
        return None
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    try:
        return _reply_adapter.validate_python(data)
    except ValidationError:
        return None


# Response schema sent with every chat request, in the Gemini schema dialect
ASSISTANT_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "action": {
            "type": "STRING",
            "format": "enum",
            "enum": [action.value for action in AssistantAction],
        },
        "answer": {"type": "STRING"},
        "transaction": {
            "type": "OBJECT",
            "properties": {
                "description": {"type": "STRING"},
                "amount": {"type": "NUMBER"},
                "flow": {
                    "type": "STRING",
                    "format": "enum",
                    "enum": [flow.value for flow in Flow],
                },
                "category": {
                    "type": "STRING",
                    "format": "enum",
                    "enum": ALL_CATEGORIES,
                },
                "person": {"type": "STRING"},
            },
        },
        "transactionUpdate": {
            "type": "OBJECT",
            "properties": {
                "identifier": {
                    "type": "OBJECT",
                    "properties": {"description": {"type": "STRING"}},
                },
                "updates": {
                    "type": "OBJECT",
                    "properties": {
                        "amount": {"type": "NUMBER"},
                        "category": {
                            "type": "STRING",
                            "format": "enum",
                            "enum": ALL_CATEGORIES,
                        },
                        "person": {"type": "STRING"},
                        "description": {"type": "STRING"},
                    },
                },
            },
        },
        "transactionIdentifier": {
            "type": "OBJECT",
            "properties": {"description": {"type": "STRING"}},
        },
    },
    "required": ["action"],
}

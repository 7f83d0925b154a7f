"""
Bulk Expense Entry

Users paste a list of expenses, one per line, in the form

    Supermarket: R$ 350,50
    Bakery: R$ 25,00

Each matching line becomes an expense draft (category "Other", person
"Both", variable) that the user completes before saving all of them at once.

IMPORTANT: Parsing NEVER guesses. Lines that don't match the pattern, or
whose amount isn't a positive number, are reported back as skipped instead
of being silently dropped.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from pydantic import ValidationError

from household_ledger.models.finance import (
    BOTH_PERSON,
    OTHER_CATEGORY,
    Flow,
    TransactionDraft,
    TransactionKind,
)


LINE_PATTERN = re.compile(
    r"^(?P<description>.+?):\s*(?:R?\$)?\s*(?P<amount>\d[\d.,]*)\s*$"
)


@dataclass
class BulkParseResult:
    drafts: list[TransactionDraft] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def parse_brl_amount(text: str) -> Optional[float]:
    """
    Parse an amount written in Brazilian notation.

    "1.234,56" -> 1234.56, "350,5" -> 350.5, "1.500" -> 1500.0.
    Without a comma, a single dot followed by one or two digits is read as
    a decimal point ("25.90" -> 25.9).

    Returns None when the text is not a number.
    """
    text = text.strip()
    if not text or not re.fullmatch(r"[\d.,]+", text):
        return None

    if "," in text:
        if text.count(",") > 1:
            return None
        normalized = text.replace(".", "").replace(",", ".")
    else:
        parts = text.split(".")
        if len(parts) == 2 and len(parts[1]) in (1, 2):
            normalized = text
        else:
            normalized = text.replace(".", "")

    try:
        return float(normalized)
    except ValueError:
        return None


def parse_line(line: str) -> Optional[TransactionDraft]:
    """Parse one pasted line into an expense draft, or None."""
    match = LINE_PATTERN.match(line.strip())
    if not match:
        return None

    amount = parse_brl_amount(match.group("amount"))
    if amount is None:
        return None

    try:
        return TransactionDraft(
            description=match.group("description"),
            amount=amount,
            category=OTHER_CATEGORY,
            person=BOTH_PERSON,
            kind=TransactionKind.VARIABLE,
            flow=Flow.EXPENSE,
        )
    except ValidationError:
        # Zero amounts and over-long descriptions end up here
        return None


def parse_bulk_text(text: str) -> BulkParseResult:
    """Parse pasted text. Blank lines are ignored, unparseable ones reported."""
    result = BulkParseResult()
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        draft = parse_line(line)
        if draft is None:
            result.skipped.append(line)
        else:
            result.drafts.append(draft)
    return result

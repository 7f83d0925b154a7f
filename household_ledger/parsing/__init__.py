"""Text parsing package."""

from household_ledger.parsing.bulk_entry import (
    BulkParseResult,
    parse_brl_amount,
    parse_bulk_text,
    parse_line,
)

__all__ = [
    "BulkParseResult",
    "parse_brl_amount",
    "parse_bulk_text",
    "parse_line",
]

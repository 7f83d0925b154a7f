"""
Household Ledger - Source Package

A shared finance tracker for couples: income and expenses, savings goals,
monthly category budgets, and an AI assistant that reads (and makes small
changes to) the household's records.

DESIGN PRINCIPLES:
1. The backend owns the data - we only hold the last fetched copy
2. Aggregations are pure functions over that copy
3. AI output is decoded strictly - anything unexpected fails closed
4. A failed action never corrupts the state we already have
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Household Ledger Team"

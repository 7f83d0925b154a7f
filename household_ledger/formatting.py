"""
Display helpers.

Amounts are Brazilian reais and are shown the Brazilian way:
``R$ 1.234,56``. Month names are English.
"""

import datetime as dt


MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def format_currency(value: float) -> str:
    """
    Format an amount as BRL.

    >>> format_currency(1234.56)
    'R$ 1.234,56'
    >>> format_currency(-50)
    '-R$ 50,00'
    """
    sign = "-" if value < 0 and round(abs(value), 2) != 0 else ""
    grouped = f"{abs(value):,.2f}"  # 1,234.56
    brl = grouped.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {brl}"


def format_short_date(value: dt.date) -> str:
    """dd/mm, e.g. 05/10."""
    return value.strftime("%d/%m")


def format_month_year(year: int, month: int) -> str:
    """e.g. October 2026."""
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {month}")
    return f"{MONTH_NAMES[month - 1]} {year}"


def display_name_from_email(email: str) -> str:
    """Default display name: the email's local part, capitalized."""
    local = (email or "").split("@", 1)[0].strip()
    if not local:
        return ""
    return local[0].upper() + local[1:]


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move a (year, month) pair by ``delta`` months."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1

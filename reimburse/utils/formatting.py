from datetime import date
from decimal import Decimal
from typing import Optional

from reimburse.schemas.reimbursement import CENTS


def format_currency(amount: Decimal) -> str:
    """1234.5 -> 'R$ 1.234,50'"""
    value = Decimal(amount).quantize(CENTS)
    sign = "-" if value < 0 else ""
    text = f"{abs(value):,.2f}"
    text = text.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {text}"


def format_date(value: Optional[date]) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")

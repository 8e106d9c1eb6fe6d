from decimal import Decimal

from reimburse.core.errors import ValidationError
from reimburse.schemas.reimbursement import (
    ReimbursementCategory,
    ReimbursementFields,
    parse_amount,
    parse_category,
    parse_date,
)

DEFAULT_CATEGORY = ReimbursementCategory.FUEL


def _check_amount(value) -> Decimal:
    if value is None or value == "":
        raise ValidationError("amount", "Amount is required.")
    try:
        amount = parse_amount(value)
    except ValueError:
        raise ValidationError("amount", "Amount must be a number.")
    if amount <= 0:
        raise ValidationError("amount", "Amount must be greater than zero.")
    return amount


def _check_description(value) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError("description", "Description is required.")
    return text


def _check_expense_date(value):
    if value is None or value == "":
        raise ValidationError("expense_date", "Expense date is required.")
    try:
        return parse_date(value)
    except ValueError:
        raise ValidationError("expense_date", "Expense date is not a valid date.")


def _check_category(value) -> ReimbursementCategory:
    try:
        return parse_category(value)
    except ValueError:
        raise ValidationError("category", f"Unknown category: {value}.")


CHECKS = (
    ("amount", _check_amount),
    ("description", _check_description),
    ("expense_date", _check_expense_date),
    ("category", _check_category),
)


def validate_fields(fields: ReimbursementFields, partial: bool = False) -> ReimbursementFields:
    """Valida y normaliza los campos en el orden importe, descripción, fecha.

    Con ``partial=True`` (edición) solo se validan los campos enviados, pero
    un campo enviado vacío sigue siendo un error.
    Devuelve un ``ReimbursementFields`` nuevo con valores normalizados.
    """
    sent = fields.dict(exclude_unset=True)
    if not partial and sent.get("category") is None:
        sent["category"] = DEFAULT_CATEGORY

    clean = {}
    for name, check in CHECKS:
        if partial and name not in sent:
            continue
        clean[name] = check(sent.get(name))

    if "justification" in sent or not partial:
        justification = (sent.get("justification") or "").strip()
        clean["justification"] = justification or None

    return ReimbursementFields(**clean)

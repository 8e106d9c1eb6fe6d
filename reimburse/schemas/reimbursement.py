# schemas/reimbursement.py
"""
Tipo canónico de una solicitud de reembolso y funciones de mapeo con el backend.

El backend usa nombres de campo en portugués y no siempre los mismos
(``valor`` / ``valorReembolso``, ``dataDespesa`` / ``dataReembolso``...).
Solo este módulo conoce esas variantes; el resto del código trabaja con
``Reimbursement``.
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from reimburse.core.errors import RemoteError

CENTS = Decimal("0.01")
# 1.234 o 12.345.678: puntos como separador de miles (pt-BR)
THOUSANDS_RE = re.compile(r"^[-+]?\d{1,3}(\.\d{3})+$")


class ReimbursementStatus(str, Enum):
    DRAFT = "Draft"
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"

    @property
    def wire(self) -> str:
        return STATUS_TO_WIRE[self]


STATUS_TO_WIRE = {
    ReimbursementStatus.DRAFT: "Rascunho",
    ReimbursementStatus.PENDING: "Pendente",
    ReimbursementStatus.APPROVED: "Aprovado",
    ReimbursementStatus.REJECTED: "Rejeitado",
}

_STATUS_LOOKUP = {label.lower(): status for status, label in STATUS_TO_WIRE.items()}
_STATUS_LOOKUP.update({status.value.lower(): status for status in ReimbursementStatus})


def parse_status(value: Any) -> ReimbursementStatus:
    if isinstance(value, ReimbursementStatus):
        return value
    status = _STATUS_LOOKUP.get(str(value or "").strip().lower())
    if status is None:
        raise ValueError(f"Unknown status: {value!r}")
    return status


class ReimbursementCategory(str, Enum):
    FUEL = "Combustível"
    MEALS = "Alimentação"
    TRANSPORT = "Transporte"
    LODGING = "Hospedagem"
    OFFICE_SUPPLIES = "Material de Escritório"
    OTHER = "Outros"


# Etiquetas antiguas que todavía aparecen en registros del backend
_CATEGORY_ALIASES = {
    "material": ReimbursementCategory.OFFICE_SUPPLIES,
    "refeição": ReimbursementCategory.MEALS,
}
_CATEGORY_LOOKUP = {c.value.lower(): c for c in ReimbursementCategory}
_CATEGORY_LOOKUP.update({c.name.lower(): c for c in ReimbursementCategory})
_CATEGORY_LOOKUP.update(_CATEGORY_ALIASES)


def parse_category(value: Any) -> ReimbursementCategory:
    if isinstance(value, ReimbursementCategory):
        return value
    category = _CATEGORY_LOOKUP.get(str(value or "").strip().lower())
    if category is None:
        raise ValueError(f"Unknown category: {value!r}")
    return category


DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y")


def parse_date(value: Any) -> date:
    """Acepta date, datetime, ISO (con o sin hora) y dd/mm/aaaa."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not text:
        raise ValueError("empty date")
    if "T" in text:
        text = text.split("T", 1)[0]
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unresolvable date: {value!r}")


def parse_amount(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, float):
        # pasar por str evita arrastrar el error binario del float
        amount = Decimal(repr(value))
    else:
        text = str(value if value is not None else "").strip()
        if "," in text:
            # formato pt-BR: 1.234,56
            text = text.replace(".", "").replace(",", ".")
        elif THOUSANDS_RE.match(text):
            text = text.replace(".", "")
        try:
            amount = Decimal(text)
        except InvalidOperation:
            raise ValueError(f"Invalid amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    try:
        return amount.quantize(CENTS)
    except InvalidOperation:
        # demasiados dígitos para el contexto decimal
        raise ValueError(f"Amount out of range: {value!r}")


class Reimbursement(BaseModel):
    id: str
    code: str
    requester_name: str = ""
    owner_id: Optional[str] = None
    category: ReimbursementCategory
    amount: Decimal
    description: str
    justification: Optional[str] = None
    expense_date: Optional[date] = None
    status: ReimbursementStatus
    created_at: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    attachment_url: Optional[str] = None

    class Config:
        frozen = True


class ReimbursementFields(BaseModel):
    """Campos editables. Los tipos son laxos a propósito: la validación
    propia (services/validation.py) decide el orden y el mensaje de error."""

    category: Optional[Any] = None
    amount: Optional[Any] = None
    description: Optional[str] = None
    justification: Optional[str] = None
    expense_date: Optional[Any] = None


def _first(payload: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def from_wire(payload: Dict[str, Any]) -> Reimbursement:
    """Convierte un registro del backend al tipo canónico."""
    usuario = payload.get("usuario") or {}
    try:
        raw_date = _first(payload, "dataDespesa", "dataReembolso")
        owner_id = _first(payload, "usuarioId", "userId") or usuario.get("id")
        return Reimbursement(
            id=str(payload["id"]),
            code=str(_first(payload, "idReembolso", "codigo") or payload["id"]),
            requester_name=_first(usuario, "nome", "name") or payload.get("nomeFuncionario") or "",
            owner_id=str(owner_id) if owner_id is not None else None,
            category=parse_category(payload.get("categoria")),
            amount=parse_amount(_first(payload, "valor", "valorReembolso") or 0),
            description=payload.get("descricao") or "",
            justification=_first(payload, "justificativa", "observacoes"),
            expense_date=parse_date(raw_date) if raw_date else None,
            status=parse_status(payload.get("status")),
            created_at=_first(payload, "dataCriacao", "createdAt"),
            last_modified=_first(payload, "ultimaAtualizacao", "updatedAt"),
            attachment_url=_first(payload, "comprovanteUrl", "comprovante"),
        )
    except (KeyError, ValueError, PydanticValidationError) as exc:
        raise RemoteError(f"Unexpected reimbursement payload from server: {exc}") from exc


def _content_payload(fields: ReimbursementFields) -> Dict[str, Any]:
    data = fields.dict(exclude_unset=True)
    payload: Dict[str, Any] = {}
    if "category" in data:
        payload["categoria"] = parse_category(data["category"]).value
    if "description" in data:
        payload["descricao"] = data["description"]
    if "justification" in data:
        payload["justificativa"] = data["justification"]
    if "amount" in data:
        payload["valor"] = float(parse_amount(data["amount"]))
    if "expense_date" in data:
        payload["dataDespesa"] = parse_date(data["expense_date"]).isoformat()
    return payload


def to_create_payload(fields: ReimbursementFields, status: ReimbursementStatus) -> Dict[str, Any]:
    payload = {
        "categoria": parse_category(fields.category).value,
        "descricao": fields.description,
        "justificativa": fields.justification or "",
        "valor": float(parse_amount(fields.amount)),
        "dataDespesa": parse_date(fields.expense_date).isoformat(),
        "status": status.wire,
    }
    return payload


def to_update_payload(fields: ReimbursementFields) -> Dict[str, Any]:
    return _content_payload(fields)


def to_status_payload(status: ReimbursementStatus) -> Dict[str, Any]:
    return {"status": status.wire}

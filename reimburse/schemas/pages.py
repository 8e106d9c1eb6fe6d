# schemas/pages.py
# Formularios y respuestas de la capa de páginas (nombres de campo del frontend)

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel

from reimburse.schemas.reimbursement import Reimbursement, ReimbursementFields
from reimburse.services.list_projection import RowActions
from reimburse.services.notifications import Notification
from reimburse.utils.formatting import format_currency, format_date

FORM_FIELDS = {
    "categoria": "category",
    "valor": "amount",
    "descricao": "description",
    "justificativa": "justification",
    "dataDespesa": "expense_date",
}


class SubmitAction(str, Enum):
    SUBMIT = "enviar"
    DRAFT = "rascunho"


class ReimbursementForm(BaseModel):
    categoria: Optional[Any] = None
    valor: Optional[Any] = None
    descricao: Optional[str] = None
    justificativa: Optional[str] = None
    dataDespesa: Optional[Any] = None

    def to_fields(self) -> ReimbursementFields:
        sent = self.dict(exclude_unset=True)
        return ReimbursementFields(
            **{FORM_FIELDS[key]: value for key, value in sent.items() if key in FORM_FIELDS}
        )


class NewReimbursementForm(ReimbursementForm):
    acao: SubmitAction = SubmitAction.SUBMIT


class EditReimbursementForm(ReimbursementForm):
    enviar: bool = False


class ReimbursementRow(BaseModel):
    id: str
    code: str
    requester_name: str
    category: str
    amount: Decimal
    amount_display: str
    description: str
    justification: Optional[str]
    expense_date: Optional[date]
    expense_date_display: str
    status: str
    status_label: str
    created_at: Optional[datetime]
    last_modified: Optional[datetime]
    attachment_url: Optional[str]
    actions: RowActions


def to_row(record: Reimbursement, actions: RowActions) -> ReimbursementRow:
    return ReimbursementRow(
        id=record.id,
        code=record.code,
        requester_name=record.requester_name or "Unknown",
        category=record.category.value,
        amount=record.amount,
        amount_display=format_currency(record.amount),
        description=record.description,
        justification=record.justification,
        expense_date=record.expense_date,
        expense_date_display=format_date(record.expense_date),
        status=record.status.value,
        status_label=record.status.wire,
        created_at=record.created_at,
        last_modified=record.last_modified,
        attachment_url=record.attachment_url,
        actions=actions,
    )


class ListPageRead(BaseModel):
    items: List[ReimbursementRow]
    page: int
    total_pages: int
    count: int
    page_size: int
    loading: bool = False


class ActionResult(BaseModel):
    notification: Notification
    id: Optional[str] = None
    item: Optional[ReimbursementRow] = None

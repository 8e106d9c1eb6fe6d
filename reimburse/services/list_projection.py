# services/list_projection.py
"""
Vista filtrada y paginada de la lista de reembolsos.

El orden de salida es siempre el orden en que el backend devolvió los
registros: aquí no se reordena nada.
"""

import math
from typing import List, Optional, Sequence, Set, Union

from pydantic import BaseModel

from reimburse.schemas.reimbursement import (
    Reimbursement,
    ReimbursementCategory,
    ReimbursementStatus,
    parse_status,
)
from reimburse.schemas.user import Actor
from reimburse.services import lifecycle

ALL = "All"
PAGE_SIZE = 10

Tab = Union[ReimbursementStatus, str]


class AdvancedFilters(BaseModel):
    owner: Optional[str] = None
    category: Optional[ReimbursementCategory] = None
    status: Optional[ReimbursementStatus] = None


class ListFilters(BaseModel):
    search: str = ""
    tab: str = ALL
    advanced: AdvancedFilters = AdvancedFilters()


class Page(BaseModel):
    items: List[Reimbursement]
    page: int
    total_pages: int
    count: int
    page_size: int


class RowActions(BaseModel):
    view: bool = True
    edit: bool = False
    approve: bool = False
    reject: bool = False
    delete: bool = False
    # acciones de la fila con una llamada en curso (botones deshabilitados)
    busy: List[str] = []


def _tab_status(tab: Optional[Tab]) -> Optional[ReimbursementStatus]:
    if tab is None or str(tab).strip() in ("", ALL, "Todas"):
        return None
    return parse_status(tab)


def _matches_search(record: Reimbursement, term: str) -> bool:
    haystack = (
        record.code,
        record.requester_name,
        record.category.value,
        record.description,
    )
    return any(term in (value or "").lower() for value in haystack)


def project(
    records: Sequence[Reimbursement],
    search: str = "",
    tab: Optional[Tab] = ALL,
    advanced: Optional[AdvancedFilters] = None,
) -> List[Reimbursement]:
    term = (search or "").strip().lower()
    tab_status = _tab_status(tab)
    advanced = advanced or AdvancedFilters()
    owner = (advanced.owner or "").strip().lower()

    result = []
    for record in records:
        if term and not _matches_search(record, term):
            continue
        if tab_status is not None and record.status != tab_status:
            continue
        if owner and owner not in record.requester_name.lower():
            continue
        if advanced.category is not None and record.category != advanced.category:
            continue
        if advanced.status is not None and record.status != advanced.status:
            continue
        result.append(record)
    return result


def total_pages(count: int, page_size: int = PAGE_SIZE) -> int:
    return math.ceil(count / page_size)


def clamp_page(page: int, count: int, page_size: int = PAGE_SIZE) -> int:
    return min(max(page, 1), max(total_pages(count, page_size), 1))


def paginate(records: Sequence[Reimbursement], page: int = 1, page_size: int = PAGE_SIZE) -> Page:
    count = len(records)
    current = clamp_page(page, count, page_size)
    start = (current - 1) * page_size
    return Page(
        items=list(records[start:start + page_size]),
        page=current,
        total_pages=total_pages(count, page_size),
        count=count,
        page_size=page_size,
    )


class ListViewState:
    """Estado de la pantalla de lista: filtros actuales y página."""

    def __init__(self, page_size: int = PAGE_SIZE):
        self.page_size = page_size
        self.filters = ListFilters()
        self.page = 1

    def apply(self, filters: ListFilters) -> bool:
        """Devuelve True si los filtros cambiaron (y la página vuelve a 1)."""
        if filters == self.filters:
            return False
        self.filters = filters
        self.page = 1
        return True

    def go_to(self, page: int) -> None:
        self.page = page

    def view(self, records: Sequence[Reimbursement]) -> Page:
        visible = project(
            records,
            search=self.filters.search,
            tab=self.filters.tab,
            advanced=self.filters.advanced,
        )
        result = paginate(visible, self.page, self.page_size)
        self.page = result.page
        return result


def row_actions(
    record: Reimbursement,
    actor: Optional[Actor],
    busy: Optional[Set[str]] = None,
) -> RowActions:
    """Botones visibles para una fila. No es control de acceso: el backend decide."""
    if actor is None:
        return RowActions(view=True)
    busy = busy or set()
    return RowActions(
        view=True,
        edit=lifecycle.can_edit_content(record, actor),
        approve=lifecycle.can_transition(record.status, ReimbursementStatus.APPROVED, actor),
        reject=lifecycle.can_transition(record.status, ReimbursementStatus.REJECTED, actor),
        delete=actor.is_admin,
        busy=sorted(busy),
    )

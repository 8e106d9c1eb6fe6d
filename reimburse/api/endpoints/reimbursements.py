# api/endpoints/reimbursements.py
"""
Pantallas de reembolsos: lista, nueva solicitud y acciones del modal de detalle.

Los errores de cada acción los convierte en avisos el manejador registrado en
main.py; aquí solo se producen los avisos de éxito.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from reimburse.core.errors import ValidationError
from reimburse.core.session import SessionContext
from reimburse.dependencies import (
    get_list_state,
    get_manager,
    get_notifications,
    get_session_context,
)
from reimburse.schemas.pages import (
    ActionResult,
    EditReimbursementForm,
    ListPageRead,
    NewReimbursementForm,
    ReimbursementRow,
    SubmitAction,
    to_row,
)
from reimburse.schemas.reimbursement import (
    Reimbursement,
    ReimbursementStatus,
    parse_category,
    parse_status,
)
from reimburse.schemas.user import Actor
from reimburse.services.list_projection import (
    ALL,
    AdvancedFilters,
    ListFilters,
    ListViewState,
    row_actions,
)
from reimburse.services.notifications import NotificationCenter
from reimburse.services.reimbursement_service import ReimbursementManager

router = APIRouter()

DELETE_CONFIRMATION = "Are you sure you want to delete this reimbursement?"


def _row(record: Reimbursement, actor: Actor, manager: ReimbursementManager) -> ReimbursementRow:
    return to_row(record, row_actions(record, actor, manager.busy_actions(record.id)))


def build_filters(
    busca: str,
    tab: str,
    funcionario: Optional[str],
    categoria: Optional[str],
    status_filter: Optional[str],
) -> ListFilters:
    try:
        category = parse_category(categoria) if categoria else None
    except ValueError:
        raise ValidationError("categoria", f"Unknown category: {categoria}.")
    try:
        status_value = parse_status(status_filter) if status_filter else None
        tab_value = ALL if tab in ("", ALL, "Todas") else parse_status(tab).value
    except ValueError:
        raise ValidationError("status", "Unknown status filter.")
    return ListFilters(
        search=busca or "",
        tab=tab_value,
        advanced=AdvancedFilters(
            owner=funcionario or None,
            category=category,
            status=status_value,
        ),
    )


@router.get("/", response_model=ListPageRead)
def list_page(
    busca: str = "",
    tab: str = ALL,
    funcionario: Optional[str] = None,
    categoria: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    pagina: Optional[int] = None,
    recarregar: bool = False,
    manager: ReimbursementManager = Depends(get_manager),
    list_state: ListViewState = Depends(get_list_state),
    session_context: SessionContext = Depends(get_session_context),
):
    actor = session_context.require()
    filters = build_filters(busca, tab, funcionario, categoria, status_filter)
    # si otra petición ya está cargando la lista se devuelve lo que hay con loading=True
    if recarregar or not (manager.loaded or manager.loading):
        manager.load()

    # cambiar cualquier filtro vuelve a la página 1
    if not list_state.apply(filters) and pagina is not None:
        list_state.go_to(pagina)
    page = list_state.view(manager.records)

    return ListPageRead(
        items=[_row(record, actor, manager) for record in page.items],
        page=page.page,
        total_pages=page.total_pages,
        count=page.count,
        page_size=page.page_size,
        loading=manager.loading,
    )


@router.post("/", response_model=ActionResult, status_code=status.HTTP_201_CREATED)
def create_reimbursement(
    form: NewReimbursementForm,
    manager: ReimbursementManager = Depends(get_manager),
    session_context: SessionContext = Depends(get_session_context),
    notifications: NotificationCenter = Depends(get_notifications),
):
    target = ReimbursementStatus.DRAFT if form.acao == SubmitAction.DRAFT else ReimbursementStatus.PENDING
    new_id = manager.submit(form.to_fields(), target)
    message = "Draft saved!" if target == ReimbursementStatus.DRAFT else "Request submitted successfully!"
    item = None
    if new_id:
        item = _row(manager.get(new_id), session_context.require(), manager)
    return ActionResult(notification=notifications.add("success", message), id=new_id, item=item)


@router.get("/{reimbursement_id}", response_model=ReimbursementRow)
def get_reimbursement(
    reimbursement_id: str,
    manager: ReimbursementManager = Depends(get_manager),
    session_context: SessionContext = Depends(get_session_context),
):
    actor = session_context.require()
    return _row(manager.get(reimbursement_id), actor, manager)


@router.patch("/{reimbursement_id}", response_model=ActionResult)
def update_reimbursement(
    reimbursement_id: str,
    form: EditReimbursementForm,
    manager: ReimbursementManager = Depends(get_manager),
    session_context: SessionContext = Depends(get_session_context),
    notifications: NotificationCenter = Depends(get_notifications),
):
    actor = session_context.require()
    before = manager.get(reimbursement_id)
    updated = manager.update_content(reimbursement_id, form.to_fields(), actor, submit=form.enviar)
    if before.status != updated.status:
        message = "Request submitted successfully!"
    else:
        message = "Changes saved successfully!"
    return ActionResult(
        notification=notifications.add("success", message),
        id=updated.id,
        item=_row(updated, actor, manager),
    )


def _decide(
    reimbursement_id: str,
    decision: ReimbursementStatus,
    manager: ReimbursementManager,
    session_context: SessionContext,
    notifications: NotificationCenter,
) -> ActionResult:
    actor = session_context.require()
    updated = manager.decide(reimbursement_id, decision, actor)
    if decision == ReimbursementStatus.APPROVED:
        notification = notifications.add("success", "Reimbursement approved!")
    else:
        notification = notifications.add("info", "Reimbursement rejected.")
    return ActionResult(notification=notification, id=updated.id, item=_row(updated, actor, manager))


@router.post("/{reimbursement_id}/aprovar", response_model=ActionResult)
def approve_reimbursement(
    reimbursement_id: str,
    manager: ReimbursementManager = Depends(get_manager),
    session_context: SessionContext = Depends(get_session_context),
    notifications: NotificationCenter = Depends(get_notifications),
):
    return _decide(reimbursement_id, ReimbursementStatus.APPROVED, manager, session_context, notifications)


@router.post("/{reimbursement_id}/rejeitar", response_model=ActionResult)
def reject_reimbursement(
    reimbursement_id: str,
    manager: ReimbursementManager = Depends(get_manager),
    session_context: SessionContext = Depends(get_session_context),
    notifications: NotificationCenter = Depends(get_notifications),
):
    return _decide(reimbursement_id, ReimbursementStatus.REJECTED, manager, session_context, notifications)


@router.delete("/{reimbursement_id}")
def delete_reimbursement(
    reimbursement_id: str,
    confirmar: bool = False,
    manager: ReimbursementManager = Depends(get_manager),
    session_context: SessionContext = Depends(get_session_context),
    notifications: NotificationCenter = Depends(get_notifications),
):
    session_context.require()
    if not confirmar:
        # acción destructiva: sin confirmación explícita no se llama al backend
        return JSONResponse(
            status_code=status.HTTP_428_PRECONDITION_REQUIRED,
            content={"confirm": DELETE_CONFIRMATION},
        )
    manager.remove(reimbursement_id)
    notification = notifications.add("success", "Reimbursement deleted successfully!")
    return ActionResult(notification=notification, id=reimbursement_id)

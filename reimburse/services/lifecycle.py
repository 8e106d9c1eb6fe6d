# services/lifecycle.py
"""
Máquina de estados de una solicitud de reembolso.

    (nueva) -> Draft | Pending          propietario
    Draft   -> Pending                  propietario
    Pending -> Approved | Rejected      solo Admin
    Approved / Rejected                 terminales

Estas comprobaciones son una comodidad de la interfaz: el backend vuelve a
aplicarlas y es quien tiene la última palabra.
"""

from typing import Dict, FrozenSet, Optional

from reimburse.core.errors import ForbiddenError, InvalidTransitionError
from reimburse.schemas.reimbursement import Reimbursement, ReimbursementStatus
from reimburse.schemas.user import Actor

Status = ReimbursementStatus

OWNER = "owner"
ADMIN = "admin"

# None representa una solicitud que todavía no existe
TRANSITIONS: Dict[Optional[Status], Dict[Status, str]] = {
    None: {Status.DRAFT: OWNER, Status.PENDING: OWNER},
    Status.DRAFT: {Status.PENDING: OWNER},
    Status.PENDING: {Status.APPROVED: ADMIN, Status.REJECTED: ADMIN},
    Status.APPROVED: {},
    Status.REJECTED: {},
}

TERMINAL: FrozenSet[Status] = frozenset({Status.APPROVED, Status.REJECTED})
DECISIONS: FrozenSet[Status] = frozenset({Status.APPROVED, Status.REJECTED})


def is_terminal(status: Status) -> bool:
    return status in TERMINAL


def is_content_editable(status: Status) -> bool:
    return not is_terminal(status)


def is_owner(record: Reimbursement, actor: Actor) -> bool:
    if record.owner_id is not None:
        return record.owner_id == actor.id
    # registros antiguos sin usuarioId: solo queda el nombre del funcionario
    return bool(record.requester_name) and record.requester_name == actor.name


def can_transition(current: Optional[Status], target: Status, actor: Actor, owner: bool = True) -> bool:
    required = TRANSITIONS.get(current, {}).get(target)
    if required is None:
        return False
    if required == ADMIN:
        return actor.is_admin
    return owner


def check_transition(current: Optional[Status], target: Status, actor: Actor, owner: bool = True) -> None:
    required = TRANSITIONS.get(current, {}).get(target)
    if required is None:
        origin = current.value if current else "new"
        raise InvalidTransitionError(
            f"A request cannot move from {origin} to {target.value}."
        )
    if required == ADMIN and not actor.is_admin:
        raise ForbiddenError("Only administrators can approve or reject requests.")
    if required == OWNER and not owner:
        raise ForbiddenError("Only the owner can submit this request.")


def check_admin(actor: Actor, action: str = "perform this action") -> None:
    if not actor.is_admin:
        raise ForbiddenError(f"Only administrators can {action}.")


def can_edit_content(record: Reimbursement, actor: Actor) -> bool:
    if not is_content_editable(record.status):
        return False
    return actor.is_admin or is_owner(record, actor)


def check_content_edit(record: Reimbursement, actor: Actor) -> None:
    if not (actor.is_admin or is_owner(record, actor)):
        raise ForbiddenError("Only the owner or an administrator can edit this request.")
    if not is_content_editable(record.status):
        raise ForbiddenError(
            f"{record.status.value} requests can no longer be edited."
        )

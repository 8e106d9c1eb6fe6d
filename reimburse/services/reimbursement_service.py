# services/reimbursement_service.py
"""
Gestor del ciclo de vida de los reembolsos.

Mantiene la lista cargada (una proyección de solo lectura del backend) y la
actualiza únicamente después de que el backend confirme cada mutación. El
backend sigue siendo la única fuente de verdad del estado.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Set, Tuple

from reimburse.core.errors import (
    ActionInProgressError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    RemoteError,
    ValidationError,
)
from reimburse.core.session import SessionContext
from reimburse.schemas.reimbursement import (
    Reimbursement,
    ReimbursementFields,
    ReimbursementStatus,
    from_wire,
    to_create_payload,
    to_status_payload,
    to_update_payload,
)
from reimburse.schemas.user import Actor
from reimburse.services import lifecycle
from reimburse.services.validation import validate_fields
from reimburse.utils.api_client import ReimbursementApi

logger = logging.getLogger(__name__)

Status = ReimbursementStatus


class ReimbursementManager:
    def __init__(self, api: ReimbursementApi, session_context: SessionContext):
        self.api = api
        self.session_context = session_context
        self._lock = threading.Lock()
        self._records: List[Reimbursement] = []
        self._loaded = False
        self._loading = False
        self._in_flight: Set[Tuple[str, str]] = set()

    # --- proyección local -------------------------------------------------

    @property
    def records(self) -> List[Reimbursement]:
        with self._lock:
            return list(self._records)

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def loading(self) -> bool:
        return self._loading

    def load(self) -> List[Reimbursement]:
        """Recarga completa desde el backend; conserva el orden recibido."""
        self._loading = True
        try:
            records = [from_wire(item) for item in self.api.list()]
        finally:
            self._loading = False
        with self._lock:
            self._records = records
            self._loaded = True
        logger.info("Loaded %d reimbursement requests", len(records))
        return list(records)

    def clear(self) -> None:
        with self._lock:
            self._records = []
            self._loaded = False

    def get(self, reimbursement_id: str) -> Reimbursement:
        found = self._find(reimbursement_id)
        if found is None and not self._loaded:
            self.load()
            found = self._find(reimbursement_id)
        if found is None:
            raise NotFoundError()
        return found

    def _find(self, reimbursement_id: str) -> Optional[Reimbursement]:
        with self._lock:
            for record in self._records:
                if record.id == reimbursement_id:
                    return record
        return None

    def _replace(self, record: Reimbursement) -> None:
        with self._lock:
            self._records = [record if r.id == record.id else r for r in self._records]

    def _discard(self, reimbursement_id: str) -> None:
        with self._lock:
            self._records = [r for r in self._records if r.id != reimbursement_id]

    # --- control de acciones en curso -------------------------------------

    def is_busy(self, action: str, reimbursement_id: str = "") -> bool:
        with self._lock:
            return (action, reimbursement_id) in self._in_flight

    def busy_actions(self, reimbursement_id: str) -> Set[str]:
        with self._lock:
            return {action for action, rid in self._in_flight if rid == reimbursement_id}

    @contextmanager
    def _action(self, action: str, reimbursement_id: str = "") -> Iterator[None]:
        key = (action, reimbursement_id)
        with self._lock:
            if key in self._in_flight:
                raise ActionInProgressError()
            self._in_flight.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._in_flight.discard(key)

    def _actor(self, actor: Optional[Actor]) -> Actor:
        session_actor = self.session_context.require()
        return actor or session_actor

    # --- operaciones ------------------------------------------------------

    def submit(
        self,
        fields: ReimbursementFields,
        status: Status = Status.PENDING,
        actor: Optional[Actor] = None,
    ) -> Optional[str]:
        """Crea una solicitud como borrador o enviada. Devuelve su id.

        Si el backend no devuelve el registro creado se recarga la lista y el
        resultado es None.
        """
        clean = validate_fields(fields)
        if status not in (Status.DRAFT, Status.PENDING):
            raise InvalidTransitionError(f"A new request cannot start as {status.value}.")
        owner = self._actor(actor)
        lifecycle.check_transition(None, status, owner)

        with self._action("submit"):
            created = self.api.create(to_create_payload(clean, status))

        if isinstance(created, dict) and created.get("id") is not None:
            record = from_wire(_with_owner(created, owner))
            with self._lock:
                self._records.append(record)
            logger.info("Reimbursement %s created as %s", record.id, status.value)
            return record.id

        logger.info("Reimbursement created as %s without echo, reloading", status.value)
        self.load()
        return None

    def update_content(
        self,
        reimbursement_id: str,
        fields: ReimbursementFields,
        actor: Optional[Actor] = None,
        submit: bool = False,
    ) -> Reimbursement:
        """Edita el contenido. Con ``submit=True`` un borrador pasa a Pending."""
        clean = validate_fields(fields, partial=True)
        actor = self._actor(actor)
        record = self.get(reimbursement_id)
        lifecycle.check_content_edit(record, actor)

        payload = to_update_payload(clean)
        target = record.status
        if submit and record.status == Status.DRAFT:
            lifecycle.check_transition(
                record.status, Status.PENDING, actor, owner=lifecycle.is_owner(record, actor)
            )
            _check_submittable(record, clean)
            target = Status.PENDING
            payload.update(to_status_payload(target))

        if not payload:
            return record

        with self._action("update", reimbursement_id):
            response = self.api.update(reimbursement_id, payload)

        updated = _merge(record, clean, target, response)
        self._replace(updated)
        logger.info("Reimbursement %s updated by %s", reimbursement_id, actor.id)
        return updated

    def decide(
        self,
        reimbursement_id: str,
        decision: Status,
        actor: Optional[Actor] = None,
    ) -> Reimbursement:
        """Aprueba o rechaza. Solo Admin y solo desde Pending; no toca otros campos."""
        actor = self._actor(actor)
        if decision not in lifecycle.DECISIONS:
            raise InvalidTransitionError(f"{decision.value} is not a decision.")
        lifecycle.check_admin(actor, "approve or reject requests")
        record = self.get(reimbursement_id)
        if record.status != Status.PENDING:
            logger.warning(
                "Refusing %s on %s: status is %s", decision.value, reimbursement_id, record.status.value
            )
            raise InvalidTransitionError(
                f"Only pending requests can be {decision.value.lower()}; this one is {record.status.value}."
            )
        lifecycle.check_transition(record.status, decision, actor)

        with self._action("decide", reimbursement_id):
            # puede que otra acción ya haya resuelto la solicitud mientras tanto
            current = self._find(reimbursement_id)
            if current is None or current.status != Status.PENDING:
                raise InvalidTransitionError()
            response = self.api.update(reimbursement_id, to_status_payload(decision))

        updated = record.copy(
            update={"status": decision, "last_modified": _last_modified(response)}
        )
        self._replace(updated)
        logger.info("Reimbursement %s %s by %s", reimbursement_id, decision.value.lower(), actor.id)
        return updated

    def remove(self, reimbursement_id: str, actor: Optional[Actor] = None) -> None:
        actor = self._actor(actor)
        lifecycle.check_admin(actor, "delete requests")
        with self._action("remove", reimbursement_id):
            try:
                self.api.delete(reimbursement_id)
            except ConflictError:
                # la solicitud sigue en la lista
                logger.warning("Reimbursement %s has linked records, not deleted", reimbursement_id)
                raise
        self._discard(reimbursement_id)
        logger.info("Reimbursement %s deleted by %s", reimbursement_id, actor.id)


def _with_owner(payload: Dict, owner: Actor) -> Dict:
    data = dict(payload)
    if not (data.get("usuario") or data.get("nomeFuncionario")):
        data["nomeFuncionario"] = owner.name
    if data.get("usuarioId") is None and not (data.get("usuario") or {}).get("id"):
        data["usuarioId"] = owner.id
    return data


def _last_modified(response) -> datetime:
    if isinstance(response, dict):
        value = response.get("ultimaAtualizacao") or response.get("updatedAt")
        if value:
            try:
                return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
            except ValueError:
                pass
    return datetime.now(timezone.utc)


def _check_submittable(record: Reimbursement, clean: ReimbursementFields) -> None:
    """Un borrador guardado a medias tiene que cumplir las reglas antes de enviarse."""
    sent = clean.dict(exclude_unset=True)
    amount = sent.get("amount", record.amount)
    description = sent.get("description", record.description)
    expense_date = sent.get("expense_date", record.expense_date)
    if amount is None or amount <= 0:
        raise ValidationError("amount", "Amount must be greater than zero.")
    if not (description or "").strip():
        raise ValidationError("description", "Description is required.")
    if expense_date is None:
        raise ValidationError("expense_date", "Expense date is required.")


def _merge(
    record: Reimbursement,
    clean: ReimbursementFields,
    status: Status,
    response,
) -> Reimbursement:
    if isinstance(response, dict) and response.get("id") is not None:
        try:
            merged = from_wire(response)
        except RemoteError:
            merged = None
        # algunos PATCH no devuelven el usuario; se conserva el de la lista
        if merged is not None:
            return merged.copy(
                update={
                    "requester_name": merged.requester_name or record.requester_name,
                    "owner_id": merged.owner_id or record.owner_id,
                }
            )
    update = clean.dict(exclude_unset=True)
    update["status"] = status
    update["last_modified"] = _last_modified(response)
    return record.copy(update=update)

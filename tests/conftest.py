import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest

from reimburse.core.errors import NotFoundError
from reimburse.core.session import SessionContext, SessionStore
from reimburse.schemas.user import Actor, Role
from reimburse.services.reimbursement_service import ReimbursementManager


def wire_record(
    id="1",
    status="Pendente",
    nome="João Silva",
    usuario_id="10",
    categoria="Combustível",
    valor=120.0,
    descricao="Viagem cliente ABC",
    data="2025-06-10T00:00:00.000Z",
    **extra,
):
    record = {
        "id": id,
        "idReembolso": f"R{int(id):03d}",
        "usuario": {"id": usuario_id, "nome": nome},
        "categoria": categoria,
        "valor": valor,
        "descricao": descricao,
        "justificativa": None,
        "dataDespesa": data,
        "status": status,
        "dataCriacao": "2025-06-10T12:00:00.000Z",
        "ultimaAtualizacao": "2025-06-10T12:00:00.000Z",
    }
    record.update(extra)
    return record


class FakeReimbursementApi:
    """Backend en memoria con la misma interfaz que ReimbursementApi."""

    def __init__(self, records=None, user=None):
        self.records = [dict(r) for r in records or []]
        self.user = user
        self.calls = []
        self.fail = {}
        self._next_id = len(self.records) + 1

    def _call(self, method, *args):
        self.calls.append((method,) + args)
        exc = self.fail.get(method)
        if exc is not None:
            raise exc

    def _find(self, reimbursement_id):
        for record in self.records:
            if record["id"] == reimbursement_id:
                return record
        raise NotFoundError()

    def list(self):
        self._call("list")
        return [dict(r) for r in self.records]

    def create(self, payload):
        self._call("create", payload)
        new_id = str(self._next_id)
        self._next_id += 1
        now = datetime.now(timezone.utc).isoformat()
        record = dict(payload, id=new_id, idReembolso=f"R{int(new_id):03d}", dataCriacao=now, ultimaAtualizacao=now)
        if self.user is not None:
            record["usuario"] = {"id": self.user.id, "nome": self.user.name}
        self.records.append(record)
        return dict(record)

    def update(self, reimbursement_id, payload):
        self._call("update", reimbursement_id, payload)
        record = self._find(reimbursement_id)
        record.update(payload)
        record["ultimaAtualizacao"] = datetime.now(timezone.utc).isoformat()
        return dict(record)

    def delete(self, reimbursement_id):
        self._call("delete", reimbursement_id)
        record = self._find(reimbursement_id)
        self.records.remove(record)

    def mutations(self):
        return [c for c in self.calls if c[0] != "list"]


@pytest.fixture
def admin():
    return Actor(id="1", name="Ana Admin", email="ana@engnet.com", role=Role.ADMIN)


@pytest.fixture
def member():
    return Actor(id="10", name="João Silva", email="joao@engnet.com", role=Role.MEMBER)


@pytest.fixture
def other_member():
    return Actor(id="11", name="Maria Santos", email="maria@engnet.com", role=Role.MEMBER)


@pytest.fixture
def session_context(tmp_path, member):
    context = SessionContext(SessionStore(str(tmp_path / "session.json")))
    context.establish("test-token", member)
    return context


@pytest.fixture
def fake_api(member):
    return FakeReimbursementApi(
        [
            wire_record("1", status="Pendente"),
            wire_record("2", status="Aprovado", nome="Maria Santos", usuario_id="11",
                        categoria="Alimentação", valor=85.5, descricao="Almoço com cliente XYZ"),
            wire_record("3", status="Rascunho", descricao="Café de trabalho", categoria="Refeição", valor=25.0),
        ],
        user=member,
    )


@pytest.fixture
def manager(fake_api, session_context):
    manager = ReimbursementManager(fake_api, session_context)
    manager.load()
    return manager

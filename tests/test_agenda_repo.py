import itertools

import pytest

from services.agenda_repo import (
    FirestoreAgendaStore,
    MemoryAgendaStore,
    get_store,
    join_appointments,
)
from services.errors import DataStoreError, NotFound, ReferentialIntegrityError


# -------------------------------------------------------------------
# Firestore fake (só o que o repositório usa)
# -------------------------------------------------------------------

class _Snap:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class _Ref:
    def __init__(self, table, doc_id):
        self._table = table
        self.id = doc_id

    def set(self, data):
        self._table[self.id] = dict(data)

    def get(self):
        return _Snap(self.id, self._table.get(self.id))

    def update(self, data):
        self._table[self.id].update(data)

    def delete(self):
        self._table.pop(self.id, None)


class _Query:
    def __init__(self, table, flt=None, n=None):
        self._table = table
        self._filter = flt
        self._n = n

    def where(self, filter=None):
        return _Query(self._table, filter, self._n)

    def limit(self, n):
        return _Query(self._table, self._filter, n)

    def stream(self):
        rows = [_Snap(k, v) for k, v in self._table.items()]
        if self._filter is not None:
            rows = [r for r in rows if r.to_dict().get(self._filter.field_path) == self._filter.value]
        return iter(rows[: self._n] if self._n else rows)


class _Collection(_Query):
    _ids = itertools.count(1)

    def document(self, doc_id=None):
        return _Ref(self._table, doc_id or f"auto{next(self._ids)}")


class FakeFirestore:
    def __init__(self):
        self.tables = {}
        self.paths = []

    def collection(self, name):
        self.paths.append(name)
        return _Collection(self.tables.setdefault(name, {}))

    def document(self, path):
        db = self

        class _Doc:
            def collection(self, name):
                full = f"{path}/{name}"
                db.paths.append(full)
                return _Collection(db.tables.setdefault(full, {}))

        return _Doc()


class BrokenFirestore:
    def collection(self, name):
        raise RuntimeError("sem conexão")


# -------------------------------------------------------------------
# join / ordenação
# -------------------------------------------------------------------

def test_join_attaches_relations_and_sorts_by_start(make_appt):
    appts = [make_appt("b", "15:00", "s1"), make_appt("a", "09:00", "s9", cliente_id="cX")]
    clients = [{"id": "c1", "nome_completo": "Ana"}]
    services = [{"id": "s1", "nome": "Manicure"}]
    out = join_appointments(appts, clients, services)
    assert [a["id"] for a in out] == ["a", "b"]
    assert out[0]["cliente"] is None and out[0]["servico"] is None
    assert out[1]["cliente"]["nome_completo"] == "Ana"
    assert out[1]["servico"]["nome"] == "Manicure"


def test_join_puts_missing_start_last(make_appt):
    no_start = {"id": "z", "cliente_id": "c1", "servico_id": "s1", "data_hora_inicio": None}
    out = join_appointments([no_start, make_appt("a", "09:00")], [], [])
    assert [a["id"] for a in out] == ["a", "z"]


# -------------------------------------------------------------------
# Memória
# -------------------------------------------------------------------

def test_memory_lists_sorted_by_name(store):
    assert [c["nome_completo"] for c in store.list_clients()] == ["Ana Souza", "Bia Lima"]
    assert [s["nome"] for s in store.list_services()] == ["Manicure", "Pacote 2 mãos 2 pés", "Spa dos pés"]


def test_memory_insert_drops_unknown_fields(store):
    saved = store.insert_client({"nome_completo": "Cris", "telefone": "1", "senha": "x"})
    assert "senha" not in saved
    assert saved["id"]
    assert saved["createdAt"].endswith("Z")


def test_memory_returns_snapshots(seeded_store):
    items = seeded_store.list_appointments()
    items[0]["status"] = "cancelado"
    assert seeded_store.list_appointments()[0]["status"] == "pendente"


def test_memory_update_and_not_found(seeded_store):
    saved = seeded_store.update_appointment("a1", {"status": "confirmado"})
    assert saved["status"] == "confirmado"
    with pytest.raises(NotFound):
        seeded_store.update_appointment("nope", {"status": "confirmado"})
    with pytest.raises(NotFound):
        seeded_store.delete_appointment("nope")


def test_memory_delete_client_with_appointments_is_refused(seeded_store):
    with pytest.raises(ReferentialIntegrityError) as exc:
        seeded_store.delete_client("c1")
    assert exc.value.code == "referential_constraint"
    assert any(c["id"] == "c1" for c in seeded_store.list_clients())


def test_memory_delete_client_without_appointments(seeded_store):
    seeded_store.delete_appointment("a1")
    seeded_store.delete_client("c1")
    assert [c["id"] for c in seeded_store.list_clients()] == ["c2"]


def test_get_store_by_env(monkeypatch):
    monkeypatch.setenv("AGENDA_BACKEND", "memory")
    assert isinstance(get_store(), MemoryAgendaStore)
    monkeypatch.setenv("AGENDA_BACKEND", "firestore")
    assert isinstance(get_store(), FirestoreAgendaStore)


# -------------------------------------------------------------------
# Firestore
# -------------------------------------------------------------------

def test_firestore_crud_round(make_appt):
    db = FakeFirestore()
    st = FirestoreAgendaStore(db=db, root="")
    c = st.insert_client({"nome_completo": "Ana", "telefone": "11"})
    s = st.insert_service({"nome": "Manicure", "valor": 40, "duracao_minutos": 60, "ativo": True})
    payload = make_appt("ignored", "10:00")
    payload.update(cliente_id=c["id"], servico_id=s["id"])
    a = st.insert_appointment(payload)

    items = st.list_appointments()
    assert [x["id"] for x in items] == [a["id"]]
    assert items[0]["cliente"]["nome_completo"] == "Ana"
    assert items[0]["servico"]["duracao_minutos"] == 60

    updated = st.update_appointment(a["id"], {"status": "concluido"})
    assert updated["status"] == "concluido"
    assert updated["cliente_id"] == c["id"]


def test_firestore_uses_root_document():
    db = FakeFirestore()
    st = FirestoreAgendaStore(db=db, root="/agendas/ana/")
    st.list_clients()
    assert db.paths == ["agendas/ana/clientes"]


def test_firestore_delete_client_checks_appointments():
    db = FakeFirestore()
    st = FirestoreAgendaStore(db=db, root="")
    c = st.insert_client({"nome_completo": "Ana", "telefone": "11"})
    a = st.insert_appointment({"cliente_id": c["id"], "servico_id": "s1"})
    with pytest.raises(ReferentialIntegrityError):
        st.delete_client(c["id"])
    st.delete_appointment(a["id"])
    st.delete_client(c["id"])
    assert st.list_clients() == []


def test_firestore_missing_document_is_not_found():
    st = FirestoreAgendaStore(db=FakeFirestore(), root="")
    with pytest.raises(NotFound):
        st.update_client("nope", {"nome_completo": "X"})
    with pytest.raises(NotFound):
        st.delete_appointment("nope")


def test_firestore_failures_become_datastore_error():
    st = FirestoreAgendaStore(db=BrokenFirestore(), root="")
    with pytest.raises(DataStoreError) as exc:
        st.list_clients()
    assert exc.value.status == 502
    assert "sem conexão" in exc.value.detail["detail"]
    with pytest.raises(DataStoreError):
        st.insert_client({"nome_completo": "Ana", "telefone": "11"})

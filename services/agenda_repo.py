# services/agenda_repo.py
# Persistência da agenda: clientes, servicos, agendamentos.
# Dois backends com a mesma interface:
#   - FirestoreAgendaStore: produção (coleções na raiz ou sob AGENDA_ROOT_DOC)
#   - MemoryAgendaStore: processo (AGENDA_BACKEND=memory, testes)
# Toda falha vira DataStoreError; exclusão de cliente com agendamentos
# vinculados vira ReferentialIntegrityError.

import os
import copy
import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional

from domain.packages import PACKAGE_SIZE_FIELDS
from domain.time_utils import parse_timestamp
from services.db import get_db, now_ts
from services.errors import AgendaError, DataStoreError, NotFound, ReferentialIntegrityError

log = logging.getLogger(__name__)

CLIENTES = "clientes"
SERVICOS = "servicos"
AGENDAMENTOS = "agendamentos"

_FIELDS = {
    CLIENTES: ("nome_completo", "telefone", "endereco", "observacoes"),
    SERVICOS: ("nome", "valor", "duracao_minutos", "ativo") + PACKAGE_SIZE_FIELDS,
    AGENDAMENTOS: (
        "cliente_id", "servico_id", "data_hora_inicio", "data_hora_fim",
        "status", "endereco_atendimento", "observacoes",
    ),
}


# -------------------------------------------------------------------
# Helpers gerais
# -------------------------------------------------------------------

def _clean(collection: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    allowed = _FIELDS[collection]
    return {k: v for k, v in (payload or {}).items() if k in allowed}


def _start_key(item: Dict[str, Any]):
    dt = parse_timestamp(item.get("data_hora_inicio"))
    # sem início vai pro fim da lista
    return (dt is None, dt.timestamp() if dt else 0.0)


def _sort_name(items: List[Dict[str, Any]], field: str) -> List[Dict[str, Any]]:
    return sorted(items, key=lambda x: str(x.get(field) or "").lower())


def join_appointments(
    appointments: Iterable[Dict[str, Any]],
    clients: Iterable[Dict[str, Any]],
    services: Iterable[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """Anexa `cliente` e `servico` (ou None) e ordena por início."""
    by_client = {c.get("id"): c for c in clients or []}
    by_service = {s.get("id"): s for s in services or []}
    out = []
    for a in appointments or []:
        item = dict(a)
        item["cliente"] = by_client.get(a.get("cliente_id"))
        item["servico"] = by_service.get(a.get("servico_id"))
        out.append(item)
    return sorted(out, key=_start_key)


# -------------------------------------------------------------------
# Firestore
# -------------------------------------------------------------------

class FirestoreAgendaStore:
    def __init__(self, db=None, root: Optional[str] = None):
        self._db = db
        self.root = (root if root is not None else os.getenv("AGENDA_ROOT_DOC", "")).strip("/")

    def _col(self, name: str):
        db = self._db if self._db is not None else get_db()
        if self.root:
            return db.document(self.root).collection(name)
        return db.collection(name)

    def _list(self, name: str) -> List[Dict[str, Any]]:
        try:
            out = []
            for doc in self._col(name).stream():
                d = doc.to_dict() or {}
                d["id"] = doc.id
                out.append(d)
            return out
        except Exception as e:
            log.exception("[agenda_repo] falha ao listar %s", name)
            raise DataStoreError(detail=str(e)) from e

    def _insert(self, name: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            data = _clean(name, payload)
            ts = now_ts()
            data.setdefault("createdAt", ts)
            data.setdefault("updatedAt", ts)
            ref = self._col(name).document()
            ref.set(data)
            return {**data, "id": ref.id}
        except Exception as e:
            log.exception("[agenda_repo] falha ao inserir em %s", name)
            raise DataStoreError(detail=str(e)) from e

    def _update(self, name: str, doc_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            ref = self._col(name).document(doc_id)
            snap = ref.get()
            if not snap.exists:
                raise NotFound(detail={"colecao": name, "id": doc_id})
            data = _clean(name, payload)
            data["updatedAt"] = now_ts()
            ref.update(data)
            return {**(snap.to_dict() or {}), **data, "id": doc_id}
        except AgendaError:
            raise
        except Exception as e:
            log.exception("[agenda_repo] falha ao atualizar %s/%s", name, doc_id)
            raise DataStoreError(detail=str(e)) from e

    def _delete(self, name: str, doc_id: str) -> None:
        try:
            ref = self._col(name).document(doc_id)
            if not ref.get().exists:
                raise NotFound(detail={"colecao": name, "id": doc_id})
            ref.delete()
        except AgendaError:
            raise
        except Exception as e:
            log.exception("[agenda_repo] falha ao excluir %s/%s", name, doc_id)
            raise DataStoreError(detail=str(e)) from e

    def _has_appointments_for(self, client_id: str) -> bool:
        from google.cloud.firestore_v1.base_query import FieldFilter

        try:
            q = self._col(AGENDAMENTOS).where(filter=FieldFilter("cliente_id", "==", client_id)).limit(1)
            return any(True for _ in q.stream())
        except Exception as e:
            log.exception("[agenda_repo] falha ao checar agendamentos da cliente %s", client_id)
            raise DataStoreError(detail=str(e)) from e

    # ---- API ----

    def list_clients(self) -> List[Dict[str, Any]]:
        return _sort_name(self._list(CLIENTES), "nome_completo")

    def list_services(self) -> List[Dict[str, Any]]:
        return _sort_name(self._list(SERVICOS), "nome")

    def list_appointments(self, clients=None, services=None) -> List[Dict[str, Any]]:
        clients = self.list_clients() if clients is None else clients
        services = self.list_services() if services is None else services
        return join_appointments(self._list(AGENDAMENTOS), clients, services)

    def insert_client(self, payload):
        return self._insert(CLIENTES, payload)

    def insert_service(self, payload):
        return self._insert(SERVICOS, payload)

    def insert_appointment(self, payload):
        return self._insert(AGENDAMENTOS, payload)

    def update_client(self, client_id, payload):
        return self._update(CLIENTES, client_id, payload)

    def update_service(self, service_id, payload):
        return self._update(SERVICOS, service_id, payload)

    def update_appointment(self, appointment_id, payload):
        return self._update(AGENDAMENTOS, appointment_id, payload)

    def delete_client(self, client_id) -> None:
        # Firestore não tem FK: checa vínculos antes de apagar
        if self._has_appointments_for(client_id):
            raise ReferentialIntegrityError(detail={"cliente_id": client_id})
        self._delete(CLIENTES, client_id)

    def delete_appointment(self, appointment_id) -> None:
        self._delete(AGENDAMENTOS, appointment_id)


# -------------------------------------------------------------------
# Memória (processo)
# -------------------------------------------------------------------

class MemoryAgendaStore:
    def __init__(self):
        self._tables: Dict[str, Dict[str, Dict[str, Any]]] = {
            CLIENTES: {},
            SERVICOS: {},
            AGENDAMENTOS: {},
        }

    def _list(self, name: str) -> List[Dict[str, Any]]:
        # cópias: quem lê recebe um snapshot, não a tabela
        return [copy.deepcopy(v) for v in self._tables[name].values()]

    def _insert(self, name: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        doc_id = (payload or {}).get("id") or uuid.uuid4().hex
        ts = now_ts()
        data = {**_clean(name, payload), "createdAt": ts, "updatedAt": ts, "id": doc_id}
        self._tables[name][doc_id] = data
        return copy.deepcopy(data)

    def _update(self, name: str, doc_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        row = self._tables[name].get(doc_id)
        if row is None:
            raise NotFound(detail={"colecao": name, "id": doc_id})
        row.update(_clean(name, payload))
        row["updatedAt"] = now_ts()
        return copy.deepcopy(row)

    def _delete(self, name: str, doc_id: str) -> None:
        if self._tables[name].pop(doc_id, None) is None:
            raise NotFound(detail={"colecao": name, "id": doc_id})

    def list_clients(self):
        return _sort_name(self._list(CLIENTES), "nome_completo")

    def list_services(self):
        return _sort_name(self._list(SERVICOS), "nome")

    def list_appointments(self, clients=None, services=None):
        clients = self.list_clients() if clients is None else clients
        services = self.list_services() if services is None else services
        return join_appointments(self._list(AGENDAMENTOS), clients, services)

    def insert_client(self, payload):
        return self._insert(CLIENTES, payload)

    def insert_service(self, payload):
        return self._insert(SERVICOS, payload)

    def insert_appointment(self, payload):
        return self._insert(AGENDAMENTOS, payload)

    def update_client(self, client_id, payload):
        return self._update(CLIENTES, client_id, payload)

    def update_service(self, service_id, payload):
        return self._update(SERVICOS, service_id, payload)

    def update_appointment(self, appointment_id, payload):
        return self._update(AGENDAMENTOS, appointment_id, payload)

    def delete_client(self, client_id) -> None:
        if any(a.get("cliente_id") == client_id for a in self._tables[AGENDAMENTOS].values()):
            raise ReferentialIntegrityError(detail={"cliente_id": client_id})
        self._delete(CLIENTES, client_id)

    def delete_appointment(self, appointment_id) -> None:
        self._delete(AGENDAMENTOS, appointment_id)


def get_store():
    backend = (os.getenv("AGENDA_BACKEND") or "firestore").strip().lower()
    if backend == "memory":
        log.info("[agenda_repo] backend em memória")
        return MemoryAgendaStore()
    return FirestoreAgendaStore()

import pytest

from domain.time_utils import add_minutes, combine
from services.agenda_repo import MemoryAgendaStore
from services.agenda_rules import get_rules
from services.agenda_service import AgendaSession

DAY = "2025-03-10"  # segunda-feira

CLIENTS = [
    {"id": "c1", "nome_completo": "Ana Souza", "telefone": "(11) 98888-7777", "endereco": "Rua A, 10"},
    {"id": "c2", "nome_completo": "Bia Lima", "telefone": "11 97777-0000", "endereco": None},
]

SERVICES = [
    {"id": "s1", "nome": "Manicure", "valor": 40.0, "duracao_minutos": 60, "ativo": True},
    {"id": "s2", "nome": "Pacote 2 mãos 2 pés", "valor": 150.0, "duracao_minutos": 90, "ativo": True},
    {"id": "s3", "nome": "Spa dos pés", "valor": 30.0, "duracao_minutos": 30, "ativo": False},
]

_ENV_KEYS = (
    "AGENDA_TZ", "WORK_START", "WORK_END", "SLOT_MINUTES",
    "DEFAULT_DURATION_MIN", "BILLING_WINDOW_DAYS", "AGENDA_BACKEND",
)


@pytest.fixture(autouse=True)
def _agenda_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("AGENDA_TZ", "America/Sao_Paulo")


@pytest.fixture
def services():
    return [dict(s) for s in SERVICES]


@pytest.fixture
def make_appt():
    """Agendamento cru (como vem do banco). Fim derivado da duração do serviço."""
    durations = {s["id"]: s["duracao_minutos"] for s in SERVICES}

    def _make(appt_id, hhmm, servico_id="s1", day=DAY, status="pendente",
              cliente_id="c1", end=None, join=False):
        inicio = combine(day, hhmm)
        fim = combine(day, end) if end else add_minutes(inicio, durations.get(servico_id, 60))
        item = {
            "id": appt_id,
            "cliente_id": cliente_id,
            "servico_id": servico_id,
            "data_hora_inicio": inicio,
            "data_hora_fim": fim,
            "status": status,
            "endereco_atendimento": "Rua A, 10",
            "observacoes": None,
        }
        if join:
            item["servico"] = next((dict(s) for s in SERVICES if s["id"] == servico_id), None)
            item["cliente"] = next((dict(c) for c in CLIENTS if c["id"] == cliente_id), None)
        return item

    return _make


@pytest.fixture
def store():
    st = MemoryAgendaStore()
    for c in CLIENTS:
        st.insert_client(dict(c))
    for s in SERVICES:
        st.insert_service(dict(s))
    return st


@pytest.fixture
def seeded_store(store, make_appt):
    # 10:00-11:00 manicure (Ana) e 14:00-15:30 pacote (Bia)
    store.insert_appointment(make_appt("a1", "10:00", "s1", cliente_id="c1"))
    store.insert_appointment(make_appt("a2", "14:00", "s2", cliente_id="c2"))
    return store


@pytest.fixture
def session(seeded_store):
    s = AgendaSession(seeded_store, rules=get_rules())
    s.reload()
    return s

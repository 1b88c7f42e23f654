# domain/status.py
# Estados de agendamento (valores gravados no banco) + rótulos da UI.

PENDENTE = "pendente"
CONFIRMADO = "confirmado"
CONCLUIDO = "concluido"
CANCELADO = "cancelado"

STATUS_LABELS = {
    PENDENTE: "Agendado",
    CONFIRMADO: "Confirmado",
    CONCLUIDO: "Concluído",
    CANCELADO: "Cancelado",
}

VALID_STATUSES = tuple(STATUS_LABELS.keys())


def is_canceled(appointment) -> bool:
    return (appointment or {}).get("status") == CANCELADO


def is_completed(appointment) -> bool:
    return (appointment or {}).get("status") == CONCLUIDO

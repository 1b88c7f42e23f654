# services/errors.py
# Erros da agenda. `code` é estável (vai no JSON); `message` é para a usuária.

from __future__ import annotations


class AgendaError(Exception):
    code = "agenda_error"
    status = 400
    default_message = "Não foi possível concluir a operação."

    def __init__(self, message: str | None = None, **detail):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)

    def to_dict(self) -> dict:
        out = {"ok": False, "error": self.code, "message": self.message}
        if self.detail:
            out["detail"] = self.detail
        return out


class ValidationError(AgendaError):
    code = "validation"
    status = 400
    default_message = "Dados inválidos."


class SlotUnavailable(AgendaError):
    code = "slot_unavailable"
    status = 409
    default_message = "Horário indisponível para essa duração."


class ActionLocked(AgendaError):
    code = "action_locked"
    status = 409
    default_message = "Ação bloqueada para este agendamento."


class NotFound(AgendaError):
    code = "not_found"
    status = 404
    default_message = "Registro não encontrado."


class DataStoreError(AgendaError):
    code = "datastore_error"
    status = 502
    default_message = "Não foi possível acessar o banco de dados."


class ReferentialIntegrityError(DataStoreError):
    code = "referential_constraint"
    status = 409
    default_message = "Não foi possível excluir: a cliente possui agendamentos vinculados."

# domain/locks.py
"""
Travas efêmeras por agendamento (só em memória, nunca gravadas).

    UNLOCKED ──troca rápida──▶ RESCHEDULE_LOCKED ──edição c/ data/hora──▶ EDIT_LOCKED
                                      ▲                                       │
                                      └──────────────troca rápida─────────────┘

RESCHEDULE_LOCKED bloqueia a troca rápida; EDIT_LOCKED bloqueia a edição.
As duas são exclusivas: entrar em uma limpa a outra.
Cancelado = ambas bloqueadas, qualquer que seja a trava guardada.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict

from domain.status import is_canceled


class LockState(str, Enum):
    UNLOCKED = "unlocked"
    RESCHEDULE_LOCKED = "reschedule_locked"
    EDIT_LOCKED = "edit_locked"


class RescheduleLocks:
    def __init__(self) -> None:
        self._states: Dict[Any, LockState] = {}

    def state(self, appointment_id: Any) -> LockState:
        return self._states.get(appointment_id, LockState.UNLOCKED)

    def mark_rescheduled(self, appointment_id: Any) -> LockState:
        self._states[appointment_id] = LockState.RESCHEDULE_LOCKED
        return self._states[appointment_id]

    def mark_edited(self, appointment_id: Any, time_changed: bool) -> LockState:
        # edição que não mexe em data/hora não altera a trava
        if time_changed:
            self._states[appointment_id] = LockState.EDIT_LOCKED
        return self.state(appointment_id)

    def can_reschedule(self, appointment: Dict[str, Any]) -> bool:
        if is_canceled(appointment):
            return False
        return self.state(appointment.get("id")) != LockState.RESCHEDULE_LOCKED

    def can_edit(self, appointment: Dict[str, Any]) -> bool:
        if is_canceled(appointment):
            return False
        return self.state(appointment.get("id")) != LockState.EDIT_LOCKED

    def clear(self) -> None:
        self._states.clear()

    def __len__(self) -> int:
        return len(self._states)

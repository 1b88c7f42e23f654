# domain/confirmation.py
# Link "Confirmar horário" (wa.me) com a mensagem pronta para a cliente.

from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import quote

from domain.time_utils import local_time_of_day, parse_timestamp

_WEEKDAYS = ("seg.", "ter.", "qua.", "qui.", "sex.", "sáb.", "dom.")
_MONTHS = ("jan.", "fev.", "mar.", "abr.", "mai.", "jun.",
           "jul.", "ago.", "set.", "out.", "nov.", "dez.")


def digits_only(s: str) -> str:
    return "".join(ch for ch in (s or "") if ch.isdigit())


def format_date_br(value: Any) -> str:
    """Ex.: "seg., 10 de mar." (mesmo formato curto do calendário)."""
    dt = parse_timestamp(value)
    if dt is None:
        return ""
    return f"{_WEEKDAYS[dt.weekday()]}, {dt.day:02d} de {_MONTHS[dt.month - 1]}"


def confirmation_message(appointment: Dict[str, Any]) -> str:
    cliente = appointment.get("cliente") or {}
    inicio = appointment.get("data_hora_inicio")
    return (
        f"Olá {cliente.get('nome_completo') or ''} podemos confirmar nosso horário "
        f"{format_date_br(inicio)} - {local_time_of_day(inicio) or ''}"
    )


def confirmation_link(appointment: Dict[str, Any]) -> Optional[str]:
    phone = digits_only((appointment.get("cliente") or {}).get("telefone") or "")
    if not phone:
        return None
    return f"https://wa.me/{phone}?text={quote(confirmation_message(appointment))}"

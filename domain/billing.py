# domain/billing.py
# Faturamento: atendimentos concluídos num período (dias locais, inclusivo).

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from domain.slots import find_service
from domain.status import is_completed
from domain.time_utils import local_day_key


def _to_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def appointment_price(appointment: Dict[str, Any], services: Iterable[Dict[str, Any]]) -> float:
    joined = appointment.get("servico") or {}
    valor = joined.get("valor")
    if valor is None:
        valor = (find_service(appointment.get("servico_id"), services) or {}).get("valor")
    return _to_float(valor)


def billing_summary(
    appointments: Iterable[Dict[str, Any]],
    services: Iterable[Dict[str, Any]],
    start_day: str,
    end_day: str,
) -> Dict[str, Any]:
    services = list(services or [])
    rows: List[Dict[str, Any]] = []
    total = 0.0
    for item in appointments or []:
        if not is_completed(item):
            continue
        day = local_day_key(item.get("data_hora_inicio"))
        if not day or not (start_day <= day <= end_day):
            continue
        valor = appointment_price(item, services)
        total += valor
        rows.append({"agendamento": item, "dia": day, "valor": valor})

    count = len(rows)
    return {
        "inicio": start_day,
        "fim": end_day,
        "quantidade": count,
        "total": round(total, 2),
        "ticket_medio": round(total / count, 2) if count else 0.0,
        "itens": rows,
    }

# domain/agenda.py
# Recortes da agenda (dia/semana), agrupamento por dia e filtros dos cadastros.

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Tuple

from domain.time_utils import end_of_week, local_day_key, start_of_week


def filter_by_day(appointments: Iterable[Dict[str, Any]], day: str) -> List[Dict[str, Any]]:
    return [a for a in appointments or [] if local_day_key(a.get("data_hora_inicio")) == day]


def filter_by_week(appointments: Iterable[Dict[str, Any]], any_day_in_week: str) -> List[Dict[str, Any]]:
    ini = start_of_week(any_day_in_week)
    fim = end_of_week(any_day_in_week)
    out = []
    for a in appointments or []:
        key = local_day_key(a.get("data_hora_inicio"))
        # DayKey "YYYY-MM-DD" compara como string
        if key and ini <= key <= fim:
            out.append(a)
    return out


def group_by_day(appointments: Iterable[Dict[str, Any]]) -> List[Tuple[str, List[Dict[str, Any]]]]:
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for a in appointments or []:
        key = local_day_key(a.get("data_hora_inicio"))
        if key is None:
            continue
        groups.setdefault(key, []).append(a)
    return sorted(groups.items(), key=lambda kv: kv[0])


def search_clients(clients: Iterable[Dict[str, Any]], term: str = "") -> List[Dict[str, Any]]:
    t = (term or "").strip().lower()
    if not t:
        return list(clients or [])
    return [
        c for c in clients or []
        if t in (c.get("nome_completo") or "").lower() or t in (c.get("telefone") or "").lower()
    ]


def active_services(services: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [s for s in services or [] if s.get("ativo")]

# domain/slots.py
"""
Agenda: motor de horários (dia único)

Contrato estável:
    occupied_slots(appointments_for_day, services) -> ["HH:MM - HH:MM", ...]
    available_start_times(duration, appointments_for_day, exclude_id, services) -> ["HH:MM", ...]

Regras padrão (sobrescritas por services.agenda_rules quando o chamador passa):
  - Janela de atendimento 08:00–20:00 (fim exclusivo)
  - Passo entre slots: 30 minutos
  - Duração padrão quando o serviço não é encontrado: 60 minutos
  - Cancelados não ocupam horário
  - Conflito: intervalos semiabertos [ini, fim) que se cruzam
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

from domain.status import is_canceled
from domain.time_utils import local_time_of_day, minutes_to_time, time_to_minutes

WORK_START_MINUTES = 8 * 60
WORK_END_MINUTES = 20 * 60
SLOT_MINUTES = 30
DEFAULT_DURATION_MIN = 60


def find_service(service_id: Any, services: Iterable[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if service_id is None:
        return None
    for s in services or []:
        if s.get("id") == service_id:
            return s
    return None


def _positive_int(value: Any) -> Optional[int]:
    try:
        v = int(float(value))
    except (TypeError, ValueError):
        return None
    return v if v > 0 else None


def service_duration(
    appointment: Dict[str, Any],
    services: Iterable[Dict[str, Any]],
    default: int = DEFAULT_DURATION_MIN,
) -> int:
    """Duração do serviço do agendamento: serviço já juntado > catálogo > padrão."""
    joined = appointment.get("servico") or {}
    dur = _positive_int(joined.get("duracao_minutos"))
    if dur is None:
        svc = find_service(appointment.get("servico_id"), services) or {}
        dur = _positive_int(svc.get("duracao_minutos"))
    return dur if dur is not None else default


def appointment_range(
    appointment: Dict[str, Any],
    services: Iterable[Dict[str, Any]],
    default_duration: int = DEFAULT_DURATION_MIN,
) -> Tuple[int, int]:
    """(início, fim) em minutos do dia; fim degenerado (== início) é re-derivado."""
    start = time_to_minutes(local_time_of_day(appointment.get("data_hora_inicio")))
    end = time_to_minutes(local_time_of_day(appointment.get("data_hora_fim")))
    start = start if start is not None else 0
    if end is None or end == start:
        end = start + service_duration(appointment, services, default_duration)
    return start, end


def _overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    return a_start < b_end and a_end > b_start


def busy_ranges(
    appointments_for_day: Iterable[Dict[str, Any]],
    services: Iterable[Dict[str, Any]],
    exclude_id: Any = None,
    default_duration: int = DEFAULT_DURATION_MIN,
) -> List[Tuple[int, int]]:
    out: List[Tuple[int, int]] = []
    for item in appointments_for_day or []:
        if is_canceled(item):
            continue
        if exclude_id is not None and item.get("id") == exclude_id:
            continue
        out.append(appointment_range(item, services, default_duration))
    return out


def occupied_slots(
    appointments_for_day: Iterable[Dict[str, Any]],
    services: Iterable[Dict[str, Any]],
    default_duration: int = DEFAULT_DURATION_MIN,
) -> List[str]:
    ranges = busy_ranges(appointments_for_day, services, default_duration=default_duration)
    # sorted() é estável: empates mantêm a ordem de entrada
    ranges = sorted(ranges, key=lambda r: r[0])
    return [f"{minutes_to_time(a)} - {minutes_to_time(b)}" for a, b in ranges]


def available_start_times(
    duration: Any,
    appointments_for_day: Iterable[Dict[str, Any]],
    exclude_id: Any,
    services: Iterable[Dict[str, Any]],
    *,
    work_start: int = WORK_START_MINUTES,
    work_end: int = WORK_END_MINUTES,
    step: int = SLOT_MINUTES,
    default_duration: int = DEFAULT_DURATION_MIN,
) -> List[str]:
    try:
        dur = int(float(duration or 0))
    except (TypeError, ValueError):
        dur = 0
    if dur <= 0 or step <= 0:
        return []

    busy = busy_ranges(appointments_for_day, services, exclude_id, default_duration)

    available: List[str] = []
    start = work_start
    while start + dur <= work_end:
        end = start + dur
        if not any(_overlaps(start, end, b_ini, b_fim) for b_ini, b_fim in busy):
            available.append(minutes_to_time(start))
        start += step
    # já sai ordenado pela varredura
    return available


def reschedule_options(
    appointment: Dict[str, Any],
    appointments_for_day: Iterable[Dict[str, Any]],
    services: Iterable[Dict[str, Any]],
    **window: int,
) -> Dict[str, Any]:
    """
    Lista "atual + alternativas" para trocar o horário de um agendamento.

    O horário atual pode não estar na grade (ex.: 09:15), então é unido
    explicitamente à lista antes de ordenar.
    """
    default_duration = window.get("default_duration", DEFAULT_DURATION_MIN)
    duration = service_duration(appointment, services, default_duration)
    available = available_start_times(
        duration, appointments_for_day, appointment.get("id"), services, **window
    )
    current = local_time_of_day(appointment.get("data_hora_inicio"))

    times = list(available)
    if current and current not in times:
        times.append(current)
    times.sort(key=lambda t: time_to_minutes(t) or 0)

    return {
        "atual": current,
        "duracao": duration,
        "horarios": times,
        "tem_alternativas": any(t != current for t in available),
    }

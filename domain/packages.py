# domain/packages.py
"""
Agenda: pacotes de sessões (ex.: "2 mãos 2 pés" = pacote de 4)

Tamanho do pacote:
  1) campo explícito no serviço (aliases históricos), se > 1
  2) fallback: nome do serviço normalizado, somando "<n> mao(s)/pe(s)"
  3) senão 0 = serviço sem pacote (não acompanhado)

Progresso é leitura pura sobre os agendamentos concluídos; nada é gravado.
"""

from __future__ import annotations

import math
import re
import unicodedata
from typing import Any, Dict, Iterable, List, Optional, Tuple

from domain.slots import find_service
from domain.status import is_completed

PACKAGE_SIZE_FIELDS = ("pacote_total", "pacote_quantidade", "quantidade_pacote", "qtd_pacote")

_UNIT_RE = re.compile(r"(\d+)\s*(maos?|pes?)")


def _strip_accents_lower(s: str) -> str:
    s = s or ""
    s = unicodedata.normalize("NFKD", s)
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    return s.lower().strip()


def parse_package_size_from_name(name: Optional[str]) -> int:
    """Soma todos os "<n> maos/pes" do nome; só vale como pacote se a soma for > 1."""
    nome = _strip_accents_lower(str(name or ""))
    if not nome:
        return 0
    total = sum(int(m.group(1)) for m in _UNIT_RE.finditer(nome))
    return total if total > 1 else 0


def _explicit_size(service: Dict[str, Any]) -> Optional[float]:
    # primeiro alias preenchido decide, mesmo que inválido
    for field in PACKAGE_SIZE_FIELDS:
        raw = service.get(field)
        if raw is None:
            continue
        try:
            value = float(raw)
        except (TypeError, ValueError):
            return None
        return value if math.isfinite(value) else None
    return None


def package_size(service: Optional[Dict[str, Any]]) -> int:
    if not service:
        return 0
    explicit = _explicit_size(service)
    if explicit is not None and explicit > 1:
        return int(explicit)
    return parse_package_size_from_name(service.get("nome"))


def completed_count(client_id: Any, service_id: Any, all_appointments: Iterable[Dict[str, Any]]) -> int:
    return sum(
        1
        for item in all_appointments or []
        if is_completed(item)
        and item.get("cliente_id") == client_id
        and item.get("servico_id") == service_id
    )


def cycle_progress(completed: int, size: int) -> int:
    if completed <= 0 or size <= 0:
        return 0
    return ((completed - 1) % size) + 1


def cycle_complete(completed: int, size: int) -> bool:
    return size > 0 and completed > 0 and completed % size == 0


def completed_counts_by_pair(
    all_appointments: Iterable[Dict[str, Any]],
    services: Iterable[Dict[str, Any]],
) -> Dict[Tuple[Any, Any], int]:
    """Concluídos por (cliente, serviço), só para serviços que são pacote."""
    services = list(services or [])
    out: Dict[Tuple[Any, Any], int] = {}
    for item in all_appointments or []:
        if not is_completed(item):
            continue
        if not item.get("cliente_id") or not item.get("servico_id"):
            continue
        svc = item.get("servico") or find_service(item.get("servico_id"), services)
        if not package_size(svc):
            continue
        key = (item["cliente_id"], item["servico_id"])
        out[key] = out.get(key, 0) + 1
    return out


def package_progress(
    appointment: Dict[str, Any],
    all_appointments: Iterable[Dict[str, Any]],
    services: Iterable[Dict[str, Any]],
    counts: Optional[Dict[Tuple[Any, Any], int]] = None,
) -> Optional[Dict[str, Any]]:
    """
    Anotação de pacote para um agendamento; None quando o serviço não é pacote.

    `counts` (de completed_counts_by_pair) evita recontar a lista inteira
    quando a visão do dia/semana anota vários agendamentos de uma vez.
    """
    svc = appointment.get("servico") or find_service(appointment.get("servico_id"), services or [])
    size = package_size(svc)
    client_id = appointment.get("cliente_id")
    service_id = appointment.get("servico_id")
    if not size or not client_id or not service_id:
        return None

    if counts is not None:
        done = counts.get((client_id, service_id), 0)
    else:
        done = completed_count(client_id, service_id, all_appointments)
    progress = cycle_progress(done, size)
    ticks: List[bool] = [i < progress for i in range(size)]
    return {
        "tamanho": size,
        "concluidos": done,
        "progresso": progress,
        "completo": cycle_complete(done, size),
        "ticks": ticks,
    }

# domain/time_utils.py
"""
Agenda: utilitários de data/hora (dia local)

Convenções:
  - DayKey: "YYYY-MM-DD" no fuso local (AGENDA_TZ, padrão America/Sao_Paulo)
  - TimeOfDay: "HH:MM" no fuso local
  - Timestamp: string ISO-8601 (o banco grava em UTC com 'Z') ou datetime

Data pura ("2025-03-10") é sempre meia-noite local; nunca passa por UTC.
Todas as funções são puras (dado um fuso fixo).
"""

from __future__ import annotations

import os
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, List, Optional, Union

import pytz

DEFAULT_TZ = "America/Sao_Paulo"

_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_HHMM_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::\d{2})?\s*$")

Timestamp = Union[str, datetime, date]


def local_tz(tz_name: Optional[str] = None) -> pytz.BaseTzInfo:
    name = (tz_name or os.getenv("AGENDA_TZ") or DEFAULT_TZ).strip()
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        return pytz.timezone(DEFAULT_TZ)


def parse_timestamp(value: Optional[Timestamp], tz_name: Optional[str] = None) -> Optional[datetime]:
    """Converte qualquer timestamp aceito em datetime tz-aware no fuso local."""
    if value is None or value == "":
        return None
    tz = local_tz(tz_name)

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return tz.localize(datetime(value.year, value.month, value.day))
    else:
        s = str(value).strip()
        if _DAY_RE.match(s):
            y, m, d = [int(x) for x in s.split("-")]
            return tz.localize(datetime(y, m, d))
        try:
            dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
        except ValueError:
            return None

    if dt.tzinfo is None:
        return tz.localize(dt)
    return dt.astimezone(tz)


def local_day_key(value: Optional[Timestamp], tz_name: Optional[str] = None) -> Optional[str]:
    dt = parse_timestamp(value, tz_name)
    return dt.strftime("%Y-%m-%d") if dt else None


def local_time_of_day(value: Optional[Timestamp], tz_name: Optional[str] = None) -> Optional[str]:
    dt = parse_timestamp(value, tz_name)
    return dt.strftime("%H:%M") if dt else None


def today(tz_name: Optional[str] = None) -> str:
    return datetime.now(local_tz(tz_name)).strftime("%Y-%m-%d")


def _iso_utc(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def combine(day: Optional[str], time_of_day: Optional[str], tz_name: Optional[str] = None) -> Optional[str]:
    """Dia local + HH:MM -> ISO UTC. None se faltar algum dos dois (ou vier inválido)."""
    if not day or not time_of_day:
        return None
    if not _DAY_RE.match(str(day).strip()):
        return None
    minutes = time_to_minutes(time_of_day)
    if minutes is None:
        return None
    y, m, d = [int(x) for x in str(day).strip().split("-")]
    try:
        naive = datetime(y, m, d, minutes // 60, minutes % 60)
    except ValueError:
        return None
    return _iso_utc(local_tz(tz_name).localize(naive))


def add_minutes(value: Timestamp, minutes: int, tz_name: Optional[str] = None) -> Optional[str]:
    dt = parse_timestamp(value, tz_name)
    if dt is None:
        return None
    return _iso_utc(dt + timedelta(minutes=int(minutes)))


def is_day_key(value: Any) -> bool:
    """True para "YYYY-MM-DD" que existe no calendário (rejeita 2025-02-30)."""
    if not isinstance(value, str) or not _DAY_RE.match(value.strip()):
        return False
    try:
        _to_date(value)
    except ValueError:
        return False
    return True


def _to_date(day: str) -> date:
    return datetime.strptime(str(day).strip()[:10], "%Y-%m-%d").date()


def start_of_week(day: str) -> str:
    """Semana começa na segunda-feira."""
    d = _to_date(day)
    return (d - timedelta(days=d.weekday())).isoformat()


def end_of_week(day: str) -> str:
    return (_to_date(start_of_week(day)) + timedelta(days=6)).isoformat()


def shift_days(day: str, days: int) -> str:
    return (_to_date(day) + timedelta(days=days)).isoformat()


def week_days(day: str) -> List[str]:
    start = start_of_week(day)
    return [shift_days(start, i) for i in range(7)]


# ---------------- minutos do dia ----------------

def time_to_minutes(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    m = _HHMM_RE.match(str(value))
    if not m:
        return None
    hh, mm = int(m.group(1)), int(m.group(2))
    if hh > 23 or mm > 59:
        return None
    return hh * 60 + mm


def minutes_to_time(minutes: int) -> str:
    # fim de range pode passar de 24h (ex.: "24:30")
    safe = max(0, int(minutes))
    return f"{safe // 60:02d}:{safe % 60:02d}"

# services/agenda_rules.py
# Regras da agenda (ENV sobre defaults seguros).
# Profissional único: não há regra por usuário, só o processo.
# O fuso (AGENDA_TZ) não entra aqui: é do processo, lido por domain.time_utils.

import os
import logging
from typing import Dict, Any

from domain.time_utils import time_to_minutes

log = logging.getLogger(__name__)

DEFAULT_RULES = {
    "work_start": "08:00",
    "work_end": "20:00",
    "slot_minutes": 30,
    "default_duration_min": 60,
    "billing_window_days": 30,
}


def _merge_env_overrides(rules: Dict[str, Any]) -> Dict[str, Any]:
    # Permite ajustar rapidamente via ENV sem redeploy.
    env_map = {
        "WORK_START": ("work_start", str),
        "WORK_END": ("work_end", str),
        "SLOT_MINUTES": ("slot_minutes", int),
        "DEFAULT_DURATION_MIN": ("default_duration_min", int),
        "BILLING_WINDOW_DAYS": ("billing_window_days", int),
    }
    for env, (key, caster) in env_map.items():
        val = os.getenv(env)
        if val:
            try:
                rules[key] = caster(val.strip())
            except ValueError:
                log.warning("[agenda_rules] ENV %s inválida: %r", env, val)
    return rules


def get_rules() -> Dict[str, Any]:
    rules = _merge_env_overrides(dict(DEFAULT_RULES))

    # Normalizações simples: volta ao default se vier lixo
    for key in ("work_start", "work_end"):
        if time_to_minutes(rules.get(key)) is None:
            log.warning("[agenda_rules] %s inválido (%r); usando %s", key, rules.get(key), DEFAULT_RULES[key])
            rules[key] = DEFAULT_RULES[key]
    if time_to_minutes(rules["work_end"]) <= time_to_minutes(rules["work_start"]):
        log.warning("[agenda_rules] janela vazia %s-%s; usando padrão", rules["work_start"], rules["work_end"])
        rules["work_start"] = DEFAULT_RULES["work_start"]
        rules["work_end"] = DEFAULT_RULES["work_end"]

    for key in ("slot_minutes", "default_duration_min", "billing_window_days"):
        if int(rules.get(key) or 0) <= 0:
            rules[key] = DEFAULT_RULES[key]
    return rules


def slot_window(rules: Dict[str, Any]) -> Dict[str, int]:
    """Kwargs para domain.slots (janela em minutos do dia)."""
    return {
        "work_start": time_to_minutes(rules["work_start"]),
        "work_end": time_to_minutes(rules["work_end"]),
        "step": int(rules["slot_minutes"]),
        "default_duration": int(rules["default_duration_min"]),
    }

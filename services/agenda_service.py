# services/agenda_service.py
"""
Agenda: sessão da profissional (snapshot + comandos)

A sessão guarda o último snapshot completo (clientes, serviços,
agendamentos) e as travas efêmeras de troca de horário/edição.

Regras:
  - Toda visão derivada (ocupados, horários livres, pacotes, travas) é
    recalculada do snapshot a cada leitura; nada é cacheado entre refreshes.
  - Toda mutação bem-sucedida é seguida de refresh() completo; nunca há
    patch otimista na lista local.
  - reload() = recarga total (equivale a abrir a agenda de novo): descarta
    as travas. refresh() pós-mutação mantém as travas.
  - Falha de leitura deixa o snapshot anterior intacto e propaga DataStoreError.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from domain.agenda import filter_by_day, filter_by_week, group_by_day, search_clients
from domain.billing import billing_summary
from domain.confirmation import confirmation_link
from domain.locks import RescheduleLocks
from domain.packages import PACKAGE_SIZE_FIELDS, completed_counts_by_pair, package_progress
from domain.slots import (
    appointment_range,
    available_start_times,
    busy_ranges,
    find_service,
    occupied_slots,
    reschedule_options,
    service_duration,
)
from domain.status import PENDENTE, STATUS_LABELS, VALID_STATUSES, is_canceled
from domain.time_utils import (
    add_minutes,
    combine,
    is_day_key,
    local_day_key,
    local_time_of_day,
    minutes_to_time,
    shift_days,
    time_to_minutes,
    today,
    week_days,
)
from services.agenda_rules import get_rules, slot_window
from services.errors import ActionLocked, NotFound, SlotUnavailable, ValidationError

log = logging.getLogger(__name__)


def _text(value: Any) -> str:
    return str(value or "").strip()


def _number(value: Any) -> Optional[float]:
    """Aceita vírgula como separador decimal ("45,50")."""
    if value is None or value == "":
        return None
    try:
        return float(str(value).replace(",", "."))
    except ValueError:
        return None


def _flag(value: Any, default: bool = True) -> bool:
    """Checkbox do formulário: aceita bool ou texto ("false", "0", "nao")."""
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on", "sim")
    return bool(value)


def _day(value: Optional[str], field: str = "data") -> str:
    """Dia pedido pela tela ("YYYY-MM-DD"); vazio = hoje."""
    if value is None or str(value).strip() == "":
        return today()
    day = str(value).strip()
    if not is_day_key(day):
        raise ValidationError("Data inválida.", **{field: value})
    return day


class AgendaSession:
    def __init__(self, store, rules: Optional[Dict[str, Any]] = None):
        self.store = store
        self.rules = rules or get_rules()
        self.window = slot_window(self.rules)
        self.locks = RescheduleLocks()
        self.clients: List[Dict[str, Any]] = []
        self.services: List[Dict[str, Any]] = []
        self.appointments: List[Dict[str, Any]] = []
        self.loaded = False

    # ------------------------------------------------------------------
    # Carga
    # ------------------------------------------------------------------
    def _fetch(self) -> None:
        clients = self.store.list_clients()
        services = self.store.list_services()
        appointments = self.store.list_appointments(clients=clients, services=services)
        # só troca o snapshot quando as três leituras deram certo
        self.clients, self.services, self.appointments = clients, services, appointments
        self.loaded = True
        log.info(
            "[agenda_service] snapshot: %d clientes, %d serviços, %d agendamentos",
            len(clients), len(services), len(appointments),
        )

    def reload(self) -> None:
        self._fetch()
        self.locks.clear()

    def refresh(self) -> None:
        self._fetch()

    def _ensure_loaded(self) -> None:
        if not self.loaded:
            self.reload()

    def _appointment(self, appointment_id: Any) -> Dict[str, Any]:
        for a in self.appointments:
            if a.get("id") == appointment_id:
                return a
        raise NotFound("Agendamento não encontrado.", id=appointment_id)

    def _client(self, client_id: Any) -> Dict[str, Any]:
        for c in self.clients:
            if c.get("id") == client_id:
                return c
        raise NotFound("Cliente não encontrada.", id=client_id)

    def _service(self, service_id: Any) -> Dict[str, Any]:
        svc = find_service(service_id, self.services)
        if svc is None:
            raise NotFound("Serviço não encontrado.", id=service_id)
        return svc

    def _duration(self, appointment: Dict[str, Any]) -> int:
        return service_duration(appointment, self.services, self.window["default_duration"])

    # ------------------------------------------------------------------
    # Visões
    # ------------------------------------------------------------------
    def _annotate(self, appt: Dict[str, Any], day_items: List[Dict[str, Any]], counts) -> Dict[str, Any]:
        return {
            "agendamento": appt,
            "inicio": local_time_of_day(appt.get("data_hora_inicio")),
            "duracao": self._duration(appt),
            "status_label": STATUS_LABELS.get(appt.get("status"), appt.get("status")),
            "pacote": package_progress(appt, self.appointments, self.services, counts=counts),
            "opcoes": reschedule_options(appt, day_items, self.services, **self.window),
            "trava": self.locks.state(appt.get("id")).value,
            "pode_editar": self.locks.can_edit(appt),
            "pode_reagendar": self.locks.can_reschedule(appt),
            "confirmacao": confirmation_link(appt),
        }

    def _day_block(self, day: str, items: List[Dict[str, Any]], counts) -> Dict[str, Any]:
        return {
            "dia": day,
            "ocupados": occupied_slots(items, self.services, self.window["default_duration"]),
            "agendamentos": [self._annotate(a, items, counts) for a in items],
        }

    def day_view(self, day: Optional[str] = None) -> Dict[str, Any]:
        self._ensure_loaded()
        day = _day(day)
        counts = completed_counts_by_pair(self.appointments, self.services)
        return self._day_block(day, filter_by_day(self.appointments, day), counts)

    def week_view(self, day: Optional[str] = None) -> Dict[str, Any]:
        self._ensure_loaded()
        day = _day(day)
        counts = completed_counts_by_pair(self.appointments, self.services)
        groups = group_by_day(filter_by_week(self.appointments, day))
        return {
            "dias": week_days(day),
            "grupos": [self._day_block(key, items, counts) for key, items in groups],
        }

    def options_for(self, appointment_id: Any) -> Dict[str, Any]:
        self._ensure_loaded()
        appt = self._appointment(appointment_id)
        day_items = filter_by_day(self.appointments, local_day_key(appt.get("data_hora_inicio")))
        return reschedule_options(appt, day_items, self.services, **self.window)

    def billing(self, start_day: Optional[str] = None, end_day: Optional[str] = None) -> Dict[str, Any]:
        self._ensure_loaded()
        end_day = _day(end_day, "fim")
        if start_day is None or str(start_day).strip() == "":
            start_day = shift_days(end_day, -(int(self.rules["billing_window_days"]) - 1))
        else:
            start_day = _day(start_day, "inicio")
        if start_day > end_day:
            raise ValidationError("Período inválido: início depois do fim.", inicio=start_day, fim=end_day)
        return billing_summary(self.appointments, self.services, start_day, end_day)

    def list_clients(self, search: str = "") -> List[Dict[str, Any]]:
        self._ensure_loaded()
        return search_clients(self.clients, search)

    def list_services(self) -> List[Dict[str, Any]]:
        self._ensure_loaded()
        return list(self.services)

    # ------------------------------------------------------------------
    # Comandos
    # ------------------------------------------------------------------
    def reschedule(self, appointment_id: Any, new_time: Optional[str]) -> bool:
        """
        Troca rápida de horário no mesmo dia.

        Retorna False quando não há o que trocar (horário vazio ou igual ao
        atual). SlotUnavailable se o horário não estiver entre os livres.
        """
        self._ensure_loaded()
        appt = self._appointment(appointment_id)
        if not self.locks.can_reschedule(appt):
            raise ActionLocked("Troca de horário bloqueada para este agendamento.", id=appointment_id)

        if new_time:
            mins = time_to_minutes(new_time)
            if mins is None:
                raise ValidationError("Horário inválido.", hora=new_time)
            new_time = minutes_to_time(mins)

        current = local_time_of_day(appt.get("data_hora_inicio"))
        if not new_time or new_time == current:
            return False

        day = local_day_key(appt.get("data_hora_inicio"))
        duration = self._duration(appt)
        day_items = filter_by_day(self.appointments, day)
        available = available_start_times(duration, day_items, appt.get("id"), self.services, **self.window)
        if new_time not in available:
            raise SlotUnavailable(hora=new_time, dia=day)

        inicio = combine(day, new_time)
        fim = add_minutes(inicio, duration)
        self.store.update_appointment(appointment_id, {"data_hora_inicio": inicio, "data_hora_fim": fim})
        log.info("[agenda_service] agendamento %s trocado para %s %s", appointment_id, day, new_time)

        self.locks.mark_rescheduled(appointment_id)
        self.refresh()
        return True

    def save_appointment(self, form: Dict[str, Any], appointment_id: Any = None) -> Dict[str, Any]:
        """Criação/edição completa (formulário de agendamento)."""
        self._ensure_loaded()
        editing = self._appointment(appointment_id) if appointment_id else None
        if editing is not None and not self.locks.can_edit(editing):
            raise ActionLocked("Edição bloqueada para este agendamento.", id=appointment_id)

        cliente_id = form.get("cliente_id")
        servico_id = form.get("servico_id")
        if not cliente_id or not servico_id:
            raise ValidationError("Selecione cliente e serviço.")
        data = _text(form.get("data"))
        hora = _text(form.get("hora_inicio"))
        if not data or not hora:
            raise ValidationError("Informe data e hora de início.")

        endereco = _text(form.get("endereco_atendimento"))
        if form.get("usar_endereco_cliente") and not endereco:
            cliente = next((c for c in self.clients if c.get("id") == cliente_id), None) or {}
            endereco = _text(cliente.get("endereco"))
        if not endereco:
            raise ValidationError("Informe o endereço do atendimento.")

        status = form.get("status") or PENDENTE
        if status not in VALID_STATUSES:
            raise ValidationError("Status inválido.", status=status)

        servico = find_service(servico_id, self.services)
        if servico is None:
            raise ValidationError("Selecione cliente e serviço.")

        inicio = combine(data, hora)
        if inicio is None:
            raise ValidationError("Informe data e hora de início.")

        hora_fim = _text(form.get("hora_fim"))
        if hora_fim:
            fim = combine(data, hora_fim)
            if fim is None or time_to_minutes(hora_fim) < time_to_minutes(hora):
                raise ValidationError("Horário de término inválido.")
        else:
            fim = add_minutes(inicio, self._duration({"servico_id": servico_id}))

        payload = {
            "cliente_id": cliente_id,
            "servico_id": servico_id,
            "data_hora_inicio": inicio,
            "data_hora_fim": fim,
            "endereco_atendimento": endereco,
            "status": status,
            "observacoes": _text(form.get("observacoes")) or None,
        }

        if not is_canceled(payload):
            self._check_conflict(payload, data, appointment_id)

        time_changed = False
        if editing is not None:
            time_changed = (
                local_day_key(editing.get("data_hora_inicio")) != data
                or local_time_of_day(editing.get("data_hora_inicio")) != local_time_of_day(inicio)
            )
            saved = self.store.update_appointment(appointment_id, payload)
            self.locks.mark_edited(appointment_id, time_changed)
        else:
            saved = self.store.insert_appointment(payload)

        log.info(
            "[agenda_service] agendamento %s salvo (edição=%s, horário mudou=%s)",
            saved.get("id"), editing is not None, time_changed,
        )
        self.refresh()
        return saved

    def _check_conflict(self, payload: Dict[str, Any], day: str, exclude_id: Any) -> None:
        start, end = appointment_range(payload, self.services, self.window["default_duration"])
        busy = busy_ranges(
            filter_by_day(self.appointments, day), self.services, exclude_id, self.window["default_duration"]
        )
        if any(start < b_fim and end > b_ini for b_ini, b_fim in busy):
            raise SlotUnavailable("Já existe agendamento nesse horário.", dia=day)

    def delete_appointment(self, appointment_id: Any) -> None:
        self._ensure_loaded()
        self.store.delete_appointment(appointment_id)
        self.refresh()

    def save_client(self, form: Dict[str, Any], client_id: Any = None) -> Dict[str, Any]:
        nome = _text(form.get("nome_completo"))
        telefone = _text(form.get("telefone"))
        if not nome or not telefone:
            raise ValidationError("Preencha nome e telefone da cliente.")

        payload = {
            "nome_completo": nome,
            "telefone": telefone,
            "endereco": _text(form.get("endereco")) or None,
            "observacoes": _text(form.get("observacoes")) or None,
        }
        if client_id:
            saved = self.store.update_client(client_id, payload)
        else:
            saved = self.store.insert_client(payload)
        self.refresh()
        return saved

    def delete_client(self, client_id: Any) -> None:
        self.store.delete_client(client_id)
        log.info("[agenda_service] cliente %s excluída", client_id)
        self.refresh()

    def save_service(self, form: Dict[str, Any], service_id: Any = None) -> Dict[str, Any]:
        nome = _text(form.get("nome"))
        if not nome:
            raise ValidationError("Informe o nome do serviço.")
        valor = _number(form.get("valor"))
        duracao = _number(form.get("duracao_minutos"))
        if not valor or not duracao or valor < 0 or duracao < 0:
            raise ValidationError("Informe valor e duração válidos.")

        payload = {
            "nome": nome,
            "valor": valor,
            "duracao_minutos": int(duracao),
            "ativo": _flag(form.get("ativo")),
        }
        for field in PACKAGE_SIZE_FIELDS:
            if form.get(field) not in (None, ""):
                payload[field] = form[field]

        if service_id:
            saved = self.store.update_service(service_id, payload)
        else:
            saved = self.store.insert_service(payload)
        self.refresh()
        return saved

    def toggle_service(self, service_id: Any) -> Dict[str, Any]:
        self._ensure_loaded()
        svc = self._service(service_id)
        saved = self.store.update_service(service_id, {"ativo": not svc.get("ativo")})
        self.refresh()
        return saved

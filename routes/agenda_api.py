# routes/agenda_api.py
# Rotas: /api/agenda/day, /api/agenda/week, /api/agenda/billing,
#        /api/agenda/appointments (POST/PUT/DELETE), troca rápida de horário.
# Respostas no padrão do projeto: {"ok": bool, ...}; erros de domínio com "error"/"message".

import logging
from flask import Blueprint, request, jsonify, current_app

from services.errors import AgendaError

agenda_api_bp = Blueprint("agenda_api_bp", __name__, url_prefix="/api/agenda")

log = logging.getLogger(__name__)


def _session():
    return current_app.extensions["agenda_session"]


def _fail(err: AgendaError):
    if err.status >= 500:
        log.warning("[agenda_api] %s: %s", err.code, err.message)
    return jsonify(err.to_dict()), err.status


def _day_param():
    return (request.args.get("date") or request.args.get("data") or "").strip() or None


# ---------------------------------------------------------------------
# GET /api/agenda/day?date=YYYY-MM-DD
# resp: { ok, dia, ocupados: ["HH:MM - HH:MM"], agendamentos: [...] }
# ---------------------------------------------------------------------
@agenda_api_bp.route("/day", methods=["GET"])
def day_view():
    try:
        return jsonify({"ok": True, **_session().day_view(_day_param())}), 200
    except AgendaError as e:
        return _fail(e)


# ---------------------------------------------------------------------
# GET /api/agenda/week?date=YYYY-MM-DD  (qualquer dia da semana)
# ---------------------------------------------------------------------
@agenda_api_bp.route("/week", methods=["GET"])
def week_view():
    try:
        return jsonify({"ok": True, **_session().week_view(_day_param())}), 200
    except AgendaError as e:
        return _fail(e)


# ---------------------------------------------------------------------
# POST /api/agenda/reload: recarga total (descarta travas)
# ---------------------------------------------------------------------
@agenda_api_bp.route("/reload", methods=["POST"])
def reload_all():
    try:
        _session().reload()
        return jsonify({"ok": True}), 200
    except AgendaError as e:
        return _fail(e)


@agenda_api_bp.route("/appointments/<appointment_id>/options", methods=["GET"])
def appointment_options(appointment_id):
    try:
        return jsonify({"ok": True, **_session().options_for(appointment_id)}), 200
    except AgendaError as e:
        return _fail(e)


# ---------------------------------------------------------------------
# POST /api/agenda/appointments
# body: { cliente_id, servico_id, data, hora_inicio, status?,
#         endereco_atendimento | usar_endereco_cliente, observacoes?, hora_fim? }
# ---------------------------------------------------------------------
@agenda_api_bp.route("/appointments", methods=["POST"])
def create_appointment():
    data = request.get_json(silent=True) or {}
    try:
        saved = _session().save_appointment(data)
        return jsonify({"ok": True, "agendamento": saved}), 201
    except AgendaError as e:
        return _fail(e)


# PUT = substituição completa (mesmo formulário do POST)
@agenda_api_bp.route("/appointments/<appointment_id>", methods=["PUT"])
def update_appointment(appointment_id):
    data = request.get_json(silent=True) or {}
    try:
        saved = _session().save_appointment(data, appointment_id=appointment_id)
        return jsonify({"ok": True, "agendamento": saved}), 200
    except AgendaError as e:
        return _fail(e)


@agenda_api_bp.route("/appointments/<appointment_id>", methods=["DELETE"])
def delete_appointment(appointment_id):
    try:
        _session().delete_appointment(appointment_id)
        return jsonify({"ok": True}), 200
    except AgendaError as e:
        return _fail(e)


# ---------------------------------------------------------------------
# POST /api/agenda/appointments/<id>/reschedule
# body: { "hora": "HH:MM" }
# resp: { ok, changed }  | 409 slot_unavailable / action_locked
# ---------------------------------------------------------------------
@agenda_api_bp.route("/appointments/<appointment_id>/reschedule", methods=["POST"])
def reschedule(appointment_id):
    data = request.get_json(silent=True) or {}
    new_time = (data.get("hora") or data.get("hhmm") or "").strip()
    try:
        changed = _session().reschedule(appointment_id, new_time)
        return jsonify({"ok": True, "changed": changed}), 200
    except AgendaError as e:
        return _fail(e)


# ---------------------------------------------------------------------
# GET /api/agenda/billing?inicio=YYYY-MM-DD&fim=YYYY-MM-DD
# ---------------------------------------------------------------------
@agenda_api_bp.route("/billing", methods=["GET"])
def billing():
    inicio = (request.args.get("inicio") or "").strip() or None
    fim = (request.args.get("fim") or "").strip() or None
    try:
        return jsonify({"ok": True, **_session().billing(inicio, fim)}), 200
    except AgendaError as e:
        return _fail(e)

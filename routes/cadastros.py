# routes/cadastros.py
# Cadastros: clientes e serviços.
#   GET/POST   /api/clientes            (GET aceita ?q= busca por nome/telefone)
#   PUT/DELETE /api/clientes/<id>
#   GET/POST   /api/servicos
#   PUT        /api/servicos/<id>
#   POST       /api/servicos/<id>/toggle  (ativa/desativa)

from flask import Blueprint, request, jsonify, current_app

from services.errors import AgendaError

cadastros_bp = Blueprint("cadastros_bp", __name__, url_prefix="/api")


def _session():
    return current_app.extensions["agenda_session"]


@cadastros_bp.route("/clientes", methods=["GET"])
def list_clients():
    q = (request.args.get("q") or "").strip()
    try:
        return jsonify({"ok": True, "clientes": _session().list_clients(q)}), 200
    except AgendaError as e:
        return jsonify(e.to_dict()), e.status


@cadastros_bp.route("/clientes", methods=["POST"])
@cadastros_bp.route("/clientes/<client_id>", methods=["PUT"])
def save_client(client_id=None):
    data = request.get_json(silent=True) or {}
    try:
        saved = _session().save_client(data, client_id=client_id)
        return jsonify({"ok": True, "cliente": saved}), (200 if client_id else 201)
    except AgendaError as e:
        return jsonify(e.to_dict()), e.status


@cadastros_bp.route("/clientes/<client_id>", methods=["DELETE"])
def delete_client(client_id):
    try:
        _session().delete_client(client_id)
        return jsonify({"ok": True}), 200
    except AgendaError as e:
        # referential_constraint sai com mensagem própria (cliente com agendamentos)
        return jsonify(e.to_dict()), e.status


@cadastros_bp.route("/servicos", methods=["GET"])
def list_services():
    try:
        return jsonify({"ok": True, "servicos": _session().list_services()}), 200
    except AgendaError as e:
        return jsonify(e.to_dict()), e.status


@cadastros_bp.route("/servicos", methods=["POST"])
@cadastros_bp.route("/servicos/<service_id>", methods=["PUT"])
def save_service(service_id=None):
    data = request.get_json(silent=True) or {}
    try:
        saved = _session().save_service(data, service_id=service_id)
        return jsonify({"ok": True, "servico": saved}), (200 if service_id else 201)
    except AgendaError as e:
        return jsonify(e.to_dict()), e.status


@cadastros_bp.route("/servicos/<service_id>/toggle", methods=["POST"])
def toggle_service(service_id):
    try:
        saved = _session().toggle_service(service_id)
        return jsonify({"ok": True, "servico": saved}), 200
    except AgendaError as e:
        return jsonify(e.to_dict()), e.status

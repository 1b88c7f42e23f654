# routes/health.py
import os
import time

from flask import Blueprint, jsonify

from domain.time_utils import local_tz

health_bp = Blueprint("health_bp", __name__, url_prefix="/api")


@health_bp.route("/health", methods=["GET"])
def health():
    # não toca no banco: serve de liveness mesmo sem credenciais
    return jsonify({
        "ok": True,
        "service": "agenda-api",
        "ts": int(time.time()),
        "backend": (os.getenv("AGENDA_BACKEND") or "firestore").strip().lower(),
        "tz": local_tz().zone,
    }), 200

# app.py: Agenda (profissional única)
# Flask + CORS em /api/*, sessão da agenda em app.extensions.
# Backend de dados: Firestore (padrão) ou memória (AGENDA_BACKEND=memory).

import os
import logging
from flask import Flask
from flask_cors import CORS

from routes import register_blueprints
from services.agenda_repo import get_store
from services.agenda_service import AgendaSession

logging.basicConfig(level=logging.INFO)

DEFAULT_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5000",
]


def _allowed_origins():
    raw = os.environ.get("ALLOWED_ORIGINS", "")
    origins = [x.strip() for x in raw.split(",") if x.strip()]
    return origins or DEFAULT_ORIGINS


def create_app(store=None, rules=None) -> Flask:
    app = Flask(__name__)

    CORS(app, resources={
        r"/api/*": {
            "origins": _allowed_origins(),
            "allow_headers": ["Content-Type", "X-Requested-With"],
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        },
    })

    # conexão com o banco só acontece na primeira leitura
    app.extensions["agenda_session"] = AgendaSession(store or get_store(), rules=rules)
    register_blueprints(app)
    return app


app = create_app()


if __name__ == "__main__":
    port = int(os.environ.get("PORT", "5000"))
    app.run(host="0.0.0.0", port=port)

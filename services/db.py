# services/db.py
# Firestore da agenda via Firebase Admin.
# Conexão preguiçosa: importar não exige credenciais; get_db() conecta na
# primeira leitura/gravação e reaproveita o client.
#
# Credenciais (nessa ordem):
#   FIREBASE_CREDENTIALS_JSON       conteúdo da chave de serviço
#   GOOGLE_APPLICATION_CREDENTIALS  caminho do .json
# O project_id da chave precisa bater com FIREBASE_PROJECT_ID.

import os
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

import firebase_admin
from firebase_admin import credentials, firestore as fa_firestore

log = logging.getLogger(__name__)

_APP: Optional[firebase_admin.App] = None
_DB = None


def now_ts() -> str:
    """ISO8601 UTC terminando em 'Z' (createdAt/updatedAt)."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def _key_from_env() -> Optional[Dict[str, Any]]:
    raw = (os.getenv("FIREBASE_CREDENTIALS_JSON") or "").strip()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        log.error("[db] FIREBASE_CREDENTIALS_JSON não é JSON válido: %s", e)
        return None


def _key_from_file() -> Optional[Dict[str, Any]]:
    path = (os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or "").strip()
    if not path:
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        log.error("[db] não foi possível ler a chave em %s: %s", path, e)
        return None


def _service_account_key() -> Tuple[Dict[str, Any], str]:
    for loader, origem in (
        (_key_from_env, "FIREBASE_CREDENTIALS_JSON"),
        (_key_from_file, "GOOGLE_APPLICATION_CREDENTIALS"),
    ):
        key = loader()
        if key:
            return key, origem
    raise RuntimeError(
        "[db] sem credenciais do Firebase: defina FIREBASE_CREDENTIALS_JSON "
        "ou GOOGLE_APPLICATION_CREDENTIALS."
    )


def _init_firebase_app() -> firebase_admin.App:
    global _APP
    if _APP is not None:
        return _APP

    try:
        # outro módulo já pode ter inicializado o app padrão
        _APP = firebase_admin.get_app()
        return _APP
    except ValueError:
        pass

    project_id = (os.getenv("FIREBASE_PROJECT_ID") or "").strip()
    if not project_id:
        raise RuntimeError("[db] FIREBASE_PROJECT_ID não definido.")

    key, origem = _service_account_key()
    key_project = key.get("project_id")
    if key_project != project_id:
        raise RuntimeError(f"[db] chave de outro projeto: key={key_project} env={project_id}")

    log.info("[db] Firebase Admin via %s (projeto %s)", origem, project_id)
    _APP = firebase_admin.initialize_app(credentials.Certificate(key), {"projectId": project_id})
    return _APP


def get_db():
    global _DB
    if _DB is None:
        _init_firebase_app()
        _DB = fa_firestore.client()
    return _DB

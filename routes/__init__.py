# routes/__init__.py

def register_blueprints(app):
    """Registra os blueprints da API da agenda."""
    from .health import health_bp
    app.register_blueprint(health_bp)

    from .agenda_api import agenda_api_bp
    app.register_blueprint(agenda_api_bp)

    from .cadastros import cadastros_bp
    app.register_blueprint(cadastros_bp)

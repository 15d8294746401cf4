"""Flask routes for the agent activity tracker."""

from agent_dashboard.routes.agents import agents_bp
from agent_dashboard.routes.events import events_bp
from agent_dashboard.routes.hooks import hooks_bp

__all__ = [
    "agents_bp",
    "events_bp",
    "hooks_bp",
]


def register_blueprints(app):
    """Register all blueprints with the Flask app.

    The hooks blueprint is mounted twice: /hook and the older /api/hooks.

    Args:
        app: The Flask application instance.
    """
    app.register_blueprint(agents_bp, url_prefix="/api")
    app.register_blueprint(events_bp, url_prefix="/api")
    app.register_blueprint(hooks_bp, url_prefix="/hook")
    app.register_blueprint(hooks_bp, url_prefix="/api/hooks", name="api_hooks")

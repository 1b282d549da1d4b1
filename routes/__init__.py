"""
Flask route blueprints for the order lifecycle engine.

This module contains all route handlers organized by functionality:
- orders: Order placement, transitions, tips and listings
- api: Partner directory, notification inbox, health check

Each blueprint is registered with the Flask app in create_app().
"""

from .orders import orders_bp
from .api import api_bp

__all__ = [
    "orders_bp",
    "api_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(orders_bp)
    app.register_blueprint(api_bp)

"""
Order lifecycle engine - Flask Application Entry Point.

This is a slim app factory that:
1. Loads configuration (.env via python-dotenv)
2. Builds the services (store, directory, dispatcher, timers)
3. Creates the order engine with everything injected
4. Registers route blueprints
5. Sets up error handlers and shutdown cleanup

ARCHITECTURE:
    Main Thread
    ├── Flask request handling (engine operations)
    └── Cleanup on shutdown (timers, notify workers)

    Confirmation timer threads (one per order in its grace window)
    └── send_to_chef() when the window elapses

    Notify worker pool
    └── transport.notify() for every committed transition

The order store is created here once and injected; nothing reaches for a
module-level singleton.
"""

from __future__ import annotations

import atexit
import logging
import os
import sys
from pathlib import Path
from typing import Callable, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from logging_config import setup_logging, get_logger
from modules.cancellation_policy import CancellationPolicy
from services.confirmation_timer import ConfirmationTimers, TimerFactory
from services.notification_dispatcher import NotificationDispatcher, NotificationTransport
from services.order_engine import OrderEngine
from services.order_store import InMemoryOrderStore
from services.partner_directory import DeliveryPartnerDirectory
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def _get_base_path() -> Path:
    """
    Get the base path for the application.

    In PyInstaller bundle: Returns the directory containing the executable
    In development: Returns the directory containing app.py
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).parent


def _resolve_log_level(app: Flask) -> int:
    level_name = app.config.get("LOG_LEVEL") or ""
    if level_name:
        level = logging.getLevelName(level_name)
        if isinstance(level, int):
            return level
    return logging.DEBUG if app.config.get("DEBUG") else logging.INFO


def _build_directory(app: Flask) -> DeliveryPartnerDirectory:
    partners_file = app.config.get("DELIVERY_PARTNERS_FILE")
    if partners_file:
        path = Path(partners_file)
        if not path.is_absolute():
            path = _get_base_path() / path
        return DeliveryPartnerDirectory.from_json_file(str(path))
    return DeliveryPartnerDirectory()


def create_app(
    config_object: str = "config.Config",
    transport: Optional[NotificationTransport] = None,
    timer_factory: Optional[TimerFactory] = None,
    clock: Optional[Callable] = None,
) -> Flask:
    """
    Application factory - creates and configures Flask app.

    Args:
        config_object: Import path of the config class
        transport: Notification transport (defaults to LoggingTransport)
        timer_factory: Confirmation timer factory (defaults to thread timers)
        clock: Time source for the engine (defaults to UTC now)

    Returns:
        Configured Flask application

    Raises:
        ValueError: If the cancellation policy settings are inconsistent
    """
    # Load .env from base path (next to executable in production)
    # Use override=True so .env file always takes precedence over shell environment
    base_path = _get_base_path()
    env_file = base_path / '.env'
    if env_file.exists():
        load_dotenv(env_file, override=True)
    else:
        load_dotenv(override=True)  # Default behavior

    # Create Flask app
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = _resolve_log_level(app)
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        log_level=log_level,
        enable_file_logging=enable_file_logging
    )

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting order lifecycle engine in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    try:
        policy = CancellationPolicy.from_config(app.config)
    except ValueError as e:
        logger.error(f"FATAL: Invalid cancellation policy - {e}")
        raise

    store = InMemoryOrderStore()
    app.config["ORDER_STORE"] = store

    directory = _build_directory(app)

    dispatcher = NotificationDispatcher(
        transport=transport,
        max_workers=app.config.get("NOTIFICATION_WORKERS", 4),
    )

    timers = ConfirmationTimers(
        delay_seconds=policy.grace_window_seconds,
        timer_factory=timer_factory,
    )

    engine = OrderEngine(
        store=store,
        directory=directory,
        dispatcher=dispatcher,
        policy=policy,
        timers=timers,
        clock=clock,
        delivery_earnings=app.config.get("DELIVERY_EARNINGS", 85.0),
    )
    app.config["ORDER_ENGINE"] = engine
    logger.info("Order engine initialized")

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")
        engine.shutdown()
        logger.info("Shutdown complete")

    atexit.register(cleanup)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({
            "error": "not_found",
            "message": "Resource not found.",
            "details": {},
        }), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return jsonify({
            "error": "method_not_allowed",
            "message": str(e),
            "details": {},
        }), 405

    @app.errorhandler(500)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        return jsonify({
            "error": "internal_error",
            "message": "An unexpected error occurred. Please try again.",
            "details": {},
        }), 500

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(debug=debug_mode, use_reloader=False)

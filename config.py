"""
Configuration for the order lifecycle engine.

All policy values (grace window, penalty formula) come from the environment
so operations can tune them without a deploy. A .env file next to this
module is loaded first.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")
    JSON_SORT_KEYS = False

    # Debug mode
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"
    TESTING = False

    # Logging level name (DEBUG, INFO, WARNING...). Empty means DEBUG when
    # DEBUG is on, INFO otherwise.
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "").upper()

    # ==========================================================================
    # Cancellation Policy
    # ==========================================================================
    # CANCELLATION_GRACE_SECONDS: free-cancellation window after placement.
    #   The confirmation timer sends the order to the chef when it elapses.
    #
    # CANCELLATION_PENALTY_RATE: fraction of the order total charged once the
    #   free window is gone.
    #
    # MIN/MAX_CANCELLATION_PENALTY: clamp applied to the computed penalty.
    #   The penalty is additionally never larger than the order total.
    #
    # Formula: penalty = min(max(total × rate, MIN), MAX, total)
    # ==========================================================================
    CANCELLATION_GRACE_SECONDS = float(
        os.environ.get("CANCELLATION_GRACE_SECONDS", "30")
    )
    CANCELLATION_PENALTY_RATE = float(
        os.environ.get("CANCELLATION_PENALTY_RATE", "0.40")
    )
    MIN_CANCELLATION_PENALTY = float(
        os.environ.get("MIN_CANCELLATION_PENALTY", "20")
    )
    MAX_CANCELLATION_PENALTY = float(
        os.environ.get("MAX_CANCELLATION_PENALTY", "500")
    )

    # Earnings quoted to delivery partners in the opportunity broadcast
    DELIVERY_EARNINGS = float(os.environ.get("DELIVERY_EARNINGS", "85"))

    # Bounded fan-out: worker threads handing messages to the transport
    NOTIFICATION_WORKERS = int(os.environ.get("NOTIFICATION_WORKERS", "4"))

    # Optional JSON file with the delivery partner directory.
    # Falls back to the built-in candidate list when unset.
    DELIVERY_PARTNERS_FILE = os.environ.get("DELIVERY_PARTNERS_FILE", "")


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    ENVIRONMENT = "production"


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    ENVIRONMENT = "testing"
    # Long enough that no real timer fires during a test run
    CANCELLATION_GRACE_SECONDS = 3600.0
    NOTIFICATION_WORKERS = 2
    DELIVERY_PARTNERS_FILE = ""

from flask import Flask, jsonify
import os
import logging
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from werkzeug.exceptions import HTTPException

from recovery_engine.catalog import get_default_catalog

app = Flask(__name__)

# --- Rate Limiter Configuration ---
# In-memory storage is fine for a single process; point at Redis when scaled out
RATELIMIT_STORAGE_URL = os.getenv("RATELIMIT_STORAGE_URL", "memory://")
RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "200 per day;50 per hour")
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[limit.strip() for limit in RATELIMIT_DEFAULT.split(";") if limit.strip()],
    storage_uri=RATELIMIT_STORAGE_URL,
    strategy="fixed-window",
)
limiter.init_app(app)

# Configure logging
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = app.logger

# --- Catalog ---
# Loaded once at start-up and shared read-only by every request
app.config['CATALOG_DIR'] = os.getenv("CATALOG_DIR")
try:
    app.config['CATALOG'] = get_default_catalog(app.config['CATALOG_DIR'])
except RuntimeError as e:
    logger.critical(f"Could not load exercise catalog: {e}")
    raise


@app.errorhandler(Exception)
def handle_exception(e):
    """Generic exception handler."""
    # 404/405/429 and friends keep their status code
    if isinstance(e, HTTPException):
        return jsonify(error=e.description), e.code
    app.logger.error(f"Unhandled exception: {e}", exc_info=True)
    return jsonify(error="An internal server error occurred"), 500


# Import blueprints after the catalog is available
from .blueprints.analysis import analysis_bp  # noqa: E402

app.register_blueprint(analysis_bp)

# fleetledger/app.py

import logging
import os
import sqlite3
from datetime import timedelta

from flask import Flask
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from werkzeug.exceptions import HTTPException

from . import auth, db, debtors, transactions
from .helpers import EXPENSE_CATEGORIES, TRANSACTION_TYPES, failure, success

# ---------------- Configuration ----------------
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("fleetledger-backend")

DB_PATH = os.environ.get("DB_PATH", os.path.join(os.path.dirname(__file__), "..", "data", "fleetledger.db"))


def _env_int(name, default):
    return int(os.environ.get(name, default))


# ---------------- Flask App Factory ----------------
def create_app(test_config=None):
    app = Flask(__name__)

    app.config.from_mapping(
        JWT_SECRET_KEY=os.environ.get("JWT_SECRET_KEY", "dev-key-for-local-use-only-change-me"),
        JWT_ACCESS_TOKEN_EXPIRES=timedelta(days=_env_int("JWT_ACCESS_TOKEN_EXPIRES_DAYS", 30)),
        DB_PATH=DB_PATH,
        CORS_ORIGINS=os.environ.get("CORS_ORIGINS", "http://localhost:3000"),
        DEFAULT_PAGE_LIMIT=_env_int("DEFAULT_PAGE_LIMIT", 10),
        MAX_PAGE_LIMIT=_env_int("MAX_PAGE_LIMIT", 100),
        OVERDUE_PREVIEW_LIMIT=_env_int("OVERDUE_PREVIEW_LIMIT", 5),
    )
    if test_config:
        app.config.update(test_config)
    app.json.sort_keys = False

    jwt = JWTManager(app)
    auth.init_jwt(jwt)

    # CORS
    origins = [o.strip() for o in app.config["CORS_ORIGINS"].split(",") if o.strip()]
    CORS(app, resources={r"/*": {"origins": origins}}, supports_credentials=True)

    # Blueprints
    app.register_blueprint(auth.auth_bp, url_prefix="/auth")
    app.register_blueprint(transactions.bp)
    app.register_blueprint(debtors.bp)

    db.init_db(app.config["DB_PATH"])
    logger.info("Database initialized")

    app.teardown_appcontext(db.close_db)

    # ---------------- Errors ----------------
    @app.errorhandler(HTTPException)
    def http_error(e):
        messages = {404: "Resource not found", 405: "Method not allowed"}
        return failure(messages.get(e.code, e.name), e.code)

    @app.errorhandler(sqlite3.Error)
    def db_error(e):
        logger.exception("Database error")
        return failure("Server error", 500)

    @app.errorhandler(Exception)
    def unhandled_error(e):
        logger.exception("Unhandled error")
        return failure("Server error", 500)

    # ---------------- Core Endpoints ----------------
    @app.route("/")
    def root():
        return success(message="fleetledger backend root")

    @app.route("/health")
    def health():
        return success({"status": "ok"})

    @app.route("/categories")
    def categories():
        return success({"types": list(TRANSACTION_TYPES), "categories": list(EXPENSE_CATEGORIES)})

    return app


# ---------------- Run ----------------
if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)), debug=False)

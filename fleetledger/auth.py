# fleetledger/auth.py

import logging
import sqlite3

from flask import Blueprint, request
from flask_jwt_extended import create_access_token, current_user, jwt_required
from werkzeug.security import check_password_hash, generate_password_hash

from . import db
from .helpers import failure, success, to_db_timestamp, utcnow, validation_failure
from .models import User
from .validation import validate_login, validate_registration

logger = logging.getLogger("fleetledger-backend")

auth_bp = Blueprint("auth", __name__)


def init_jwt(jwt):
    """Wire the bearer-token guard: token subject -> stored user, 401 envelopes on failure."""

    @jwt.user_identity_loader
    def user_identity(user):
        return str(user.id)

    @jwt.user_lookup_loader
    def load_user(_jwt_header, jwt_data):
        try:
            user_id = int(jwt_data["sub"])
        except (KeyError, TypeError, ValueError):
            return None
        row = db.query_db("SELECT * FROM users WHERE id=?", (user_id,), one=True)
        return User.from_row(row) if row else None

    @jwt.user_lookup_error_loader
    def user_missing(_jwt_header, jwt_data):
        logger.warning(f"Token for unknown user {jwt_data.get('sub')}")
        return failure("Not authorized, user not found", 401)

    @jwt.unauthorized_loader
    def missing_token(reason):
        return failure("Not authorized, no token", 401)

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return failure("Not authorized, token failed", 401)

    @jwt.expired_token_loader
    def expired_token(_jwt_header, _jwt_data):
        return failure("Not authorized, token expired", 401)


def _auth_payload(user):
    return {"token": create_access_token(identity=user), "user": user.to_dict()}


@auth_bp.route("/register", methods=["POST"])
def register():
    data, errors = validate_registration(request.get_json(silent=True))
    if errors:
        return validation_failure(errors)

    if db.query_db("SELECT id FROM users WHERE email=?", (data["email"],), one=True):
        return failure("User already exists", 400)

    now = utcnow()
    try:
        user_id = db.execute_db(
            "INSERT INTO users (name, email, password_hash, created_at) VALUES (?,?,?,?)",
            (data["name"], data["email"], generate_password_hash(data["password"]), to_db_timestamp(now)),
        )
    except sqlite3.IntegrityError:
        # lost a race with a concurrent registration for the same email
        return failure("User already exists", 400)

    user = User(user_id, data["name"], data["email"], None, now)
    logger.info(f"Registered user {user_id}")
    return success(_auth_payload(user), 201)


@auth_bp.route("/login", methods=["POST"])
def login():
    data, errors = validate_login(request.get_json(silent=True))
    if errors:
        return validation_failure(errors)

    row = db.query_db("SELECT * FROM users WHERE email=?", (data["email"],), one=True)
    if not row or not check_password_hash(row["password_hash"], data["password"]):
        logger.warning("Failed login attempt")
        return failure("Invalid credentials", 401)

    user = User.from_row(row)
    logger.info(f"User {user.id} logged in")
    return success(_auth_payload(user))


@auth_bp.route("/me", methods=["GET"])
@jwt_required()
def me():
    return success(current_user.to_dict())

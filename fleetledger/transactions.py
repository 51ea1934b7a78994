# fleetledger/transactions.py

import csv
import io
import logging

from flask import Blueprint, Response, current_app, request
from flask_jwt_extended import current_user, jwt_required

from . import db
from .analytics import resolve_window, summarize_transactions
from .helpers import (
    MAX_SQLITE_INT, TRANSACTION_TYPES, failure, iso, pagination_meta, parse_datetime, parse_pagination,
    success, to_db_timestamp, utcnow, validation_failure,
)
from .models import Transaction
from .validation import validate_transaction

logger = logging.getLogger("fleetledger-backend")

bp = Blueprint("transactions", __name__, url_prefix="/transactions")

EXPORT_COLUMNS = ["id", "type", "category", "amount", "description", "transactionDate", "entryDate"]


def _find_owned(tx_id, owner_id):
    """Fetch a transaction for ``owner_id``. Returns (transaction, error_response)."""
    if tx_id > MAX_SQLITE_INT:
        return None, failure("Transaction not found", 404)
    row = db.query_db("SELECT * FROM transactions WHERE id=?", (tx_id,), one=True)
    if not row:
        return None, failure("Transaction not found", 404)
    if row["user_id"] != owner_id:
        logger.warning(f"User {owner_id} denied access to transaction {tx_id}")
        return None, failure("Not authorized", 401)
    return Transaction.from_row(row), None


def _date_range(args, start_key="startDate", end_key="endDate"):
    """Parse optional start/end query bounds. Returns (start, end, errors)."""
    errors = []
    start = end = None
    if args.get(start_key):
        start = parse_datetime(args[start_key])
        if start is None:
            errors.append({"field": start_key, "msg": "Start date must be a valid ISO-8601 date"})
    if args.get(end_key):
        end = parse_datetime(args[end_key], end_of_day=True)
        if end is None:
            errors.append({"field": end_key, "msg": "End date must be a valid ISO-8601 date"})
    if start and end and start > end:
        errors.append({"field": start_key, "msg": "Start date must be before end date"})
    return start, end, errors


def _list_filters(owner_id, args):
    """Build the WHERE clause for a list query. Returns (where, params, errors)."""
    clauses = ["user_id = ?"]
    params = [owner_id]

    tx_type = args.get("type")
    if tx_type in TRANSACTION_TYPES:
        clauses.append("type = ?")
        params.append(tx_type)

    start, end, errors = _date_range(args)
    if start:
        clauses.append("transaction_date >= ?")
        params.append(to_db_timestamp(start))
    if end:
        clauses.append("transaction_date <= ?")
        params.append(to_db_timestamp(end))

    return " AND ".join(clauses), params, errors


@bp.route("", methods=["GET"])
@jwt_required()
def list_transactions():
    page, limit, errors = parse_pagination(
        request.args,
        current_app.config["DEFAULT_PAGE_LIMIT"],
        current_app.config["MAX_PAGE_LIMIT"],
    )
    where, params, filter_errors = _list_filters(current_user.id, request.args)
    errors += filter_errors
    if errors:
        return validation_failure(errors)

    total = db.query_db(f"SELECT COUNT(*) AS total FROM transactions WHERE {where}", params, one=True)["total"]
    rows = db.query_db(
        f"SELECT * FROM transactions WHERE {where} "
        "ORDER BY transaction_date DESC, id DESC LIMIT ? OFFSET ?",
        params + [limit, (page - 1) * limit],
    )
    data = [Transaction.from_row(r).to_dict() for r in rows]
    return success(data, pagination=pagination_meta(page, limit, total))


@bp.route("/analytics", methods=["GET"])
@jwt_required()
def transaction_analytics():
    now = utcnow()
    period = request.args.get("period", "month")

    start = end = None
    if request.args.get("startDate") and request.args.get("endDate"):
        start, end, errors = _date_range(request.args)
        if errors:
            return validation_failure(errors)

    window_start, window_end, label = resolve_window(now, period, start, end)
    rows = db.query_db(
        "SELECT * FROM transactions WHERE user_id=? AND transaction_date >= ? AND transaction_date <= ?",
        (current_user.id, to_db_timestamp(window_start), to_db_timestamp(window_end)),
    )
    result = summarize_transactions(Transaction.from_row(r) for r in rows)
    result["window"] = {"start": iso(window_start), "end": iso(window_end), "period": label}
    return success(result)


@bp.route("/export", methods=["GET"])
@jwt_required()
def export_transactions():
    rows = db.query_db(
        "SELECT * FROM transactions WHERE user_id=? ORDER BY transaction_date DESC, id DESC",
        (current_user.id,),
    )
    out = io.StringIO()
    writer = csv.DictWriter(out, fieldnames=EXPORT_COLUMNS, extrasaction="ignore")
    writer.writeheader()
    for r in rows:
        tx = Transaction.from_row(r)
        record = tx.to_dict()
        record["amount"] = str(tx.amount)
        writer.writerow(record)

    logger.info(f"User {current_user.id} exported {len(rows)} transactions")
    return Response(
        out.getvalue(),
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=transactions.csv"},
    )


@bp.route("/<int:tx_id>", methods=["GET"])
@jwt_required()
def get_transaction(tx_id):
    tx, error = _find_owned(tx_id, current_user.id)
    if error:
        return error
    return success(tx.to_dict())


@bp.route("", methods=["POST"])
@jwt_required()
def create_transaction():
    now = utcnow()
    data, errors = validate_transaction(request.get_json(silent=True), now)
    if errors:
        return validation_failure(errors)

    stamp = to_db_timestamp(now)
    tx_id = db.execute_db(
        "INSERT INTO transactions (user_id, type, category, amount, description, transaction_date, "
        "entry_date, created_at, updated_at) VALUES (?,?,?,?,?,?,?,?,?)",
        (current_user.id, data["type"], data["category"], str(data["amount"]), data["description"],
         to_db_timestamp(data["transaction_date"]), stamp, stamp, stamp),
    )
    logger.info(f"User {current_user.id} created transaction {tx_id}")

    tx, error = _find_owned(tx_id, current_user.id)
    if error:
        return error
    return success(tx.to_dict(), 201)


@bp.route("/<int:tx_id>", methods=["PUT"])
@jwt_required()
def update_transaction(tx_id):
    payload = request.get_json(silent=True)
    tx, error = _find_owned(tx_id, current_user.id)
    if error:
        return error

    now = utcnow()
    data, errors = validate_transaction(payload, now, current=tx)
    if errors:
        return validation_failure(errors)

    db.execute_db(
        "UPDATE transactions SET type=?, category=?, amount=?, description=?, transaction_date=?, "
        "updated_at=? WHERE id=? AND user_id=?",
        (data["type"], data["category"], str(data["amount"]), data["description"],
         to_db_timestamp(data["transaction_date"]), to_db_timestamp(now), tx_id, current_user.id),
    )
    logger.info(f"User {current_user.id} updated transaction {tx_id}")

    tx, error = _find_owned(tx_id, current_user.id)
    if error:
        return error
    return success(tx.to_dict())


@bp.route("/<int:tx_id>", methods=["DELETE"])
@jwt_required()
def delete_transaction(tx_id):
    _, error = _find_owned(tx_id, current_user.id)
    if error:
        return error

    db.execute_db("DELETE FROM transactions WHERE id=? AND user_id=?", (tx_id, current_user.id))
    logger.info(f"User {current_user.id} deleted transaction {tx_id}")
    return success(message="Transaction deleted")

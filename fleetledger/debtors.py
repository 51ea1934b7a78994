# fleetledger/debtors.py

import csv
import io
import logging

from flask import Blueprint, Response, current_app, request
from flask_jwt_extended import current_user, jwt_required

from . import db
from .analytics import summarize_debtors
from .helpers import (
    MAX_SQLITE_INT, failure, pagination_meta, parse_pagination, success, to_db_timestamp, utcnow,
    validation_failure,
)
from .models import Debtor
from .validation import parse_status_filter, validate_debtor

logger = logging.getLogger("fleetledger-backend")

bp = Blueprint("debtors", __name__, url_prefix="/debtors")

EXPORT_COLUMNS = [
    "id", "clientName", "amount", "dueDate", "transactionDate", "status",
    "isOverdue", "daysOverdue", "entryDate",
]


def _find_owned(debtor_id, owner_id):
    """Fetch a debtor for ``owner_id``. Returns (debtor, error_response)."""
    if debtor_id > MAX_SQLITE_INT:
        return None, failure("Debtor not found", 404)
    row = db.query_db("SELECT * FROM debtors WHERE id=?", (debtor_id,), one=True)
    if not row:
        return None, failure("Debtor not found", 404)
    if row["user_id"] != owner_id:
        logger.warning(f"User {owner_id} denied access to debtor {debtor_id}")
        return None, failure("Not authorized", 401)
    return Debtor.from_row(row), None


def _escape_like(term):
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _list_filters(owner_id, args, now):
    clauses = ["user_id = ?"]
    params = [owner_id]

    status = parse_status_filter(args.get("status"))
    if args.get("overdue") == "true":
        # overdue implies unpaid and overrides any status filter
        clauses.append("status = 'unpaid' AND due_date < ?")
        params.append(to_db_timestamp(now))
    elif status:
        clauses.append("status = ?")
        params.append(status)

    search = (args.get("search") or "").strip()
    if search:
        clauses.append("casefold(client_name) LIKE ? ESCAPE '\\'")
        params.append(f"%{_escape_like(search.casefold())}%")

    return " AND ".join(clauses), params


@bp.route("", methods=["GET"])
@jwt_required()
def list_debtors():
    now = utcnow()
    page, limit, errors = parse_pagination(
        request.args,
        current_app.config["DEFAULT_PAGE_LIMIT"],
        current_app.config["MAX_PAGE_LIMIT"],
    )
    if errors:
        return validation_failure(errors)

    where, params = _list_filters(current_user.id, request.args, now)
    total = db.query_db(f"SELECT COUNT(*) AS total FROM debtors WHERE {where}", params, one=True)["total"]
    rows = db.query_db(
        f"SELECT * FROM debtors WHERE {where} ORDER BY due_date ASC, id ASC LIMIT ? OFFSET ?",
        params + [limit, (page - 1) * limit],
    )
    data = [Debtor.from_row(r).to_dict(now) for r in rows]
    return success(data, pagination=pagination_meta(page, limit, total))


@bp.route("/analytics", methods=["GET"])
@jwt_required()
def debtor_analytics():
    now = utcnow()
    rows = db.query_db("SELECT * FROM debtors WHERE user_id=?", (current_user.id,))
    result = summarize_debtors(
        [Debtor.from_row(r) for r in rows],
        now,
        preview_limit=current_app.config["OVERDUE_PREVIEW_LIMIT"],
    )
    return success(result)


@bp.route("/export", methods=["GET"])
@jwt_required()
def export_debtors():
    now = utcnow()
    rows = db.query_db(
        "SELECT * FROM debtors WHERE user_id=? ORDER BY due_date ASC, id ASC",
        (current_user.id,),
    )
    out = io.StringIO()
    writer = csv.DictWriter(out, fieldnames=EXPORT_COLUMNS, extrasaction="ignore")
    writer.writeheader()
    for r in rows:
        debtor = Debtor.from_row(r)
        record = debtor.to_dict(now)
        record["amount"] = str(debtor.amount)
        writer.writerow(record)

    logger.info(f"User {current_user.id} exported {len(rows)} debtors")
    return Response(
        out.getvalue(),
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=debtors.csv"},
    )


@bp.route("/<int:debtor_id>", methods=["GET"])
@jwt_required()
def get_debtor(debtor_id):
    debtor, error = _find_owned(debtor_id, current_user.id)
    if error:
        return error
    return success(debtor.to_dict(utcnow()))


@bp.route("", methods=["POST"])
@jwt_required()
def create_debtor():
    now = utcnow()
    data, errors = validate_debtor(request.get_json(silent=True), now)
    if errors:
        return validation_failure(errors)

    stamp = to_db_timestamp(now)
    debtor_id = db.execute_db(
        "INSERT INTO debtors (user_id, client_name, amount, due_date, transaction_date, status, "
        "entry_date, created_at, updated_at) VALUES (?,?,?,?,?,'unpaid',?,?,?)",
        (current_user.id, data["client_name"], str(data["amount"]), to_db_timestamp(data["due_date"]),
         to_db_timestamp(data["transaction_date"]), stamp, stamp, stamp),
    )
    logger.info(f"User {current_user.id} created debtor {debtor_id}")

    debtor, error = _find_owned(debtor_id, current_user.id)
    if error:
        return error
    return success(debtor.to_dict(now), 201)


@bp.route("/<int:debtor_id>", methods=["PUT"])
@jwt_required()
def update_debtor(debtor_id):
    payload = request.get_json(silent=True)
    debtor, error = _find_owned(debtor_id, current_user.id)
    if error:
        return error

    now = utcnow()
    data, errors = validate_debtor(payload, now, current=debtor)
    if errors:
        return validation_failure(errors)

    db.execute_db(
        "UPDATE debtors SET client_name=?, amount=?, due_date=?, transaction_date=?, updated_at=? "
        "WHERE id=? AND user_id=?",
        (data["client_name"], str(data["amount"]), to_db_timestamp(data["due_date"]),
         to_db_timestamp(data["transaction_date"]), to_db_timestamp(now), debtor_id, current_user.id),
    )
    logger.info(f"User {current_user.id} updated debtor {debtor_id}")

    debtor, error = _find_owned(debtor_id, current_user.id)
    if error:
        return error
    return success(debtor.to_dict(now))


@bp.route("/<int:debtor_id>/mark-paid", methods=["PATCH"])
@jwt_required()
def mark_paid(debtor_id):
    _, error = _find_owned(debtor_id, current_user.id)
    if error:
        return error

    now = utcnow()
    db.execute_db(
        "UPDATE debtors SET status='paid', updated_at=? WHERE id=? AND user_id=?",
        (to_db_timestamp(now), debtor_id, current_user.id),
    )
    logger.info(f"User {current_user.id} marked debtor {debtor_id} paid")

    debtor, error = _find_owned(debtor_id, current_user.id)
    if error:
        return error
    return success(debtor.to_dict(now))


@bp.route("/<int:debtor_id>", methods=["DELETE"])
@jwt_required()
def delete_debtor(debtor_id):
    _, error = _find_owned(debtor_id, current_user.id)
    if error:
        return error

    db.execute_db("DELETE FROM debtors WHERE id=? AND user_id=?", (debtor_id, current_user.id))
    logger.info(f"User {current_user.id} deleted debtor {debtor_id}")
    return success(message="Debtor deleted")

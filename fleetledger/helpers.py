# fleetledger/helpers.py

import math
import re
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from flask import jsonify

TRANSACTION_TYPES = ("sale", "delivery_fee", "expense")
INCOME_TYPES = ("sale", "delivery_fee")
EXPENSE_CATEGORIES = (
    "fuel", "driver", "car_owner", "turni_boys",
    "repairs", "miscellaneous", "traffic_fines",
)
DEBTOR_STATUSES = ("unpaid", "paid")

CENT = Decimal("0.01")
MAX_SQLITE_INT = 2 ** 63 - 1
DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# ---------------- Time ----------------
def utcnow():
    return datetime.now(timezone.utc)


def parse_datetime(value, end_of_day=False):
    """Parse an ISO-8601 date or datetime into an aware UTC datetime.

    Returns None when the value cannot be parsed. A date-only value maps to
    midnight, or to the last microsecond of that day when ``end_of_day`` is set.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        s = str(value).strip()
        if not s:
            return None
        if DATE_ONLY_RE.match(s):
            try:
                day = datetime.strptime(s, "%Y-%m-%d").date()
            except ValueError:
                return None
            return datetime.combine(day, time.max if end_of_day else time.min, tzinfo=timezone.utc)
        if s.endswith(("Z", "z")):
            s = s[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(s)
        except (ValueError, OverflowError):
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        # offset pushes the instant outside the representable range
        return None


def to_db_timestamp(dt):
    """Fixed-width UTC text so SQLite string comparison follows time order."""
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_timestamp(s):
    return datetime.fromisoformat(s) if s else None


def iso(dt):
    if dt is None:
        return None
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def ceil_days(delta):
    return math.ceil(delta / timedelta(days=1))


# ---------------- Money ----------------
def parse_amount(value):
    """Parse a non-negative money amount into a Decimal quantized to cents.

    Returns (amount, error).
    """
    if value is None or isinstance(value, bool) or (isinstance(value, str) and not value.strip()):
        return None, "Amount is required"
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None, "Amount must be a number"
    if not amount.is_finite():
        return None, "Amount must be a number"
    if amount < 0:
        return None, "Amount cannot be negative"
    try:
        return amount.quantize(CENT, rounding=ROUND_HALF_UP), None
    except InvalidOperation:
        return None, "Amount is too large"


def money(amount):
    """Decimal -> JSON number."""
    return float(Decimal(amount).quantize(CENT))


def format_currency(amount):
    amount = Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


# ---------------- Responses ----------------
def success(data=None, status=200, message=None, pagination=None):
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    if pagination is not None:
        body["pagination"] = pagination
    return jsonify(body), status


def failure(message, status=400, errors=None):
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return jsonify(body), status


def validation_failure(errors):
    return failure(errors[0]["msg"], 400, errors)


# ---------------- Pagination ----------------
def parse_pagination(args, default_limit=10, max_limit=100):
    """Returns (page, limit, errors) from query args."""
    errors = []
    values = {}
    for name, default in (("page", 1), ("limit", default_limit)):
        raw = args.get(name)
        if raw is None or raw == "":
            values[name] = default
            continue
        try:
            values[name] = int(raw)
        except ValueError:
            errors.append({"field": name, "msg": f"{name} must be a positive integer"})
            continue
        if values[name] < 1:
            errors.append({"field": name, "msg": f"{name} must be a positive integer"})
    if errors:
        return None, None, errors
    limit = min(values["limit"], max_limit)
    if (values["page"] - 1) * limit > MAX_SQLITE_INT:
        return None, None, [{"field": "page", "msg": "page is too large"}]
    return values["page"], limit, []


def pagination_meta(page, limit, total):
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit),
    }

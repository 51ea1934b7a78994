# fleetledger/validation.py
"""
Request payload validation.

Each validator returns ``(clean, errors)`` where ``errors`` is a list of
``{"field", "msg"}`` dicts. ``clean`` is None whenever errors is non-empty.
Update payloads are merged over the stored record and the merged result is
validated as a whole, so a record can never be left in a state that create
would reject.
"""

import re

from .helpers import (
    DEBTOR_STATUSES, EXPENSE_CATEGORIES, TRANSACTION_TYPES, parse_amount, parse_datetime,
)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MAX_DESCRIPTION = 200
MAX_CLIENT_NAME = 100
MAX_USER_NAME = 50
MIN_PASSWORD = 6


def _err(field, msg):
    return {"field": field, "msg": msg}


def _body_errors(data):
    if not isinstance(data, dict):
        return [_err("body", "Request body must be a JSON object")]
    return []


def _optional_text(data, field, max_len, label, errors):
    value = data.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        errors.append(_err(field, f"{label} must be text"))
        return None
    value = value.strip()
    if len(value) > max_len:
        errors.append(_err(field, f"{label} cannot be more than {max_len} characters"))
        return None
    return value or None


def _date_field(data, field, label, errors, required=False, default=None):
    if data.get(field) in (None, ""):
        if required:
            errors.append(_err(field, f"{label} is required"))
        return default
    parsed = parse_datetime(data[field])
    if parsed is None:
        errors.append(_err(field, f"{label} must be a valid ISO-8601 date"))
    return parsed


# ---------------- Transactions ----------------
def validate_transaction(data, now, current=None):
    """Validate a create payload, or an update payload when ``current`` is given.

    ``current`` is the stored Transaction being updated.
    """
    errors = _body_errors(data)
    if errors:
        return None, errors

    partial = current is not None
    clean = {}
    if partial:
        clean = {
            'type': current.type,
            'category': current.category,
            'amount': current.amount,
            'description': current.description,
            'transaction_date': current.transaction_date,
        }

    if not partial or 'type' in data:
        tx_type = data.get('type')
        if not tx_type:
            errors.append(_err('type', "Transaction type is required"))
        elif tx_type not in TRANSACTION_TYPES:
            errors.append(_err('type', f"Transaction type must be one of: {', '.join(TRANSACTION_TYPES)}"))
        else:
            clean['type'] = tx_type

    if not partial or 'amount' in data:
        amount, error = parse_amount(data.get('amount'))
        if error:
            errors.append(_err('amount', error))
        else:
            clean['amount'] = amount

    if not partial or 'description' in data:
        clean['description'] = _optional_text(data, 'description', MAX_DESCRIPTION, "Description", errors)

    if not partial or 'transactionDate' in data:
        tx_date = _date_field(data, 'transactionDate', "Transaction date", errors,
                              required=partial, default=now)
        if tx_date is not None:
            clean['transaction_date'] = tx_date

    tx_type = clean.get('type')
    if tx_type == 'expense':
        category = data['category'] if 'category' in data else clean.get('category')
        if not category:
            errors.append(_err('category', "Category is required for expenses"))
        elif category not in EXPENSE_CATEGORIES:
            errors.append(_err('category', "Please select a valid expense category"))
        else:
            clean['category'] = category
    else:
        clean['category'] = None

    if errors:
        return None, errors
    return clean, []


# ---------------- Debtors ----------------
def validate_debtor(data, now, current=None):
    """Validate a debtor create payload, or an update over ``current``.

    Status is never taken from the payload: creation always starts unpaid and
    the only transition is mark-paid.
    """
    errors = _body_errors(data)
    if errors:
        return None, errors

    partial = current is not None
    clean = {}
    if partial:
        clean = {
            'client_name': current.client_name,
            'amount': current.amount,
            'due_date': current.due_date,
            'transaction_date': current.transaction_date,
        }
        if 'status' in data and data['status'] != current.status:
            errors.append(_err('status', "Status can only be changed with mark-paid"))

    if not partial or 'clientName' in data:
        name = data.get('clientName')
        if not isinstance(name, str) or not name.strip():
            errors.append(_err('clientName', "Client name is required"))
        elif len(name.strip()) > MAX_CLIENT_NAME:
            errors.append(_err('clientName', f"Client name cannot be more than {MAX_CLIENT_NAME} characters"))
        else:
            clean['client_name'] = name.strip()

    if not partial or 'amount' in data:
        amount, error = parse_amount(data.get('amount'))
        if error:
            errors.append(_err('amount', error))
        else:
            clean['amount'] = amount

    if not partial or 'dueDate' in data:
        due_date = _date_field(data, 'dueDate', "Due date", errors, required=True)
        if due_date is not None:
            clean['due_date'] = due_date

    if not partial or 'transactionDate' in data:
        tx_date = _date_field(data, 'transactionDate', "Transaction date", errors,
                              required=partial, default=now)
        if tx_date is not None:
            clean['transaction_date'] = tx_date

    if errors:
        return None, errors
    return clean, []


def parse_status_filter(value):
    return value if value in DEBTOR_STATUSES else None


# ---------------- Auth ----------------
def validate_registration(data):
    errors = _body_errors(data)
    if errors:
        return None, errors

    name = data.get('name')
    email = data.get('email')
    password = data.get('password')

    if not isinstance(name, str) or not name.strip():
        errors.append(_err('name', "Name is required"))
    elif len(name.strip()) > MAX_USER_NAME:
        errors.append(_err('name', f"Name cannot be more than {MAX_USER_NAME} characters"))
    if not isinstance(email, str) or not EMAIL_RE.match(email.strip()):
        errors.append(_err('email', "Please include a valid email"))
    if not isinstance(password, str) or len(password) < MIN_PASSWORD:
        errors.append(_err('password', f"Please enter a password with {MIN_PASSWORD} or more characters"))

    if errors:
        return None, errors
    return {'name': name.strip(), 'email': email.strip().lower(), 'password': password}, []


def validate_login(data):
    errors = _body_errors(data)
    if errors:
        return None, errors

    email = data.get('email')
    password = data.get('password')
    if not isinstance(email, str) or not EMAIL_RE.match(email.strip()):
        errors.append(_err('email', "Please include a valid email"))
    if not isinstance(password, str) or not password:
        errors.append(_err('password', "Password is required"))

    if errors:
        return None, errors
    return {'email': email.strip().lower(), 'password': password}, []

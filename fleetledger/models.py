# fleetledger/models.py
# lightweight model classes (not DB-bound ORM)
from decimal import Decimal

from .helpers import (
    INCOME_TYPES, ceil_days, format_currency, from_db_timestamp, iso, money,
)


class User:
    def __init__(self, id, name, email, password_hash, created_at=None):
        self.id = id
        self.name = name
        self.email = email
        self.password_hash = password_hash
        self.created_at = created_at

    @classmethod
    def from_row(cls, row):
        return cls(row['id'], row['name'], row['email'], row['password_hash'],
                   from_db_timestamp(row['created_at']))

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'createdAt': iso(self.created_at),
        }


# ---------------- Transactions ----------------
class Transaction:
    """Base for the three transaction kinds. Only Expense carries a category."""

    type = None

    def __init__(self, id, user_id, amount, description=None, transaction_date=None,
                 entry_date=None, created_at=None, updated_at=None):
        self.id = id
        self.user_id = user_id
        self.amount = Decimal(amount)
        self.description = description
        self.transaction_date = transaction_date
        self.entry_date = entry_date
        self.created_at = created_at
        self.updated_at = updated_at

    @property
    def category(self):
        return None

    @property
    def is_income(self):
        return self.type in INCOME_TYPES

    @classmethod
    def from_row(cls, row):
        kind = TRANSACTION_KINDS[row['type']]
        fields = dict(
            id=row['id'],
            user_id=row['user_id'],
            amount=row['amount'],
            description=row['description'],
            transaction_date=from_db_timestamp(row['transaction_date']),
            entry_date=from_db_timestamp(row['entry_date']),
            created_at=from_db_timestamp(row['created_at']),
            updated_at=from_db_timestamp(row['updated_at']),
        )
        if kind is Expense:
            return Expense(category=row['category'], **fields)
        return kind(**fields)

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'category': self.category,
            'amount': money(self.amount),
            'formattedAmount': format_currency(self.amount),
            'description': self.description,
            'transactionDate': iso(self.transaction_date),
            'entryDate': iso(self.entry_date),
            'createdBy': self.user_id,
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
        }


class Sale(Transaction):
    type = 'sale'


class DeliveryFee(Transaction):
    type = 'delivery_fee'


class Expense(Transaction):
    type = 'expense'

    def __init__(self, category, **fields):
        super().__init__(**fields)
        self._category = category

    @property
    def category(self):
        return self._category


TRANSACTION_KINDS = {
    'sale': Sale,
    'delivery_fee': DeliveryFee,
    'expense': Expense,
}


# ---------------- Debtors ----------------
def is_overdue(debtor, now):
    return debtor.status == 'unpaid' and debtor.due_date < now


def days_overdue(debtor, now):
    if not is_overdue(debtor, now):
        return 0
    return ceil_days(now - debtor.due_date)


class Debtor:
    def __init__(self, id, user_id, client_name, amount, due_date, transaction_date,
                 status='unpaid', entry_date=None, created_at=None, updated_at=None):
        self.id = id
        self.user_id = user_id
        self.client_name = client_name
        self.amount = Decimal(amount)
        self.due_date = due_date
        self.transaction_date = transaction_date
        self.status = status
        self.entry_date = entry_date
        self.created_at = created_at
        self.updated_at = updated_at

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row['id'],
            user_id=row['user_id'],
            client_name=row['client_name'],
            amount=row['amount'],
            due_date=from_db_timestamp(row['due_date']),
            transaction_date=from_db_timestamp(row['transaction_date']),
            status=row['status'],
            entry_date=from_db_timestamp(row['entry_date']),
            created_at=from_db_timestamp(row['created_at']),
            updated_at=from_db_timestamp(row['updated_at']),
        )

    def to_dict(self, now):
        # isOverdue and daysOverdue are derived from now on every read
        return {
            'id': self.id,
            'clientName': self.client_name,
            'amount': money(self.amount),
            'formattedAmount': format_currency(self.amount),
            'dueDate': iso(self.due_date),
            'transactionDate': iso(self.transaction_date),
            'status': self.status,
            'entryDate': iso(self.entry_date),
            'createdBy': self.user_id,
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
            'isOverdue': is_overdue(self, now),
            'daysOverdue': days_overdue(self, now),
        }

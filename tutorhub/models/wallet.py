from datetime import datetime
from decimal import Decimal
from tutorhub import db
from tutorhub.models.enums import TransactionType, enum_column
import json


class Wallet(db.Model):
    __tablename__ = 'wallets'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), unique=True, nullable=False)
    balance = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal('0.00'))
    total_withdrawn = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal('0.00'))
    currency = db.Column(db.String(3), nullable=False, default='NGN')
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    transactions = db.relationship('Transaction', backref='wallet', lazy='dynamic',
                                   order_by='Transaction.id.desc()')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'balance': float(self.balance or 0),
            'total_withdrawn': float(self.total_withdrawn or 0),
            'currency': self.currency,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<Wallet user={self.user_id} {self.balance} {self.currency}>'


class Transaction(db.Model):
    """Append-only wallet ledger entry. Debits carry a negative amount."""
    __tablename__ = 'transactions'

    id = db.Column(db.Integer, primary_key=True)
    wallet_id = db.Column(db.Integer, db.ForeignKey('wallets.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    payout_request_id = db.Column(db.Integer, db.ForeignKey('payout_requests.id'), index=True)

    transaction_type = enum_column(TransactionType, nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    balance_after = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False)
    description = db.Column(db.String(255))
    extra_data = db.Column('metadata', db.Text)  # JSON

    created_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def get_metadata(self):
        if self.extra_data:
            try:
                return json.loads(self.extra_data)
            except ValueError:
                return {}
        return {}

    def set_metadata(self, data):
        self.extra_data = json.dumps(data) if data else None

    def to_dict(self):
        return {
            'id': self.id,
            'wallet_id': self.wallet_id,
            'user_id': self.user_id,
            'payout_request_id': self.payout_request_id,
            'transaction_type': self.transaction_type.value,
            'amount': float(self.amount),
            'balance_after': float(self.balance_after),
            'currency': self.currency,
            'description': self.description,
            'metadata': self.get_metadata(),
            'created_by': self.created_by,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Transaction {self.id} {self.transaction_type.value} {self.amount}>'

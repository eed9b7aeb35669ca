from datetime import datetime
from tutorhub import db
from tutorhub.models.enums import PayoutStatus, PaymentMethod, enum_column
import json


class PayoutRequest(db.Model):
    __tablename__ = 'payout_requests'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default='NGN')
    payment_method = enum_column(PaymentMethod, nullable=False)
    payment_details = db.Column(db.Text)  # JSON snapshot taken at request time

    status = enum_column(PayoutStatus, nullable=False, default=PayoutStatus.PENDING, index=True)
    reserved = db.Column(db.Boolean, nullable=False, default=False)

    request_date = db.Column(db.DateTime, default=datetime.utcnow)
    processed_at = db.Column(db.DateTime)
    processed_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    notes = db.Column(db.Text)
    rejection_reason = db.Column(db.Text)

    # Gateway settlement
    external_reference = db.Column(db.String(255), index=True)
    gateway = db.Column(db.String(20))
    transaction_id = db.Column(db.Integer, db.ForeignKey('transactions.id', use_alter=True))

    # Relationships
    user = db.relationship('User', foreign_keys=[user_id], backref=db.backref('payout_requests', lazy='dynamic'))
    processor = db.relationship('User', foreign_keys=[processed_by])

    def get_payment_details(self):
        """Get payment details as dict"""
        if self.payment_details:
            try:
                return json.loads(self.payment_details)
            except ValueError:
                return {}
        return {}

    def set_payment_details(self, details):
        self.payment_details = json.dumps(details or {})

    def add_note(self, note):
        """Append a timestamped line to the admin notes"""
        line = f"[{datetime.utcnow().strftime('%Y-%m-%d %H:%M')}] {note}"
        self.notes = f"{self.notes}\n{line}" if self.notes else line

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'user_name': self.user.full_name if self.user else None,
            'amount': float(self.amount),
            'currency': self.currency,
            'payment_method': self.payment_method.value,
            'payment_details': self.get_payment_details(),
            'status': self.status.value,
            'reserved': self.reserved,
            'request_date': self.request_date.isoformat() if self.request_date else None,
            'processed_at': self.processed_at.isoformat() if self.processed_at else None,
            'processed_by': self.processed_by,
            'notes': self.notes,
            'rejection_reason': self.rejection_reason,
            'external_reference': self.external_reference,
            'gateway': self.gateway,
            'transaction_id': self.transaction_id,
        }

    def __repr__(self):
        return f'<PayoutRequest {self.id} {self.amount} - {self.status.value}>'

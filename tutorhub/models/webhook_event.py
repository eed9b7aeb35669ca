from datetime import datetime
from tutorhub import db
from tutorhub.models.enums import WebhookStatus, enum_column


class WebhookEvent(db.Model):
    """One row per gateway delivery; (gateway, event_id) is processed once"""
    __tablename__ = 'webhook_events'
    __table_args__ = (
        db.UniqueConstraint('gateway', 'event_id', name='uq_webhook_gateway_event'),
    )

    id = db.Column(db.Integer, primary_key=True)
    gateway = db.Column(db.String(20), nullable=False)
    event_id = db.Column(db.String(255), nullable=False)
    event_type = db.Column(db.String(100), nullable=False)
    payload = db.Column(db.Text)
    status = enum_column(WebhookStatus, nullable=False, default=WebhookStatus.PENDING)
    error = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    processed_at = db.Column(db.DateTime)

    def to_dict(self):
        return {
            'id': self.id,
            'gateway': self.gateway,
            'event_id': self.event_id,
            'event_type': self.event_type,
            'status': self.status.value,
            'error': self.error,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'processed_at': self.processed_at.isoformat() if self.processed_at else None,
        }

    def __repr__(self):
        return f'<WebhookEvent {self.gateway}:{self.event_id} - {self.status.value}>'

from datetime import datetime
from tutorhub import db
from tutorhub.models.enums import BillingCycle, enum_column
import json


class SubscriptionPlan(db.Model):
    __tablename__ = 'subscription_plans'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), unique=True, nullable=False)
    description = db.Column(db.Text)
    price_naira = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    price_dollar = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    billing_cycle = enum_column(BillingCycle, nullable=False)
    duration_months = db.Column(db.Integer, nullable=False, default=1)
    features = db.Column(db.Text)  # JSON array
    tags = db.Column(db.Text)  # JSON array
    is_active = db.Column(db.Boolean, default=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @staticmethod
    def _load(value):
        if value:
            try:
                return json.loads(value)
            except ValueError:
                return []
        return []

    def get_features(self):
        return self._load(self.features)

    def set_features(self, features):
        self.features = json.dumps(features or [])

    def get_tags(self):
        return self._load(self.tags)

    def set_tags(self, tags):
        self.tags = json.dumps(tags or [])

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'price_naira': float(self.price_naira or 0),
            'price_dollar': float(self.price_dollar or 0),
            'billing_cycle': self.billing_cycle.value,
            'duration_months': self.duration_months,
            'features': self.get_features(),
            'tags': self.get_tags(),
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<SubscriptionPlan {self.name}>'

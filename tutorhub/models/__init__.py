# tutorhub/models/__init__.py

from tutorhub.models.user import User
from tutorhub.models.teacher_profile import TeacherProfile
from tutorhub.models.verification import VerificationRequest, VerificationCall, VerificationAuditLog
from tutorhub.models.document import Document
from tutorhub.models.wallet import Wallet, Transaction
from tutorhub.models.payout_request import PayoutRequest
from tutorhub.models.subscription_plan import SubscriptionPlan
from tutorhub.models.webhook_event import WebhookEvent

__all__ = [
    'User',
    'TeacherProfile',
    'VerificationRequest',
    'VerificationCall',
    'VerificationAuditLog',
    'Document',
    'Wallet',
    'Transaction',
    'PayoutRequest',
    'SubscriptionPlan',
    'WebhookEvent',
]

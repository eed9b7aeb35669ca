# tutorhub/models/enums.py

import enum
from tutorhub import db


class VerificationStatus(str, enum.Enum):
    PENDING = 'pending'
    LIVE_VIDEO = 'live_video'
    VERIFIED = 'verified'
    REJECTED = 'rejected'


class VideoStatus(str, enum.Enum):
    NOT_SCHEDULED = 'not_scheduled'
    SCHEDULED = 'scheduled'
    COMPLETED = 'completed'
    PASSED = 'passed'
    FAILED = 'failed'


class DocumentType(str, enum.Enum):
    ID_VERIFICATION = 'id_verification'
    CERTIFICATE = 'certificate'
    RESUME = 'resume'


class DocumentSide(str, enum.Enum):
    FRONT = 'front'
    BACK = 'back'


class DocumentStatus(str, enum.Enum):
    PENDING = 'pending'
    VERIFIED = 'verified'
    REJECTED = 'rejected'


class CallPlatform(str, enum.Enum):
    ZOOM = 'zoom'
    GOOGLE_MEET = 'google_meet'
    OTHER = 'other'


class CallStatus(str, enum.Enum):
    SCHEDULED = 'scheduled'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class CallResult(str, enum.Enum):
    PASSED = 'passed'
    FAILED = 'failed'


class PayoutStatus(str, enum.Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    PROCESSING = 'processing'
    COMPLETED = 'completed'
    PAID = 'paid'
    REJECTED = 'rejected'
    FAILED = 'failed'


class PaymentMethod(str, enum.Enum):
    BANK_TRANSFER = 'bank_transfer'
    DEBIT_CREDIT_CARD = 'debit_credit_card'
    PAYPAL = 'paypal'
    MOBILE_MONEY = 'mobile_money'
    STRIPE = 'stripe'


class TransactionType(str, enum.Enum):
    CREDIT = 'credit'
    PAYOUT_DEBIT = 'payout_debit'
    PAYOUT_REFUND = 'payout_refund'
    ADJUSTMENT = 'adjustment'


class BillingCycle(str, enum.Enum):
    MONTHLY = 'monthly'
    QUARTERLY = 'quarterly'
    BIANNUALLY = 'biannually'
    ANNUALLY = 'annually'


class WebhookStatus(str, enum.Enum):
    PENDING = 'pending'
    PROCESSED = 'processed'
    FAILED = 'failed'


def enum_column(enum_cls, **kwargs):
    """String column holding the enum's values (not its member names)"""
    return db.Column(
        db.Enum(
            enum_cls,
            native_enum=False,
            validate_strings=True,
            length=20,
            values_callable=lambda members: [m.value for m in members],
        ),
        **kwargs
    )


def choices(enum_cls):
    """(value, label) pairs for WTForms SelectFields"""
    return [(m.value, m.value.replace('_', ' ').title()) for m in enum_cls]

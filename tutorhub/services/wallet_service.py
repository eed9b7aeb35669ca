"""
Wallet balance mutations.

Balances only change through apply_entry(), which writes the matching
Transaction row. Callers own the database transaction: these helpers
flush but never commit.
"""
import logging
from datetime import datetime
from decimal import Decimal
from flask import current_app
from tutorhub import db
from tutorhub.models import User, Wallet, Transaction
from tutorhub.models.enums import TransactionType
from tutorhub.services.error_service import InsufficientBalanceError, ValidationError, NotFoundError

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


def to_amount(value):
    """Normalise a user supplied amount to a 2dp Decimal"""
    try:
        return Decimal(str(value)).quantize(CENT)
    except (ArithmeticError, ValueError, TypeError):
        raise ValidationError({'amount': ["Amount must be a number."]})


def get_wallet(user_id, lock=False, create=False):
    query = Wallet.query.filter_by(user_id=user_id)
    if lock:
        query = query.with_for_update()
    wallet = query.first()
    if wallet is None:
        if not create:
            raise NotFoundError("Wallet")
        wallet = Wallet(
            user_id=user_id,
            balance=Decimal('0.00'),
            total_withdrawn=Decimal('0.00'),
            currency=current_app.config.get('DEFAULT_CURRENCY', 'NGN'),
        )
        db.session.add(wallet)
        db.session.flush()
    return wallet


def apply_entry(wallet, amount, transaction_type, description, actor=None, payout_request=None, metadata=None):
    """
    Move the wallet balance by a signed amount and record it.

    The wallet row must already be locked by the caller.
    """
    amount = to_amount(amount)
    new_balance = (wallet.balance or Decimal('0.00')) + amount
    if new_balance < 0:
        raise InsufficientBalanceError(wallet.balance, -amount)

    wallet.balance = new_balance
    wallet.updated_at = datetime.utcnow()

    entry = Transaction(
        wallet_id=wallet.id,
        user_id=wallet.user_id,
        payout_request_id=payout_request.id if payout_request else None,
        transaction_type=transaction_type,
        amount=amount,
        balance_after=new_balance,
        currency=wallet.currency,
        description=description,
        created_by=actor.id if actor else None,
        created_at=datetime.utcnow(),
    )
    entry.set_metadata(metadata)
    db.session.add(entry)
    db.session.flush()

    logger.info(f"Wallet {wallet.id}: {transaction_type.value} {amount} -> balance {new_balance}")
    return entry


def adjust_balance(user_id, amount, description, actor=None):
    """Credit (positive) or debit (negative) a wallet outside the payout flow"""
    amount = to_amount(amount)
    if amount == 0:
        raise ValidationError({'amount': ["Amount must not be zero."]})

    if db.session.get(User, user_id) is None:
        raise NotFoundError("User")
    wallet = get_wallet(user_id, lock=True, create=True)
    transaction_type = TransactionType.CREDIT if amount > 0 else TransactionType.ADJUSTMENT
    try:
        entry = apply_entry(wallet, amount, transaction_type, description, actor=actor)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return entry


def list_transactions(user_id=None, page=1, per_page=None):
    query = Transaction.query
    if user_id:
        query = query.filter_by(user_id=user_id)
    per_page = per_page or current_app.config.get('POSTS_PER_PAGE', 25)
    return query.order_by(Transaction.id.desc()).paginate(page=page, per_page=per_page, error_out=False)

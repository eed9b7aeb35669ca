"""
Payout (withdrawal) request workflow.

Funds are reserved by debiting the wallet when an admin approves a request
and given back if a reserved request is later rejected or fails at the
gateway. Every mutation locks the PayoutRequest row first and then the
Wallet row, and commits once.
"""
import logging
import re
from datetime import datetime
from flask import current_app
from tutorhub import db
from tutorhub.models import PayoutRequest
from tutorhub.models.enums import PayoutStatus, PaymentMethod, TransactionType
from tutorhub.services import wallet_service
from tutorhub.services.error_service import (
    ValidationError, InvalidStateError, InsufficientBalanceError, NotFoundError,
)
from tutorhub.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

PENDING = PayoutStatus.PENDING
APPROVED = PayoutStatus.APPROVED
PROCESSING = PayoutStatus.PROCESSING

# action -> (allowed source states, target state)
TRANSITIONS = {
    'approve': ({PENDING}, APPROVED),
    'reject': ({PENDING, APPROVED}, PayoutStatus.REJECTED),
    'mark_processing': ({APPROVED}, PROCESSING),
    'mark_paid': ({APPROVED, PROCESSING}, PayoutStatus.PAID),
    'mark_completed': ({APPROVED, PROCESSING}, PayoutStatus.COMPLETED),
    'mark_failed': ({APPROVED, PROCESSING}, PayoutStatus.FAILED),
    'update_payment_method': ({PENDING}, PENDING),
}

# Fields that must be present in payment_details for each method
REQUIRED_DETAILS = {
    PaymentMethod.BANK_TRANSFER: ('bank_name', 'account_number', 'account_name'),
    PaymentMethod.PAYPAL: ('paypal_email',),
    PaymentMethod.MOBILE_MONEY: ('phone_number', 'provider'),
    PaymentMethod.DEBIT_CREDIT_CARD: ('card_brand', 'last_four'),
    PaymentMethod.STRIPE: ('stripe_account_id',),
}

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def _parse_method(method, field='payment_method'):
    try:
        return PaymentMethod(method)
    except ValueError:
        raise ValidationError({field: [f"Unsupported payment method '{method}'."]})


def validate_payment_details(method, details):
    details = details or {}
    errors = {}
    for key in REQUIRED_DETAILS[method]:
        if not str(details.get(key) or '').strip():
            errors[f'payment_details.{key}'] = [f"{key.replace('_', ' ').capitalize()} is required."]
    email = details.get('paypal_email')
    if method == PaymentMethod.PAYPAL and email and not EMAIL_PATTERN.match(email):
        errors['payment_details.paypal_email'] = ["PayPal email is not a valid email address."]
    if method == PaymentMethod.BANK_TRANSFER and details.get('account_number') \
            and not str(details['account_number']).isdigit():
        errors['payment_details.account_number'] = ["Account number must contain digits only."]
    if errors:
        raise ValidationError(errors)
    return {key: value for key, value in details.items() if value not in (None, '')}


def get_payout(payout_id, lock=False):
    query = PayoutRequest.query.filter_by(id=payout_id)
    if lock:
        query = query.with_for_update()
    payout = query.first()
    if payout is None:
        raise NotFoundError("Payout request")
    return payout


def list_payouts(status=None, user_id=None, page=1, per_page=None):
    query = PayoutRequest.query
    if status:
        try:
            query = query.filter(PayoutRequest.status == PayoutStatus(status))
        except ValueError:
            raise ValidationError({'status': [f"Unknown status '{status}'."]})
    if user_id:
        query = query.filter(PayoutRequest.user_id == user_id)
    per_page = per_page or current_app.config.get('POSTS_PER_PAGE', 25)
    return query.order_by(PayoutRequest.request_date.desc(), PayoutRequest.id.desc()).paginate(
        page=page, per_page=per_page, error_out=False
    )


def _check_transition(payout, action):
    sources, target = TRANSITIONS[action]
    if payout.status not in sources:
        raise InvalidStateError(
            f"Cannot {action.replace('_', ' ')} a payout request that is {payout.status.value}.",
            payout.status.value,
        )
    return target


def _commit():
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def _release_reservation(payout, actor, description):
    """Return reserved funds to the wallet; no-op for unreserved requests"""
    if not payout.reserved:
        return None
    wallet = wallet_service.get_wallet(payout.user_id, lock=True)
    entry = wallet_service.apply_entry(
        wallet, payout.amount, TransactionType.PAYOUT_REFUND, description,
        actor=actor, payout_request=payout,
    )
    payout.reserved = False
    return entry


def request_payout(user, amount, payment_method, payment_details=None, currency=None):
    """Teacher asks to withdraw; nothing is reserved until approval"""
    amount = wallet_service.to_amount(amount)
    minimum = current_app.config.get('PAYOUT_MIN_AMOUNT', 1000)
    maximum = current_app.config.get('PAYOUT_MAX_AMOUNT', 1000000)
    if amount < wallet_service.to_amount(minimum):
        raise ValidationError({'amount': [f"Minimum withdrawal amount is {minimum:,.2f}."]})
    if amount > wallet_service.to_amount(maximum):
        raise ValidationError({'amount': [f"Maximum withdrawal amount is {maximum:,.2f}."]})

    method = _parse_method(payment_method)
    details = validate_payment_details(method, payment_details)

    wallet = wallet_service.get_wallet(user.id, create=True)
    if currency and currency.upper() != wallet.currency:
        raise ValidationError({'currency': [f"Withdrawals must be made in {wallet.currency}."]})
    if wallet.balance < amount:
        raise InsufficientBalanceError(wallet.balance, amount)

    payout = PayoutRequest(
        user_id=user.id,
        amount=amount,
        currency=wallet.currency,
        payment_method=method,
        status=PENDING,
        reserved=False,
        request_date=datetime.utcnow(),
    )
    payout.set_payment_details(details)
    db.session.add(payout)
    _commit()

    logger.info(f"Payout request {payout.id} created by user {user.id} for {amount}")
    NotificationService.withdrawal_requested(payout)
    return payout


def approve_payout(payout_id, admin):
    payout = get_payout(payout_id, lock=True)
    target = _check_transition(payout, 'approve')

    wallet = wallet_service.get_wallet(payout.user_id, lock=True, create=True)
    if wallet.balance < payout.amount:
        raise InsufficientBalanceError(wallet.balance, payout.amount)

    entry = wallet_service.apply_entry(
        wallet, -payout.amount, TransactionType.PAYOUT_DEBIT,
        f"Withdrawal #{payout.id} approved",
        actor=admin, payout_request=payout,
        metadata={'payment_method': payout.payment_method.value},
    )
    payout.status = target
    payout.reserved = True
    payout.transaction_id = entry.id
    payout.processed_at = datetime.utcnow()
    payout.processed_by = admin.id
    _commit()

    logger.info(f"Payout request {payout_id} approved by admin {admin.id}")
    NotificationService.payout_status_changed(payout)
    return payout


def reject_payout(payout_id, reason, admin):
    reason = (reason or '').strip()
    if not reason:
        raise ValidationError({'reason': ["Rejection reason is required."]})
    if len(reason) > 1000:
        raise ValidationError({'reason': ["Rejection reason must be at most 1000 characters."]})

    payout = get_payout(payout_id, lock=True)
    target = _check_transition(payout, 'reject')

    _release_reservation(payout, admin, f"Withdrawal #{payout.id} rejected, funds returned")
    payout.status = target
    payout.rejection_reason = reason
    payout.processed_at = datetime.utcnow()
    payout.processed_by = admin.id
    payout.add_note(f"Rejected: {reason}")
    _commit()

    logger.info(f"Payout request {payout_id} rejected by admin {admin.id}")
    NotificationService.payout_status_changed(payout)
    return payout


def mark_processing(payout_id, admin, external_reference=None, gateway=None):
    """Hand the payout to a gateway; the reference lets webhooks find it later"""
    payout = get_payout(payout_id, lock=True)
    target = _check_transition(payout, 'mark_processing')

    external_reference = (external_reference or '').strip() or None
    if external_reference:
        _ensure_reference_unused(external_reference, payout.id)
        payout.external_reference = external_reference
    if gateway:
        payout.gateway = gateway
    payout.status = target
    payout.add_note(f"Processing via {gateway or 'manual transfer'}")
    _commit()

    logger.info(f"Payout request {payout_id} processing (admin {admin.id})")
    NotificationService.payout_status_changed(payout)
    return payout


def _ensure_reference_unused(external_reference, payout_id):
    """Webhooks match payouts by reference, so one reference belongs to one payout"""
    taken = PayoutRequest.query.filter(
        PayoutRequest.external_reference == external_reference,
        PayoutRequest.id != payout_id,
    ).first()
    if taken is not None:
        raise ValidationError({'external_reference': ["This reference is already used by another payout."]})


def _finalise(payout, target, admin=None):
    wallet = wallet_service.get_wallet(payout.user_id, lock=True)
    wallet.total_withdrawn = (wallet.total_withdrawn or 0) + payout.amount
    payout.reserved = False
    payout.status = target
    payout.processed_at = datetime.utcnow()
    if admin is not None:
        payout.processed_by = admin.id


def mark_paid(payout_id, admin):
    payout = get_payout(payout_id, lock=True)
    target = _check_transition(payout, 'mark_paid')
    _finalise(payout, target, admin)
    payout.add_note("Marked as paid")
    _commit()

    logger.info(f"Payout request {payout_id} paid (admin {admin.id})")
    NotificationService.payout_status_changed(payout)
    return payout


def mark_completed(payout_id, external_reference, admin, notes=None):
    external_reference = (external_reference or '').strip()
    if not external_reference:
        raise ValidationError({'external_reference': ["External reference is required."]})

    payout = get_payout(payout_id, lock=True)
    target = _check_transition(payout, 'mark_completed')
    _ensure_reference_unused(external_reference, payout.id)

    _finalise(payout, target, admin)
    payout.external_reference = external_reference
    payout.add_note(f"Completed with reference {external_reference}")
    if notes:
        payout.add_note(notes.strip())
    _commit()

    logger.info(f"Payout request {payout_id} completed (admin {admin.id}, ref {external_reference})")
    NotificationService.payout_status_changed(payout)
    return payout


def update_payment_method(payout_id, payment_method, admin, payment_details=None):
    payout = get_payout(payout_id, lock=True)
    _check_transition(payout, 'update_payment_method')
    method = _parse_method(payment_method)

    previous = payout.payment_method
    if payment_details is not None:
        payout.set_payment_details(validate_payment_details(method, payment_details))
    payout.payment_method = method
    payout.add_note(
        f"Payment method changed from {previous.value} to {method.value} by {admin.full_name}"
    )
    _commit()

    logger.info(f"Payout request {payout_id} payment method {previous.value} -> {method.value} "
                f"(admin {admin.id})")
    return payout


# ---- gateway outcomes (driven by webhooks) ----

def find_by_reference(external_reference):
    return PayoutRequest.query.filter_by(external_reference=external_reference).with_for_update().first()


def complete_from_gateway(payout, gateway):
    """Gateway confirmed the transfer. Returns False if the payout was already settled."""
    if payout.status not in TRANSITIONS['mark_completed'][0]:
        logger.warning(f"Payout request {payout.id} is {payout.status.value}; ignoring {gateway} success")
        return False
    _finalise(payout, PayoutStatus.COMPLETED)
    payout.gateway = gateway
    payout.add_note(f"Completed by {gateway} webhook")
    return True


def fail_from_gateway(payout, gateway, reason=None):
    """Gateway reported failure; reserved funds go back to the wallet"""
    if payout.status not in TRANSITIONS['mark_failed'][0]:
        logger.warning(f"Payout request {payout.id} is {payout.status.value}; ignoring {gateway} failure")
        return False
    _release_reservation(payout, None, f"Withdrawal #{payout.id} failed at {gateway}, funds returned")
    payout.status = PayoutStatus.FAILED
    payout.gateway = gateway
    payout.processed_at = datetime.utcnow()
    payout.rejection_reason = reason or f"Transfer failed at {gateway}"
    payout.add_note(f"Failed by {gateway} webhook: {payout.rejection_reason}")
    return True

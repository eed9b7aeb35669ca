"""
Payment gateway webhooks for payout settlement.

Each gateway module-level function verifies the signature, normalises the
event to (event_id, event_type, reference, outcome) and hands it to
process_event(), which applies it at most once per (gateway, event_id).
"""
import hashlib
import hmac
import json
import logging
from datetime import datetime
import requests
import stripe
from flask import current_app
from sqlalchemy.exc import IntegrityError
from tutorhub import db
from tutorhub.models import WebhookEvent
from tutorhub.models.enums import WebhookStatus
from tutorhub.services import payout_service
from tutorhub.services.error_service import WebhookSignatureError, ValidationError
from tutorhub.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

COMPLETED = 'completed'
FAILED = 'failed'

PAYSTACK_EVENTS = {
    'transfer.success': COMPLETED,
    'transfer.failed': FAILED,
    'transfer.reversed': FAILED,
}

STRIPE_EVENTS = {
    'payout.paid': COMPLETED,
    'payout.failed': FAILED,
    'payout.canceled': FAILED,
}

PAYPAL_EVENTS = {
    'PAYMENT.PAYOUTS-ITEM.SUCCEEDED': COMPLETED,
    'PAYMENT.PAYOUTS-ITEM.FAILED': FAILED,
    'PAYMENT.PAYOUTS-ITEM.RETURNED': FAILED,
    'PAYMENT.PAYOUTS-ITEM.BLOCKED': FAILED,
    'PAYMENT.PAYOUTS-ITEM.DENIED': FAILED,
}


def _verify_enabled():
    return current_app.config.get('WEBHOOK_VERIFY_SIGNATURES', True)


def _load_json(payload):
    try:
        return json.loads(payload)
    except ValueError:
        raise ValidationError({'payload': ["Webhook body is not valid JSON."]})


# ---- signature verification ----

def verify_paystack_signature(payload, signature):
    secret = current_app.config.get('PAYSTACK_SECRET_KEY')
    if not secret:
        raise WebhookSignatureError('paystack', "Paystack webhook secret is not configured")
    expected = hmac.new(secret.encode(), payload, hashlib.sha512).hexdigest()
    # header values are latin-1 decoded str
    if not signature or not hmac.compare_digest(expected.encode(), signature.encode('latin-1', 'replace')):
        logger.warning("Invalid Paystack webhook signature")
        raise WebhookSignatureError('paystack')


def verify_stripe_signature(payload, signature):
    secret = current_app.config.get('STRIPE_WEBHOOK_SECRET')
    if not secret:
        raise WebhookSignatureError('stripe', "Stripe webhook secret is not configured")
    try:
        stripe.Webhook.construct_event(payload, signature or '', secret)
    except ValueError:
        raise ValidationError({'payload': ["Webhook body is not valid JSON."]})
    except stripe.SignatureVerificationError as e:
        logger.warning(f"Invalid Stripe webhook signature: {e}")
        raise WebhookSignatureError('stripe')


def _paypal_access_token():
    response = requests.post(
        f"{current_app.config['PAYPAL_API_BASE']}/v1/oauth2/token",
        auth=(current_app.config.get('PAYPAL_CLIENT_ID') or '', current_app.config.get('PAYPAL_CLIENT_SECRET') or ''),
        data={'grant_type': 'client_credentials'},
        timeout=15,
    )
    response.raise_for_status()
    return response.json()['access_token']


def verify_paypal_signature(headers, event):
    webhook_id = current_app.config.get('PAYPAL_WEBHOOK_ID')
    if not webhook_id:
        raise WebhookSignatureError('paypal', "PayPal webhook id is not configured")

    body = {
        'auth_algo': headers.get('PAYPAL-AUTH-ALGO'),
        'cert_url': headers.get('PAYPAL-CERT-URL'),
        'transmission_id': headers.get('PAYPAL-TRANSMISSION-ID'),
        'transmission_sig': headers.get('PAYPAL-TRANSMISSION-SIG'),
        'transmission_time': headers.get('PAYPAL-TRANSMISSION-TIME'),
        'webhook_id': webhook_id,
        'webhook_event': event,
    }
    try:
        response = requests.post(
            f"{current_app.config['PAYPAL_API_BASE']}/v1/notifications/verify-webhook-signature",
            json=body,
            headers={'Authorization': f"Bearer {_paypal_access_token()}"},
            timeout=15,
        )
        response.raise_for_status()
        status = response.json().get('verification_status')
    except requests.RequestException as e:
        logger.error(f"PayPal signature verification request failed: {e}")
        raise WebhookSignatureError('paypal', "Could not verify PayPal webhook signature")

    if status != 'SUCCESS':
        logger.warning(f"Invalid PayPal webhook signature (verification_status={status})")
        raise WebhookSignatureError('paypal')


# ---- gateway entry points ----

def handle_paystack(payload, headers):
    if _verify_enabled():
        verify_paystack_signature(payload, headers.get('x-paystack-signature'))
    event = _load_json(payload)
    event_type = event.get('event', '')
    data = event.get('data') or {}
    reference = data.get('reference') or data.get('transfer_code')
    event_id = str(data.get('id') or reference or '')
    return process_event(
        'paystack', f"{event_type}:{event_id}", event_type, reference,
        PAYSTACK_EVENTS.get(event_type), event,
        reason=data.get('reason') or data.get('failures'),
    )


def handle_stripe(payload, headers):
    if _verify_enabled():
        verify_stripe_signature(payload, headers.get('Stripe-Signature'))
    event = _load_json(payload)
    event_type = event.get('type', '')
    obj = (event.get('data') or {}).get('object') or {}
    return process_event(
        'stripe', event.get('id') or '', event_type, obj.get('id'),
        STRIPE_EVENTS.get(event_type), event,
        reason=obj.get('failure_message'),
    )


def handle_paypal(payload, headers):
    event = _load_json(payload)
    if _verify_enabled():
        verify_paypal_signature(headers, event)
    event_type = event.get('event_type', '')
    resource = event.get('resource') or {}
    errors = resource.get('errors') or {}
    return process_event(
        'paypal', event.get('id') or '', event_type,
        resource.get('payout_item_id') or resource.get('payout_batch_id'),
        PAYPAL_EVENTS.get(event_type), event,
        reason=errors.get('message') if isinstance(errors, dict) else None,
    )


# ---- idempotent processing ----

def _claim(gateway, event_id, event_type, event):
    """Return the WebhookEvent row to work on, or None if already handled"""
    record = WebhookEvent.query.filter_by(gateway=gateway, event_id=event_id).first()
    if record is not None:
        if record.status == WebhookStatus.PROCESSED:
            return None
        record.status = WebhookStatus.PENDING
        record.error = None
        return record

    record = WebhookEvent(
        gateway=gateway,
        event_id=event_id,
        event_type=event_type,
        payload=json.dumps(event),
        status=WebhookStatus.PENDING,
    )
    db.session.add(record)
    try:
        db.session.flush()
    except IntegrityError:
        # Another delivery of the same event got there first
        db.session.rollback()
        return None
    return record


def _mark_failed(gateway, event_id, event_type, event, error):
    record = WebhookEvent.query.filter_by(gateway=gateway, event_id=event_id).first()
    if record is None:
        record = WebhookEvent(gateway=gateway, event_id=event_id, event_type=event_type,
                              payload=json.dumps(event))
        db.session.add(record)
    record.status = WebhookStatus.FAILED
    record.error = error
    record.processed_at = datetime.utcnow()
    db.session.commit()


def process_event(gateway, event_id, event_type, reference, outcome, event, reason=None):
    if not event_id:
        raise ValidationError({'id': ["Webhook event has no id."]})

    record = _claim(gateway, event_id, event_type, event)
    if record is None:
        logger.info(f"{gateway} event {event_id} already processed")
        return {'status': 'already_processed', 'event_id': event_id}

    try:
        payout = None
        changed = False
        if outcome is None:
            logger.info(f"{gateway} event {event_id} ({event_type}) ignored")
            result = 'ignored'
        else:
            payout = payout_service.find_by_reference(reference) if reference else None
            if payout is None:
                logger.warning(f"{gateway} event {event_id}: no payout with reference {reference!r}")
                result = 'ignored'
            elif outcome == COMPLETED:
                changed = payout_service.complete_from_gateway(payout, gateway)
                result = 'processed'
            else:
                if isinstance(reason, (list, dict)):
                    reason = json.dumps(reason)
                changed = payout_service.fail_from_gateway(payout, gateway, reason)
                result = 'processed'

        record.status = WebhookStatus.PROCESSED
        record.processed_at = datetime.utcnow()
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Error processing {gateway} event {event_id}")
        _mark_failed(gateway, event_id, event_type, event, str(e))
        raise

    if payout is not None:
        logger.info(f"{gateway} event {event_id}: payout {payout.id} is {payout.status.value}")
        if changed:
            NotificationService.payout_status_changed(payout)
    return {
        'status': result,
        'event_id': event_id,
        'payout_id': payout.id if payout else None,
    }

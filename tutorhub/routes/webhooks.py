# tutorhub/routes/webhooks.py

from flask import Blueprint, request, current_app
from tutorhub.services import webhook_service
from tutorhub.utils.responses import success_response

bp = Blueprint('webhooks', __name__)


def _respond(result):
    current_app.logger.info(f"Webhook result: {result}")
    return success_response(result, result['status'])


@bp.route('/paystack/transfer', methods=['POST'])
def paystack_transfer():
    return _respond(webhook_service.handle_paystack(request.get_data(), request.headers))


@bp.route('/stripe/payout', methods=['POST'])
def stripe_payout():
    return _respond(webhook_service.handle_stripe(request.get_data(), request.headers))


@bp.route('/paypal/payout', methods=['POST'])
def paypal_payout():
    return _respond(webhook_service.handle_paypal(request.get_data(), request.headers))

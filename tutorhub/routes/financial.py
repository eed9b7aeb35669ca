# tutorhub/routes/financial.py

from flask import Blueprint, request
from flask_login import current_user
from tutorhub.forms.payout_forms import (
    RejectPayoutForm, MarkProcessingForm, MarkCompletedForm, PaymentMethodForm, WalletAdjustmentForm,
)
from tutorhub.services import payout_service, wallet_service
from tutorhub.services.error_service import admin_required
from tutorhub.utils.responses import success_response, page_args, paginated

bp = Blueprint('financial', __name__)


def _payout_payload(payout):
    wallet = payout.user.wallet
    data = payout.to_dict()
    data['wallet'] = wallet.to_dict() if wallet else None
    return data


@bp.route('/payout-requests', methods=['GET'])
@admin_required
def payout_requests():
    page, per_page = page_args()
    pagination = payout_service.list_payouts(
        status=request.args.get('status') or None,
        user_id=request.args.get('user_id', type=int),
        page=page,
        per_page=per_page,
    )
    return success_response(paginated(pagination, lambda p: p.to_dict()))


@bp.route('/payout-requests/<int:payout_id>', methods=['GET'])
@admin_required
def payout_request(payout_id):
    return success_response(_payout_payload(payout_service.get_payout(payout_id)))


@bp.route('/payout-requests/<int:payout_id>/approve', methods=['POST'])
@admin_required
def approve(payout_id):
    payout = payout_service.approve_payout(payout_id, current_user)
    return success_response(_payout_payload(payout), 'Payout request approved')


@bp.route('/payout-requests/<int:payout_id>/reject', methods=['POST'])
@admin_required
def reject(payout_id):
    form = RejectPayoutForm().validate_or_raise()
    payout = payout_service.reject_payout(payout_id, form.reason.data, current_user)
    return success_response(_payout_payload(payout), 'Payout request rejected')


@bp.route('/payout-requests/<int:payout_id>/mark-processing', methods=['POST'])
@admin_required
def mark_processing(payout_id):
    form = MarkProcessingForm().validate_or_raise()
    payout = payout_service.mark_processing(
        payout_id, current_user,
        external_reference=form.external_reference.data,
        gateway=form.gateway.data or None,
    )
    return success_response(_payout_payload(payout), 'Payout marked as processing')


@bp.route('/payout-requests/<int:payout_id>/mark-paid', methods=['POST'])
@admin_required
def mark_paid(payout_id):
    payout = payout_service.mark_paid(payout_id, current_user)
    return success_response(_payout_payload(payout), 'Payout marked as paid')


@bp.route('/payout-requests/<int:payout_id>/mark-completed', methods=['POST'])
@admin_required
def mark_completed(payout_id):
    form = MarkCompletedForm().validate_or_raise()
    payout = payout_service.mark_completed(
        payout_id, form.external_reference.data, current_user, notes=form.notes.data
    )
    return success_response(_payout_payload(payout), 'Payout marked as completed')


@bp.route('/payout-requests/<int:payout_id>/payment-method', methods=['PATCH'])
@admin_required
def update_payment_method(payout_id):
    form = PaymentMethodForm().validate_or_raise()
    payout = payout_service.update_payment_method(
        payout_id, form.payment_method.data, current_user,
        payment_details=form.payment_details.data,
    )
    return success_response(_payout_payload(payout), 'Payment method updated')


@bp.route('/transactions', methods=['GET'])
@admin_required
def transactions():
    page, per_page = page_args()
    pagination = wallet_service.list_transactions(
        user_id=request.args.get('user_id', type=int), page=page, per_page=per_page
    )
    return success_response(paginated(pagination, lambda t: t.to_dict()))


@bp.route('/wallets/<int:user_id>/adjust', methods=['POST'])
@admin_required
def adjust_wallet(user_id):
    form = WalletAdjustmentForm().validate_or_raise()
    entry = wallet_service.adjust_balance(user_id, form.amount.data, form.description.data, current_user)
    return success_response(entry.to_dict(), 'Wallet adjusted', 201)

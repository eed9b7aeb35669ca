# tutorhub/routes/wallet.py

from flask import Blueprint
from flask_login import current_user, login_required
from tutorhub import db
from tutorhub.forms.payout_forms import WithdrawalForm
from tutorhub.models.enums import PayoutStatus
from tutorhub.services import payout_service, wallet_service
from tutorhub.services.error_service import NotFoundError
from tutorhub.utils.responses import success_response, page_args, paginated

bp = Blueprint('wallet', __name__)


@bp.route('', methods=['GET'])
@login_required
def show():
    wallet = wallet_service.get_wallet(current_user.id, create=True)
    db.session.commit()
    data = wallet.to_dict()
    data['pending_withdrawals'] = current_user.payout_requests.filter_by(status=PayoutStatus.PENDING).count()
    return success_response(data)


@bp.route('/transactions', methods=['GET'])
@login_required
def transactions():
    page, per_page = page_args()
    pagination = wallet_service.list_transactions(user_id=current_user.id, page=page, per_page=per_page)
    return success_response(paginated(pagination, lambda t: t.to_dict()))


@bp.route('/withdrawals', methods=['GET'])
@login_required
def withdrawals():
    page, per_page = page_args()
    pagination = payout_service.list_payouts(user_id=current_user.id, page=page, per_page=per_page)
    return success_response(paginated(pagination, lambda p: p.to_dict()))


@bp.route('/withdrawals', methods=['POST'])
@login_required
def request_withdrawal():
    form = WithdrawalForm().validate_or_raise()
    payout = payout_service.request_payout(
        current_user,
        form.amount.data,
        form.payment_method.data,
        payment_details=form.payment_details.data,
        currency=form.currency.data or None,
    )
    return success_response(payout.to_dict(), 'Withdrawal request submitted', 201)


@bp.route('/withdrawals/<int:payout_id>', methods=['GET'])
@login_required
def withdrawal(payout_id):
    payout = payout_service.get_payout(payout_id)
    if payout.user_id != current_user.id:
        raise NotFoundError("Payout request")
    return success_response(payout.to_dict())

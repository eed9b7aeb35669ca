# tutorhub/routes/subscriptions.py

from flask import Blueprint, request
from flask_login import current_user
from tutorhub.forms.subscription_forms import SubscriptionPlanForm
from tutorhub.services import subscription_service
from tutorhub.services.error_service import admin_required
from tutorhub.utils.responses import success_response, page_args, paginated

bp = Blueprint('subscriptions', __name__)


def _active_filter():
    value = request.args.get('is_active')
    if value is None or value == '':
        return None
    return value.lower() in ('1', 'true', 'yes', 'active')


@bp.route('', methods=['GET'])
@admin_required
def index():
    page, per_page = page_args()
    pagination = subscription_service.list_plans(
        is_active=_active_filter(),
        search=request.args.get('search') or None,
        page=page,
        per_page=per_page,
    )
    return success_response(paginated(pagination, lambda p: p.to_dict()))


@bp.route('', methods=['POST'])
@admin_required
def store():
    form = SubscriptionPlanForm().validate_or_raise()
    plan = subscription_service.create_plan(form.to_data(), current_user)
    return success_response(plan.to_dict(), 'Subscription plan created successfully', 201)


@bp.route('/<int:plan_id>', methods=['GET'])
@admin_required
def show(plan_id):
    return success_response(subscription_service.get_plan(plan_id).to_dict())


@bp.route('/<int:plan_id>', methods=['PUT'])
@admin_required
def update(plan_id):
    form = SubscriptionPlanForm().validate_or_raise()
    plan = subscription_service.update_plan(plan_id, form.to_data(), current_user)
    return success_response(plan.to_dict(), 'Subscription plan updated successfully')


@bp.route('/<int:plan_id>', methods=['DELETE'])
@admin_required
def destroy(plan_id):
    subscription_service.delete_plan(plan_id, current_user)
    return success_response(message='Subscription plan deleted successfully')


@bp.route('/<int:plan_id>/toggle-active', methods=['POST'])
@admin_required
def toggle_active(plan_id):
    plan = subscription_service.toggle_active(plan_id, current_user)
    state = 'activated' if plan.is_active else 'deactivated'
    return success_response(plan.to_dict(), f'Subscription plan {state} successfully')


@bp.route('/<int:plan_id>/duplicate', methods=['POST'])
@admin_required
def duplicate(plan_id):
    plan = subscription_service.duplicate_plan(plan_id, current_user)
    return success_response(plan.to_dict(), 'Subscription plan duplicated successfully', 201)

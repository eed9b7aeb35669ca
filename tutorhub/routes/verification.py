# tutorhub/routes/verification.py

from flask import Blueprint, request
from flask_login import current_user
from tutorhub.forms.verification_forms import RequestVideoForm, CompleteVideoForm, RejectRequestForm
from tutorhub.services import verification_service
from tutorhub.services.error_service import admin_required
from tutorhub.utils.responses import success_response, page_args, paginated

bp = Blueprint('verification', __name__)


def _detail(verification_request):
    data = verification_request.to_dict(include_related=True)
    data['summary'] = verification_service.verification_summary(verification_request)
    return data


@bp.route('', methods=['GET'])
@admin_required
def list_requests():
    page, per_page = page_args()
    pagination = verification_service.list_requests(
        status=request.args.get('status') or None, page=page, per_page=per_page
    )
    return success_response(paginated(pagination, lambda r: r.to_dict()))


@bp.route('/<int:request_id>', methods=['GET'])
@admin_required
def show(request_id):
    verification_request = verification_service.get_request(request_id)
    return success_response(_detail(verification_request))


@bp.route('/<int:request_id>/approve', methods=['PATCH'])
@admin_required
def approve(request_id):
    verification_request = verification_service.approve_request(request_id, current_user)
    return success_response(_detail(verification_request), 'Teacher approved successfully')


@bp.route('/<int:request_id>/reject', methods=['PATCH'])
@admin_required
def reject(request_id):
    form = RejectRequestForm().validate_or_raise()
    verification_request = verification_service.reject_request(
        request_id, form.rejection_reason.data, current_user
    )
    return success_response(_detail(verification_request), 'Teacher rejected')


@bp.route('/<int:request_id>/request-video', methods=['POST'])
@admin_required
def request_video(request_id):
    form = RequestVideoForm().validate_or_raise()
    call = verification_service.schedule_call(
        request_id,
        form.scheduled_call_at.data,
        form.video_platform.data,
        current_user,
        meeting_link=form.meeting_link.data,
        notes=form.notes.data,
    )
    return success_response(
        _detail(call.verification_request), 'Video verification scheduled', 201
    )


@bp.route('/<int:request_id>/start-video', methods=['POST'])
@admin_required
def start_video(request_id):
    verification_request = verification_service.start_live_call(request_id, current_user)
    return success_response(_detail(verification_request), 'Video verification started')


@bp.route('/<int:request_id>/complete-video', methods=['PATCH'])
@admin_required
def complete_video(request_id):
    form = CompleteVideoForm().validate_or_raise()
    verification_request = verification_service.complete_call(
        request_id,
        form.verification_result.data,
        current_user,
        notes=form.verification_notes.data,
    )
    return success_response(_detail(verification_request), 'Video verification completed')

# tutorhub/routes/teacher.py

from flask import Blueprint
from flask_login import current_user
from tutorhub.forms.verification_forms import TeacherApplicationForm, DocumentUploadForm
from tutorhub.services import verification_service, document_service
from tutorhub.services.error_service import require_role
from tutorhub.utils.responses import success_response

bp = Blueprint('teacher', __name__)


def _status_payload(verification_request):
    data = verification_request.to_dict(include_related=True)
    data.pop('audit_logs', None)
    data['summary'] = verification_service.verification_summary(verification_request)
    return data


@bp.route('/verification/apply', methods=['POST'])
@require_role('teacher')
def apply():
    form = TeacherApplicationForm().validate_or_raise()
    verification_request = verification_service.submit_application(
        current_user,
        bio=form.bio.data,
        subjects=form.subjects.data or None,
        experience_years=form.experience_years.data,
        hourly_rate=form.hourly_rate.data,
    )
    return success_response(_status_payload(verification_request), 'Application submitted', 201)


@bp.route('/verification', methods=['GET'])
@require_role('teacher')
def verification_status():
    verification_request = verification_service.current_request_for(current_user)
    return success_response(_status_payload(verification_request))


@bp.route('/documents', methods=['POST'])
@require_role('teacher')
def upload_document():
    form = DocumentUploadForm().validate_or_raise()
    document = document_service.upload_document(
        current_user,
        form.type.data,
        form.file.data,
        side=form.side.data or None,
    )
    return success_response(document.to_dict(), 'Document uploaded', 201)

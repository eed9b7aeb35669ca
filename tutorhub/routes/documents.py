# tutorhub/routes/documents.py

from flask import Blueprint, redirect, send_file
from flask_login import current_user
from werkzeug.utils import secure_filename
from tutorhub.forms.verification_forms import VerifyDocumentForm, RejectDocumentForm, BatchVerifyDocumentsForm
from tutorhub.services import document_service, verification_service
from tutorhub.services.error_service import admin_required
from tutorhub.utils.responses import success_response

bp = Blueprint('documents', __name__)


def _payload(document):
    verification_request = document.verification_request
    return {
        'document': document.to_dict(),
        'docs_status': verification_request.docs_status,
        'summary': verification_service.verification_summary(verification_request),
    }


@bp.route('/<int:document_id>/download', methods=['GET'])
@admin_required
def download(document_id):
    document, url, path = document_service.download_target(document_id)
    if url:
        return redirect(url)
    return send_file(path, as_attachment=True,
                     download_name=secure_filename(f"{document.label}_{document.name}"))


@bp.route('/batch-verify', methods=['PATCH'])
@admin_required
def batch_verify():
    form = BatchVerifyDocumentsForm().validate_or_raise()
    documents = verification_service.verify_documents(
        form.document_ids.data, current_user, notes=form.verification_notes.data
    )
    return success_response(
        {'documents': [_payload(document) for document in documents]},
        f'{len(documents)} documents verified successfully',
    )


@bp.route('/<int:document_id>/verify', methods=['PATCH'])
@admin_required
def verify(document_id):
    form = VerifyDocumentForm().validate_or_raise()
    document = verification_service.verify_document(
        document_id, current_user, notes=form.verification_notes.data
    )
    return success_response(_payload(document), 'Document verified')


@bp.route('/<int:document_id>/reject', methods=['PATCH'])
@admin_required
def reject(document_id):
    form = RejectDocumentForm().validate_or_raise()
    document = verification_service.reject_document(
        document_id,
        form.rejection_reason.data,
        current_user,
        resubmission_instructions=form.resubmission_instructions.data,
    )
    return success_response(_payload(document), 'Document rejected')

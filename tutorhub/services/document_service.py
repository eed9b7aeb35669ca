# tutorhub/services/document_service.py

import logging
import os
from datetime import datetime
from tutorhub import db
from tutorhub.models import Document
from tutorhub.models.enums import DocumentType, DocumentSide, VerificationStatus
from tutorhub.services.error_service import (
    APIError, ErrorCode, ValidationError, InvalidStateError, NotFoundError,
)
from tutorhub.services.notification_service import NotificationService
from tutorhub.services.verification_service import record_audit
from tutorhub.utils.storage import allowed_file, document_folder, store_file, delete_file, local_path, presigned_url

logger = logging.getLogger(__name__)


def _parse_type_and_side(document_type, side):
    try:
        document_type = DocumentType(document_type)
    except ValueError:
        raise ValidationError({'type': [f"Unsupported document type '{document_type}'."]})

    side = side or None
    if document_type == DocumentType.ID_VERIFICATION:
        if side is None:
            raise ValidationError({'side': ["Side (front or back) is required for ID documents."]})
        try:
            side = DocumentSide(side)
        except ValueError:
            raise ValidationError({'side': ["Side must be 'front' or 'back'."]})
    elif side is not None:
        raise ValidationError({'side': ["Side only applies to ID documents."]})
    return document_type, side


def upload_document(user, document_type, file, side=None):
    """
    Attach a document to the teacher's open verification request.

    Uploading a (type, side) that already exists replaces the stored file
    and puts that document back into review.
    """
    document_type, side = _parse_type_and_side(document_type, side)
    if file is None or not file.filename:
        raise ValidationError({'file': ["A file is required."]})
    if not allowed_file(file.filename):
        raise ValidationError({'file': ["File type is not allowed."]})

    profile = user.teacher_profile
    verification_request = profile.current_verification_request if profile else None
    if verification_request is None:
        raise NotFoundError("Verification request")
    if verification_request.status in (VerificationStatus.VERIFIED, VerificationStatus.REJECTED):
        raise InvalidStateError(
            f"Documents cannot be uploaded while the request is {verification_request.status.value}.",
            verification_request.status.value,
        )

    path = store_file(file, document_folder(document_type.value))
    if path is None:
        raise APIError(ErrorCode.UPLOAD_FAILED, "File upload failed", 500)

    document = Document.query.filter_by(
        verification_request_id=verification_request.id,
        type=document_type,
        side=side,
    ).first()

    if document is None:
        document = Document(
            verification_request_id=verification_request.id,
            type=document_type,
            side=side,
        )
        db.session.add(document)
        action = 'uploaded'
        previous_path = None
    else:
        action = 'replaced'
        previous_path = document.file_path
    document.reset_review()

    document.name = file.filename
    document.file_path = path
    document.uploaded_at = datetime.utcnow()

    db.session.flush()
    record_audit(verification_request, user, f"Document {document.id} ({document.label}) {action}")
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    if previous_path and previous_path != path:
        delete_file(previous_path)

    logger.info(f"Document {document.id} {action} for verification request {verification_request.id}")
    NotificationService.document_uploaded(document)
    return document


def download_target(document_id):
    """
    Where an admin can fetch a document's file.

    Returns (document, url, path): a presigned url for S3 storage, a local
    path for files kept under UPLOAD_FOLDER.
    """
    document = db.session.get(Document, document_id)
    if document is None:
        raise NotFoundError("Document")

    if document.file_path.startswith('s3://'):
        url = presigned_url(document.file_path)
        if url is None:
            raise APIError(ErrorCode.INTERNAL_ERROR, "Could not create a download link for this document", 502)
        return document, url, None

    path = local_path(document.file_path)
    if not os.path.exists(path):
        logger.warning(f"Document {document_id}: file {document.file_path} is missing from storage")
        raise NotFoundError("Document file")
    return document, None, path

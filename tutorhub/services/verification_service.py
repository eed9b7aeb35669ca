"""
Teacher verification workflow.

A VerificationRequest moves through a small state machine (see TRANSITIONS).
Each public operation locks the request row, checks the transition, applies
it together with an audit row in one database transaction, commits, and only
then sends notifications.
"""
import logging
from datetime import datetime, timezone
from urllib.parse import urlparse
from flask import current_app
from tutorhub import db
from tutorhub.models import (
    TeacherProfile, VerificationRequest, VerificationCall, VerificationAuditLog, Document,
)
from tutorhub.models.enums import (
    VerificationStatus, VideoStatus, DocumentStatus, CallPlatform, CallStatus, CallResult,
)
from tutorhub.services.error_service import (
    ValidationError, InvalidStateError, ApprovalBlockedError, NotFoundError,
)
from tutorhub.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

PENDING = VerificationStatus.PENDING
LIVE_VIDEO = VerificationStatus.LIVE_VIDEO
VERIFIED = VerificationStatus.VERIFIED
REJECTED = VerificationStatus.REJECTED

# action -> (allowed source states, target state)
TRANSITIONS = {
    'schedule_call': ({PENDING, LIVE_VIDEO}, PENDING),
    'start_live_call': ({PENDING}, LIVE_VIDEO),
    'complete_call': ({LIVE_VIDEO}, PENDING),
    'approve_request': ({PENDING}, VERIFIED),
    'reject_request': ({PENDING, LIVE_VIDEO}, REJECTED),
}

BLOCK_REJECTED = "Teacher application has been rejected."
BLOCK_VERIFIED = "Teacher is already verified."
BLOCK_DOCS_REJECTED = "Documents have been rejected. Teacher must resubmit."
BLOCK_DOCS_PENDING = "All documents must be verified first."
BLOCK_VIDEO_FAILED = "Video verification failed. Retake required."
BLOCK_VIDEO_COMPLETED = "Video completed but not passed. Review and mark as passed."
BLOCK_VIDEO_SCHEDULED = "Video verification is scheduled but not completed."
BLOCK_VIDEO_NOT_SCHEDULED = "Video verification not scheduled yet."

REASON_MAX_LENGTH = 1000


def _naive_utc(value):
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _require_text(field, value, label, max_length=REASON_MAX_LENGTH):
    value = (value or '').strip()
    if not value:
        raise ValidationError({field: [f"{label} is required."]})
    if len(value) > max_length:
        raise ValidationError({field: [f"{label} must be at most {max_length} characters."]})
    return value


def _optional_text(field, value, max_length=REASON_MAX_LENGTH):
    value = (value or '').strip()
    if len(value) > max_length:
        raise ValidationError({field: [f"Must be at most {max_length} characters."]})
    return value or None


def docs_status(verification_request):
    """pending (none uploaded or any pending), rejected (any rejected) or verified"""
    return verification_request.docs_status


def approval_block_reason(verification_request):
    """
    Why the request cannot be approved right now, or "" when it can.

    This is the only place approval eligibility is decided; both the
    approve operation and the summary shown to admins use it.
    """
    status = verification_request.status
    if status == REJECTED:
        return BLOCK_REJECTED
    if status == VERIFIED:
        return BLOCK_VERIFIED

    documents = docs_status(verification_request)
    if documents == DocumentStatus.REJECTED.value:
        return BLOCK_DOCS_REJECTED
    if documents != DocumentStatus.VERIFIED.value:
        return BLOCK_DOCS_PENDING

    video = verification_request.video_status
    if video == VideoStatus.FAILED:
        return BLOCK_VIDEO_FAILED
    if video == VideoStatus.COMPLETED:
        return BLOCK_VIDEO_COMPLETED
    if video == VideoStatus.SCHEDULED:
        return BLOCK_VIDEO_SCHEDULED
    if video == VideoStatus.NOT_SCHEDULED:
        return BLOCK_VIDEO_NOT_SCHEDULED
    return ""


def verification_summary(verification_request):
    documents = {s.value: 0 for s in DocumentStatus}
    for document in verification_request.documents:
        documents[document.status.value] += 1

    calls = {s.value: 0 for s in CallStatus}
    results = {r.value: 0 for r in CallResult}
    for call in verification_request.calls:
        calls[call.status.value] += 1
        if call.verification_result:
            results[call.verification_result.value] += 1

    reason = approval_block_reason(verification_request)
    return {
        'documents': dict(documents, total=len(verification_request.documents)),
        'calls': dict(calls, total=len(verification_request.calls)),
        'call_results': results,
        'docs_status': docs_status(verification_request),
        'video_status': verification_request.video_status.value,
        'can_approve': reason == "",
        'approval_block_reason': reason,
    }


def get_request(request_id, lock=False):
    query = VerificationRequest.query.filter_by(id=request_id)
    if lock:
        query = query.with_for_update()
    verification_request = query.first()
    if verification_request is None:
        raise NotFoundError("Verification request")
    return verification_request


def list_requests(status=None, page=1, per_page=None):
    query = VerificationRequest.query
    if status:
        try:
            query = query.filter(VerificationRequest.status == VerificationStatus(status))
        except ValueError:
            raise ValidationError({'status': [f"Unknown status '{status}'."]})
    per_page = per_page or current_app.config.get('POSTS_PER_PAGE', 25)
    return query.order_by(VerificationRequest.created_at.desc(), VerificationRequest.id.desc()).paginate(
        page=page, per_page=per_page, error_out=False
    )


def _check_transition(verification_request, action):
    sources, target = TRANSITIONS[action]
    if verification_request.status not in sources:
        raise InvalidStateError(
            f"Cannot {action.replace('_', ' ')} while the request is {verification_request.status.value}.",
            verification_request.status.value,
        )
    return target


def record_audit(verification_request, actor, notes):
    db.session.add(VerificationAuditLog(
        verification_request_id=verification_request.id,
        status=verification_request.status,
        changed_by=actor.id if actor else None,
        changed_at=datetime.utcnow(),
        notes=notes,
    ))


def _commit():
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def _apply_approval(verification_request, admin):
    now = datetime.utcnow()
    verification_request.status = VERIFIED
    verification_request.reviewed_by = admin.id
    verification_request.reviewed_at = now

    profile = verification_request.teacher_profile
    profile.verified = True
    profile.user.is_verified = True


# ---- teacher side ----

def submit_application(user, bio=None, subjects=None, experience_years=None, hourly_rate=None):
    """Create (or refresh) the teacher profile and open a pending request"""
    profile = user.teacher_profile
    if profile is None:
        profile = TeacherProfile(user_id=user.id)
        db.session.add(profile)
        db.session.flush()
    else:
        current = profile.current_verification_request
        if current is not None and current.is_open:
            raise InvalidStateError("You already have an application under review.", current.status.value)
        if current is not None and current.status == VERIFIED:
            raise InvalidStateError("You are already verified.", current.status.value)

    if bio is not None:
        profile.bio = bio
    if subjects is not None:
        profile.set_subjects(subjects)
    if experience_years is not None:
        profile.experience_years = experience_years
    if hourly_rate is not None:
        profile.hourly_rate = hourly_rate

    verification_request = VerificationRequest(
        teacher_profile_id=profile.id,
        status=PENDING,
        video_status=VideoStatus.NOT_SCHEDULED,
        created_at=datetime.utcnow(),
    )
    db.session.add(verification_request)
    db.session.flush()
    record_audit(verification_request, user, "Application submitted")
    _commit()

    logger.info(f"Verification request {verification_request.id} submitted by user {user.id}")
    NotificationService.application_submitted(verification_request)
    return verification_request


def current_request_for(user):
    profile = user.teacher_profile
    verification_request = profile.current_verification_request if profile else None
    if verification_request is None:
        raise NotFoundError("Verification request")
    return verification_request


# ---- admin side ----

def schedule_call(request_id, scheduled_at, platform, admin, meeting_link=None, notes=None):
    """Book a live verification call, cancelling any call still scheduled"""
    verification_request = get_request(request_id, lock=True)
    target = _check_transition(verification_request, 'schedule_call')

    if scheduled_at is None:
        raise ValidationError({'scheduled_call_at': ["Call time is required."]})
    scheduled_at = _naive_utc(scheduled_at)
    if scheduled_at <= datetime.utcnow():
        raise ValidationError({'scheduled_call_at': ["Call time must be in the future."]})
    try:
        platform = CallPlatform(platform)
    except ValueError:
        raise ValidationError({'video_platform': [f"Unsupported platform '{platform}'."]})
    meeting_link = (meeting_link or '').strip() or None
    if meeting_link:
        parsed = urlparse(meeting_link)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            raise ValidationError({'meeting_link': ["Meeting link must be a valid URL."]})
    notes = _optional_text('notes', notes)

    for existing in verification_request.calls:
        if existing.status == CallStatus.SCHEDULED:
            existing.status = CallStatus.CANCELLED

    call = VerificationCall(
        verification_request_id=verification_request.id,
        scheduled_at=scheduled_at,
        platform=platform,
        meeting_link=meeting_link,
        notes=notes,
        status=CallStatus.SCHEDULED,
        created_by=admin.id,
    )
    db.session.add(call)
    verification_request.calls.append(call)

    verification_request.status = target
    verification_request.video_status = VideoStatus.SCHEDULED
    record_audit(verification_request, admin,
                 f"Video verification scheduled for {scheduled_at.isoformat()} on {platform.value}")
    _commit()

    logger.info(f"Verification request {request_id}: call {call.id} scheduled by admin {admin.id}")
    NotificationService.call_scheduled(call)
    return call


def start_live_call(request_id, admin):
    verification_request = get_request(request_id, lock=True)
    target = _check_transition(verification_request, 'start_live_call')
    if verification_request.video_status != VideoStatus.SCHEDULED:
        raise InvalidStateError("No video call is scheduled for this request.",
                                verification_request.video_status.value)

    verification_request.status = target
    record_audit(verification_request, admin, "Live video verification started")
    _commit()

    logger.info(f"Verification request {request_id} is live_video (admin {admin.id})")
    NotificationService.call_started(verification_request)
    return verification_request


def complete_call(request_id, outcome, admin, notes=None):
    """Record the call outcome; optionally auto-approve when it passed"""
    verification_request = get_request(request_id, lock=True)
    target = _check_transition(verification_request, 'complete_call')
    try:
        outcome = CallResult(outcome)
    except ValueError:
        raise ValidationError({'verification_result': ["Result must be 'passed' or 'failed'."]})
    notes = _optional_text('verification_notes', notes)

    call = verification_request.latest_call
    if call is None:
        raise InvalidStateError("There is no video call to complete.", verification_request.status.value)

    now = datetime.utcnow()
    call.status = CallStatus.COMPLETED
    call.verification_result = outcome
    call.verification_notes = notes
    call.verified_by = admin.id
    call.verified_at = now

    verification_request.status = target
    verification_request.video_status = VideoStatus(outcome.value)
    record_audit(verification_request, admin, f"Video verification {outcome.value}")

    auto_approved = False
    if (outcome == CallResult.PASSED
            and current_app.config.get('VERIFICATION_AUTO_APPROVE_AFTER_VIDEO')
            and approval_block_reason(verification_request) == ""):
        _apply_approval(verification_request, admin)
        record_audit(verification_request, admin, "Automatically approved after passing video verification")
        auto_approved = True
    _commit()

    logger.info(f"Verification request {request_id}: video {outcome.value} "
                f"(admin {admin.id}, auto_approved={auto_approved})")
    NotificationService.call_completed(verification_request, call)
    if auto_approved:
        NotificationService.request_approved(verification_request)
    return verification_request


def _get_document_for_review(document_id):
    document = Document.query.filter_by(id=document_id).with_for_update().first()
    if document is None:
        raise NotFoundError("Document")
    verification_request = document.verification_request
    if verification_request.status in (VERIFIED, REJECTED):
        raise InvalidStateError(
            f"Documents cannot be reviewed once the request is {verification_request.status.value}.",
            verification_request.status.value,
        )
    return document


def _mark_verified(document, admin, notes):
    document.status = DocumentStatus.VERIFIED
    document.verification_notes = notes
    document.rejection_reason = None
    document.resubmission_instructions = None
    document.verified_by = admin.id
    document.verified_at = datetime.utcnow()
    record_audit(document.verification_request, admin, f"Document {document.id} ({document.label}) verified")


def verify_document(document_id, admin, notes=None):
    document = _get_document_for_review(document_id)
    notes = _optional_text('verification_notes', notes)

    _mark_verified(document, admin, notes)
    _commit()

    logger.info(f"Document {document_id} verified by admin {admin.id}")
    NotificationService.document_verified(document)
    return document


def verify_documents(document_ids, admin, notes=None):
    """Verify several documents in one transaction; any bad id leaves all of them untouched"""
    ids = []
    for value in document_ids or []:
        try:
            document_id = int(value)
        except (TypeError, ValueError):
            raise ValidationError({'document_ids': [f"'{value}' is not a document id."]})
        if document_id not in ids:
            ids.append(document_id)
    if not ids:
        raise ValidationError({'document_ids': ["At least one document id is required."]})
    notes = _optional_text('verification_notes', notes)

    found = {row.id for row in Document.query.filter(Document.id.in_(ids)).all()}
    missing = [str(i) for i in ids if i not in found]
    if missing:
        raise ValidationError({'document_ids': [f"Unknown document ids: {', '.join(missing)}."]})

    documents = [_get_document_for_review(document_id) for document_id in ids]
    for document in documents:
        _mark_verified(document, admin, notes)
    _commit()

    logger.info(f"Documents {ids} verified by admin {admin.id}")
    for document in documents:
        NotificationService.document_verified(document)
    return documents


def reject_document(document_id, reason, admin, resubmission_instructions=None):
    reason = _require_text('rejection_reason', reason, "Rejection reason")
    document = _get_document_for_review(document_id)
    instructions = _optional_text('resubmission_instructions', resubmission_instructions)

    document.status = DocumentStatus.REJECTED
    document.rejection_reason = reason
    document.resubmission_instructions = instructions
    document.verification_notes = None
    document.verified_by = admin.id
    document.verified_at = datetime.utcnow()
    record_audit(document.verification_request, admin,
                 f"Document {document.id} ({document.label}) rejected: {reason}")
    _commit()

    logger.info(f"Document {document_id} rejected by admin {admin.id}")
    NotificationService.document_rejected(document)
    return document


def approve_request(request_id, admin):
    verification_request = get_request(request_id, lock=True)
    reason = approval_block_reason(verification_request)
    if reason:
        raise ApprovalBlockedError(reason)
    _check_transition(verification_request, 'approve_request')

    _apply_approval(verification_request, admin)
    record_audit(verification_request, admin, "Teacher approved")
    _commit()

    logger.info(f"Verification request {request_id} verified by admin {admin.id}")
    NotificationService.request_approved(verification_request)
    return verification_request


def reject_request(request_id, reason, admin):
    reason = _require_text('rejection_reason', reason, "Rejection reason")
    verification_request = get_request(request_id, lock=True)
    target = _check_transition(verification_request, 'reject_request')

    verification_request.status = target
    verification_request.rejection_reason = reason
    verification_request.reviewed_by = admin.id
    verification_request.reviewed_at = datetime.utcnow()
    for call in verification_request.calls:
        if call.status == CallStatus.SCHEDULED:
            call.status = CallStatus.CANCELLED
    record_audit(verification_request, admin, f"Teacher rejected: {reason}")
    _commit()

    logger.info(f"Verification request {request_id} rejected by admin {admin.id}")
    NotificationService.request_rejected(verification_request)
    return verification_request

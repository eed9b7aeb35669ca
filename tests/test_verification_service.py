from datetime import datetime, timedelta, timezone
import pytest
from tutorhub import db
from tutorhub.models import VerificationAuditLog, VerificationCall
from tutorhub.models.enums import (
    VerificationStatus, VideoStatus, DocumentStatus, CallStatus, CallResult,
)
from tutorhub.services import verification_service
from tutorhub.services.error_service import (
    ApprovalBlockedError, InvalidStateError, ValidationError,
)

pytestmark = pytest.mark.usefixtures('ctx')

VERIFIED_DOCS = (DocumentStatus.VERIFIED, DocumentStatus.VERIFIED)


@pytest.fixture
def admin(make_user):
    return make_user('admin', full_name='Ada Admin')


def _audit_count(verification_request):
    return VerificationAuditLog.query.filter_by(verification_request_id=verification_request.id).count()


# ---- approval_block_reason ----

@pytest.mark.parametrize('status, documents, video, expected', [
    (VerificationStatus.REJECTED, VERIFIED_DOCS, VideoStatus.PASSED,
     "Teacher application has been rejected."),
    (VerificationStatus.VERIFIED, VERIFIED_DOCS, VideoStatus.PASSED,
     "Teacher is already verified."),
    (VerificationStatus.PENDING, (DocumentStatus.VERIFIED, DocumentStatus.REJECTED), VideoStatus.PASSED,
     "Documents have been rejected. Teacher must resubmit."),
    (VerificationStatus.PENDING, (DocumentStatus.PENDING, DocumentStatus.PENDING), VideoStatus.NOT_SCHEDULED,
     "All documents must be verified first."),
    (VerificationStatus.PENDING, (), VideoStatus.PASSED,
     "All documents must be verified first."),
    (VerificationStatus.PENDING, VERIFIED_DOCS, VideoStatus.FAILED,
     "Video verification failed. Retake required."),
    (VerificationStatus.PENDING, VERIFIED_DOCS, VideoStatus.COMPLETED,
     "Video completed but not passed. Review and mark as passed."),
    (VerificationStatus.PENDING, VERIFIED_DOCS, VideoStatus.SCHEDULED,
     "Video verification is scheduled but not completed."),
    (VerificationStatus.PENDING, VERIFIED_DOCS, VideoStatus.NOT_SCHEDULED,
     "Video verification not scheduled yet."),
    (VerificationStatus.PENDING, VERIFIED_DOCS, VideoStatus.PASSED, ""),
])
def test_approval_block_reason(make_verification_request, status, documents, video, expected):
    verification_request = make_verification_request(status=status, documents=documents, video=video)
    assert verification_service.approval_block_reason(verification_request) == expected


def test_docs_status_aggregates(make_verification_request):
    assert verification_service.docs_status(make_verification_request()) == 'pending'
    assert verification_service.docs_status(make_verification_request(
        documents=(DocumentStatus.VERIFIED, DocumentStatus.PENDING))) == 'pending'
    assert verification_service.docs_status(make_verification_request(
        documents=(DocumentStatus.PENDING, DocumentStatus.REJECTED))) == 'rejected'
    assert verification_service.docs_status(make_verification_request(documents=VERIFIED_DOCS)) == 'verified'


def test_summary_counts(make_verification_request):
    verification_request = make_verification_request(
        documents=(DocumentStatus.VERIFIED, DocumentStatus.PENDING, DocumentStatus.REJECTED),
        video=VideoStatus.SCHEDULED,
    )
    summary = verification_service.verification_summary(verification_request)
    assert summary['documents'] == {'pending': 1, 'verified': 1, 'rejected': 1, 'total': 3}
    assert summary['calls']['scheduled'] == 1
    assert summary['can_approve'] is False
    assert summary['approval_block_reason'] == "Documents have been rejected. Teacher must resubmit."


# ---- approve / reject ----

def test_approve_when_everything_passed(make_verification_request, admin, outbox):
    verification_request = make_verification_request(documents=VERIFIED_DOCS, video=VideoStatus.PASSED)

    verification_service.approve_request(verification_request.id, admin)

    assert verification_request.status == VerificationStatus.VERIFIED
    assert verification_request.reviewed_by == admin.id
    assert verification_request.reviewed_at is not None
    assert verification_request.teacher_profile.verified is True
    assert verification_request.teacher_profile.user.is_verified is True
    assert _audit_count(verification_request) == 1
    assert any('Verified' in m.subject for m in outbox)


def test_approve_blocked_leaves_request_untouched(make_verification_request, admin):
    verification_request = make_verification_request(
        documents=(DocumentStatus.PENDING, DocumentStatus.PENDING), video=VideoStatus.NOT_SCHEDULED,
    )

    with pytest.raises(ApprovalBlockedError) as exc:
        verification_service.approve_request(verification_request.id, admin)

    assert exc.value.message == "All documents must be verified first."
    db.session.refresh(verification_request)
    assert verification_request.status == VerificationStatus.PENDING
    assert verification_request.teacher_profile.verified is False
    assert _audit_count(verification_request) == 0


def test_approve_blocked_while_video_pending(make_verification_request, admin):
    verification_request = make_verification_request(documents=VERIFIED_DOCS, video=VideoStatus.SCHEDULED)

    with pytest.raises(ApprovalBlockedError) as exc:
        verification_service.approve_request(verification_request.id, admin)

    assert 'scheduled but not completed' in exc.value.message
    assert verification_request.status == VerificationStatus.PENDING


def test_reject_requires_reason(make_verification_request, admin):
    verification_request = make_verification_request()

    with pytest.raises(ValidationError):
        verification_service.reject_request(verification_request.id, '   ', admin)

    db.session.refresh(verification_request)
    assert verification_request.status == VerificationStatus.PENDING
    assert verification_request.rejection_reason is None
    assert _audit_count(verification_request) == 0


def test_reject_sets_terminal_state(make_verification_request, admin, outbox):
    verification_request = make_verification_request(video=VideoStatus.SCHEDULED)

    verification_service.reject_request(verification_request.id, 'Certificates are forged', admin)

    assert verification_request.status == VerificationStatus.REJECTED
    assert verification_request.rejection_reason == 'Certificates are forged'
    assert verification_request.calls[0].status == CallStatus.CANCELLED
    assert len(outbox) == 1

    with pytest.raises(InvalidStateError):
        verification_service.reject_request(verification_request.id, 'again', admin)
    with pytest.raises(InvalidStateError):
        verification_service.schedule_call(
            verification_request.id, datetime.utcnow() + timedelta(days=1), 'zoom', admin)


def test_reject_from_live_video(make_verification_request, admin):
    verification_request = make_verification_request(
        status=VerificationStatus.LIVE_VIDEO, video=VideoStatus.SCHEDULED)

    verification_service.reject_request(verification_request.id, 'Did not show up', admin)

    assert verification_request.status == VerificationStatus.REJECTED


# ---- video call lifecycle ----

def test_schedule_call(make_verification_request, admin, outbox):
    verification_request = make_verification_request()
    when = datetime.utcnow() + timedelta(days=2)

    call = verification_service.schedule_call(
        verification_request.id, when, 'google_meet', admin,
        meeting_link='https://meet.google.com/abc-defg-hij', notes='Bring your ID',
    )

    assert call.status == CallStatus.SCHEDULED
    assert call.created_by == admin.id
    assert verification_request.status == VerificationStatus.PENDING
    assert verification_request.video_status == VideoStatus.SCHEDULED
    # teacher and admins are both told
    recipients = {r for m in outbox for r in m.recipients}
    assert verification_request.teacher_profile.user.email in recipients
    assert 'admin@tutorhub.test' in recipients


def test_schedule_call_accepts_aware_datetimes(make_verification_request, admin):
    verification_request = make_verification_request()
    when = datetime.now(timezone.utc) + timedelta(hours=3)

    call = verification_service.schedule_call(verification_request.id, when, 'zoom', admin)

    assert call.scheduled_at.tzinfo is None


def test_rescheduling_cancels_previous_call(make_verification_request, admin):
    verification_request = make_verification_request(video=VideoStatus.SCHEDULED)
    first = verification_request.calls[0]

    verification_service.schedule_call(
        verification_request.id, datetime.utcnow() + timedelta(days=3), 'other', admin)

    assert first.status == CallStatus.CANCELLED
    assert VerificationCall.query.filter_by(verification_request_id=verification_request.id).count() == 2


@pytest.mark.parametrize('kwargs, field', [
    ({'scheduled_at': datetime.utcnow() - timedelta(minutes=1)}, 'scheduled_call_at'),
    ({'platform': 'skype'}, 'video_platform'),
    ({'meeting_link': 'not a url'}, 'meeting_link'),
    ({'notes': 'x' * 1001}, 'notes'),
])
def test_schedule_call_validation(make_verification_request, admin, kwargs, field):
    verification_request = make_verification_request()
    args = {'scheduled_at': datetime.utcnow() + timedelta(days=1), 'platform': 'zoom'}
    args.update(kwargs)

    with pytest.raises(ValidationError) as exc:
        verification_service.schedule_call(verification_request.id, admin=admin, **args)

    assert field in exc.value.validation_errors
    assert verification_request.calls == []


def test_start_requires_scheduled_call(make_verification_request, admin):
    verification_request = make_verification_request()

    with pytest.raises(InvalidStateError):
        verification_service.start_live_call(verification_request.id, admin)


def test_full_video_flow_then_approve(make_verification_request, admin):
    verification_request = make_verification_request(documents=VERIFIED_DOCS)
    verification_service.schedule_call(
        verification_request.id, datetime.utcnow() + timedelta(hours=1), 'zoom', admin)

    verification_service.start_live_call(verification_request.id, admin)
    assert verification_request.status == VerificationStatus.LIVE_VIDEO
    assert verification_request.video_status == VideoStatus.SCHEDULED

    verification_service.complete_call(verification_request.id, 'passed', admin, notes='Great call')
    assert verification_request.status == VerificationStatus.PENDING
    assert verification_request.video_status == VideoStatus.PASSED
    call = verification_request.latest_call
    assert call.status == CallStatus.COMPLETED
    assert call.verification_result == CallResult.PASSED
    assert call.verified_by == admin.id

    verification_service.approve_request(verification_request.id, admin)
    assert verification_request.status == VerificationStatus.VERIFIED
    statuses = [log.status for log in verification_request.audit_logs]
    assert statuses == [
        VerificationStatus.PENDING, VerificationStatus.LIVE_VIDEO,
        VerificationStatus.PENDING, VerificationStatus.VERIFIED,
    ]


def test_complete_call_failed_blocks_approval(make_verification_request, admin):
    verification_request = make_verification_request(
        status=VerificationStatus.LIVE_VIDEO, documents=VERIFIED_DOCS, video=VideoStatus.SCHEDULED)

    verification_service.complete_call(verification_request.id, 'failed', admin)

    assert verification_request.video_status == VideoStatus.FAILED
    with pytest.raises(ApprovalBlockedError) as exc:
        verification_service.approve_request(verification_request.id, admin)
    assert exc.value.message == "Video verification failed. Retake required."


def test_complete_call_requires_live_video(make_verification_request, admin):
    verification_request = make_verification_request(video=VideoStatus.SCHEDULED)

    with pytest.raises(InvalidStateError):
        verification_service.complete_call(verification_request.id, 'passed', admin)


def test_complete_call_rejects_unknown_outcome(make_verification_request, admin):
    verification_request = make_verification_request(
        status=VerificationStatus.LIVE_VIDEO, video=VideoStatus.SCHEDULED)

    with pytest.raises(ValidationError):
        verification_service.complete_call(verification_request.id, 'maybe', admin)


def test_auto_approve_after_passed_video(app, make_verification_request, admin):
    app.config['VERIFICATION_AUTO_APPROVE_AFTER_VIDEO'] = True
    verification_request = make_verification_request(
        status=VerificationStatus.LIVE_VIDEO, documents=VERIFIED_DOCS, video=VideoStatus.SCHEDULED)

    verification_service.complete_call(verification_request.id, 'passed', admin)

    assert verification_request.status == VerificationStatus.VERIFIED
    assert verification_request.teacher_profile.verified is True


def test_auto_approve_skipped_when_documents_pending(app, make_verification_request, admin):
    app.config['VERIFICATION_AUTO_APPROVE_AFTER_VIDEO'] = True
    verification_request = make_verification_request(
        status=VerificationStatus.LIVE_VIDEO, documents=(DocumentStatus.PENDING,), video=VideoStatus.SCHEDULED)

    verification_service.complete_call(verification_request.id, 'passed', admin)

    assert verification_request.status == VerificationStatus.PENDING
    assert verification_request.video_status == VideoStatus.PASSED


# ---- document review ----

def test_verify_and_reject_documents(make_verification_request, admin):
    verification_request = make_verification_request(
        documents=(DocumentStatus.PENDING, DocumentStatus.PENDING))
    first, second = verification_request.documents

    verification_service.verify_document(first.id, admin, notes='Looks good')
    verification_service.reject_document(second.id, 'Blurry scan', admin,
                                         resubmission_instructions='Upload a clearer copy')

    assert first.status == DocumentStatus.VERIFIED
    assert first.verified_by == admin.id
    assert second.status == DocumentStatus.REJECTED
    assert second.rejection_reason == 'Blurry scan'
    assert second.resubmission_instructions == 'Upload a clearer copy'
    assert verification_service.docs_status(verification_request) == 'rejected'


def test_reject_document_requires_reason(make_verification_request, admin):
    verification_request = make_verification_request(documents=(DocumentStatus.PENDING,))
    document = verification_request.documents[0]

    with pytest.raises(ValidationError):
        verification_service.reject_document(document.id, '', admin)

    db.session.refresh(document)
    assert document.status == DocumentStatus.PENDING


def test_documents_locked_after_decision(make_verification_request, admin):
    verification_request = make_verification_request(
        status=VerificationStatus.VERIFIED, documents=VERIFIED_DOCS, video=VideoStatus.PASSED)

    with pytest.raises(InvalidStateError):
        verification_service.reject_document(verification_request.documents[0].id, 'late', admin)


# ---- applications ----

def test_submit_application_creates_profile_and_request(make_user, outbox):
    teacher = make_user('teacher')

    verification_request = verification_service.submit_application(
        teacher, bio='Physics teacher', subjects=['Physics', 'Maths'], experience_years=4)

    assert verification_request.status == VerificationStatus.PENDING
    assert verification_request.video_status == VideoStatus.NOT_SCHEDULED
    assert teacher.teacher_profile.get_subjects() == ['Physics', 'Maths']
    assert len(outbox) == 1


def test_only_one_open_application(make_user):
    teacher = make_user('teacher')
    verification_service.submit_application(teacher, bio='First')

    with pytest.raises(InvalidStateError):
        verification_service.submit_application(teacher, bio='Second')


def test_new_application_after_rejection(make_user, make_verification_request, admin):
    teacher = make_user('teacher')
    rejected = make_verification_request(teacher=teacher)
    verification_service.reject_request(rejected.id, 'Incomplete', admin)

    fresh = verification_service.submit_application(teacher)

    assert fresh.id != rejected.id
    assert fresh.status == VerificationStatus.PENDING
    assert rejected.status == VerificationStatus.REJECTED
    assert teacher.teacher_profile.current_verification_request.id == fresh.id

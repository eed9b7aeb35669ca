import io
from decimal import Decimal
import pytest
from tutorhub import db
from tutorhub.models import Document, PayoutRequest, User, Wallet
from tutorhub.models.enums import DocumentStatus, VerificationStatus, VideoStatus, PayoutStatus
from tutorhub.services import payout_service

VERIFIED_DOCS = (DocumentStatus.VERIFIED, DocumentStatus.VERIFIED, DocumentStatus.VERIFIED)
BANK = {'bank_name': 'Access Bank', 'account_number': '0099887766', 'account_name': 'Kemi Ade'}


@pytest.fixture
def admin_id(app, make_user):
    with app.app_context():
        return make_user('admin', full_name='Ada Admin').id


@pytest.fixture
def teacher_id(app, make_user):
    with app.app_context():
        return make_user('teacher', full_name='Kemi Ade').id


# ---- auth ----

def test_login_and_me(app, client, make_user):
    with app.app_context():
        make_user('teacher', email='kemi@tutorhub.com', full_name='Kemi Ade')

    response = client.post('/auth/login', json={'email': 'kemi@tutorhub.com', 'password': 'Secret123!'})
    assert response.status_code == 200
    assert response.get_json()['data']['email'] == 'kemi@tutorhub.com'

    response = client.get('/auth/me')
    assert response.get_json()['data']['full_name'] == 'Kemi Ade'


def test_login_with_wrong_password(app, client, make_user):
    with app.app_context():
        make_user('teacher', email='kemi@tutorhub.com')

    response = client.post('/auth/login', json={'email': 'kemi@tutorhub.com', 'password': 'nope'})

    assert response.status_code == 401
    body = response.get_json()
    assert body['success'] is False
    assert body['error']['code'] == 'UNAUTHORIZED'


def test_admin_routes_need_login(client):
    response = client.get('/admin/verification')

    assert response.status_code == 401
    assert response.get_json()['error']['code'] == 'UNAUTHORIZED'


def test_admin_routes_reject_teachers(client, login, teacher_id):
    login(teacher_id)

    response = client.get('/admin/financial/payout-requests')

    assert response.status_code == 403


def test_unknown_route_uses_error_envelope(client):
    response = client.get('/nowhere')

    assert response.status_code == 404
    assert response.get_json()['error']['code'] == 'NOT_FOUND'


# ---- admin verification ----

def test_approve_blocked_returns_reason(app, client, login, admin_id, make_verification_request):
    with app.app_context():
        request_id = make_verification_request(documents=VERIFIED_DOCS).id
    login(admin_id)

    response = client.patch(f'/admin/verification/{request_id}/approve')

    assert response.status_code == 422
    error = response.get_json()['error']
    assert error['code'] == 'APPROVAL_BLOCKED'
    assert error['message'] == "Video verification not scheduled yet."


def test_approve_verifies_teacher(app, client, login, admin_id, make_verification_request):
    with app.app_context():
        verification_request = make_verification_request(documents=VERIFIED_DOCS, video=VideoStatus.PASSED)
        request_id = verification_request.id
    login(admin_id)

    response = client.patch(f'/admin/verification/{request_id}/approve')

    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['status'] == 'verified'
    assert data['reviewed_by'] == admin_id
    assert data['summary']['can_approve'] is False


def test_reject_needs_reason(app, client, login, admin_id, make_verification_request):
    with app.app_context():
        request_id = make_verification_request().id
    login(admin_id)

    response = client.patch(f'/admin/verification/{request_id}/reject', json={'rejection_reason': ''})
    assert response.status_code == 422
    assert 'rejection_reason' in response.get_json()['error']['details']['validation_errors']

    response = client.patch(f'/admin/verification/{request_id}/reject',
                            json={'rejection_reason': 'Certificate could not be validated'})
    assert response.status_code == 200
    assert response.get_json()['data']['status'] == 'rejected'


def test_video_flow_over_http(app, client, login, admin_id, make_verification_request):
    with app.app_context():
        request_id = make_verification_request(documents=VERIFIED_DOCS).id
    login(admin_id)

    response = client.post(f'/admin/verification/{request_id}/request-video', json={
        'scheduled_call_at': '2030-01-15T10:00:00Z',
        'video_platform': 'google_meet',
        'meeting_link': 'https://meet.google.com/abc-defg-hij',
    })
    assert response.status_code == 201
    assert response.get_json()['data']['video_status'] == 'scheduled'

    response = client.post(f'/admin/verification/{request_id}/start-video')
    assert response.get_json()['data']['status'] == 'live_video'

    response = client.patch(f'/admin/verification/{request_id}/complete-video',
                            json={'verification_result': 'passed', 'verification_notes': 'Clear and confident'})
    data = response.get_json()['data']
    assert data['status'] == 'pending'
    assert data['video_status'] == 'passed'
    assert data['summary']['can_approve'] is True


def test_start_video_without_call_conflicts(app, client, login, admin_id, make_verification_request):
    with app.app_context():
        request_id = make_verification_request().id
    login(admin_id)

    response = client.post(f'/admin/verification/{request_id}/start-video')

    assert response.status_code == 409
    assert response.get_json()['error']['code'] == 'INVALID_STATE'


def test_document_review_routes(app, client, login, admin_id, make_verification_request):
    with app.app_context():
        verification_request = make_verification_request(
            documents=(DocumentStatus.PENDING, DocumentStatus.PENDING))
        first, second = [d.id for d in verification_request.documents]
    login(admin_id)

    response = client.patch(f'/admin/documents/{first}/verify', json={'verification_notes': 'Matches'})
    assert response.get_json()['data']['document']['status'] == 'verified'
    assert response.get_json()['data']['docs_status'] == 'pending'

    response = client.patch(f'/admin/documents/{second}/reject', json={
        'rejection_reason': 'Blurry scan',
        'resubmission_instructions': 'Upload a clearer copy',
    })
    data = response.get_json()['data']
    assert data['docs_status'] == 'rejected'
    assert data['summary']['approval_block_reason'] == "Documents have been rejected. Teacher must resubmit."


def test_admin_downloads_uploaded_document(app, client, login, admin_id, teacher_id, make_verification_request):
    with app.app_context():
        make_verification_request(teacher=db.session.get(User, teacher_id))
    login(teacher_id)
    response = client.post('/teacher/documents', data={
        'type': 'certificate',
        'file': (io.BytesIO(b'%PDF-1.4 degree'), 'degree.pdf'),
    }, content_type='multipart/form-data')
    document_id = response.get_json()['data']['id']

    response = client.get(f'/admin/documents/{document_id}/download')
    assert response.status_code == 403

    login(admin_id)
    response = client.get(f'/admin/documents/{document_id}/download')
    assert response.status_code == 200
    assert response.data == b'%PDF-1.4 degree'
    assert 'attachment' in response.headers['Content-Disposition']
    assert 'certificate_degree.pdf' in response.headers['Content-Disposition']
    response.close()

    response = client.get('/admin/documents/9999/download')
    assert response.status_code == 404
    assert response.get_json()['error']['code'] == 'NOT_FOUND'


def test_batch_verify_route(app, client, login, admin_id, make_verification_request):
    with app.app_context():
        verification_request = make_verification_request(
            documents=(DocumentStatus.PENDING, DocumentStatus.PENDING))
        first, second = [d.id for d in verification_request.documents]
    login(admin_id)

    response = client.patch('/admin/documents/batch-verify', json={'document_ids': [first, 9999]})
    assert response.status_code == 422
    assert 'document_ids' in response.get_json()['error']['details']['validation_errors']
    with app.app_context():
        assert db.session.get(Document, first).status == DocumentStatus.PENDING

    response = client.patch('/admin/documents/batch-verify',
                            json={'document_ids': [first, second], 'verification_notes': 'Checked'})
    assert response.status_code == 200
    body = response.get_json()
    assert body['message'] == '2 documents verified successfully'
    documents = body['data']['documents']
    assert [d['document']['status'] for d in documents] == ['verified', 'verified']
    assert documents[-1]['docs_status'] == 'verified'


def test_verification_list_filters_by_status(app, client, login, admin_id, make_verification_request):
    with app.app_context():
        make_verification_request()
        make_verification_request(status=VerificationStatus.REJECTED)
    login(admin_id)

    response = client.get('/admin/verification?status=rejected')

    items = response.get_json()['data']['items']
    assert [item['status'] for item in items] == ['rejected']


# ---- teacher ----

def test_teacher_apply_and_upload(app, client, login, teacher_id):
    login(teacher_id)

    response = client.post('/teacher/verification/apply',
                           json={'bio': 'Physics teacher', 'subjects': ['Physics', 'Maths'],
                                 'experience_years': 6})
    assert response.status_code == 201
    assert response.get_json()['data']['status'] == 'pending'

    response = client.post('/teacher/documents', data={
        'type': 'id_verification',
        'side': 'front',
        'file': (io.BytesIO(b'\x89PNG fake'), 'passport.png'),
    }, content_type='multipart/form-data')
    assert response.status_code == 201
    assert response.get_json()['data']['side'] == 'front'

    response = client.get('/teacher/verification')
    data = response.get_json()['data']
    assert data['summary']['documents']['total'] == 1
    assert data['docs_status'] == 'pending'


def test_teacher_upload_without_file(app, client, login, teacher_id, make_verification_request):
    with app.app_context():
        make_verification_request(teacher=db.session.get(User, teacher_id))
    login(teacher_id)

    response = client.post('/teacher/documents', data={'type': 'resume'}, content_type='multipart/form-data')

    assert response.status_code == 422
    assert 'file' in response.get_json()['error']['details']['validation_errors']


# ---- wallet and payouts ----

def test_withdrawal_request_and_admin_approval(app, client, login, admin_id, teacher_id, fund_wallet):
    with app.app_context():
        fund_wallet(db.session.get(User, teacher_id), 5000)
    login(teacher_id)

    response = client.post('/wallet/withdrawals', json={
        'amount': '5000', 'payment_method': 'bank_transfer', 'payment_details': BANK,
    })
    assert response.status_code == 201
    payout_id = response.get_json()['data']['id']

    response = client.get('/wallet')
    assert response.get_json()['data']['balance'] == 5000.0
    assert response.get_json()['data']['pending_withdrawals'] == 1

    login(admin_id)
    response = client.post(f'/admin/financial/payout-requests/{payout_id}/approve')
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['status'] == 'approved'
    assert data['wallet']['balance'] == 0.0

    with app.app_context():
        assert db.session.get(PayoutRequest, payout_id).status == PayoutStatus.APPROVED
        assert Wallet.query.filter_by(user_id=teacher_id).one().balance == Decimal('0.00')


def test_withdrawal_over_balance(app, client, login, teacher_id, fund_wallet):
    with app.app_context():
        fund_wallet(db.session.get(User, teacher_id), 1500)
    login(teacher_id)

    response = client.post('/wallet/withdrawals', json={
        'amount': '2000', 'payment_method': 'paypal', 'payment_details': {'paypal_email': 'kemi@example.com'},
    })

    assert response.status_code == 422
    assert response.get_json()['error']['code'] == 'INSUFFICIENT_BALANCE'


def test_other_users_withdrawal_is_hidden(app, client, login, make_user, teacher_id, fund_wallet):
    with app.app_context():
        fund_wallet(db.session.get(User, teacher_id), 5000)
        payout_id = payout_service.request_payout(
            db.session.get(User, teacher_id), 2000, 'bank_transfer', BANK).id
        other_id = make_user('teacher').id
    login(other_id)

    response = client.get(f'/wallet/withdrawals/{payout_id}')

    assert response.status_code == 404


def test_reject_payout_route_requires_reason(app, client, login, admin_id, teacher_id, fund_wallet):
    with app.app_context():
        teacher = db.session.get(User, teacher_id)
        fund_wallet(teacher, 5000)
        payout_id = payout_service.request_payout(teacher, 2000, 'bank_transfer', BANK).id
    login(admin_id)

    response = client.post(f'/admin/financial/payout-requests/{payout_id}/reject', json={})
    assert response.status_code == 422

    response = client.post(f'/admin/financial/payout-requests/{payout_id}/reject',
                           json={'reason': 'Account name mismatch'})
    assert response.get_json()['data']['status'] == 'rejected'


def test_admin_wallet_adjustment(client, login, admin_id, teacher_id):
    login(admin_id)

    response = client.post(f'/admin/financial/wallets/{teacher_id}/adjust',
                           json={'amount': '2500', 'description': 'Lesson earnings for March'})
    assert response.status_code == 201
    assert response.get_json()['data']['balance_after'] == 2500.0

    response = client.get(f'/admin/financial/transactions?user_id={teacher_id}')
    assert response.get_json()['data']['pagination']['total'] == 1

    response = client.post('/admin/financial/wallets/9999/adjust',
                           json={'amount': '10', 'description': 'Ghost'})
    assert response.status_code == 404


# ---- health ----

def test_health(client):
    response = client.get('/health')

    assert response.status_code == 200
    body = response.get_json()
    assert body['checks']['database'] == 'healthy'
    assert body['checks']['storage'] == 'local'

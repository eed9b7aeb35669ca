import itertools
from datetime import datetime, timedelta
from decimal import Decimal
import pytest
from config import TestingConfig
from tutorhub import create_app, db, mail
from tutorhub.models import (
    User, TeacherProfile, VerificationRequest, VerificationCall, Document, Wallet,
)
from tutorhub.models.enums import (
    VerificationStatus, VideoStatus, DocumentType, DocumentSide, DocumentStatus,
    CallPlatform, CallStatus, CallResult,
)


@pytest.fixture
def app(tmp_path):
    app = create_app(TestingConfig)
    app.config['UPLOAD_FOLDER'] = str(tmp_path / 'uploads')
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """Keep an application context open for tests that call services directly"""
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def outbox(app):
    with mail.record_messages() as messages:
        yield messages


@pytest.fixture
def make_user(app):
    counter = itertools.count(1)

    def _make(role='teacher', email=None, full_name=None, password='Secret123!'):
        n = next(counter)
        user = User(
            email=email or f'{role}{n}@tutorhub.test',
            full_name=full_name or f'{role.title()} {n}',
            role=role,
            is_active=True,
        )
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def make_verification_request(make_user):
    """
    Build a request in any state:
    documents is a list of DocumentStatus, video one of VideoStatus.
    """
    def _make(teacher=None, status=VerificationStatus.PENDING, documents=(),
              video=VideoStatus.NOT_SCHEDULED, admin=None):
        teacher = teacher or make_user('teacher')
        profile = teacher.teacher_profile
        if profile is None:
            profile = TeacherProfile(user_id=teacher.id, bio='Maths tutor')
            profile.set_subjects(['Maths'])
            db.session.add(profile)
            db.session.flush()

        verification_request = VerificationRequest(
            teacher_profile_id=profile.id, status=status, video_status=video,
        )
        db.session.add(verification_request)
        db.session.flush()

        types = itertools.cycle([
            (DocumentType.ID_VERIFICATION, DocumentSide.FRONT),
            (DocumentType.CERTIFICATE, None),
            (DocumentType.RESUME, None),
            (DocumentType.ID_VERIFICATION, DocumentSide.BACK),
        ])
        for doc_status, (doc_type, side) in zip(documents, types):
            db.session.add(Document(
                verification_request_id=verification_request.id,
                type=doc_type,
                side=side,
                name=f'{doc_type.value}.pdf',
                file_path=f'documents/{doc_type.value}/file.pdf',
                status=doc_status,
            ))

        if video != VideoStatus.NOT_SCHEDULED:
            creator = admin or make_user('admin')
            call = VerificationCall(
                verification_request_id=verification_request.id,
                scheduled_at=datetime.utcnow() + timedelta(days=1),
                platform=CallPlatform.ZOOM,
                meeting_link='https://zoom.us/j/123',
                created_by=creator.id,
                status=CallStatus.SCHEDULED if video == VideoStatus.SCHEDULED else CallStatus.COMPLETED,
            )
            if video in (VideoStatus.PASSED, VideoStatus.FAILED):
                call.verification_result = CallResult(video.value)
            db.session.add(call)

        db.session.commit()
        return verification_request

    return _make


@pytest.fixture
def fund_wallet(app):
    def _fund(user, amount, currency='NGN'):
        wallet = Wallet.query.filter_by(user_id=user.id).first()
        if wallet is None:
            wallet = Wallet(user_id=user.id, currency=currency, total_withdrawn=Decimal('0'))
            db.session.add(wallet)
        wallet.balance = Decimal(str(amount))
        db.session.commit()
        return wallet

    return _fund


@pytest.fixture
def login(client):
    def _login(user_id):
        with client.session_transaction() as session:
            session['_user_id'] = str(user_id)
            session['_fresh'] = True
    return _login


import io
import os
import pytest
from werkzeug.datastructures import FileStorage
from tutorhub import db
from tutorhub.models import Document
from tutorhub.models.enums import DocumentStatus, DocumentSide, DocumentType, VerificationStatus
from tutorhub.services import document_service, verification_service
from tutorhub.services.error_service import InvalidStateError, NotFoundError, ValidationError
from tutorhub.utils import storage

pytestmark = pytest.mark.usefixtures('ctx')


def _file(name='scan.pdf', content=b'%PDF-1.4 test'):
    return FileStorage(stream=io.BytesIO(content), filename=name, content_type='application/pdf')


@pytest.fixture
def teacher(make_user):
    return make_user('teacher')


@pytest.fixture
def open_request(teacher, make_verification_request):
    return make_verification_request(teacher=teacher)


def test_upload_stores_file_locally(app, teacher, open_request, outbox):
    document = document_service.upload_document(teacher, 'certificate', _file('degree.pdf'))

    assert document.verification_request_id == open_request.id
    assert document.type == DocumentType.CERTIFICATE
    assert document.side is None
    assert document.status == DocumentStatus.PENDING
    assert document.name == 'degree.pdf'
    assert document.file_path.startswith('documents/certificate/')
    assert os.path.exists(os.path.join(app.config['UPLOAD_FOLDER'], *document.file_path.split('/')))
    assert len(outbox) == 1


def test_id_document_needs_side(teacher, open_request):
    with pytest.raises(ValidationError) as exc:
        document_service.upload_document(teacher, 'id_verification', _file())
    assert 'side' in exc.value.validation_errors

    document = document_service.upload_document(teacher, 'id_verification', _file(), side='back')
    assert document.side == DocumentSide.BACK


def test_side_rejected_for_other_types(teacher, open_request):
    with pytest.raises(ValidationError):
        document_service.upload_document(teacher, 'resume', _file(), side='front')


def test_disallowed_extension(teacher, open_request):
    with pytest.raises(ValidationError):
        document_service.upload_document(teacher, 'resume', _file('virus.exe'))


def test_reupload_resets_verified_document(make_user, teacher, open_request):
    admin = make_user('admin')
    original = document_service.upload_document(teacher, 'certificate', _file('old.pdf'))
    verification_service.verify_document(original.id, admin, notes='ok')
    assert original.status == DocumentStatus.VERIFIED

    replaced = document_service.upload_document(teacher, 'certificate', _file('new.pdf'))

    assert replaced.id == original.id
    assert replaced.status == DocumentStatus.PENDING
    assert replaced.name == 'new.pdf'
    assert replaced.verified_by is None
    assert replaced.verification_notes is None
    assert Document.query.filter_by(verification_request_id=open_request.id).count() == 1


def test_front_and_back_are_separate_documents(teacher, open_request):
    front = document_service.upload_document(teacher, 'id_verification', _file(), side='front')
    back = document_service.upload_document(teacher, 'id_verification', _file(), side='back')

    assert front.id != back.id


def test_upload_needs_open_request(teacher):
    with pytest.raises(NotFoundError):
        document_service.upload_document(teacher, 'resume', _file())


def test_upload_refused_after_decision(teacher, make_verification_request):
    make_verification_request(teacher=teacher, status=VerificationStatus.REJECTED)

    with pytest.raises(InvalidStateError):
        document_service.upload_document(teacher, 'resume', _file())


def _stored(app, path):
    return os.path.exists(os.path.join(app.config['UPLOAD_FOLDER'], *path.split('/')))


def test_reupload_removes_replaced_file(app, teacher, open_request):
    original = document_service.upload_document(teacher, 'certificate', _file('old.pdf', b'%PDF old'))
    old_path = original.file_path
    assert _stored(app, old_path)

    replaced = document_service.upload_document(teacher, 'certificate', _file('new.pdf', b'%PDF new'))

    assert replaced.file_path != old_path
    assert not _stored(app, old_path)
    assert _stored(app, replaced.file_path)


def test_download_target_for_local_file(teacher, open_request):
    uploaded = document_service.upload_document(teacher, 'resume', _file('cv.pdf'))

    document, url, path = document_service.download_target(uploaded.id)

    assert document.id == uploaded.id
    assert url is None
    with open(path, 'rb') as f:
        assert f.read() == b'%PDF-1.4 test'


def test_download_target_missing(make_verification_request):
    with pytest.raises(NotFoundError):
        document_service.download_target(9999)

    # fixture documents point at paths that were never written
    verification_request = make_verification_request(documents=(DocumentStatus.PENDING,))
    with pytest.raises(NotFoundError):
        document_service.download_target(verification_request.documents[0].id)


class _FakeS3:

    def __init__(self):
        self.uploaded = []
        self.deleted = []

    def upload_fileobj(self, file, bucket, key, ExtraArgs=None):
        self.uploaded.append((bucket, key))

    def delete_object(self, Bucket, Key):
        self.deleted.append((Bucket, Key))

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        return f"https://{Params['Bucket']}.s3.amazonaws.com/{Params['Key']}?expires={ExpiresIn}"


def test_s3_storage(app, teacher, open_request, monkeypatch):
    s3 = _FakeS3()
    monkeypatch.setattr(app, 's3_client', s3, raising=False)
    app.config['S3_BUCKET'] = 'tutorhub-docs'

    first = document_service.upload_document(teacher, 'resume', _file('cv.pdf'))
    old_path = first.file_path
    assert old_path.startswith('s3://tutorhub-docs/documents/resume/')

    _, url, path = document_service.download_target(first.id)
    assert path is None
    assert url.startswith('https://tutorhub-docs.s3.amazonaws.com/documents/resume/')
    assert url.endswith('?expires=3600')

    document_service.upload_document(teacher, 'resume', _file('cv2.pdf'))
    assert s3.deleted == [('tutorhub-docs', old_path[len('s3://tutorhub-docs/'):])]
    assert len(s3.uploaded) == 2


def test_presigned_url_needs_s3_path():
    assert storage.presigned_url('documents/resume/2030/cv.pdf') is None
    assert storage.delete_file('documents/resume/2030/never-written.pdf') is True


# ---- batch verification ----

def test_verify_documents_in_one_go(make_user, make_verification_request):
    admin = make_user('admin')
    verification_request = make_verification_request(
        documents=(DocumentStatus.PENDING, DocumentStatus.PENDING, DocumentStatus.PENDING))
    first, second, third = [d.id for d in verification_request.documents]

    documents = verification_service.verify_documents([first, str(second), first], admin, notes='All clear')

    assert [d.id for d in documents] == [first, second]
    assert all(d.status == DocumentStatus.VERIFIED for d in documents)
    assert all(d.verified_by == admin.id for d in documents)
    assert documents[0].verification_notes == 'All clear'
    assert db.session.get(Document, third).status == DocumentStatus.PENDING


def test_verify_documents_all_or_nothing(make_user, make_verification_request):
    admin = make_user('admin')
    open_request = make_verification_request(documents=(DocumentStatus.PENDING,))
    closed = make_verification_request(status=VerificationStatus.REJECTED, documents=(DocumentStatus.PENDING,))
    open_id = open_request.documents[0].id
    closed_id = closed.documents[0].id

    with pytest.raises(ValidationError) as exc:
        verification_service.verify_documents([open_id, 9999], admin)
    assert 'document_ids' in exc.value.validation_errors

    with pytest.raises(InvalidStateError):
        verification_service.verify_documents([open_id, closed_id], admin)

    with pytest.raises(ValidationError):
        verification_service.verify_documents([], admin)

    assert db.session.get(Document, open_id).status == DocumentStatus.PENDING

import os
import uuid
from datetime import datetime
from werkzeug.utils import secure_filename
from botocore.exceptions import BotoCoreError, ClientError
from flask import current_app


def allowed_file(filename):
    return '.' in filename and \
        filename.rsplit('.', 1)[1].lower() in current_app.config['ALLOWED_DOCUMENT_EXTENSIONS']


def document_folder(document_type, date_obj=None):
    """Key prefix for a verification document, grouped by type and year"""
    if date_obj is None:
        date_obj = datetime.utcnow()
    return f"documents/{document_type}/{date_obj.strftime('%Y')}"


def store_file(file, folder):
    """
    Persist an uploaded file and return its storage path.

    Uses the S3 client created at startup when one is available, the local
    UPLOAD_FOLDER otherwise. Returns None when the upload fails.
    """
    original_filename = secure_filename(file.filename)
    final_filename = f"{uuid.uuid4().hex}_{original_filename}"
    key = f"{folder}/{final_filename}"

    s3_client = getattr(current_app, 's3_client', None)
    file.seek(0)

    if s3_client is not None:
        try:
            s3_client.upload_fileobj(
                file,
                current_app.config['S3_BUCKET'],
                key,
                ExtraArgs={'ServerSideEncryption': 'AES256'},
            )
        except (BotoCoreError, ClientError) as e:
            current_app.logger.error(f"S3 Upload Failed: {e}")
            return None
        return f"s3://{current_app.config['S3_BUCKET']}/{key}"

    target = local_path(key)
    os.makedirs(os.path.dirname(target), exist_ok=True)
    try:
        file.save(target)
    except OSError as e:
        current_app.logger.error(f"Local upload failed: {e}")
        return None
    return key


def _s3_location(path):
    """('bucket', 'key') for an s3:// path, None for a local key"""
    if not path or not path.startswith('s3://'):
        return None
    bucket, _, key = path[len('s3://'):].partition('/')
    return bucket, key


def local_path(path):
    return os.path.join(current_app.config['UPLOAD_FOLDER'], *path.split('/'))


def presigned_url(path, expiration=3600):
    """Time-limited download link for a file stored in S3, or None"""
    location = _s3_location(path)
    s3_client = getattr(current_app, 's3_client', None)
    if location is None or s3_client is None:
        return None
    bucket, key = location
    try:
        return s3_client.generate_presigned_url(
            'get_object',
            Params={'Bucket': bucket, 'Key': key},
            ExpiresIn=expiration,
        )
    except (BotoCoreError, ClientError) as e:
        current_app.logger.error(f"Signed URL generation failed: {e}")
        return None


def delete_file(path):
    """Remove a stored file. Failures are logged; returns True when the file is gone."""
    location = _s3_location(path)
    if location is not None:
        s3_client = getattr(current_app, 's3_client', None)
        if s3_client is None:
            current_app.logger.warning(f"Cannot delete {path}: S3 is not configured")
            return False
        bucket, key = location
        try:
            s3_client.delete_object(Bucket=bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            current_app.logger.error(f"S3 delete failed for {path}: {e}")
            return False
        return True

    target = local_path(path)
    if not os.path.exists(target):
        return True
    try:
        os.remove(target)
    except OSError as e:
        current_app.logger.error(f"Local delete failed for {path}: {e}")
        return False
    return True

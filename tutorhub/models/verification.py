from datetime import datetime
from tutorhub import db
from tutorhub.models.enums import (
    VerificationStatus, VideoStatus, DocumentStatus, CallPlatform, CallStatus,
    CallResult, enum_column,
)


class VerificationRequest(db.Model):
    __tablename__ = 'verification_requests'

    id = db.Column(db.Integer, primary_key=True)
    teacher_profile_id = db.Column(db.Integer, db.ForeignKey('teacher_profiles.id'), nullable=False, index=True)

    status = enum_column(VerificationStatus, nullable=False, default=VerificationStatus.PENDING, index=True)
    video_status = enum_column(VideoStatus, nullable=False, default=VideoStatus.NOT_SCHEDULED)

    rejection_reason = db.Column(db.Text)
    reviewed_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    reviewed_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    documents = db.relationship('Document', backref='verification_request', lazy=True,
                                order_by='Document.id')
    calls = db.relationship('VerificationCall', backref='verification_request', lazy=True,
                            order_by='VerificationCall.id')
    audit_logs = db.relationship('VerificationAuditLog', backref='verification_request', lazy=True,
                                 order_by='VerificationAuditLog.id')
    reviewer = db.relationship('User', foreign_keys=[reviewed_by])

    @property
    def latest_call(self):
        return self.calls[-1] if self.calls else None

    @property
    def is_open(self):
        return self.status in (VerificationStatus.PENDING, VerificationStatus.LIVE_VIDEO)

    @property
    def docs_status(self):
        """Aggregate document state: pending, rejected or verified"""
        if not self.documents:
            return DocumentStatus.PENDING.value
        statuses = {doc.status for doc in self.documents}
        if DocumentStatus.REJECTED in statuses:
            return DocumentStatus.REJECTED.value
        if DocumentStatus.PENDING in statuses:
            return DocumentStatus.PENDING.value
        return DocumentStatus.VERIFIED.value

    def to_dict(self, include_related=False):
        profile = self.teacher_profile
        data = {
            'id': self.id,
            'teacher_profile_id': self.teacher_profile_id,
            'teacher_name': profile.user.full_name if profile and profile.user else None,
            'status': self.status.value,
            'video_status': self.video_status.value,
            'docs_status': self.docs_status,
            'rejection_reason': self.rejection_reason,
            'reviewed_by': self.reviewed_by,
            'reviewed_at': self.reviewed_at.isoformat() if self.reviewed_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_related:
            data['documents'] = [doc.to_dict() for doc in self.documents]
            data['calls'] = [call.to_dict() for call in self.calls]
            data['audit_logs'] = [log.to_dict() for log in self.audit_logs]
        return data

    def __repr__(self):
        return f'<VerificationRequest {self.id} - {self.status.value}>'


class VerificationCall(db.Model):
    __tablename__ = 'verification_calls'

    id = db.Column(db.Integer, primary_key=True)
    verification_request_id = db.Column(db.Integer, db.ForeignKey('verification_requests.id'),
                                        nullable=False, index=True)

    scheduled_at = db.Column(db.DateTime, nullable=False)
    platform = enum_column(CallPlatform, nullable=False)
    meeting_link = db.Column(db.String(500))
    notes = db.Column(db.Text)

    status = enum_column(CallStatus, nullable=False, default=CallStatus.SCHEDULED)
    verification_result = enum_column(CallResult)
    verification_notes = db.Column(db.Text)

    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    verified_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    verified_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'verification_request_id': self.verification_request_id,
            'scheduled_at': self.scheduled_at.isoformat() if self.scheduled_at else None,
            'platform': self.platform.value,
            'meeting_link': self.meeting_link,
            'notes': self.notes,
            'status': self.status.value,
            'verification_result': self.verification_result.value if self.verification_result else None,
            'verification_notes': self.verification_notes,
            'created_by': self.created_by,
            'verified_by': self.verified_by,
            'verified_at': self.verified_at.isoformat() if self.verified_at else None,
        }

    def __repr__(self):
        return f'<VerificationCall {self.id} - {self.status.value}>'


class VerificationAuditLog(db.Model):
    """Append-only history of verification status changes"""
    __tablename__ = 'verification_audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    verification_request_id = db.Column(db.Integer, db.ForeignKey('verification_requests.id'),
                                        nullable=False, index=True)
    status = enum_column(VerificationStatus, nullable=False)
    changed_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    changed_at = db.Column(db.DateTime, default=datetime.utcnow)
    notes = db.Column(db.Text)

    def to_dict(self):
        return {
            'id': self.id,
            'status': self.status.value,
            'changed_by': self.changed_by,
            'changed_at': self.changed_at.isoformat() if self.changed_at else None,
            'notes': self.notes,
        }

from datetime import datetime
from tutorhub import db
from tutorhub.models.enums import DocumentType, DocumentSide, DocumentStatus, enum_column


class Document(db.Model):
    __tablename__ = 'documents'

    id = db.Column(db.Integer, primary_key=True)
    verification_request_id = db.Column(db.Integer, db.ForeignKey('verification_requests.id'),
                                        nullable=False, index=True)

    type = enum_column(DocumentType, nullable=False)
    side = enum_column(DocumentSide)  # id_verification only
    name = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.String(500), nullable=False)

    status = enum_column(DocumentStatus, nullable=False, default=DocumentStatus.PENDING)
    verification_notes = db.Column(db.Text)
    rejection_reason = db.Column(db.Text)
    resubmission_instructions = db.Column(db.Text)
    verified_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    verified_at = db.Column(db.DateTime)

    uploaded_at = db.Column(db.DateTime, default=datetime.utcnow)

    def reset_review(self):
        """Put the document back in the review queue"""
        self.status = DocumentStatus.PENDING
        self.verification_notes = None
        self.rejection_reason = None
        self.resubmission_instructions = None
        self.verified_by = None
        self.verified_at = None

    @property
    def label(self):
        label = self.type.value.replace('_', ' ')
        if self.side:
            label += f' ({self.side.value})'
        return label

    def to_dict(self):
        return {
            'id': self.id,
            'verification_request_id': self.verification_request_id,
            'type': self.type.value,
            'side': self.side.value if self.side else None,
            'name': self.name,
            'file_path': self.file_path,
            'status': self.status.value,
            'verification_notes': self.verification_notes,
            'rejection_reason': self.rejection_reason,
            'resubmission_instructions': self.resubmission_instructions,
            'verified_by': self.verified_by,
            'verified_at': self.verified_at.isoformat() if self.verified_at else None,
            'uploaded_at': self.uploaded_at.isoformat() if self.uploaded_at else None,
        }

    def __repr__(self):
        return f'<Document {self.id} {self.type.value} - {self.status.value}>'

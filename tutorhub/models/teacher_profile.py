from datetime import datetime
from tutorhub import db
import json


class TeacherProfile(db.Model):
    __tablename__ = "teacher_profiles"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), unique=True, nullable=False
    )

    bio = db.Column(db.Text)
    subjects = db.Column(db.Text)  # JSON array of subjects
    experience_years = db.Column(db.Integer, default=0)
    hourly_rate = db.Column(db.Numeric(10, 2))

    verified = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    verification_requests = db.relationship(
        'VerificationRequest',
        backref='teacher_profile',
        lazy='dynamic',
        order_by='VerificationRequest.id.desc()',
    )

    def get_subjects(self):
        """Get subjects as list"""
        if self.subjects:
            try:
                return json.loads(self.subjects)
            except ValueError:
                return []
        return []

    def set_subjects(self, subjects_list):
        """Set subjects from list"""
        self.subjects = json.dumps(subjects_list)

    @property
    def current_verification_request(self):
        """Most recent verification request, if any"""
        return self.verification_requests.first()

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'name': self.user.full_name if self.user else None,
            'email': self.user.email if self.user else None,
            'bio': self.bio,
            'subjects': self.get_subjects(),
            'experience_years': self.experience_years,
            'hourly_rate': float(self.hourly_rate) if self.hourly_rate is not None else None,
            'verified': self.verified,
        }

    def __repr__(self):
        return f'<TeacherProfile {self.id} user={self.user_id}>'

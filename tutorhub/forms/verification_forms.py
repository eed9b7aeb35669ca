# tutorhub/forms/verification_forms.py

from flask_wtf.file import FileField, FileRequired
from wtforms import StringField, TextAreaField, SelectField, IntegerField, DecimalField
from wtforms.validators import DataRequired, InputRequired, Length, Optional, NumberRange, URL, ValidationError
from tutorhub.forms.base_forms import BaseForm, ListField, IsoDateTimeField
from tutorhub.models.enums import CallPlatform, CallResult, DocumentType, DocumentSide, choices


class TeacherApplicationForm(BaseForm):
    bio = TextAreaField('Bio', validators=[Optional(), Length(max=5000)])
    subjects = ListField('Subjects')
    experience_years = IntegerField('Years of Experience', validators=[Optional(), NumberRange(min=0, max=80)])
    hourly_rate = DecimalField('Hourly Rate', places=2, validators=[Optional(), NumberRange(min=0)])


class DocumentUploadForm(BaseForm):
    type = SelectField('Document Type', validators=[DataRequired()], choices=choices(DocumentType))
    side = SelectField('Side', default='', choices=[('', '')] + choices(DocumentSide))
    file = FileField('Document', validators=[FileRequired()])

    def validate_side(self, side):
        if self.type.data == DocumentType.ID_VERIFICATION.value and not side.data:
            raise ValidationError('Side (front or back) is required for ID documents.')
        if self.type.data != DocumentType.ID_VERIFICATION.value and side.data:
            raise ValidationError('Side only applies to ID documents.')


class RequestVideoForm(BaseForm):
    scheduled_call_at = IsoDateTimeField('Call Time', validators=[InputRequired()])
    video_platform = SelectField('Platform', validators=[DataRequired()], choices=choices(CallPlatform))
    meeting_link = StringField('Meeting Link', validators=[Optional(), URL(require_tld=False), Length(max=500)])
    notes = TextAreaField('Notes', validators=[Optional(), Length(max=1000)])


class CompleteVideoForm(BaseForm):
    verification_result = SelectField('Result', validators=[DataRequired()], choices=choices(CallResult))
    verification_notes = TextAreaField('Notes', validators=[Optional(), Length(max=1000)])


class RejectRequestForm(BaseForm):
    rejection_reason = TextAreaField('Rejection Reason', validators=[DataRequired(), Length(max=1000)])


class VerifyDocumentForm(BaseForm):
    verification_notes = TextAreaField('Verification Notes', validators=[Optional(), Length(max=1000)])


class BatchVerifyDocumentsForm(BaseForm):
    document_ids = ListField('Documents')
    verification_notes = TextAreaField('Verification Notes', validators=[Optional(), Length(max=1000)])


class RejectDocumentForm(BaseForm):
    rejection_reason = TextAreaField('Rejection Reason', validators=[DataRequired(), Length(max=1000)])
    resubmission_instructions = TextAreaField('Resubmission Instructions',
                                              validators=[Optional(), Length(max=1000)])

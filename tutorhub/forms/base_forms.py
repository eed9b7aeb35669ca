"""
Base forms with centralized validation and common functionality
Shared by every JSON endpoint; Flask-WTF reads JSON bodies as form data.
"""
import json
from datetime import datetime, timezone
from flask import request
from flask_wtf import FlaskForm
from wtforms import Field


class BaseForm(FlaskForm):
    """Base form with common functionality"""

    def validate_or_raise(self):
        """Validate and raise the API ValidationError with field messages"""
        from tutorhub.services.error_service import ValidationError as APIValidationError

        if not self.validate():
            errors = {name: messages for name, messages in self.errors.items() if name != 'csrf_token'}
            if not errors and 'csrf_token' in self.errors:
                errors = {'csrf_token': self.errors['csrf_token']}
            raise APIValidationError(errors)
        return self

    def present(self, *names):
        """Fields actually sent by the client, for partial updates"""
        sent = request.get_json(silent=True) if request.is_json else request.form
        sent = sent or {}
        return {name: getattr(self, name).data for name in names if name in sent}


class ListField(Field):
    """A list of strings, from a JSON array or repeated form keys"""

    def _value(self):
        return ','.join(self.data or [])

    def process_formdata(self, valuelist):
        values = []
        for value in valuelist:
            if isinstance(value, (list, tuple)):
                values.extend(value)
            elif isinstance(value, str) and ',' in value and len(valuelist) == 1:
                values.extend(value.split(','))
            else:
                values.append(value)
        self.data = [str(v).strip() for v in values if v is not None and str(v).strip()]


class JSONDictField(Field):
    """A JSON object, sent either nested in a JSON body or as a JSON string"""

    def process_formdata(self, valuelist):
        if not valuelist:
            return
        value = valuelist[0]
        if isinstance(value, str):
            try:
                value = json.loads(value) if value.strip() else {}
            except ValueError:
                self.data = None
                raise ValueError(self.gettext('Not a valid JSON object.'))
        if not isinstance(value, dict):
            self.data = None
            raise ValueError(self.gettext('Not a valid JSON object.'))
        self.data = value


class IsoDateTimeField(Field):
    """ISO 8601 date-time, normalised to naive UTC"""

    def _value(self):
        return self.data.isoformat() if self.data else ''

    def process_formdata(self, valuelist):
        if not valuelist or not valuelist[0]:
            return
        raw = str(valuelist[0]).strip()
        if raw.endswith('Z'):
            raw = raw[:-1] + '+00:00'
        try:
            value = datetime.fromisoformat(raw)
        except ValueError:
            self.data = None
            raise ValueError(self.gettext('Not a valid ISO 8601 date-time.'))
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        self.data = value

from wtforms import StringField, PasswordField, BooleanField
from wtforms.validators import DataRequired, Email, Length
from tutorhub.forms.base_forms import BaseForm


class LoginForm(BaseForm):
    email = StringField('Email', validators=[DataRequired(), Email(), Length(max=120)])
    password = PasswordField('Password', validators=[DataRequired()])
    remember_me = BooleanField('Remember Me')

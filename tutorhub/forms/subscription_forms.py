# tutorhub/forms/subscription_forms.py

from wtforms import StringField, TextAreaField, SelectField, DecimalField, IntegerField, BooleanField
from wtforms.validators import DataRequired, InputRequired, Length, Optional, NumberRange
from tutorhub.forms.base_forms import BaseForm, ListField
from tutorhub.models.enums import BillingCycle, choices

PLAN_FIELDS = ('name', 'description', 'price_naira', 'price_dollar', 'billing_cycle',
               'duration_months', 'features', 'tags', 'is_active')


class SubscriptionPlanForm(BaseForm):
    name = StringField('Plan Name', validators=[DataRequired(), Length(max=255)])
    description = TextAreaField('Description', validators=[Optional(), Length(max=5000)])
    price_naira = DecimalField('Price (NGN)', places=2, validators=[InputRequired(), NumberRange(min=0)])
    price_dollar = DecimalField('Price (USD)', places=2, validators=[InputRequired(), NumberRange(min=0)])
    billing_cycle = SelectField('Billing Cycle', validators=[DataRequired()], choices=choices(BillingCycle))
    duration_months = IntegerField('Duration (months)', validators=[InputRequired(), NumberRange(min=1)])
    features = ListField('Features')
    tags = ListField('Tags')
    is_active = BooleanField('Active', default=True)

    def to_data(self):
        # is_active only when sent, so a PUT without it keeps the current state
        data = {name: getattr(self, name).data for name in PLAN_FIELDS if name != 'is_active'}
        data.update(self.present('is_active'))
        return data

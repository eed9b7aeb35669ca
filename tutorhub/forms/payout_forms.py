# tutorhub/forms/payout_forms.py

from wtforms import StringField, TextAreaField, SelectField, DecimalField
from wtforms.validators import DataRequired, InputRequired, Length, Optional
from tutorhub.forms.base_forms import BaseForm, JSONDictField
from tutorhub.models.enums import PaymentMethod, choices


class WithdrawalForm(BaseForm):
    amount = DecimalField('Amount', places=2, validators=[InputRequired()])
    currency = StringField('Currency', validators=[Optional(), Length(min=3, max=3)])
    payment_method = SelectField('Payment Method', validators=[DataRequired()], choices=choices(PaymentMethod))
    payment_details = JSONDictField('Payment Details')


class RejectPayoutForm(BaseForm):
    reason = TextAreaField('Reason', validators=[DataRequired(), Length(max=1000)])


class MarkProcessingForm(BaseForm):
    external_reference = StringField('External Reference', validators=[Optional(), Length(max=255)])
    gateway = SelectField('Gateway', validators=[Optional()],
                          choices=[('', ''), ('paystack', 'Paystack'), ('stripe', 'Stripe'), ('paypal', 'PayPal')])


class MarkCompletedForm(BaseForm):
    external_reference = StringField('External Reference', validators=[DataRequired(), Length(max=255)])
    notes = TextAreaField('Notes', validators=[Optional(), Length(max=1000)])


class PaymentMethodForm(BaseForm):
    payment_method = SelectField('Payment Method', validators=[DataRequired()], choices=choices(PaymentMethod))
    payment_details = JSONDictField('Payment Details')


class WalletAdjustmentForm(BaseForm):
    amount = DecimalField('Amount', places=2, validators=[InputRequired()])
    description = StringField('Description', validators=[DataRequired(), Length(max=255)])

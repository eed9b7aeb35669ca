# tutorhub/services/notification_service.py

from flask import current_app, render_template_string
from tutorhub.utils.email import send_email
import logging

logger = logging.getLogger(__name__)

EMAIL_TEMPLATE = """
<h3>{{ heading }}</h3>

<p>Dear {{ name }},</p>

{% for line in lines %}
<p>{{ line }}</p>
{% endfor %}

{% if details %}
<div style="background: #f8f9fa; padding: 15px; border-radius: 5px; margin: 15px 0;">
    {% for label, value in details %}
    <p><strong>{{ label }}:</strong> {{ value }}</p>
    {% endfor %}
</div>
{% endif %}

{% if url %}
<p><a href="{{ url }}" style="background: #007bff; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px;">Open {{ app_name }}</a></p>
{% endif %}

<p>Best regards,<br>{{ app_name }} Team</p>
"""


class NotificationService:
    """
    Emails for verification and payout events.

    Every public method is called after the transition has been committed.
    Failures are logged and reported as False; they never propagate back
    into the workflow that triggered them.
    """

    @staticmethod
    def _admin_recipients():
        from tutorhub.models.user import User

        emails = list(current_app.config.get('ADMINS') or [])
        admins = User.query.filter(
            User.role.in_(User.ADMIN_ROLES),
            User.is_active == True  # noqa: E712
        ).all()
        for admin in admins:
            if admin.email not in emails:
                emails.append(admin.email)
        return emails

    @staticmethod
    def _send(recipients, name, subject, heading, lines, details=None, path=None):
        app_name = current_app.config.get('APP_NAME', 'TutorHub')
        url = f"{current_app.config.get('BASE_URL', '')}{path}" if path else None
        html_body = render_template_string(
            EMAIL_TEMPLATE,
            heading=heading,
            name=name,
            lines=lines,
            details=details or [],
            url=url,
            app_name=app_name,
        )
        text_body = "\n\n".join(
            [f"Dear {name},"] + list(lines) +
            [f"{label}: {value}" for label, value in (details or [])] +
            [f"Best regards,\n{app_name} Team"]
        )
        send_email(f"[{app_name}] {subject}", recipients, text_body, html_body)
        return True

    @classmethod
    def _notify(cls, kind, recipients, *args, **kwargs):
        try:
            return cls._send(recipients, *args, **kwargs)
        except Exception as e:
            logger.error(f"Error sending {kind} notification: {str(e)}")
            return False

    @staticmethod
    def _teacher(verification_request):
        return verification_request.teacher_profile.user

    # ---- teacher verification ----

    @classmethod
    def application_submitted(cls, verification_request):
        teacher = cls._teacher(verification_request)
        return cls._notify(
            'application submitted', cls._admin_recipients(), 'Admin',
            'New Teacher Application',
            'New Teacher Application',
            [f"{teacher.full_name} has applied to teach and is waiting for review."],
            path=f"/admin/verification/{verification_request.id}",
        )

    @classmethod
    def document_uploaded(cls, document):
        verification_request = document.verification_request
        teacher = cls._teacher(verification_request)
        return cls._notify(
            'document uploaded', cls._admin_recipients(), 'Admin',
            'Verification Document Uploaded',
            'Verification Document Uploaded',
            [f"{teacher.full_name} uploaded a {document.label} document."],
            details=[('Document', document.name)],
            path=f"/admin/verification/{verification_request.id}",
        )

    @classmethod
    def call_scheduled(cls, call):
        verification_request = call.verification_request
        teacher = cls._teacher(verification_request)
        details = [
            ('Scheduled for', call.scheduled_at.strftime('%A, %d %B %Y at %I:%M %p UTC')),
            ('Platform', call.platform.value.replace('_', ' ').title()),
        ]
        if call.meeting_link:
            details.append(('Meeting link', call.meeting_link))
        if call.notes:
            details.append(('Notes', call.notes))

        sent = cls._notify(
            'video call scheduled', [teacher.email], teacher.full_name,
            'Verification Video Call Scheduled',
            'Your Verification Call is Scheduled',
            ["A live video verification call has been scheduled for your application."],
            details=details,
        )
        cls._notify(
            'video call scheduled', cls._admin_recipients(), 'Admin',
            f'Verification Call Scheduled - {teacher.full_name}',
            'Verification Call Scheduled',
            [f"A verification call with {teacher.full_name} has been scheduled."],
            details=details,
            path=f"/admin/verification/{verification_request.id}",
        )
        return sent

    @classmethod
    def call_started(cls, verification_request):
        teacher = cls._teacher(verification_request)
        call = verification_request.latest_call
        details = [('Meeting link', call.meeting_link)] if call and call.meeting_link else None
        return cls._notify(
            'video call started', [teacher.email], teacher.full_name,
            'Your Verification Call Has Started',
            'Your Verification Call Has Started',
            ["Your live verification call is starting now. Please join."],
            details=details,
        )

    @classmethod
    def call_completed(cls, verification_request, call):
        teacher = cls._teacher(verification_request)
        if call.verification_result and call.verification_result.value == 'passed':
            lines = ["You passed the live video verification."]
        else:
            lines = ["Your live video verification was not successful. An admin will contact you about a retake."]
        return cls._notify(
            'video call completed', [teacher.email], teacher.full_name,
            'Video Verification Result',
            'Video Verification Result',
            lines,
            details=[('Notes', call.verification_notes)] if call.verification_notes else None,
        )

    @classmethod
    def document_verified(cls, document):
        teacher = cls._teacher(document.verification_request)
        return cls._notify(
            'document verified', [teacher.email], teacher.full_name,
            'Document Verified',
            'Document Verified',
            [f"Your {document.label} document has been verified."],
        )

    @classmethod
    def document_rejected(cls, document):
        teacher = cls._teacher(document.verification_request)
        details = [('Reason', document.rejection_reason)]
        if document.resubmission_instructions:
            details.append(('How to resubmit', document.resubmission_instructions))
        return cls._notify(
            'document rejected', [teacher.email], teacher.full_name,
            'Document Rejected',
            'Document Rejected',
            [f"Your {document.label} document could not be accepted. Please upload a new copy."],
            details=details,
        )

    @classmethod
    def request_approved(cls, verification_request):
        teacher = cls._teacher(verification_request)
        return cls._notify(
            'verification approved', [teacher.email], teacher.full_name,
            'You Are Verified',
            'Congratulations, You Are Verified',
            ["Your teacher application has been approved. You can now accept students."],
        )

    @classmethod
    def request_rejected(cls, verification_request):
        teacher = cls._teacher(verification_request)
        return cls._notify(
            'verification rejected', [teacher.email], teacher.full_name,
            'Teacher Application Update',
            'Teacher Application Rejected',
            ["Unfortunately your teacher application has been rejected."],
            details=[('Reason', verification_request.rejection_reason)],
        )

    # ---- payouts ----

    @staticmethod
    def _payout_details(payout):
        return [
            ('Amount', f"{payout.currency} {float(payout.amount):,.2f}"),
            ('Payment method', payout.payment_method.value.replace('_', ' ').title()),
            ('Request ID', payout.id),
        ]

    @classmethod
    def withdrawal_requested(cls, payout):
        return cls._notify(
            'withdrawal requested', cls._admin_recipients(), 'Admin',
            'New Withdrawal Request',
            'New Withdrawal Request',
            [f"{payout.user.full_name} has requested a withdrawal."],
            details=cls._payout_details(payout),
            path=f"/admin/financial/payout-requests/{payout.id}",
        )

    @classmethod
    def payout_status_changed(cls, payout):
        messages = {
            'approved': "Your withdrawal request has been approved and will be paid out shortly.",
            'rejected': "Your withdrawal request has been rejected. Any reserved funds were returned to your wallet.",
            'paid': "Your withdrawal has been paid.",
            'completed': "Your withdrawal has been completed.",
            'failed': "Your withdrawal could not be completed. The funds were returned to your wallet.",
            'processing': "Your withdrawal is being processed.",
        }
        status = payout.status.value
        details = cls._payout_details(payout)
        if payout.rejection_reason:
            details.append(('Reason', payout.rejection_reason))
        if payout.external_reference:
            details.append(('Reference', payout.external_reference))
        return cls._notify(
            f'payout {status}', [payout.user.email], payout.user.full_name,
            f'Withdrawal {status.title()}',
            f'Withdrawal {status.title()}',
            [messages.get(status, f"Your withdrawal is now {status}.")],
            details=details,
        )

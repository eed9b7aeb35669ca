from flask import current_app
from flask_mail import Message
from tutorhub import mail
import threading
import logging

email_logger = logging.getLogger('email')


def send_async_email(app, msg):
    """Send email asynchronously with error handling"""
    try:
        with app.app_context():
            mail.send(msg)
            email_logger.info(f"Email sent successfully to {msg.recipients}")
            return True
    except Exception as e:
        email_logger.exception(f"Failed to send email to {msg.recipients}: {str(e)}")
        return False


def send_email(subject, recipients, text_body, html_body=None, sender=None, sync=None):
    """
    Send email function with optional synchronous sending

    Args:
        subject (str): Email subject
        recipients (list): List of recipient email addresses
        text_body (str): Plain text email body
        html_body (str): HTML email body
        sender (str, optional): Sender email address
        sync (bool): If True, send synchronously and return result. Defaults
            to the inverse of MAIL_SEND_ASYNC.

    Returns:
        bool: True if sent successfully (only when sync=True)
    """
    if sync is None:
        sync = not current_app.config.get('MAIL_SEND_ASYNC', True)

    try:
        if not sender:
            sender = current_app.config.get('MAIL_DEFAULT_SENDER') or current_app.config.get('MAIL_USERNAME')

        recipients = [r for r in (recipients or []) if r]
        if not recipients:
            email_logger.error("No recipients specified for email")
            return False if sync else None

        msg = Message(subject, sender=sender, recipients=recipients)
        msg.body = text_body
        msg.html = html_body

        email_logger.info(f"Preparing to send email: '{subject}' to {recipients}")

        if sync:
            try:
                mail.send(msg)
                email_logger.info(f"Email sent successfully (sync) to {recipients}")
                return True
            except Exception as e:
                email_logger.error(f"Failed to send email (sync) to {recipients}: {str(e)}")
                return False
        else:
            thread = threading.Thread(
                target=send_async_email,
                args=(current_app._get_current_object(), msg)
            )
            thread.daemon = True
            thread.start()
            email_logger.info(f"Email queued for async sending to {recipients}")

    except Exception as e:
        email_logger.error(f"Error preparing email: {str(e)}")
        if sync:
            return False

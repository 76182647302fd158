import logging

from django.core.mail import send_mail
from django.forms import ValidationError
from django.utils.html import strip_tags

logger = logging.getLogger(__name__)


def send_email(to, subject, body):
    """
    Send an HTML email to a single recipient.

    The plain-text part is derived from *body*.  The sender is
    ``DEFAULT_FROM_EMAIL``.  Returns the number of messages delivered (1).
    """
    try:
        sent = send_mail(
            subject=subject,
            message=strip_tags(body),
            from_email=None,  # Uses DEFAULT_FROM_EMAIL in settings.py
            recipient_list=[to],
            html_message=body,
            fail_silently=False,  # Raise error if email fails
        )
    except Exception as e:
        logger.error("email to %s failed: %s", to, e)
        raise ValidationError(f"Failed to send email: {str(e)}")

    logger.info("email %r sent to %s", subject, to)
    return sent

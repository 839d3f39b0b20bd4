"""
Notification sink. Best-effort by contract: a failure here is logged and never
propagates into the transition that triggered it.
"""
import logging
from functools import partial

from django.conf import settings
from django.db import DatabaseError, transaction
from twilio.rest import Client as TwilioClient
from twilio.base.exceptions import TwilioRestException

from users.models import User
from .models import Notification

logger = logging.getLogger(__name__)


def send_sms(to_number, body):
    """
    Send an SMS via Twilio.
    Returns (success: bool, error_msg: str|None).
    Only logs the message in dev when credentials are not configured.
    """
    sid = settings.TWILIO_ACCOUNT_SID
    token = settings.TWILIO_AUTH_TOKEN
    from_ = settings.TWILIO_PHONE_NUMBER

    if not (sid and token and from_):
        logger.debug('[SMS-DEV] To: %s  Body: %s', to_number, body)
        return True, None

    try:
        client = TwilioClient(sid, token)
        client.messages.create(
            to=f'+91{to_number}' if not str(to_number).startswith('+') else str(to_number),
            from_=from_,
            body=body,
        )
        return True, None
    except TwilioRestException as e:
        logger.warning('Twilio rejected SMS to %s: %s', to_number, e)
        return False, str(e)
    except OSError as e:
        logger.warning('Twilio unreachable for SMS to %s: %s', to_number, e)
        return False, str(e)


def notify(user_id, type, title, message, appointment_id=None, sms=False):
    """Persist an in-app notification (and optionally text it). Returns the row or None."""
    try:
        notification = Notification.objects.create(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            appointment_id=appointment_id,
        )
    except DatabaseError:
        logger.exception('Could not store %s notification for user %s', type, user_id)
        return None

    if sms:
        contact = User.objects.filter(pk=user_id).values_list('contact', flat=True).first()
        if contact:
            send_sms(contact, f'{title}: {message}')
    return notification


def notify_on_commit(user_id, type, title, message, appointment_id=None, sms=False):
    """Queue `notify` to run once the surrounding transaction has committed."""
    transaction.on_commit(partial(
        notify, user_id, type, title, message, appointment_id=appointment_id, sms=sms,
    ))

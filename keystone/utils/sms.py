import os
import logging
from twilio.rest import Client

logger = logging.getLogger(__name__)

SMS_TEMPLATES = {
    'tenant_invitation': (
        "Keystone Rentals: unit {unit_number} at {property_address} is reserved for you. "
        "Accept within {ttl_days} days: {invitation_link}"
    ),
    'homeowner_invitation': (
        "Keystone Rentals: you've been invited to manage {property_address}. "
        "Accept within {ttl_days} days: {invitation_link}"
    ),
}


def render_sms(template_kind, payload):
    template = SMS_TEMPLATES.get(template_kind)
    if template is None:
        return None
    return template.format_map(_Defaults(payload))


class _Defaults(dict):
    def __missing__(self, key):
        return ''


def send_sms(phone_number, body):
    """
    Send a text message via Twilio.
    Returns False without dispatching when credentials are missing.
    """
    account_sid = os.environ.get('TWILIO_ACCOUNT_SID')
    auth_token = os.environ.get('TWILIO_AUTH_TOKEN')
    from_number = os.environ.get('TWILIO_PHONE_NUMBER')

    if not all([account_sid, auth_token, from_number]):
        logger.warning("Twilio credentials missing. Skipping SMS to %s.", phone_number)
        return False

    client = Client(account_sid, auth_token)
    message = client.messages.create(body=body, from_=from_number, to=phone_number)
    logger.info("SMS %s queued for %s", message.sid, phone_number)
    return True

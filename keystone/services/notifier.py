"""Outbound notifications.

``notify`` is the single seam the tenancy services use to reach people. It
never raises: delivery problems are logged and reported as ``False`` so a
mail or SMS outage cannot undo a lease, an application or an invitation.
"""
import logging

from keystone.utils.email import TEMPLATES, send_email
from keystone.utils.sms import render_sms, send_sms

logger = logging.getLogger(__name__)

SMS_KINDS = {'tenant_invitation', 'homeowner_invitation'}


def notify(recipient, template_kind, payload):
    """Deliver ``template_kind`` to ``recipient`` (a User or anything with email/phone)."""
    renderer = TEMPLATES.get(template_kind)
    if renderer is None:
        logger.error("Unknown notification template %r", template_kind)
        return False

    email = getattr(recipient, 'email', None)
    if not email:
        logger.warning("No email address for %s notification, skipping", template_kind)
        return False

    try:
        subject, html = renderer(payload)
        delivered = send_email(email, subject, html)
    except Exception:
        logger.exception("Failed to send %s email to %s", template_kind, email)
        delivered = False

    phone = getattr(recipient, 'phone', None)
    if template_kind in SMS_KINDS and phone:
        try:
            send_sms(phone, render_sms(template_kind, payload))
        except Exception:
            logger.exception("Failed to send %s SMS to %s", template_kind, phone)

    if delivered:
        logger.info("Sent %s notification to %s", template_kind, email)
    return delivered

import os
import logging
import resend

logger = logging.getLogger(__name__)

BRAND = 'Keystone Rentals'


def _layout(heading, body, colour='#2196F3'):
    return f"""
    <div style="font-family: Arial, sans-serif; padding: 20px; color: #333;">
        <div style="background-color: {colour}; color: white; padding: 20px; text-align: center; border-radius: 8px 8px 0 0;">
            <h2 style="margin: 0; font-size: 24px;">{heading}</h2>
        </div>
        <div style="background-color: #f9f9f9; padding: 30px; border-radius: 0 0 8px 8px;">
            {body}
            <div style="text-align: center; margin-top: 30px; color: #666; font-size: 12px;">
                <p>&copy; {BRAND}. All rights reserved.</p>
            </div>
        </div>
    </div>
    """


def _button(link, label, colour='#2196F3'):
    return f"""
    <center>
        <a href="{link}" style="display: inline-block; background-color: {colour}; color: white; padding: 15px 30px; text-decoration: none; border-radius: 4px; margin: 20px 0; font-weight: bold;">{label}</a>
    </center>
    """


def render_homeowner_invitation(payload):
    body = f"""
        <p>Hello {payload.get('name', '')},</p>
        <p>You have been invited to view and manage your property at <strong>{payload.get('property_address', '')}</strong>.</p>
        <p>Click the button below to set your password and activate your account:</p>
        {_button(payload.get('invitation_link', '#'), 'Accept Invitation')}
        <p><strong>This invitation expires in {payload.get('ttl_days', 7)} days.</strong></p>
    """
    return f"You're invited to manage your property - {BRAND}", _layout('Homeowner Invitation', body)


def render_tenant_invitation(payload):
    body = f"""
        <p>Hello {payload.get('name', '')},</p>
        <p>Your property manager has reserved unit <strong>{payload.get('unit_number', '')}</strong>
        at <strong>{payload.get('property_address', '')}</strong> for you.</p>
        <table style="width: 100%; border-collapse: collapse; margin: 20px 0;">
            <tr><td style="padding: 8px; border-bottom: 1px solid #ddd;"><b>Move-in date:</b></td><td style="padding: 8px; border-bottom: 1px solid #ddd;">{payload.get('move_in_date', 'N/A')}</td></tr>
            <tr><td style="padding: 8px; border-bottom: 1px solid #ddd;"><b>Lease duration:</b></td><td style="padding: 8px; border-bottom: 1px solid #ddd;">{payload.get('lease_duration', 'N/A')} months</td></tr>
        </table>
        {_button(payload.get('invitation_link', '#'), 'Accept & Sign Lease')}
        <p><strong>The reservation is released if the invitation is not accepted within {payload.get('ttl_days', 7)} days.</strong></p>
    """
    return f"Your unit is reserved - {BRAND}", _layout('Tenant Invitation', body)


def render_application_submitted(payload):
    body = f"""
        <p>A new rental application was submitted by <strong>{payload.get('tenant_name', 'a tenant')}</strong>
        ({payload.get('tenant_email', '')}) for unit <strong>{payload.get('unit_number', '')}</strong>
        at {payload.get('property_address', '')}.</p>
        <p>Log in to review it.</p>
    """
    return f"New application: {payload.get('property_address', '')}", _layout('New Application', body)


def render_application_approved(payload):
    body = f"""
        <p>Congratulations {payload.get('name', '')}! Your application for unit
        <strong>{payload.get('unit_number', '')}</strong> at {payload.get('property_address', '')} was approved.</p>
        <table style="width: 100%; border-collapse: collapse; margin: 20px 0;">
            <tr><td style="padding: 8px; border-bottom: 1px solid #ddd;"><b>Lease start:</b></td><td style="padding: 8px; border-bottom: 1px solid #ddd;">{payload.get('start_date', 'N/A')}</td></tr>
            <tr><td style="padding: 8px; border-bottom: 1px solid #ddd;"><b>Lease end:</b></td><td style="padding: 8px; border-bottom: 1px solid #ddd;">{payload.get('end_date', 'N/A')}</td></tr>
            <tr><td style="padding: 8px; border-bottom: 1px solid #ddd;"><b>Monthly rent:</b></td><td style="padding: 8px; border-bottom: 1px solid #ddd;">{payload.get('monthly_rent', 'N/A')}</td></tr>
            <tr><td style="padding: 8px; border-bottom: 1px solid #ddd;"><b>Security deposit:</b></td><td style="padding: 8px; border-bottom: 1px solid #ddd;">{payload.get('security_deposit', 'N/A')}</td></tr>
        </table>
    """
    return f"Application approved - {BRAND}", _layout('Application Approved', body, colour='#4CAF50')


def render_maintenance_submitted(payload):
    body = f"""
        <p><strong>{payload.get('tenant_name', 'A tenant')}</strong> reported a {payload.get('priority', 'medium')}
        priority {payload.get('category', '')} issue at {payload.get('property_address', '')}:</p>
        <p><em>{payload.get('title', '')}</em></p>
    """
    return f"Maintenance request: {payload.get('title', '')}", _layout('Maintenance Request', body, colour='#FF9800')


def render_maintenance_resolved(payload):
    body = f"""
        <p>Your maintenance request <em>{payload.get('title', '')}</em> has been resolved.</p>
        <p>{payload.get('resolution_notes') or ''}</p>
    """
    return f"Maintenance resolved - {BRAND}", _layout('Issue Resolved', body, colour='#4CAF50')


TEMPLATES = {
    'homeowner_invitation': render_homeowner_invitation,
    'tenant_invitation': render_tenant_invitation,
    'application_submitted': render_application_submitted,
    'application_approved': render_application_approved,
    'maintenance_submitted': render_maintenance_submitted,
    'maintenance_resolved': render_maintenance_resolved,
}


def send_email(to_email, subject, html_content):
    """Send a transactional email using Resend. Returns True on hand-off."""
    resend.api_key = os.environ.get('RESEND_API_KEY')
    if not resend.api_key:
        logger.warning("RESEND_API_KEY is not set. Email to %s not sent.", to_email)
        return False

    params = {
        "from": os.environ.get('MAIL_FROM', f'{BRAND} <noreply@keystone-rentals.example>'),
        "to": [to_email],
        "subject": subject,
        "html": html_content
    }

    resend.Emails.send(params)
    return True

from types import SimpleNamespace

from keystone.services import notifier


def recipient(**fields):
    fields.setdefault('email', 'tenant@example.com')
    fields.setdefault('phone', None)
    return SimpleNamespace(**fields)


def test_unknown_template_is_refused(monkeypatch):
    monkeypatch.setattr(notifier, 'send_email', lambda *args: True)
    assert notifier.notify(recipient(), 'birthday_card', {}) is False


def test_missing_address_is_refused(monkeypatch):
    monkeypatch.setattr(notifier, 'send_email', lambda *args: True)
    assert notifier.notify(recipient(email=None), 'application_approved', {}) is False


def test_email_renders_payload(monkeypatch):
    sent = []
    monkeypatch.setattr(notifier, 'send_email', lambda to, subject, html: sent.append((to, subject, html)) or True)

    assert notifier.notify(recipient(), 'application_approved', {
        'name': 'Achieng', 'unit_number': 'B4', 'property_address': '5 Ngong Road',
        'start_date': '2025-01-01', 'end_date': '2026-01-01',
        'monthly_rent': '100000.00', 'security_deposit': '200000.00',
    }) is True

    to, subject, html = sent[0]
    assert to == 'tenant@example.com'
    assert 'Achieng' in html
    assert '100000.00' in html


def test_delivery_failure_is_logged_not_raised(monkeypatch, caplog):
    def explode(*args):
        raise ConnectionError('resend unreachable')

    monkeypatch.setattr(notifier, 'send_email', explode)

    assert notifier.notify(recipient(), 'maintenance_resolved', {'title': 'Broken lock'}) is False
    assert 'Failed to send maintenance_resolved email' in caplog.text


def test_invitations_also_go_out_by_sms(monkeypatch):
    texts = []
    monkeypatch.setattr(notifier, 'send_email', lambda *args: True)
    monkeypatch.setattr(notifier, 'send_sms', lambda phone, body: texts.append((phone, body)) or True)

    notifier.notify(recipient(phone='+254700111222'), 'tenant_invitation', {
        'unit_number': 'C2', 'property_address': '8 Moi Avenue', 'ttl_days': 7,
        'invitation_link': 'http://localhost:3000/accept-tenant-invitation/abc',
    })
    notifier.notify(recipient(phone='+254700111222'), 'maintenance_resolved', {'title': 'Lock'})

    assert len(texts) == 1
    phone, body = texts[0]
    assert phone == '+254700111222'
    assert 'C2' in body and 'accept-tenant-invitation/abc' in body


def test_sms_failure_does_not_affect_email_result(monkeypatch):
    def explode(*args):
        raise RuntimeError('twilio down')

    monkeypatch.setattr(notifier, 'send_email', lambda *args: True)
    monkeypatch.setattr(notifier, 'send_sms', explode)

    assert notifier.notify(recipient(phone='+254700111222'), 'homeowner_invitation', {}) is True


def test_send_email_without_api_key_is_a_no_op(monkeypatch):
    from keystone.utils import email

    monkeypatch.delenv('RESEND_API_KEY', raising=False)
    assert email.send_email('x@example.com', 'Hi', '<p>Hi</p>') is False


def test_send_sms_without_credentials_is_a_no_op(monkeypatch):
    from keystone.utils import sms

    monkeypatch.delenv('TWILIO_ACCOUNT_SID', raising=False)
    assert sms.send_sms('+254700111222', 'Hello') is False

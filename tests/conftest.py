import itertools
from datetime import date
from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token

from keystone import create_app, db
from keystone.models import Application, Property, Unit, User
from keystone.services import applications, invitations, maintenance
from keystone.services.property_status import update_property_status


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    """Capture notifications instead of sending them"""
    sent = []

    def fake_notify(recipient, template_kind, payload):
        sent.append({'to': getattr(recipient, 'email', None), 'kind': template_kind, 'payload': payload})
        return True

    for module in (applications, invitations, maintenance):
        monkeypatch.setattr(module, 'notify', fake_notify)
    return sent


@pytest.fixture
def make_user(app):
    counter = itertools.count(1)

    def _make(role='tenant', password=None, **fields):
        n = next(counter)
        fields.setdefault('email', f'{role}{n}@example.com')
        fields.setdefault('name', f'{role.replace("_", " ").title()} {n}')
        fields.setdefault('phone', f'+25470000{n:04d}')
        fields.setdefault('is_active', True)
        user = User(role=role, **fields)
        if password:
            user.set_password(password)
        else:
            user.password_hash = '!'
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def manager(make_user):
    return make_user('property_manager')


@pytest.fixture
def make_property(app, manager):
    def _make(owner=None, **fields):
        fields.setdefault('address', '12 Riverside Drive')
        fields.setdefault('city', 'Nairobi')
        fields.setdefault('state', 'Nairobi County')
        fields.setdefault('property_type', 'residential')
        property = Property(property_manager_id=(owner or manager).id, **fields)
        db.session.add(property)
        db.session.commit()
        return property

    return _make


@pytest.fixture
def make_unit(app):
    counter = itertools.count(1)

    def _make(property, status='vacant', annual_rent=Decimal('1200000'), **fields):
        fields.setdefault('unit_number', f'A{next(counter)}')
        fields.setdefault('unit_type', 'apartment')
        unit = Unit(property_id=property.id, status=status, annual_rent=annual_rent, **fields)
        db.session.add(unit)
        db.session.commit()
        update_property_status(property.id)
        return unit

    return _make


@pytest.fixture
def application_data():
    def _data(unit, **overrides):
        data = {
            'property_id': unit.property_id,
            'unit_id': unit.id,
            'move_in_date': '2025-01-01',
            'lease_duration': 12,
            'employment_status': 'employed',
            'employer': 'Acme Ltd',
            'monthly_income': '250000',
            'emergency_contact_name': 'Jane Doe',
            'emergency_contact_phone': '+254711000000',
        }
        data.update(overrides)
        return data

    return _data


@pytest.fixture
def make_application(app):
    def _make(tenant, unit, status='pending', **fields):
        application = Application(
            tenant_id=tenant.id,
            property_id=unit.property_id,
            unit_id=unit.id,
            move_in_date=fields.pop('move_in_date', date(2025, 1, 1)),
            lease_duration=fields.pop('lease_duration', 12),
            employment_status='employed',
            emergency_contact_name='Jane Doe',
            emergency_contact_phone='+254711000000',
            status=status,
            **fields
        )
        db.session.add(application)
        db.session.commit()
        return application

    return _make


@pytest.fixture
def auth_headers(app):
    def _headers(user):
        token = create_access_token(identity=str(user.id))
        return {'Authorization': f'Bearer {token}'}

    return _headers

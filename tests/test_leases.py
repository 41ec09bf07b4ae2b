from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from keystone import db
from keystone.errors import AuthorizationError, ConflictError, ValidationError
from keystone.models import Lease
from keystone.services import leases


def test_terms_for_a_one_year_lease():
    terms = leases.compute_lease_terms(date(2025, 1, 1), 12, Decimal('1200000'))

    assert terms.start_date == date(2025, 1, 1)
    assert terms.end_date == date(2026, 1, 1)
    assert terms.monthly_rent == Decimal('100000.00')
    assert terms.security_deposit == Decimal('200000.00')


def test_end_date_is_clamped_to_month_end():
    assert leases.compute_lease_terms(date(2025, 1, 31), 1, 1200).end_date == date(2025, 2, 28)
    assert leases.compute_lease_terms(date(2023, 8, 31), 6, 1200).end_date == date(2024, 2, 29)


def test_monthly_rent_rounds_to_cents():
    terms = leases.compute_lease_terms(date(2025, 3, 1), 6, Decimal('1000'))
    assert terms.monthly_rent == Decimal('83.33')
    assert terms.security_deposit == Decimal('166.66')


def test_duration_must_be_positive():
    with pytest.raises(ValidationError):
        leases.compute_lease_terms(date(2025, 1, 1), 0, 1200)


def test_issue_lease_occupies_unit(make_user, make_property, make_unit):
    tenant = make_user('tenant')
    property = make_property()
    unit = make_unit(property)

    lease = leases.issue_lease(tenant, unit, date(2025, 1, 1), 12, expected_status='vacant')
    db.session.commit()

    assert lease.status == 'active'
    assert unit.status == 'occupied'
    assert unit.current_tenant_id == tenant.id
    assert unit.current_lease_id == lease.id
    assert lease.property_id == property.id


def test_issue_lease_against_wrong_status_writes_nothing(make_user, make_property, make_unit):
    tenant = make_user('tenant')
    unit = make_unit(make_property(), status='vacant')

    with pytest.raises(ConflictError, match='no longer available'):
        leases.issue_lease(tenant, unit, date(2025, 1, 1), 12, expected_status='reserved')

    db.session.commit()
    assert Lease.query.count() == 0
    assert unit.status == 'vacant'
    assert unit.current_lease_id is None


def test_second_active_lease_for_unit_conflicts(make_user, make_property, make_unit):
    unit = make_unit(make_property())
    leases.issue_lease(make_user('tenant'), unit, date(2025, 1, 1), 12, expected_status='vacant')
    db.session.commit()

    with pytest.raises(ConflictError):
        leases.issue_lease(make_user('tenant'), unit, date(2025, 1, 1), 12, expected_status='occupied')
    assert Lease.query.filter_by(unit_id=unit.id, status='active').count() == 1


def test_database_rejects_two_active_leases_for_one_unit(make_user, make_property, make_unit):
    tenant = make_user('tenant')
    unit = make_unit(make_property())
    common = dict(tenant_id=tenant.id, property_id=unit.property_id, unit_id=unit.id,
                  start_date=date(2025, 1, 1), end_date=date(2026, 1, 1), lease_duration=12,
                  monthly_rent=Decimal('100'), security_deposit=Decimal('200'))
    db.session.add(Lease(status='terminated', **common))
    db.session.add(Lease(status='active', **common))
    db.session.commit()

    db.session.add(Lease(status='active', **common))
    with pytest.raises(IntegrityError):
        db.session.commit()
    db.session.rollback()


def test_terminate_frees_the_unit(manager, make_user, make_property, make_unit):
    tenant = make_user('tenant')
    property = make_property()
    unit = make_unit(property)
    lease = leases.issue_lease(tenant, unit, date(2025, 1, 1), 12, expected_status='vacant')
    db.session.commit()

    leases.terminate_lease(lease.id, manager, reason='Moved out')

    assert lease.status == 'terminated'
    assert lease.termination_reason == 'Moved out'
    assert lease.terminated_at is not None
    assert unit.status == 'vacant'
    assert unit.current_tenant_id is None
    assert property.status == 'vacant'

    with pytest.raises(ConflictError):
        leases.terminate_lease(lease.id, manager)


def test_tenant_cannot_terminate(make_user, make_property, make_unit):
    tenant = make_user('tenant')
    unit = make_unit(make_property())
    lease = leases.issue_lease(tenant, unit, date(2025, 1, 1), 12, expected_status='vacant')
    db.session.commit()

    with pytest.raises(AuthorizationError):
        leases.terminate_lease(lease.id, tenant)


def test_lease_visibility(manager, make_user, make_property, make_unit):
    tenant = make_user('tenant')
    stranger = make_user('tenant')
    lease = leases.issue_lease(tenant, make_unit(make_property()), date(2025, 1, 1), 12, expected_status='vacant')
    db.session.commit()

    assert leases.get_lease_for(lease.id, tenant) is lease
    assert leases.get_lease_for(lease.id, manager) is lease
    assert leases.list_leases_for(tenant) == [lease]
    assert leases.list_leases_for(stranger) == []
    with pytest.raises(AuthorizationError):
        leases.get_lease_for(lease.id, stranger)

from datetime import date, datetime, timedelta

import pytest

from keystone import db
from keystone.errors import ConflictError, ValidationError
from keystone.models import InvitationState, Lease, Unit, User
from keystone.services import invitations
from keystone.services.sweeper import cleanup_expired_invitations


def tenant_payload(**overrides):
    data = {
        'name': 'Wanjiku Kamau',
        'email': 'wanjiku@example.com',
        'phone': '+254722000111',
        'move_in_date': '2025-01-01',
        'lease_duration': 12,
    }
    data.update(overrides)
    return data


def homeowner_payload(**overrides):
    data = {
        'name': 'Otieno Odhiambo',
        'email': 'otieno@example.com',
        'phone': '+254733000222',
        'address': 'PO Box 1, Kisumu',
    }
    data.update(overrides)
    return data


@pytest.fixture
def property(make_property):
    return make_property()


@pytest.fixture
def unit(property, make_unit):
    return make_unit(property)


# Tenant flow

def test_invitation_reserves_unit_and_acceptance_issues_lease(manager, property, unit, outbox):
    tenant, invitation, token = invitations.invite_tenant(manager, unit.id, tenant_payload())

    assert invitation.state == InvitationState.PENDING
    assert invitation.unit_id == unit.id
    assert not tenant.is_active
    assert unit.status == 'reserved'
    assert property.status == 'occupied'
    assert outbox[-1]['kind'] == 'tenant_invitation'
    assert outbox[-1]['payload']['invitation_link'].endswith(f'/accept-tenant-invitation/{token}')

    tenant, lease, accepted = invitations.accept_tenant_invitation(token, 'a-strong-password')

    assert accepted.state == InvitationState.ACCEPTED
    assert lease.monthly_rent == 100000
    assert lease.security_deposit == 200000
    assert lease.start_date == date(2025, 1, 1)
    assert lease.end_date == date(2026, 1, 1)
    assert unit.status == 'occupied'
    assert unit.current_lease_id == lease.id
    assert tenant.is_active
    assert tenant.invitation_token is None
    assert tenant.check_password('a-strong-password')


def test_expired_invitation_is_rejected_and_swept(manager, property, unit):
    tenant, _, token = invitations.invite_tenant(manager, unit.id, tenant_payload())
    tenant.invitation_expires = datetime.utcnow() - timedelta(seconds=1)
    db.session.commit()

    with pytest.raises(ValidationError, match='Invalid or expired'):
        invitations.accept_tenant_invitation(token, 'a-strong-password')
    assert unit.status == 'reserved'
    assert Lease.query.count() == 0

    assert cleanup_expired_invitations() == (1, 1)

    db.session.expire_all()
    assert db.session.get(Unit, unit.id).status == 'vacant'
    assert property.status == 'vacant'
    assert db.session.get(User, tenant.id).invitation.state == InvitationState.NONE


def test_acceptance_after_sweep_fails_cleanly(manager, unit):
    _, _, token = invitations.invite_tenant(manager, unit.id, tenant_payload())
    cleanup_expired_invitations(now=datetime.utcnow() + timedelta(days=8))

    with pytest.raises(ValidationError):
        invitations.accept_tenant_invitation(token, 'a-strong-password')
    assert unit.status == 'vacant'


def test_acceptance_refused_when_reservation_was_lost(manager, unit):
    _, _, token = invitations.invite_tenant(manager, unit.id, tenant_payload())
    Unit.query.filter_by(id=unit.id).update({'status': 'vacant'})
    db.session.commit()

    with pytest.raises(ConflictError):
        invitations.accept_tenant_invitation(token, 'a-strong-password')
    assert Lease.query.count() == 0
    assert User.query.filter_by(email='wanjiku@example.com').one().invitation_token == token


def test_only_vacant_units_can_be_offered(manager, property, make_unit):
    unit = make_unit(property, status='maintenance')
    with pytest.raises(ConflictError):
        invitations.invite_tenant(manager, unit.id, tenant_payload())


def test_second_invitation_for_reserved_unit_conflicts(manager, unit):
    invitations.invite_tenant(manager, unit.id, tenant_payload())
    with pytest.raises(ConflictError):
        invitations.invite_tenant(manager, unit.id, tenant_payload(email='someone@example.com'))


def test_losing_the_reservation_race_withdraws_the_invitation(manager, unit, monkeypatch):
    original = User.issue_invitation

    def issue_then_lose_race(self, *args, **kwargs):
        token = original(self, *args, **kwargs)
        # another request reserves the unit between the check and the reservation
        Unit.query.filter_by(id=unit.id).update({'status': 'reserved'})
        return token

    monkeypatch.setattr(User, 'issue_invitation', issue_then_lose_race)

    with pytest.raises(ConflictError, match='taken'):
        invitations.invite_tenant(manager, unit.id, tenant_payload())

    invitee = User.query.filter_by(email='wanjiku@example.com').one()
    assert invitee.invitation.state == InvitationState.NONE
    assert invitee.pending_unit_id is None


def test_tenant_with_outstanding_invitation_cannot_be_invited_again(manager, property, unit, make_unit):
    invitations.invite_tenant(manager, unit.id, tenant_payload())
    other = make_unit(property)
    with pytest.raises(ConflictError, match='outstanding'):
        invitations.invite_tenant(manager, other.id, tenant_payload())
    assert other.status == 'vacant'


def test_tenant_with_active_lease_cannot_be_invited(manager, property, unit, make_unit):
    _, _, token = invitations.invite_tenant(manager, unit.id, tenant_payload())
    invitations.accept_tenant_invitation(token, 'a-strong-password')

    with pytest.raises(ConflictError, match='active lease'):
        invitations.invite_tenant(manager, make_unit(property).id, tenant_payload())


def test_reinviting_after_expiry_releases_the_old_reservation(manager, property, unit, make_unit):
    tenant, _, _ = invitations.invite_tenant(manager, unit.id, tenant_payload())
    tenant.invitation_expires = datetime.utcnow() - timedelta(minutes=5)
    db.session.commit()
    other = make_unit(property)

    tenant, invitation, _ = invitations.invite_tenant(manager, other.id, tenant_payload())

    assert invitation.unit_id == other.id
    assert unit.status == 'vacant'
    assert other.status == 'reserved'
    assert User.query.filter_by(email='wanjiku@example.com').count() == 1


def test_reinviting_to_the_same_unit_after_expiry(manager, property, unit, outbox):
    tenant, _, stale = invitations.invite_tenant(manager, unit.id, tenant_payload())
    tenant.invitation_expires = datetime.utcnow() - timedelta(days=1)
    db.session.commit()

    tenant, invitation, token = invitations.invite_tenant(
        manager, unit.id, tenant_payload(move_in_date='2025-02-01'))

    assert token != stale
    assert invitation.state == InvitationState.PENDING
    assert invitation.unit_id == unit.id
    assert invitation.move_in_date == date(2025, 2, 1)
    assert unit.status == 'reserved'
    assert property.status == 'occupied'
    assert outbox[-1]['kind'] == 'tenant_invitation'


def test_expired_invitation_of_someone_else_still_blocks_the_unit(manager, unit):
    tenant, _, _ = invitations.invite_tenant(manager, unit.id, tenant_payload())
    tenant.invitation_expires = datetime.utcnow() - timedelta(days=1)
    db.session.commit()

    with pytest.raises(ConflictError, match='reserved'):
        invitations.invite_tenant(manager, unit.id, tenant_payload(email='someone@example.com'))


def test_non_tenant_email_conflicts(manager, unit, make_user):
    make_user('homeowner', email='owner@example.com')
    with pytest.raises(ConflictError):
        invitations.invite_tenant(manager, unit.id, tenant_payload(email='owner@example.com'))
    assert unit.status == 'vacant'


def test_short_password_rejected_before_anything_changes(manager, unit):
    _, _, token = invitations.invite_tenant(manager, unit.id, tenant_payload())
    with pytest.raises(ValidationError, match='8 characters'):
        invitations.accept_tenant_invitation(token, 'short')
    assert unit.status == 'reserved'


def test_verify_returns_unit(manager, unit):
    _, _, token = invitations.invite_tenant(manager, unit.id, tenant_payload())
    tenant, invitation, found = invitations.verify_tenant_invitation(token)
    assert tenant.email == 'wanjiku@example.com'
    assert invitation.move_in_date == date(2025, 1, 1)
    assert found.id == unit.id

    with pytest.raises(ValidationError):
        invitations.verify_tenant_invitation('not-a-token')


# Homeowner flow

def test_homeowner_invitation_and_acceptance(manager, property, make_property, outbox):
    second = make_property(address='3 Lake View')
    _, homeowner, token = invitations.invite_homeowner(manager, property.id, homeowner_payload())
    invitations.invite_homeowner(manager, second.id, homeowner_payload())

    assert property.homeowner_invitation_status == 'pending'
    assert property.pending_homeowner_email == 'otieno@example.com'
    assert not homeowner.is_active
    assert outbox[-1]['kind'] == 'homeowner_invitation'

    # re-inviting an inactive homeowner re-issues the token
    token = homeowner.invitation_token
    _, pending, properties = invitations.verify_homeowner_invitation(token)
    assert pending.state == InvitationState.PENDING
    assert {p.id for p in properties} == {property.id, second.id}

    homeowner, accepted, properties = invitations.accept_homeowner_invitation(token, 'owner-password')

    assert accepted.state == InvitationState.ACCEPTED
    assert homeowner.is_active
    assert homeowner.invitation_token is None
    assert property.homeowner_invitation_status == 'accepted'
    assert second.homeowner_invitation_status == 'accepted'


def test_expired_homeowner_invitation_is_refused(manager, property):
    _, homeowner, token = invitations.invite_homeowner(manager, property.id, homeowner_payload())
    homeowner.invitation_expires = datetime.utcnow() - timedelta(seconds=1)
    db.session.commit()

    with pytest.raises(ValidationError, match='Invalid or expired'):
        invitations.accept_homeowner_invitation(token, 'owner-password')

    assert not homeowner.is_active
    assert property.homeowner_id == homeowner.id
    assert property.homeowner_invitation_status == 'pending'


def test_expired_homeowner_invitation_can_be_resent(manager, property, outbox):
    _, homeowner, stale = invitations.invite_homeowner(manager, property.id, homeowner_payload())
    homeowner.invitation_expires = datetime.utcnow() - timedelta(days=1)
    db.session.commit()
    cleanup_expired_invitations()

    _, again, token = invitations.invite_homeowner(manager, property.id, homeowner_payload())

    assert again.id == homeowner.id
    assert token != stale
    assert outbox[-1]['kind'] == 'homeowner_invitation'
    invitations.accept_homeowner_invitation(token, 'owner-password')
    assert property.homeowner_invitation_status == 'accepted'


def test_pending_homeowner_cannot_be_swapped_for_another(manager, property):
    invitations.invite_homeowner(manager, property.id, homeowner_payload())
    with pytest.raises(ConflictError, match='already has a homeowner'):
        invitations.invite_homeowner(manager, property.id, homeowner_payload(email='someone@example.com'))


def test_active_homeowner_is_assigned_directly(manager, property, make_user, outbox):
    owner = make_user('homeowner', email='otieno@example.com')

    _, homeowner, token = invitations.invite_homeowner(manager, property.id, homeowner_payload())

    assert token is None
    assert homeowner.id == owner.id
    assert property.homeowner_id == owner.id
    assert property.homeowner_invitation_status == 'accepted'
    assert outbox == []


def test_property_with_homeowner_cannot_be_reassigned(manager, property, make_user):
    property.homeowner_id = make_user('homeowner').id
    db.session.commit()
    with pytest.raises(ConflictError):
        invitations.invite_homeowner(manager, property.id, homeowner_payload())


def test_homeowner_of_another_manager_conflicts(manager, property, make_user, make_property):
    other_manager = make_user('property_manager')
    owner = make_user('homeowner', email='otieno@example.com')
    make_property(owner=other_manager, homeowner_id=owner.id, homeowner_invitation_status='accepted')

    with pytest.raises(ConflictError, match='another property manager'):
        invitations.invite_homeowner(manager, property.id, homeowner_payload())


def test_tenant_token_is_not_a_homeowner_token(manager, unit):
    _, _, token = invitations.invite_tenant(manager, unit.id, tenant_payload())
    with pytest.raises(ValidationError):
        invitations.accept_homeowner_invitation(token, 'owner-password')

"""Homeowner and tenant invitations.

Both flows store a single-use token on the invitee's account. A tenant
invitation also reserves a unit, and the reservation is only taken after
the invitation itself has been committed, so a reserved unit always has a
live invitation pointing at it.
"""
from datetime import datetime, timedelta
import logging

from flask import current_app

from keystone import db
from keystone.errors import ConflictError, ValidationError
from keystone.models.invitation import InvitationKind, InvitationState
from keystone.models.property import Property
from keystone.models.unit import Unit
from keystone.models.user import User
from keystone.services.inventory import get_managed_property, get_unit
from keystone.services.leases import has_active_lease, issue_lease
from keystone.services.notifier import notify
from keystone.services.property_status import update_property_status
from keystone.utils.sanitizers import sanitize_optional, sanitize_string
from keystone.utils.validators import (
    parse_date, parse_int, require_fields, validate_email, validate_password,
)

logger = logging.getLogger(__name__)

INVALID_TOKEN = 'Invalid or expired invitation token'


def _ttl():
    return timedelta(days=current_app.config['INVITATION_TTL_DAYS'])


def _invitation_link(path, token):
    return f"{current_app.config['FRONTEND_URL'].rstrip('/')}/{path}/{token}"


def _clean_email(data):
    email = sanitize_string(data.get('email', '')).lower()
    if not validate_email(email):
        raise ValidationError('Invalid email format')
    return email


def _check_password(password):
    if not validate_password(password):
        raise ValidationError('Password must be at least 8 characters long')


def _find_invitee(token, kind, now=None):
    """Account holding ``token`` for an invitation of ``kind`` that is still pending"""
    if not token:
        raise ValidationError(INVALID_TOKEN)
    user = User.query.filter_by(invitation_token=token).first()
    if user is None:
        raise ValidationError(INVALID_TOKEN)
    invitation = user.invitation
    if invitation.kind != kind or user.role != kind.value:
        raise ValidationError(INVALID_TOKEN)
    if invitation.state != InvitationState.PENDING:
        raise ValidationError(INVALID_TOKEN)
    return user, invitation


def release_reservation(user):
    """
    Drop ``user``'s invitation, handing a still-reserved unit back to the market.

    Returns the property id whose unit was reclaimed, or None. The caller
    commits and re-derives the property status.
    """
    invitation = user.invitation
    reclaimed = None
    if invitation.reserves_unit:
        matched = Unit.query.filter(Unit.id == invitation.unit_id, Unit.status == 'reserved').update(
            {'status': 'vacant', 'current_tenant_id': None, 'current_lease_id': None},
            synchronize_session='fetch',
        )
        if matched:
            reclaimed = invitation.property_id
            logger.info("Unit %s reclaimed from lapsed invitation of %s", invitation.unit_id, user.email)
    user.clear_invitation()
    return reclaimed


# Homeowner flow

def invite_homeowner(manager, property_id, data):
    """
    Attach a homeowner to one of the manager's properties.

    An active homeowner account is assigned straight away. Otherwise an
    inactive account is provisioned (or reused) and receives a token.
    Inviting the pending homeowner of a property again re-issues their token.
    Returns ``(property, homeowner, token)``; token is None for a direct
    assignment.
    """
    require_fields(data, 'name', 'email', 'phone')
    property = get_managed_property(property_id, manager)
    email = _clean_email(data)
    if property.homeowner_id is not None:
        resend = (property.homeowner_invitation_status == 'pending'
                  and property.homeowner.email == email)
        if not resend:
            raise ConflictError('This property already has a homeowner')

    name = sanitize_string(data['name'])
    phone = sanitize_string(data['phone'])
    address = sanitize_optional(data.get('address'))

    homeowner = User.query.filter_by(email=email).first()
    if homeowner is not None:
        if not homeowner.is_homeowner():
            raise ConflictError('This email belongs to an account that is not a homeowner')
        other_manager = homeowner.owned_properties.filter(
            Property.property_manager_id != manager.id
        ).first()
        if other_manager is not None:
            raise ConflictError('This homeowner is already assigned to another property manager')

    if homeowner is not None and homeowner.is_active:
        property.homeowner_id = homeowner.id
        property.homeowner_invitation_status = 'accepted'
        db.session.commit()
        logger.info("Homeowner %s assigned to property %s", homeowner.id, property.id)
        return property, homeowner, None

    if homeowner is None:
        homeowner = User(email=email, name=name, phone=phone, address=address,
                         role='homeowner', is_active=False)
        homeowner.set_unusable_password()
        db.session.add(homeowner)
        db.session.flush()

    token = homeowner.issue_invitation(_ttl(), property_id=property.id)
    property.homeowner_id = homeowner.id
    property.homeowner_invitation_status = 'pending'
    property.pending_homeowner_name = name
    property.pending_homeowner_email = email
    property.pending_homeowner_phone = phone
    property.pending_homeowner_address = address
    db.session.commit()
    logger.info("Homeowner invitation issued to %s for property %s", email, property.id)

    notify(homeowner, 'homeowner_invitation', {
        'name': name,
        'property_address': property.address,
        'invitation_link': _invitation_link('accept-invitation', token),
        'ttl_days': current_app.config['INVITATION_TTL_DAYS'],
    })
    return property, homeowner, token


def verify_homeowner_invitation(token):
    homeowner, invitation = _find_invitee(token, InvitationKind.HOMEOWNER)
    properties = homeowner.owned_properties.filter(Property.homeowner_invitation_status == 'pending').all()
    return homeowner, invitation, properties


def accept_homeowner_invitation(token, password):
    _check_password(password)
    homeowner, invitation = _find_invitee(token, InvitationKind.HOMEOWNER)

    homeowner.set_password(password)
    homeowner.is_active = True
    homeowner.clear_invitation()
    properties = homeowner.owned_properties.filter(Property.homeowner_invitation_status == 'pending').all()
    for property in properties:
        property.homeowner_invitation_status = 'accepted'
    db.session.commit()
    logger.info("Homeowner %s accepted invitation for %s property(ies)", homeowner.id, len(properties))
    return homeowner, invitation.accepted(), properties


# Tenant flow

def invite_tenant(manager, unit_id, data):
    """
    Reserve a vacant unit for a tenant and send them the invitation.

    The invitation is committed before the unit is reserved. The reservation
    is a compare-and-set on ``vacant``; losing that race withdraws the
    invitation again and raises ConflictError.
    """
    require_fields(data, 'name', 'email', 'move_in_date', 'lease_duration')
    unit = get_unit(unit_id)
    property = get_managed_property(unit.property_id, manager)

    email = _clean_email(data)
    move_in_date = parse_date(data['move_in_date'], 'move_in_date')
    lease_duration = parse_int(data['lease_duration'], 'lease_duration', minimum=1, maximum=120)

    tenant = User.query.filter_by(email=email).first()
    if tenant is not None:
        if not tenant.is_tenant():
            raise ConflictError('This email belongs to an account that is not a tenant')
        if has_active_lease(tenant.id):
            raise ConflictError('This tenant already has an active lease')
        invitation = tenant.invitation
        if invitation.is_outstanding:
            raise ConflictError('This tenant already has an outstanding invitation')
        if invitation.state == InvitationState.EXPIRED:
            # may hand this very unit back before the vacancy check below
            reclaimed = release_reservation(tenant)
            db.session.commit()
            if reclaimed is not None:
                update_property_status(reclaimed)

    if unit.status != 'vacant':
        raise ConflictError(f'Unit is {unit.status}, only vacant units can be offered')

    if tenant is None:
        tenant = User(email=email, name=sanitize_string(data['name']),
                      phone=sanitize_string(data.get('phone', '')), role='tenant', is_active=False)
        tenant.set_unusable_password()
        db.session.add(tenant)

    token = tenant.issue_invitation(_ttl(), unit_id=unit.id, property_id=property.id,
                                    move_in_date=move_in_date, lease_duration=lease_duration)
    db.session.commit()

    matched = Unit.query.filter(Unit.id == unit.id, Unit.status == 'vacant').update(
        {'status': 'reserved'}, synchronize_session='fetch'
    )
    if matched != 1:
        db.session.rollback()
        tenant.clear_invitation()
        db.session.commit()
        raise ConflictError('Unit was taken while the invitation was being issued')
    db.session.commit()
    logger.info("Unit %s reserved for %s until %s", unit.id, email, tenant.invitation_expires)

    update_property_status(property.id)
    notify(tenant, 'tenant_invitation', {
        'name': tenant.name,
        'unit_number': unit.unit_number,
        'property_address': property.address,
        'move_in_date': move_in_date.isoformat(),
        'lease_duration': lease_duration,
        'invitation_link': _invitation_link('accept-tenant-invitation', token),
        'ttl_days': current_app.config['INVITATION_TTL_DAYS'],
    })
    return tenant, tenant.invitation, token


def verify_tenant_invitation(token):
    tenant, invitation = _find_invitee(token, InvitationKind.TENANT)
    unit = db.session.get(Unit, invitation.unit_id) if invitation.unit_id else None
    return tenant, invitation, unit


def accept_tenant_invitation(token, password):
    """
    Turn a pending tenant invitation into a lease.

    The unit must still be reserved; if the reservation was swept in the
    meantime the lease is refused and nothing changes.
    """
    _check_password(password)
    tenant, invitation = _find_invitee(token, InvitationKind.TENANT)
    if not invitation.reserves_unit:
        raise ValidationError(INVALID_TOKEN)

    unit = get_unit(invitation.unit_id)
    lease = issue_lease(tenant, unit, invitation.move_in_date, invitation.lease_duration,
                        expected_status='reserved')

    tenant.set_password(password)
    tenant.is_active = True
    tenant.clear_invitation()
    db.session.commit()
    logger.info("Tenant %s accepted invitation, lease %s issued", tenant.id, lease.id)

    update_property_status(lease.property_id)
    return tenant, lease, invitation.accepted()

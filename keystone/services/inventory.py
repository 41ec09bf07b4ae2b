"""Inventory registry: properties and their units.

Every mutation that can move a unit's status re-derives the parent
property's status afterwards.
"""
import logging

from sqlalchemy.exc import IntegrityError

from keystone import db
from keystone.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from keystone.models.property import Property, PROPERTY_TYPES
from keystone.models.unit import Unit, UNIT_TYPES, MANUAL_UNIT_STATUSES
from keystone.models.user import User
from keystone.services.property_status import update_property_status
from keystone.utils.sanitizers import sanitize_optional, sanitize_string
from keystone.utils.validators import parse_choice, parse_int, parse_money, require_fields

logger = logging.getLogger(__name__)

PROPERTY_EDITABLE_FIELDS = ('address', 'city', 'state', 'property_type', 'bedrooms', 'bathrooms',
                            'description', 'rent_amount')
UNIT_EDITABLE_FIELDS = ('unit_number', 'unit_type', 'bedrooms', 'bathrooms', 'square_feet', 'floor',
                        'annual_rent', 'features', 'description', 'status')


def get_property(property_id):
    property = db.session.get(Property, property_id)
    if property is None:
        raise NotFoundError('Property not found')
    return property


def get_unit(unit_id):
    unit = db.session.get(Unit, unit_id)
    if unit is None:
        raise NotFoundError('Unit not found')
    return unit


def get_managed_property(property_id, manager):
    property = get_property(property_id)
    if not property.is_managed_by(manager):
        raise AuthorizationError('Property is not under your management')
    return property


def properties_visible_to(user):
    """Query of the properties a user has a relationship with"""
    if user.is_property_manager():
        return Property.query.filter(Property.property_manager_id == user.id)
    if user.is_homeowner():
        return Property.query.filter(Property.homeowner_id == user.id)
    return Property.query.filter(Property.units.any(Unit.status == 'vacant'))


def property_ids_visible_to(user):
    return [pid for (pid,) in properties_visible_to(user).with_entities(Property.id)]


def get_property_for(property_id, user):
    property = get_property(property_id)
    if user.is_tenant() or property.can_be_reviewed_by(user):
        return property
    raise AuthorizationError('Not authorized to view this property')


def _apply_property_fields(property, data, fields):
    for field in fields:
        if field not in data:
            continue
        value = data[field]
        if field == 'property_type':
            value = parse_choice(value, field, PROPERTY_TYPES)
        elif field in ('bedrooms', 'bathrooms'):
            value = parse_int(value, field, minimum=0)
        elif field == 'rent_amount':
            value = parse_money(value, field, default=0)
        elif field == 'description':
            value = sanitize_optional(value)
        else:
            value = sanitize_string(value)
            if not value:
                raise ValidationError(f'{field} cannot be blank')
        setattr(property, field, value)


def create_property(manager, data):
    require_fields(data, 'address', 'city', 'state', 'property_type')
    property = Property(
        property_manager_id=manager.id,
        homeowner_id=None,
        homeowner_invitation_status='none',
        status='vacant',
    )
    _apply_property_fields(property, data, PROPERTY_EDITABLE_FIELDS)
    db.session.add(property)
    db.session.commit()
    logger.info("Property %s created by manager %s", property.id, manager.id)
    return property


def update_property(property_id, manager, data):
    """Address and financial edits; manager and derived status are not editable"""
    property = get_managed_property(property_id, manager)
    _apply_property_fields(property, data, PROPERTY_EDITABLE_FIELDS)
    db.session.commit()
    return property


def delete_property(property_id, manager):
    property = get_managed_property(property_id, manager)
    if property.units.filter(Unit.status == 'occupied').count():
        raise ConflictError('Cannot delete a property with occupied units. Terminate the leases first.')

    unit_ids = [uid for (uid,) in property.units.with_entities(Unit.id)]
    for invitee in User.query.filter(
        db.or_(User.pending_property_id == property.id, User.pending_unit_id.in_(unit_ids))
    ):
        invitee.clear_invitation()

    db.session.delete(property)
    db.session.commit()
    logger.info("Property %s deleted by manager %s", property_id, manager.id)


def _unit_number_taken(property_id, unit_number, exclude_unit_id=None):
    query = Unit.query.filter(Unit.property_id == property_id, Unit.unit_number == unit_number)
    if exclude_unit_id is not None:
        query = query.filter(Unit.id != exclude_unit_id)
    return db.session.query(query.exists()).scalar()


def _commit_unit():
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError('Unit number already exists for this property')


def _apply_unit_fields(unit, data):
    for field in UNIT_EDITABLE_FIELDS:
        if field not in data or field == 'status':
            continue
        value = data[field]
        if field == 'unit_number':
            value = sanitize_string(value)
            if not value:
                raise ValidationError('unit_number cannot be blank')
        elif field == 'unit_type':
            value = parse_choice(value, field, UNIT_TYPES)
        elif field in ('bedrooms', 'bathrooms', 'square_feet'):
            value = parse_int(value, field, minimum=0, default=0 if field != 'square_feet' else None)
        elif field == 'floor':
            value = parse_int(value, field)
        elif field == 'annual_rent':
            value = parse_money(value, field)
            if value is None:
                raise ValidationError('annual_rent is required')
        elif field == 'features':
            if not isinstance(value, list):
                raise ValidationError('features must be a list')
            value = [sanitize_string(item) for item in value if sanitize_string(item)]
        elif field == 'description':
            value = sanitize_optional(value)
        setattr(unit, field, value)


def create_unit(manager, data):
    require_fields(data, 'property_id', 'unit_number', 'unit_type', 'annual_rent')
    property = get_managed_property(parse_int(data['property_id'], 'property_id'), manager)

    status = data.get('status', 'vacant')
    parse_choice(status, 'status', MANUAL_UNIT_STATUSES)

    unit = Unit(property_id=property.id, status=status)
    _apply_unit_fields(unit, data)

    if _unit_number_taken(property.id, unit.unit_number):
        raise ValidationError('Unit number already exists for this property')

    db.session.add(unit)
    _commit_unit()
    logger.info("Unit %s (%s) created on property %s", unit.id, unit.unit_number, property.id)

    update_property_status(property.id)
    return unit


def update_unit(unit_id, manager, data):
    unit = get_unit(unit_id)
    property = get_managed_property(unit.property_id, manager)

    if 'unit_number' in data:
        unit_number = sanitize_string(data['unit_number'])
        if unit_number and _unit_number_taken(property.id, unit_number, exclude_unit_id=unit.id):
            raise ValidationError('Unit number already exists for this property')

    new_status = data.get('status')
    status_changes = new_status is not None and new_status != unit.status
    if status_changes:
        parse_choice(new_status, 'status', MANUAL_UNIT_STATUSES)
        if unit.status not in MANUAL_UNIT_STATUSES:
            raise ConflictError(f'A {unit.status} unit cannot be changed by hand')

    _apply_unit_fields(unit, data)
    if status_changes:
        _compare_and_set_status(unit, unit.status, new_status)

    _commit_unit()
    update_property_status(property.id)
    return unit


def _compare_and_set_status(unit, expected, new_status):
    matched = Unit.query.filter(Unit.id == unit.id, Unit.status == expected).update(
        {'status': new_status}, synchronize_session='fetch'
    )
    if matched != 1:
        db.session.rollback()
        raise ConflictError('Unit status changed concurrently, reload and retry')


def delete_unit(unit_id, manager):
    unit = get_unit(unit_id)
    property = get_managed_property(unit.property_id, manager)

    if unit.status == 'occupied':
        raise ConflictError('Cannot delete an occupied unit. Terminate the lease first.')

    # A reserved unit takes its invitation with it
    for invitee in User.query.filter(User.pending_unit_id == unit.id):
        logger.info("Withdrawing invitation for %s, unit %s deleted", invitee.email, unit.id)
        invitee.clear_invitation()

    db.session.delete(unit)
    db.session.commit()
    logger.info("Unit %s deleted from property %s", unit_id, property.id)

    update_property_status(property.id)


def list_units(property_id, user):
    property = get_property_for(property_id, user)
    return property.units.order_by(Unit.unit_number).all()


def list_vacant_units(property_id):
    get_property(property_id)
    return Unit.query.filter(Unit.property_id == property_id, Unit.status == 'vacant') \
        .order_by(Unit.unit_number).all()


def browse_vacant_units():
    return Unit.query.join(Property).filter(Unit.status == 'vacant') \
        .order_by(Property.address, Unit.unit_number).all()

import logging

from keystone import db
from keystone.models.property import Property
from keystone.models.unit import Unit

logger = logging.getLogger(__name__)

LEASED_OR_HELD = frozenset({'occupied', 'reserved'})


def derive_property_status(unit_statuses):
    """
    Roll a property's unit statuses up into the property status.

    Returns None for an empty inventory (nothing to infer, keep the stored
    status). Any vacant unit makes the property vacant; a property whose
    units are all occupied or reserved is occupied; anything else, i.e. a mix
    that includes maintenance, is maintenance.
    """
    statuses = list(unit_statuses)
    if not statuses:
        return None
    if any(status == 'vacant' for status in statuses):
        return 'vacant'
    if all(status in LEASED_OR_HELD for status in statuses):
        return 'occupied'
    return 'maintenance'


def update_property_status(property_id):
    """Recompute and persist the stored status; returns the new status or None."""
    property = db.session.get(Property, property_id)
    if property is None:
        logger.warning("Property %s not found while updating status", property_id)
        return None

    statuses = [status for (status,) in db.session.query(Unit.status).filter(Unit.property_id == property_id)]
    new_status = derive_property_status(statuses)
    if new_status is None:
        return property.status

    if property.status != new_status:
        logger.info("Property %s (%s) status %s -> %s", property.id, property.address, property.status, new_status)
        property.status = new_status
        db.session.commit()
    return new_status

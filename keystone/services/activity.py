"""Per-property activity feed: announcements plus recent maintenance."""
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import or_

from keystone.errors import AuthorizationError
from keystone.models.maintenance_request import MaintenanceRequest
from keystone.services.announcements import for_property, leased_property_ids
from keystone.services.inventory import get_property


def property_feed(property_id, user, now=None):
    """
    Announcements for the property and its maintenance requests, newest first.

    Requests that are still open are always listed; resolved ones only while
    they are inside the retention window the sweeper keeps them for.
    Maintenance entries are dated by resolution when resolved.
    """
    property = get_property(property_id)
    if not property.can_be_reviewed_by(user) and property.id not in leased_property_ids(user):
        raise AuthorizationError("Not authorized to view this property's activity")

    cutoff = (now or datetime.utcnow()) - timedelta(days=current_app.config['RETENTION_DAYS'])
    requests = MaintenanceRequest.query.filter(
        MaintenanceRequest.property_id == property.id,
        or_(MaintenanceRequest.status != 'resolved', MaintenanceRequest.resolved_at >= cutoff),
    ).all()

    activities = []
    for announcement in for_property(property.id):
        activities.append((announcement.created_at, 'announcement', announcement.to_dict(viewer=user)))
    for maintenance_request in requests:
        entry = maintenance_request.to_dict()
        entry['tenant_name'] = maintenance_request.tenant.name if maintenance_request.tenant else None
        activities.append((maintenance_request.resolved_at or maintenance_request.created_at, 'maintenance', entry))

    activities.sort(key=lambda item: item[0], reverse=True)
    return [
        dict(entry, activity_type=kind, activity_date=when.isoformat())
        for when, kind, entry in activities
    ]

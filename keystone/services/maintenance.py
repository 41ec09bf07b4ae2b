"""Maintenance requests raised by tenants against their leased unit."""
import logging

from keystone import db
from keystone.errors import AuthorizationError, ConflictError, NotFoundError
from keystone.models.lease import Lease
from keystone.models.maintenance_request import (
    MaintenanceRequest, MAINTENANCE_CATEGORIES, MAINTENANCE_PRIORITIES, MAINTENANCE_STATUSES,
)
from keystone.services.inventory import get_property, property_ids_visible_to
from keystone.services.notifier import notify
from keystone.utils.sanitizers import sanitize_optional, sanitize_string
from keystone.utils.validators import parse_choice, parse_int, require_fields

logger = logging.getLogger(__name__)


def get_request(request_id):
    maintenance_request = db.session.get(MaintenanceRequest, request_id)
    if maintenance_request is None:
        raise NotFoundError('Maintenance request not found')
    return maintenance_request


def get_request_for(request_id, user):
    """The reporting tenant and the property's manager or homeowner may view a request"""
    maintenance_request = get_request(request_id)
    if maintenance_request.tenant_id == user.id or maintenance_request.property.can_be_reviewed_by(user):
        return maintenance_request
    raise AuthorizationError('Not authorized to view this request')


def create_request(tenant, data):
    require_fields(data, 'property_id', 'title', 'description', 'category')
    property = get_property(parse_int(data['property_id'], 'property_id'))

    lease = Lease.query.filter(
        Lease.tenant_id == tenant.id,
        Lease.property_id == property.id,
        Lease.status == 'active',
    ).first()
    if lease is None:
        raise AuthorizationError('You need an active lease at this property to report an issue')

    maintenance_request = MaintenanceRequest(
        property_id=property.id,
        unit_id=lease.unit_id,
        tenant_id=tenant.id,
        title=sanitize_string(data['title'])[:100],
        description=sanitize_string(data['description']),
        category=parse_choice(data['category'], 'category', MAINTENANCE_CATEGORIES),
        priority=parse_choice(data.get('priority', 'medium'), 'priority', MAINTENANCE_PRIORITIES),
        status='submitted',
    )
    db.session.add(maintenance_request)
    db.session.commit()
    logger.info("Maintenance request %s opened by tenant %s", maintenance_request.id, tenant.id)

    if property.property_manager is not None:
        notify(property.property_manager, 'maintenance_submitted', {
            'tenant_name': tenant.name,
            'priority': maintenance_request.priority,
            'category': maintenance_request.category,
            'property_address': property.address,
            'title': maintenance_request.title,
        })
    return maintenance_request


def update_status(request_id, user, status, resolution_notes=None):
    maintenance_request = get_request(request_id)
    if not maintenance_request.property.can_be_reviewed_by(user):
        raise AuthorizationError('Not authorized to update this request')
    parse_choice(status, 'status', MAINTENANCE_STATUSES)
    if maintenance_request.status in ('resolved', 'cancelled') and status == maintenance_request.status:
        raise ConflictError(f'Request is already {status}')

    maintenance_request.set_status(status, sanitize_optional(resolution_notes))
    db.session.commit()
    logger.info("Maintenance request %s -> %s", maintenance_request.id, status)

    if status == 'resolved':
        notify(maintenance_request.tenant, 'maintenance_resolved', {
            'title': maintenance_request.title,
            'resolution_notes': maintenance_request.resolution_notes,
        })
    return maintenance_request


def list_requests_for(user, status=None):
    query = MaintenanceRequest.query
    if user.is_tenant():
        query = query.filter(MaintenanceRequest.tenant_id == user.id)
    else:
        query = query.filter(MaintenanceRequest.property_id.in_(property_ids_visible_to(user)))
    if status and status != 'all':
        query = query.filter(MaintenanceRequest.status == status)
    return query.order_by(MaintenanceRequest.created_at.desc()).all()

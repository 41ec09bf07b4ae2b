"""Application intake and review.

pending -> under_review -> approved | rejected, and pending/under_review ->
withdrawn by the applicant. Approval issues the lease and rejects every
other open application for the same unit.
"""
from datetime import datetime
import logging

from keystone import db
from keystone.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from keystone.models.application import (
    Application, EMPLOYMENT_STATUSES, LEASE_DURATIONS, OPEN_APPLICATION_STATUSES,
)
from keystone.services.inventory import get_property, get_unit, property_ids_visible_to
from keystone.services.leases import issue_lease
from keystone.services.notifier import notify
from keystone.services.property_status import update_property_status
from keystone.utils.sanitizers import sanitize_optional, sanitize_string
from keystone.utils.validators import (
    parse_bool, parse_choice, parse_date, parse_int, parse_money, require_fields,
)

logger = logging.getLogger(__name__)

REVIEW_DECISIONS = ('under_review', 'approved', 'rejected')
LEASED_ELSEWHERE_NOTE = 'Unit has been leased to another tenant'


def get_application(application_id):
    application = db.session.get(Application, application_id)
    if application is None:
        raise NotFoundError('Application not found')
    return application


def _block_reason_for(tenant_id, property_id):
    """Reason recorded on the tenant's blocking application for the property, if any"""
    blocked = Application.query.filter(
        Application.tenant_id == tenant_id,
        Application.property_id == property_id,
        Application.blocked_from_property.is_(True),
    ).order_by(Application.reviewed_at.desc()).first()
    if blocked is None:
        return None
    return blocked.block_reason or 'No reason given'


def submit_application(tenant, data):
    require_fields(data, 'property_id', 'unit_id', 'move_in_date', 'lease_duration',
                   'employment_status', 'emergency_contact_name', 'emergency_contact_phone')

    property = get_property(parse_int(data['property_id'], 'property_id'))
    unit = get_unit(parse_int(data['unit_id'], 'unit_id'))
    if unit.property_id != property.id:
        raise ValidationError('Unit does not belong to this property')

    lease_duration = parse_choice(parse_int(data['lease_duration'], 'lease_duration'),
                                  'lease_duration', LEASE_DURATIONS)
    employment_status = parse_choice(data['employment_status'], 'employment_status', EMPLOYMENT_STATUSES)
    move_in_date = parse_date(data['move_in_date'], 'move_in_date')

    block_reason = _block_reason_for(tenant.id, property.id)
    if block_reason is not None:
        raise ConflictError(f'You are blocked from applying to this property: {block_reason}')

    if unit.status != 'vacant':
        raise ConflictError('This unit is not available')

    duplicate = Application.query.filter(
        Application.tenant_id == tenant.id,
        Application.property_id == property.id,
        Application.status.in_(OPEN_APPLICATION_STATUSES),
    ).first()
    if duplicate is not None:
        raise ConflictError('You already have an open application for this property')

    application = Application(
        tenant_id=tenant.id,
        property_id=property.id,
        unit_id=unit.id,
        move_in_date=move_in_date,
        lease_duration=lease_duration,
        employment_status=employment_status,
        employer=sanitize_optional(data.get('employer')),
        monthly_income=parse_money(data.get('monthly_income'), 'monthly_income'),
        emergency_contact_name=sanitize_string(data['emergency_contact_name']),
        emergency_contact_phone=sanitize_string(data['emergency_contact_phone']),
        number_of_occupants=parse_int(data.get('number_of_occupants'), 'number_of_occupants',
                                      minimum=1, default=1),
        has_pets=parse_bool(data.get('has_pets', False)),
        pet_details=sanitize_optional(data.get('pet_details')),
        additional_notes=sanitize_optional(data.get('additional_notes')),
        status='pending',
    )
    db.session.add(application)
    db.session.commit()
    logger.info("Application %s submitted by tenant %s for unit %s", application.id, tenant.id, unit.id)

    manager = property.property_manager
    if manager is not None and not notify(manager, 'application_submitted', {
        'tenant_name': tenant.name,
        'tenant_email': tenant.email,
        'unit_number': unit.unit_number,
        'property_address': property.address,
    }):
        logger.warning("Manager of property %s was not notified of application %s", property.id, application.id)

    return application


def _reject_competitors(application, now):
    """Force-reject every other open application for the approved unit; returns the count"""
    competitors = Application.query.filter(
        Application.unit_id == application.unit_id,
        Application.id != application.id,
        Application.status.in_(OPEN_APPLICATION_STATUSES),
    ).all()
    for competitor in competitors:
        competitor.status = 'rejected'
        competitor.review_notes = LEASED_ELSEWHERE_NOTE
        competitor.reviewed_at = now
    return len(competitors)


def review_application(application_id, reviewer, status, review_notes=None,
                       block_tenant=False, block_reason=None):
    """
    Record a review decision.

    Approving issues the lease against a vacant unit in the same transaction
    as the decision; if the unit is gone the whole review is rolled back.
    """
    application = get_application(application_id)
    property = application.property
    if not property.can_be_reviewed_by(reviewer):
        raise AuthorizationError('Not authorized to review this application')

    parse_choice(status, 'status', REVIEW_DECISIONS)
    if not application.is_open():
        raise ConflictError(f'Application has already been {application.status}')
    if status == 'under_review' and application.status != 'pending':
        raise ConflictError('Only pending applications can be moved to under review')

    block_reason = sanitize_optional(block_reason)
    if block_tenant:
        if status != 'rejected':
            raise ValidationError('A tenant can only be blocked when rejecting')
        if not block_reason:
            raise ValidationError('A reason is required to block a tenant')

    now = datetime.utcnow()
    application.status = status
    application.review_notes = sanitize_optional(review_notes)
    application.reviewed_by = reviewer.id
    application.reviewed_at = now
    if block_tenant:
        application.blocked_from_property = True
        application.block_reason = block_reason

    lease = None
    if status == 'approved':
        unit = application.unit
        if unit.status != 'vacant':
            db.session.rollback()
            raise ConflictError('This unit is no longer available')
        lease = issue_lease(application.tenant, unit, application.move_in_date,
                            application.lease_duration, expected_status='vacant',
                            application=application)
        rejected = _reject_competitors(application, now)
        if rejected:
            logger.info("Rejected %s competing application(s) for unit %s", rejected, unit.id)

    db.session.commit()
    logger.info("Application %s %s by %s", application.id, status, reviewer.id)

    if lease is not None:
        update_property_status(application.property_id)
        notify(application.tenant, 'application_approved', {
            'name': application.tenant.name,
            'unit_number': application.unit.unit_number,
            'property_address': property.address,
            'start_date': lease.start_date.isoformat(),
            'end_date': lease.end_date.isoformat(),
            'monthly_rent': str(lease.monthly_rent),
            'security_deposit': str(lease.security_deposit),
        })

    return application, lease


def withdraw_application(application_id, tenant):
    application = get_application(application_id)
    if application.tenant_id != tenant.id:
        raise AuthorizationError('You can only withdraw your own applications')
    if not application.is_open():
        raise ConflictError(f'Application has already been {application.status}')

    application.status = 'withdrawn'
    db.session.commit()
    logger.info("Application %s withdrawn by tenant %s", application.id, tenant.id)
    return application


def list_applications_for(user, status=None):
    query = Application.query
    if user.is_tenant():
        query = query.filter(Application.tenant_id == user.id)
    else:
        query = query.filter(Application.property_id.in_(property_ids_visible_to(user)))
    if status and status != 'all':
        query = query.filter(Application.status == status)
    return query.order_by(Application.created_at.desc()).all()


def get_application_for(application_id, user):
    application = get_application(application_id)
    if application.tenant_id == user.id or application.property.can_be_reviewed_by(user):
        return application
    raise AuthorizationError('Not authorized to view this application')

"""Lease issuance and termination.

``issue_lease`` is the only code path that turns a unit ``occupied``. It
stages the lease row and the unit flip in the caller's transaction; the
caller commits both together and re-derives the property status afterwards.
"""
from collections import namedtuple
from decimal import Decimal, ROUND_HALF_UP
import logging

from dateutil.relativedelta import relativedelta
from sqlalchemy.exc import IntegrityError

from keystone import db
from keystone.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from keystone.models.lease import Lease
from keystone.models.unit import Unit
from keystone.services.inventory import get_property, property_ids_visible_to
from keystone.services.property_status import update_property_status

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')
DEPOSIT_MONTHS = 2

LeaseTerms = namedtuple('LeaseTerms', 'start_date end_date monthly_rent security_deposit')


def compute_lease_terms(move_in_date, lease_duration, annual_rent):
    """End date is move-in plus whole calendar months; rent is a twelfth of the annual rent."""
    if lease_duration is None or lease_duration < 1:
        raise ValidationError('Lease duration must be at least one month')
    monthly_rent = (Decimal(annual_rent) / 12).quantize(CENTS, rounding=ROUND_HALF_UP)
    return LeaseTerms(
        start_date=move_in_date,
        end_date=move_in_date + relativedelta(months=lease_duration),
        monthly_rent=monthly_rent,
        security_deposit=monthly_rent * DEPOSIT_MONTHS,
    )


def has_active_lease(tenant_id):
    return db.session.query(
        Lease.query.filter(Lease.tenant_id == tenant_id, Lease.status == 'active').exists()
    ).scalar()


def issue_lease(tenant, unit, move_in_date, lease_duration, expected_status, application=None):
    """
    Stage a lease for ``unit`` and flip it to occupied.

    The unit only moves if it is still in ``expected_status`` ('vacant' for
    an approved application, 'reserved' for an accepted invitation); otherwise
    the whole unit of work is rolled back and a ConflictError is raised.
    """
    active = Lease.query.filter(Lease.unit_id == unit.id, Lease.status == 'active').first()
    if active is not None:
        db.session.rollback()
        raise ConflictError('This unit already has an active lease')

    terms = compute_lease_terms(move_in_date, lease_duration, unit.annual_rent)
    lease = Lease(
        tenant_id=tenant.id,
        property_id=unit.property_id,
        unit_id=unit.id,
        application_id=application.id if application is not None else None,
        start_date=terms.start_date,
        end_date=terms.end_date,
        lease_duration=lease_duration,
        monthly_rent=terms.monthly_rent,
        security_deposit=terms.security_deposit,
        status='active',
    )
    db.session.add(lease)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError('This unit already has an active lease')

    matched = Unit.query.filter(Unit.id == unit.id, Unit.status == expected_status).update(
        {'status': 'occupied', 'current_tenant_id': tenant.id, 'current_lease_id': lease.id},
        synchronize_session='fetch',
    )
    if matched != 1:
        db.session.rollback()
        raise ConflictError('Unit is no longer available')

    logger.info("Lease %s staged: tenant %s, unit %s, %s to %s at %s/month",
                lease.id, tenant.id, unit.id, terms.start_date, terms.end_date, terms.monthly_rent)
    return lease


def get_lease(lease_id):
    lease = db.session.get(Lease, lease_id)
    if lease is None:
        raise NotFoundError('Lease not found')
    return lease


def _can_view(lease, user):
    return lease.tenant_id == user.id or lease.property.can_be_reviewed_by(user)


def get_lease_for(lease_id, user):
    lease = get_lease(lease_id)
    if not _can_view(lease, user):
        raise AuthorizationError('Not authorized to view this lease')
    return lease


def list_leases_for(user):
    query = Lease.query
    if user.is_tenant():
        query = query.filter(Lease.tenant_id == user.id)
    else:
        query = query.filter(Lease.property_id.in_(property_ids_visible_to(user)))
    return query.order_by(Lease.created_at.desc()).all()


def list_property_leases(property_id, user):
    """Current and past tenancies of a property"""
    property = get_property(property_id)
    if not property.can_be_reviewed_by(user):
        raise AuthorizationError('Not authorized')
    return property.leases.order_by(Lease.start_date.desc()).all()


def terminate_lease(lease_id, user, reason=None):
    lease = get_lease(lease_id)
    if not lease.property.can_be_reviewed_by(user):
        raise AuthorizationError('Not authorized')
    if lease.status != 'active':
        raise ConflictError(f'Only active leases can be terminated (lease is {lease.status})')

    lease.terminate(reason)
    unit = lease.unit
    if unit is not None and unit.current_lease_id == lease.id:
        unit.status = 'vacant'
        unit.current_tenant_id = None
        unit.current_lease_id = None

    db.session.commit()
    logger.info("Lease %s terminated by %s", lease.id, user.id)

    update_property_status(lease.property_id)
    return lease

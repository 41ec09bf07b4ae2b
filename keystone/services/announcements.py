import logging

from keystone import db
from keystone.errors import AuthorizationError, NotFoundError, ValidationError
from keystone.models.announcement import (
    Announcement, AnnouncementRead, ANNOUNCEMENT_TYPES, announcement_properties,
)
from keystone.models.lease import Lease
from keystone.models.property import Property
from keystone.services.inventory import properties_visible_to, property_ids_visible_to
from keystone.utils.sanitizers import sanitize_string
from keystone.utils.validators import parse_choice, require_fields

logger = logging.getLogger(__name__)


def get_announcement(announcement_id):
    announcement = db.session.get(Announcement, announcement_id)
    if announcement is None:
        raise NotFoundError('Announcement not found')
    return announcement


def leased_property_ids(tenant):
    return [pid for (pid,) in db.session.query(Lease.property_id).filter(
        Lease.tenant_id == tenant.id, Lease.status == 'active')]


def audience_property_ids(user):
    """Properties whose announcements ``user`` receives"""
    if user.is_tenant():
        return leased_property_ids(user)
    return property_ids_visible_to(user)


def create_announcement(author, data):
    """
    Post to some or, when no property ids are given, all of the author's properties.

    Managers announce to the properties they manage, homeowners to the
    properties they own.
    """
    require_fields(data, 'title', 'message')
    own = properties_visible_to(author)

    property_ids = data.get('property_ids') or []
    if not isinstance(property_ids, list):
        raise ValidationError('property_ids must be a list')
    if property_ids:
        targets = own.filter(Property.id.in_(property_ids)).all()
        if len(targets) != len(set(property_ids)):
            raise AuthorizationError('You can only announce to your own properties')
    else:
        targets = own.all()
    if not targets:
        raise ValidationError('You have no properties to announce to')

    announcement = Announcement(
        created_by=author.id,
        title=sanitize_string(data['title'])[:100],
        message=sanitize_string(data['message']),
        announcement_type=parse_choice(data.get('announcement_type', 'general'),
                                       'announcement_type', ANNOUNCEMENT_TYPES),
        target_properties=targets,
    )
    db.session.add(announcement)
    db.session.commit()
    logger.info("Announcement %s posted by %s to %s property(ies)", announcement.id, author.id, len(targets))
    return announcement


def for_property(property_id):
    return Announcement.query.join(announcement_properties) \
        .filter(announcement_properties.c.property_id == property_id) \
        .order_by(Announcement.created_at.desc()).all()


def list_announcements_for(user):
    if user.is_property_manager():
        return Announcement.query.filter(Announcement.created_by == user.id) \
            .order_by(Announcement.created_at.desc()).all()

    return Announcement.query.join(announcement_properties) \
        .filter(announcement_properties.c.property_id.in_(audience_property_ids(user))) \
        .distinct().order_by(Announcement.created_at.desc()).all()


def mark_read(announcement_id, user):
    """Record that ``user`` has read the announcement; reading twice keeps the first read time"""
    announcement = get_announcement(announcement_id)
    audience = set(audience_property_ids(user))
    if announcement.created_by != user.id and not audience.intersection(p.id for p in announcement.target_properties):
        raise AuthorizationError('This announcement was not sent to you')

    if not announcement.is_read_by(user):
        announcement.reads.append(AnnouncementRead(user_id=user.id))
        db.session.commit()
    return announcement


def delete_announcement(announcement_id, author):
    announcement = get_announcement(announcement_id)
    if announcement.created_by != author.id:
        raise AuthorizationError('You can only delete your own announcements')
    db.session.delete(announcement)
    db.session.commit()

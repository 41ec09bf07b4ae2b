"""Periodic cleanup of aged records and lapsed invitations.

``ExpirySweeper`` runs the passes once when the app starts and then every
``SWEEP_INTERVAL_HOURS`` on a daemon thread. The same passes are available
as ``flask sweep``.
"""
from collections import namedtuple
from datetime import datetime, timedelta
import logging
import threading

import click
from flask import current_app

from keystone import db
from keystone.models.announcement import Announcement
from keystone.models.maintenance_request import MaintenanceRequest
from keystone.models.user import User
from keystone.services.invitations import release_reservation
from keystone.services.property_status import update_property_status

logger = logging.getLogger(__name__)

InvitationSweep = namedtuple('InvitationSweep', ['cleared', 'reclaimed'])


def _retention(retention_days):
    if retention_days is None:
        retention_days = current_app.config['RETENTION_DAYS']
    return timedelta(days=retention_days)


def cleanup_old_maintenance(now=None, retention_days=None):
    """Delete resolved maintenance requests resolved before the retention window"""
    try:
        cutoff = (now or datetime.utcnow()) - _retention(retention_days)
        deleted = MaintenanceRequest.query.filter(
            MaintenanceRequest.status == 'resolved',
            MaintenanceRequest.resolved_at < cutoff,
        ).delete(synchronize_session=False)
        db.session.commit()
        if deleted:
            logger.info("Deleted %s resolved maintenance request(s)", deleted)
        return deleted
    except Exception:
        logger.exception("Maintenance cleanup failed")
        db.session.rollback()
        return 0


def cleanup_old_announcements(now=None, retention_days=None):
    """Delete announcements created before the retention window"""
    try:
        cutoff = (now or datetime.utcnow()) - _retention(retention_days)
        old = Announcement.query.filter(Announcement.created_at < cutoff).all()
        for announcement in old:
            db.session.delete(announcement)
        db.session.commit()
        if old:
            logger.info("Deleted %s old announcement(s)", len(old))
        return len(old)
    except Exception:
        logger.exception("Announcement cleanup failed")
        db.session.rollback()
        return 0


def cleanup_expired_invitations(now=None):
    """
    Clear lapsed tenant invitations, reclaiming units they still hold.

    Homeowner invitations are left in place; the property keeps pointing at
    the invitee and the manager re-invites to issue a fresh token.
    Returns an ``InvitationSweep`` of invitations cleared and units reclaimed.
    """
    try:
        now = now or datetime.utcnow()
        lapsed = User.query.filter(
            User.role == 'tenant',
            User.invitation_token.isnot(None),
            User.invitation_expires < now,
        ).all()

        reclaimed = 0
        touched_properties = set()
        for user in lapsed:
            property_id = release_reservation(user)
            if property_id is not None:
                reclaimed += 1
                touched_properties.add(property_id)
        db.session.commit()

        for property_id in touched_properties:
            update_property_status(property_id)

        if lapsed:
            logger.info("Cleared %s expired invitation(s), reclaimed %s unit(s) on %s property(ies)",
                        len(lapsed), reclaimed, len(touched_properties))
        return InvitationSweep(len(lapsed), reclaimed)
    except Exception:
        logger.exception("Invitation cleanup failed")
        db.session.rollback()
        return InvitationSweep(0, 0)


def run_cleanup_jobs(now=None):
    """Run every pass; a failing pass does not stop the others"""
    maintenance = cleanup_old_maintenance(now)
    announcements = cleanup_old_announcements(now)
    invitations = cleanup_expired_invitations(now)
    return {
        'maintenance': maintenance,
        'announcements': announcements,
        'invitations': invitations.cleared,
        'units_reclaimed': invitations.reclaimed,
    }


class ExpirySweeper:
    """
    Background runner for :func:`run_cleanup_jobs`.

    ``stop()`` sets the event the loop waits on, so shutdown does not wait
    for the interval to elapse. A run that finds another one in flight is
    skipped.
    """

    def __init__(self, app, interval_hours=None):
        self.app = app
        hours = interval_hours if interval_hours is not None else app.config['SWEEP_INTERVAL_HOURS']
        self.interval = hours * 3600
        self._stop = threading.Event()
        self._running = threading.Lock()
        self._thread = None

    def start(self):
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name='expiry-sweeper', daemon=True)
        self._thread.start()
        logger.info("Expiry sweeper started (every %.1f hours)", self.interval / 3600)

    def stop(self, timeout=None):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def stopped(self):
        return self._stop.is_set()

    def run_once(self, now=None):
        """Run all passes; returns the counts, or None if a run was already in flight"""
        if not self._running.acquire(blocking=False):
            logger.warning("Sweep already in progress, skipping")
            return None
        try:
            with self.app.app_context():
                counts = run_cleanup_jobs(now)
            logger.info("Sweep finished: %s", counts)
            return counts
        finally:
            self._running.release()

    def _loop(self):
        self.run_once()
        while not self._stop.wait(self.interval):
            self.run_once()


def register_cli(app):
    @app.cli.command('sweep')
    def sweep_command():
        """Run the expiry sweep once."""
        counts = run_cleanup_jobs()
        click.echo(
            f"Deleted {counts['maintenance']} maintenance request(s), "
            f"{counts['announcements']} announcement(s); "
            f"cleared {counts['invitations']} expired invitation(s), "
            f"reclaimed {counts['units_reclaimed']} unit(s)."
        )

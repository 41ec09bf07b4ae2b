from datetime import datetime
import secrets

import bcrypt

from keystone import db
from keystone.models.invitation import Invitation, InvitationKind

ROLES = ('property_manager', 'homeowner', 'tenant')


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(50), nullable=False)
    address = db.Column(db.String(500), nullable=True)
    role = db.Column(db.String(30), nullable=False)  # property_manager, homeowner, tenant
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # Invitation (homeowner and tenant onboarding)
    invitation_token = db.Column(db.String(64), unique=True, nullable=True, index=True)
    invitation_expires = db.Column(db.DateTime, nullable=True, index=True)
    pending_unit_id = db.Column(
        db.Integer, db.ForeignKey('units.id', ondelete='SET NULL', use_alter=True), nullable=True
    )
    pending_property_id = db.Column(
        db.Integer, db.ForeignKey('properties.id', ondelete='SET NULL', use_alter=True), nullable=True
    )
    pending_move_in_date = db.Column(db.Date, nullable=True)
    pending_lease_duration = db.Column(db.Integer, nullable=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def set_password(self, password):
        """Hash and set user password"""
        salt = bcrypt.gensalt(rounds=12)
        self.password_hash = bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')

    def set_unusable_password(self):
        """Placeholder credential for accounts provisioned by invitation"""
        self.set_password(secrets.token_hex(16))

    def check_password(self, password):
        """Check if provided password matches hash"""
        if not self.password_hash:
            return False
        return bcrypt.checkpw(password.encode('utf-8'), self.password_hash.encode('utf-8'))

    def is_property_manager(self):
        return self.role == 'property_manager'

    def is_homeowner(self):
        return self.role == 'homeowner'

    def is_tenant(self):
        return self.role == 'tenant'

    @property
    def invitation(self):
        """Current invitation as an explicit value (state none/pending/expired)"""
        kind = InvitationKind.TENANT if self.is_tenant() else InvitationKind.HOMEOWNER
        return Invitation.from_fields(
            kind=kind,
            token=self.invitation_token,
            expires_at=self.invitation_expires,
            unit_id=self.pending_unit_id,
            property_id=self.pending_property_id,
            move_in_date=self.pending_move_in_date,
            lease_duration=self.pending_lease_duration,
        )

    def issue_invitation(self, ttl, unit_id=None, property_id=None, move_in_date=None,
                         lease_duration=None, now=None):
        """Store a fresh single-use token; returns the token"""
        now = now or datetime.utcnow()
        self.invitation_token = secrets.token_hex(32)
        self.invitation_expires = now + ttl
        self.pending_unit_id = unit_id
        self.pending_property_id = property_id
        self.pending_move_in_date = move_in_date
        self.pending_lease_duration = lease_duration
        return self.invitation_token

    def clear_invitation(self):
        self.invitation_token = None
        self.invitation_expires = None
        self.pending_unit_id = None
        self.pending_property_id = None
        self.pending_move_in_date = None
        self.pending_lease_duration = None

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'phone': self.phone,
            'address': self.address,
            'role': self.role,
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<User {self.email}>'
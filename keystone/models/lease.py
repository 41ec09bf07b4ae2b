from datetime import datetime
from keystone import db

LEASE_STATUSES = ('active', 'expired', 'terminated', 'renewed')


class Lease(db.Model):
    __tablename__ = 'leases'
    __table_args__ = (
        # At most one active lease per unit
        db.Index(
            'uq_leases_active_unit', 'unit_id',
            unique=True,
            postgresql_where=db.text("status = 'active'"),
            sqlite_where=db.text("status = 'active'"),
        ),
        db.Index('ix_leases_tenant_status', 'tenant_id', 'status'),
        db.Index('ix_leases_property_status', 'property_id', 'status'),
    )

    id = db.Column(db.Integer, primary_key=True)

    # Parties
    tenant_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    property_id = db.Column(db.Integer, db.ForeignKey('properties.id', ondelete='CASCADE'), nullable=False)
    unit_id = db.Column(db.Integer, db.ForeignKey('units.id', ondelete='CASCADE'), nullable=False)
    application_id = db.Column(db.Integer, db.ForeignKey('applications.id', ondelete='SET NULL'), nullable=True)

    # Term
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    lease_duration = db.Column(db.Integer, nullable=False)  # months
    payment_due_day = db.Column(db.Integer, default=1)

    # Financial terms
    monthly_rent = db.Column(db.Numeric(12, 2), nullable=False)
    security_deposit = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # Status: active, expired, terminated, renewed
    status = db.Column(db.String(20), default='active', nullable=False)
    terminated_at = db.Column(db.DateTime, nullable=True)
    termination_reason = db.Column(db.Text, nullable=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    tenant = db.relationship('User', foreign_keys=[tenant_id], backref=db.backref('leases', lazy='dynamic'))
    property = db.relationship('Property', backref=db.backref('leases', lazy='dynamic',
                                                              cascade='all, delete-orphan', passive_deletes=True))
    unit = db.relationship('Unit', foreign_keys=[unit_id], backref=db.backref('leases', lazy='dynamic',
                                                                              passive_deletes=True))
    application = db.relationship('Application', foreign_keys=[application_id])

    def terminate(self, reason=None):
        self.status = 'terminated'
        self.terminated_at = datetime.utcnow()
        self.termination_reason = reason

    def to_dict(self, include_parties=False):
        data = {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'property_id': self.property_id,
            'unit_id': self.unit_id,
            'application_id': self.application_id,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'end_date': self.end_date.isoformat() if self.end_date else None,
            'lease_duration': self.lease_duration,
            'payment_due_day': self.payment_due_day,
            'monthly_rent': float(self.monthly_rent) if self.monthly_rent is not None else None,
            'security_deposit': float(self.security_deposit) if self.security_deposit is not None else None,
            'status': self.status,
            'terminated_at': self.terminated_at.isoformat() if self.terminated_at else None,
            'termination_reason': self.termination_reason,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

        if include_parties:
            if self.tenant:
                data['tenant'] = {
                    'id': self.tenant.id,
                    'name': self.tenant.name,
                    'email': self.tenant.email,
                    'phone': self.tenant.phone,
                }
            if self.unit:
                data['unit'] = {
                    'id': self.unit.id,
                    'unit_number': self.unit.unit_number,
                    'unit_type': self.unit.unit_type,
                }
            if self.property:
                data['property'] = {
                    'id': self.property.id,
                    'address': self.property.address,
                    'city': self.property.city,
                    'state': self.property.state,
                }

        return data

    def __repr__(self):
        return f'<Lease {self.id} unit={self.unit_id} ({self.status})>'

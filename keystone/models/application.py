from keystone import db
from datetime import datetime

APPLICATION_STATUSES = ('pending', 'under_review', 'approved', 'rejected', 'withdrawn')
OPEN_APPLICATION_STATUSES = ('pending', 'under_review')
LEASE_DURATIONS = (6, 12, 24, 36)
EMPLOYMENT_STATUSES = ('employed', 'self_employed', 'unemployed', 'student', 'retired')


class Application(db.Model):
    __tablename__ = 'applications'
    __table_args__ = (
        db.Index('ix_applications_tenant_property_status', 'tenant_id', 'property_id', 'status'),
        db.Index('ix_applications_unit_status', 'unit_id', 'status'),
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    property_id = db.Column(db.Integer, db.ForeignKey('properties.id', ondelete='CASCADE'), nullable=False)
    unit_id = db.Column(db.Integer, db.ForeignKey('units.id', ondelete='CASCADE'), nullable=False)

    # Move-in details
    move_in_date = db.Column(db.Date, nullable=False)
    lease_duration = db.Column(db.Integer, nullable=False)  # months: 6, 12, 24, 36

    # Tenant information
    employment_status = db.Column(db.String(30), nullable=False)
    employer = db.Column(db.String(255), nullable=True)
    monthly_income = db.Column(db.Numeric(12, 2), nullable=True)
    emergency_contact_name = db.Column(db.String(100), nullable=False)
    emergency_contact_phone = db.Column(db.String(50), nullable=False)
    number_of_occupants = db.Column(db.Integer, nullable=False, default=1)
    has_pets = db.Column(db.Boolean, default=False)
    pet_details = db.Column(db.Text, nullable=True)
    additional_notes = db.Column(db.Text, nullable=True)

    # Status: pending, under_review, approved, rejected, withdrawn
    status = db.Column(db.String(20), default='pending', nullable=False)

    # Review
    reviewed_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    reviewed_at = db.Column(db.DateTime, nullable=True)
    review_notes = db.Column(db.Text, nullable=True)

    # Blocklist
    blocked_from_property = db.Column(db.Boolean, default=False, nullable=False)
    block_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    property = db.relationship('Property', backref=db.backref('applications', lazy='dynamic',
                                                              cascade='all, delete-orphan', passive_deletes=True))
    unit = db.relationship('Unit', backref=db.backref('applications', lazy='dynamic', passive_deletes=True))
    tenant = db.relationship('User', foreign_keys=[tenant_id], backref=db.backref('applications_made', lazy='dynamic'))
    reviewer = db.relationship('User', foreign_keys=[reviewed_by])

    def is_open(self):
        return self.status in OPEN_APPLICATION_STATUSES

    def to_dict(self):
        return {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'property_id': self.property_id,
            'unit_id': self.unit_id,
            'tenant': {
                'id': self.tenant.id,
                'name': self.tenant.name,
                'email': self.tenant.email,
                'phone': self.tenant.phone,
            } if self.tenant else None,
            'property_address': f"{self.property.address}, {self.property.city}" if self.property else None,
            'unit_number': self.unit.unit_number if self.unit else None,
            'move_in_date': self.move_in_date.isoformat() if self.move_in_date else None,
            'lease_duration': self.lease_duration,
            'employment_status': self.employment_status,
            'employer': self.employer,
            'monthly_income': float(self.monthly_income) if self.monthly_income is not None else None,
            'emergency_contact_name': self.emergency_contact_name,
            'emergency_contact_phone': self.emergency_contact_phone,
            'number_of_occupants': self.number_of_occupants,
            'has_pets': self.has_pets,
            'pet_details': self.pet_details,
            'additional_notes': self.additional_notes,
            'status': self.status,
            'review_notes': self.review_notes,
            'reviewer': self.reviewer.name if self.reviewer else None,
            'reviewed_at': self.reviewed_at.isoformat() if self.reviewed_at else None,
            'blocked_from_property': self.blocked_from_property,
            'block_reason': self.block_reason,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<Application {self.id} ({self.status})>'

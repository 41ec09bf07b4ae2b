from datetime import datetime
from keystone import db

UNIT_TYPES = ('apartment', 'studio', 'warehouse', 'office', 'shop', 'other')
UNIT_STATUSES = ('vacant', 'reserved', 'occupied', 'maintenance')

# Statuses a manager may set by hand; reserved/occupied belong to the
# invitation and lease flows.
MANUAL_UNIT_STATUSES = ('vacant', 'maintenance')


class Unit(db.Model):
    __tablename__ = 'units'
    __table_args__ = (
        db.UniqueConstraint('property_id', 'unit_number', name='uq_units_property_unit_number'),
        db.Index('ix_units_property_status', 'property_id', 'status'),
    )

    id = db.Column(db.Integer, primary_key=True)
    property_id = db.Column(db.Integer, db.ForeignKey('properties.id', ondelete='CASCADE'), nullable=False)

    # Identification
    unit_number = db.Column(db.String(50), nullable=False)
    unit_type = db.Column(db.String(20), nullable=False)

    # Layout
    bedrooms = db.Column(db.Integer, default=0)
    bathrooms = db.Column(db.Integer, default=0)
    square_feet = db.Column(db.Integer, nullable=True)
    floor = db.Column(db.Integer, nullable=True)

    # Financial: rent is quoted per year, leases bill a twelfth of it monthly
    annual_rent = db.Column(db.Numeric(12, 2), nullable=False)

    # Status: vacant, reserved, occupied, maintenance
    status = db.Column(db.String(20), default='vacant', nullable=False)

    # Set only while occupied
    current_tenant_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    current_lease_id = db.Column(
        db.Integer, db.ForeignKey('leases.id', use_alter=True, name='fk_units_current_lease_id'), nullable=True
    )

    features = db.Column(db.JSON, default=list)
    description = db.Column(db.Text, nullable=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    property = db.relationship('Property', back_populates='units')
    current_tenant = db.relationship('User', foreign_keys=[current_tenant_id])
    current_lease = db.relationship('Lease', foreign_keys=[current_lease_id], post_update=True)

    def to_dict(self, include_property=False, include_tenant=False):
        data = {
            'id': self.id,
            'property_id': self.property_id,
            'unit_number': self.unit_number,
            'unit_type': self.unit_type,
            'bedrooms': self.bedrooms,
            'bathrooms': self.bathrooms,
            'square_feet': self.square_feet,
            'floor': self.floor,
            'annual_rent': float(self.annual_rent) if self.annual_rent is not None else None,
            'status': self.status,
            'current_tenant_id': self.current_tenant_id,
            'current_lease_id': self.current_lease_id,
            'features': self.features or [],
            'description': self.description,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

        if include_property and self.property:
            data['property'] = {
                'id': self.property.id,
                'address': self.property.address,
                'city': self.property.city,
                'state': self.property.state,
            }

        if include_tenant and self.current_tenant:
            data['current_tenant'] = {
                'id': self.current_tenant.id,
                'name': self.current_tenant.name,
                'email': self.current_tenant.email,
                'phone': self.current_tenant.phone,
            }

        return data

    def __repr__(self):
        return f'<Unit {self.unit_number} ({self.status})>'

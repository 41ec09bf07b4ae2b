from datetime import datetime
from keystone import db

PROPERTY_TYPES = ('residential', 'commercial')
PROPERTY_STATUSES = ('vacant', 'occupied', 'maintenance')
HOMEOWNER_INVITATION_STATUSES = ('none', 'pending', 'accepted')


class Property(db.Model):
    __tablename__ = 'properties'

    id = db.Column(db.Integer, primary_key=True)

    # Location
    address = db.Column(db.String(500), nullable=False)
    city = db.Column(db.String(100), nullable=False, index=True)
    state = db.Column(db.String(100), nullable=False)

    # Details
    property_type = db.Column(db.String(50), nullable=False)  # residential, commercial
    bedrooms = db.Column(db.Integer, nullable=True)
    bathrooms = db.Column(db.Integer, nullable=True)
    description = db.Column(db.Text, nullable=True)
    rent_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # Derived from the units, see services.property_status
    status = db.Column(db.String(20), default='vacant', nullable=False, index=True)

    # Ownership
    property_manager_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    homeowner_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    homeowner_invitation_status = db.Column(db.String(20), default='none', nullable=False)
    pending_homeowner_name = db.Column(db.String(100), nullable=True)
    pending_homeowner_email = db.Column(db.String(255), nullable=True)
    pending_homeowner_phone = db.Column(db.String(50), nullable=True)
    pending_homeowner_address = db.Column(db.String(500), nullable=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    property_manager = db.relationship('User', foreign_keys=[property_manager_id],
                                       backref=db.backref('managed_properties', lazy='dynamic'))
    homeowner = db.relationship('User', foreign_keys=[homeowner_id],
                                backref=db.backref('owned_properties', lazy='dynamic'))
    units = db.relationship('Unit', back_populates='property', lazy='dynamic',
                            cascade='all, delete-orphan', passive_deletes=True)

    def is_managed_by(self, user):
        return user is not None and self.property_manager_id == user.id

    def is_owned_by(self, user):
        return user is not None and self.homeowner_id is not None and self.homeowner_id == user.id

    def can_be_reviewed_by(self, user):
        """Managers and the assigned homeowner may act on the property's tenancy"""
        return self.is_managed_by(user) or self.is_owned_by(user)

    def to_dict(self, include_people=False):
        data = {
            'id': self.id,
            'address': self.address,
            'city': self.city,
            'state': self.state,
            'property_type': self.property_type,
            'bedrooms': self.bedrooms,
            'bathrooms': self.bathrooms,
            'description': self.description,
            'rent_amount': float(self.rent_amount) if self.rent_amount is not None else None,
            'status': self.status,
            'property_manager_id': self.property_manager_id,
            'homeowner_id': self.homeowner_id,
            'homeowner_invitation_status': self.homeowner_invitation_status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

        if include_people:
            if self.property_manager:
                data['property_manager'] = {
                    'id': self.property_manager.id,
                    'name': self.property_manager.name,
                    'email': self.property_manager.email,
                    'phone': self.property_manager.phone,
                }
            if self.homeowner:
                data['homeowner'] = {
                    'id': self.homeowner.id,
                    'name': self.homeowner.name,
                    'email': self.homeowner.email,
                    'phone': self.homeowner.phone,
                }

        return data

    def __repr__(self):
        return f'<Property {self.address}, {self.city}>'

from datetime import datetime
from keystone import db

MAINTENANCE_CATEGORIES = ('plumbing', 'electrical', 'structural', 'appliance', 'hvac', 'other')
MAINTENANCE_PRIORITIES = ('low', 'medium', 'high', 'urgent')
MAINTENANCE_STATUSES = ('submitted', 'in_progress', 'resolved', 'cancelled')


class MaintenanceRequest(db.Model):
    __tablename__ = 'maintenance_requests'
    __table_args__ = (
        db.Index('ix_maintenance_status_resolved_at', 'status', 'resolved_at'),
    )

    id = db.Column(db.Integer, primary_key=True)
    property_id = db.Column(db.Integer, db.ForeignKey('properties.id', ondelete='CASCADE'), nullable=False, index=True)
    unit_id = db.Column(db.Integer, db.ForeignKey('units.id', ondelete='SET NULL'), nullable=True)  # null for property-wide issues
    tenant_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    # Issue details
    title = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(20), nullable=False)
    priority = db.Column(db.String(20), default='medium')

    # Status: submitted, in_progress, resolved, cancelled
    status = db.Column(db.String(20), default='submitted', nullable=False)
    resolved_at = db.Column(db.DateTime, nullable=True)
    resolution_notes = db.Column(db.Text, nullable=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    property = db.relationship('Property', backref=db.backref('maintenance_requests', lazy='dynamic',
                                                              cascade='all, delete-orphan', passive_deletes=True))
    unit = db.relationship('Unit')
    tenant = db.relationship('User', foreign_keys=[tenant_id])

    def set_status(self, status, notes=None):
        self.status = status
        if status == 'resolved':
            self.resolved_at = datetime.utcnow()
            if notes:
                self.resolution_notes = notes
        else:
            self.resolved_at = None

    def to_dict(self):
        return {
            'id': self.id,
            'property_id': self.property_id,
            'unit_id': self.unit_id,
            'tenant_id': self.tenant_id,
            'title': self.title,
            'description': self.description,
            'category': self.category,
            'priority': self.priority,
            'status': self.status,
            'resolved_at': self.resolved_at.isoformat() if self.resolved_at else None,
            'resolution_notes': self.resolution_notes,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<MaintenanceRequest {self.id} ({self.status})>'

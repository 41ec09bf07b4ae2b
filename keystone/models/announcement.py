from datetime import datetime
from keystone import db

ANNOUNCEMENT_TYPES = ('general', 'maintenance', 'payment', 'urgent')

announcement_properties = db.Table(
    'announcement_properties',
    db.Column('announcement_id', db.Integer, db.ForeignKey('announcements.id', ondelete='CASCADE'), primary_key=True),
    db.Column('property_id', db.Integer, db.ForeignKey('properties.id', ondelete='CASCADE'), primary_key=True),
)


class Announcement(db.Model):
    __tablename__ = 'announcements'

    id = db.Column(db.Integer, primary_key=True)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    title = db.Column(db.String(100), nullable=False)
    message = db.Column(db.Text, nullable=False)
    announcement_type = db.Column(db.String(20), default='general')
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    author = db.relationship('User')
    reads = db.relationship('AnnouncementRead', backref='announcement', cascade='all, delete-orphan')
    target_properties = db.relationship('Property', secondary=announcement_properties, lazy='subquery',
                                        backref=db.backref('announcements', lazy='dynamic'))

    def is_read_by(self, user):
        return any(r.user_id == user.id for r in self.reads)

    def to_dict(self, viewer=None):
        data = {
            'id': self.id,
            'created_by': self.created_by,
            'author': self.author.name if self.author else None,
            'title': self.title,
            'message': self.message,
            'announcement_type': self.announcement_type,
            'target_property_ids': [p.id for p in self.target_properties],
            'read_count': len(self.reads),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if viewer is not None:
            data['is_read'] = self.is_read_by(viewer)
        return data

    def __repr__(self):
        return f'<Announcement {self.title}>'


class AnnouncementRead(db.Model):
    __tablename__ = 'announcement_reads'

    announcement_id = db.Column(db.Integer, db.ForeignKey('announcements.id', ondelete='CASCADE'), primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True)
    read_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

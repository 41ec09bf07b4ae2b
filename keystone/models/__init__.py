from .user import User
from .property import Property
from .unit import Unit
from .lease import Lease
from .application import Application
from .maintenance_request import MaintenanceRequest
from .announcement import Announcement, AnnouncementRead
from .invitation import Invitation, InvitationKind, InvitationState

__all__ = ['User', 'Property', 'Unit', 'Lease', 'Application', 'MaintenanceRequest', 'Announcement', 'AnnouncementRead',
           'Invitation', 'InvitationKind', 'InvitationState']

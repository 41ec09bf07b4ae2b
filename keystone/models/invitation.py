"""Invitation value type.

Invitations are persisted as fields on the invitee's ``User`` row, but every
read goes through :class:`Invitation` so the lifecycle state is explicit.
"""
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional


class InvitationState(str, Enum):
    NONE = 'none'
    PENDING = 'pending'
    EXPIRED = 'expired'
    ACCEPTED = 'accepted'


class InvitationKind(str, Enum):
    HOMEOWNER = 'homeowner'
    TENANT = 'tenant'


@dataclass(frozen=True)
class Invitation:
    kind: InvitationKind
    state: InvitationState
    token: Optional[str] = None
    expires_at: Optional[datetime] = None
    unit_id: Optional[int] = None
    property_id: Optional[int] = None
    move_in_date: Optional[date] = None
    lease_duration: Optional[int] = None

    @classmethod
    def from_fields(cls, kind, token, expires_at, unit_id=None, property_id=None,
                    move_in_date=None, lease_duration=None, now=None):
        if not token:
            state = InvitationState.NONE
        elif expires_at is None or expires_at <= (now or datetime.utcnow()):
            state = InvitationState.EXPIRED
        else:
            state = InvitationState.PENDING
        return cls(
            kind=kind,
            state=state,
            token=token,
            expires_at=expires_at,
            unit_id=unit_id,
            property_id=property_id,
            move_in_date=move_in_date,
            lease_duration=lease_duration,
        )

    @property
    def is_outstanding(self):
        return self.state == InvitationState.PENDING

    @property
    def reserves_unit(self):
        return self.kind == InvitationKind.TENANT and self.unit_id is not None

    def accepted(self):
        return Invitation(
            kind=self.kind,
            state=InvitationState.ACCEPTED,
            unit_id=self.unit_id,
            property_id=self.property_id,
            move_in_date=self.move_in_date,
            lease_duration=self.lease_duration,
        )

    def to_dict(self):
        return {
            'kind': self.kind.value,
            'state': self.state.value,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'unit_id': self.unit_id,
            'property_id': self.property_id,
            'move_in_date': self.move_in_date.isoformat() if self.move_in_date else None,
            'lease_duration': self.lease_duration,
        }

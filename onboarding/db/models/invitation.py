import uuid
from enum import Enum
from datetime import datetime, timezone

from onboarding.db import db
from onboarding.utils.clock import as_utc


class InvitationStatus(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    # only ever derived from expires_at, never written
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class InvitationRole(Enum):
    TEACHER = "teacher"
    PARENT = "parent"
    ADMIN = "admin"

    @classmethod
    def is_valid(cls, value: str) -> bool:
        return value in [member.value for member in cls]


class Invitation(db.Model):
    __table_args__ = (
        db.CheckConstraint(
            'NOT (accepted_at IS NOT NULL AND cancelled_at IS NOT NULL)',
            name='ck_invitation_single_terminal_event'
        ),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organisation_id = db.Column(db.Integer, db.ForeignKey('organisation.id'), nullable=False, index=True)
    invited_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)

    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(254), nullable=False, index=True)
    phone = db.Column(db.String(32), nullable=True)
    role = db.Column(db.String(32), nullable=False, default=InvitationRole.TEACHER.value)

    invitation_code = db.Column(db.String(32), unique=True, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=InvitationStatus.PENDING.value)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    accepted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    accepted_by = db.Column(db.Integer, nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self, effective_status: InvitationStatus = None) -> dict:
        def _iso(value):
            value = as_utc(value)
            return value.isoformat() if value else None

        return {
            'id': self.id,
            'organisation_id': self.organisation_id,
            'invited_by': self.invited_by,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'role': self.role,
            'invitation_code': self.invitation_code,
            'status': (effective_status.value if effective_status else self.status),
            'stored_status': self.status,
            'created_at': _iso(self.created_at),
            'expires_at': _iso(self.expires_at),
            'accepted_at': _iso(self.accepted_at),
            'cancelled_at': _iso(self.cancelled_at),
        }

    def __repr__(self):
        return f'<Invitation {self.email} {self.status}>'

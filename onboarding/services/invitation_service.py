import logging
import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from onboarding.db.models import Invitation, InvitationRole, InvitationStatus, User
from onboarding.db.store import InvitationStore
from onboarding.exceptions import InvalidStateError, NotFoundError, StoreFailure, ValidationError
from onboarding.services.notification_service import LogNotificationSender, NotificationSender, mask_code
from onboarding.utils.clock import as_utc, utcnow
from onboarding.utils.validators import is_blank, validate_email

logger = logging.getLogger(__name__)

INVITATION_TTL = timedelta(days=7)
CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8
MAX_CODE_ATTEMPTS = 10


def effective_status(invitation: Invitation, now: datetime) -> InvitationStatus:
    """
    The invitation's real validity. A pending invitation past its expires_at
    is expired even though the stored status still says pending.
    """
    status = InvitationStatus(invitation.status)
    if status == InvitationStatus.PENDING and as_utc(invitation.expires_at) < now:
        return InvitationStatus.EXPIRED
    return status


@dataclass
class CreatedInvitation:
    invitation: Invitation
    warnings: List[str] = field(default_factory=list)


@dataclass
class Redemption:
    invitation: Invitation
    member: User


class InvitationService:
    def __init__(
        self,
        store: InvitationStore = None,
        notifier: NotificationSender = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.store = store or InvitationStore()
        self.notifier = notifier or LogNotificationSender()
        self.clock = clock

    def now(self) -> datetime:
        return as_utc(self.clock())

    def generate_invitation_code(self) -> str:
        # checked against live codes; the unique column catches the rest
        for _ in range(MAX_CODE_ATTEMPTS):
            code = ''.join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
            if not self.store.code_exists(code):
                return code
        raise StoreFailure("Could not generate a unique invitation code", "CODE_GENERATION_FAILED")

    def _validate_invitee(self, name, email, phone, role):
        if is_blank(name):
            raise ValidationError("Name is required", "INVALID_NAME")
        if is_blank(email):
            raise ValidationError("Email is required", "INVALID_EMAIL")
        if not validate_email(email):
            raise ValidationError("Invalid email", "INVALID_EMAIL")
        if phone is not None and not isinstance(phone, str):
            raise ValidationError("Phone must be a string", "INVALID_PHONE")
        if not InvitationRole.is_valid(role):
            raise ValidationError(f"Invalid role: {role}", "INVALID_ROLE")

    def _notify(self, invitation: Invitation) -> List[str]:
        result = self.notifier.send(
            invitation.email,
            invitation.invitation_code,
            as_utc(invitation.expires_at),
            name=invitation.name,
            role=invitation.role
        )
        if result.ok:
            return []
        return [
            f"Invitation email to {invitation.email} was not delivered ({result.error}). "
            f"Share code {invitation.invitation_code} manually or resend."
        ]

    def create_invitation(
        self,
        organisation_id: int,
        inviter_id: Optional[int],
        name: str,
        email: str,
        phone: Optional[str] = None,
        role: str = InvitationRole.TEACHER.value
    ) -> CreatedInvitation:
        """
        Create a pending invitation valid for seven days and send its code.
        A failed email leaves the invitation in place and comes back as a warning.
        """
        self._validate_invitee(name, email, phone, role)
        email = email.strip()
        now = self.now()

        if self.store.email_registered(email):
            raise ValidationError("A user with this email already exists", "EMAIL_EXISTS")

        if self.store.find_pending_for_email(organisation_id, email, now):
            raise ValidationError(
                "A pending invitation already exists for this email",
                "INVITE_EXISTS"
            )

        invitation = Invitation(
            organisation_id=organisation_id,
            invited_by=inviter_id,
            name=name.strip(),
            email=email,
            phone=phone.strip() if phone else None,
            role=role,
            invitation_code=self.generate_invitation_code(),
            status=InvitationStatus.PENDING.value,
            created_at=now,
            expires_at=now + INVITATION_TTL
        )
        self.store.insert(invitation)
        logger.info(
            "Created invitation %s for %s in organisation %s",
            invitation.id, email, organisation_id
        )

        return CreatedInvitation(invitation=invitation, warnings=self._notify(invitation))

    def list_invitations(self, organisation_id: int) -> List[Invitation]:
        """All invitations of an organisation, newest first"""
        return self.store.list_by_organisation(organisation_id)

    def get_invitation(self, organisation_id: int, invitation_id: str) -> Invitation:
        invitation = self.store.get_by_id(organisation_id, invitation_id)
        if not invitation:
            raise NotFoundError("Invitation not found", "INVITATION_NOT_FOUND")
        return invitation

    def get_invitation_by_code(self, code: str) -> Invitation:
        invitation = self.store.get_by_code(code.strip().upper()) if isinstance(code, str) else None
        if not invitation:
            raise NotFoundError("Invalid invitation code", "INVALID_INVITATION_CODE")
        return invitation

    def _require_pending(self, invitation: Invitation, action: str, now: datetime):
        status = effective_status(invitation, now)
        if status != InvitationStatus.PENDING:
            raise InvalidStateError(
                status,
                f"Cannot {action} an invitation that is {status.value}"
            )

    def resend_invitation(self, organisation_id: int, invitation_id: str) -> List[str]:
        """
        Send the same code again. expires_at is left alone, so the
        invitee still has until the original deadline.
        """
        invitation = self.get_invitation(organisation_id, invitation_id)
        self._require_pending(invitation, "resend", self.now())

        warnings = self._notify(invitation)
        logger.info(
            "Resent invitation %s (code %s) to %s",
            invitation.id, mask_code(invitation.invitation_code), invitation.email
        )
        return warnings

    def revoke_invitation(self, organisation_id: int, invitation_id: str) -> Invitation:
        invitation = self.get_invitation(organisation_id, invitation_id)
        now = self.now()
        self._require_pending(invitation, "revoke", now)

        revoked = self.store.update_status(
            organisation_id, invitation_id, InvitationStatus.CANCELLED, 'cancelled_at', now
        )
        # someone else got there first; report what it is now
        invitation = self.get_invitation(organisation_id, invitation_id)
        if not revoked:
            self._require_pending(invitation, "revoke", now)
            raise InvalidStateError(invitation.status)

        logger.info("Revoked invitation %s", invitation_id)
        return invitation

    def delete_invitation(self, organisation_id: int, invitation_id: str) -> None:
        if not self.store.delete_by_id(organisation_id, invitation_id):
            raise NotFoundError("Invitation not found", "INVITATION_NOT_FOUND")
        logger.info("Deleted invitation %s", invitation_id)

    def cleanup_expired(self, organisation_id: int) -> int:
        """Hard-delete every pending invitation whose expires_at has passed."""
        removed = self.store.delete_expired(organisation_id, self.now())
        logger.info("Removed %d expired invitation(s) from organisation %s", removed, organisation_id)
        return removed

    def redeem_invitation(
        self,
        code: str,
        email: str,
        name: str,
        phone: Optional[str] = None
    ) -> Redemption:
        """
        Accept an invitation on behalf of the invitee and create their
        membership in the inviting organisation.
        """
        if is_blank(email) or not validate_email(email):
            raise ValidationError("Invalid email", "INVALID_EMAIL")
        if is_blank(name):
            raise ValidationError("Name is required", "INVALID_NAME")

        invitation = self.get_invitation_by_code(code)
        email = email.strip()
        if invitation.email.lower() != email.lower():
            raise ValidationError(
                "This invitation code is restricted to a different email address",
                "EMAIL_MISMATCH"
            )

        now = self.now()
        self._require_pending(invitation, "redeem", now)

        if self.store.email_registered(email):
            raise ValidationError("A user with this email already exists", "EMAIL_EXISTS")

        member = User(
            email=email,
            name=name.strip(),
            phone=phone,
            organisation_id=invitation.organisation_id,
            invitation_id=invitation.id,
            role=invitation.role,
            created_at=now,
            updated_at=now
        )
        if not self.store.accept_with_member(invitation, member, now):
            invitation = self.get_invitation_by_code(code)
            self._require_pending(invitation, "redeem", now)
            raise InvalidStateError(invitation.status)

        invitation = self.get_invitation_by_code(code)
        logger.info(
            "Invitation %s redeemed by %s as %s",
            invitation.id, email, invitation.role
        )
        return Redemption(invitation=invitation, member=member)

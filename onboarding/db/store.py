import logging
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from onboarding.db import db
from onboarding.db.models import Invitation, InvitationStatus, User
from onboarding.exceptions import StoreFailure

logger = logging.getLogger(__name__)


class InvitationStore:
    """
    Data access for invitations. Every mutation commits on its own so the
    admin UI reads its own writes on the next request.
    Status changes are conditional on the row still being pending and
    unexpired; callers learn about a lost race from the return value.
    """

    def __init__(self, session=None):
        self.session = session or db.session

    @contextmanager
    def _unit_of_work(self, action: str):
        try:
            yield
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            logger.warning("Constraint violation during %s: %s", action, e.orig)
            raise StoreFailure(f"Failed to {action}", "CONSTRAINT_VIOLATION") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Store error during %s: %s", action, e)
            raise StoreFailure(f"Failed to {action}", "DATABASE_ERROR") from e

    @contextmanager
    def _read(self, action: str):
        try:
            yield
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Store error during %s: %s", action, e)
            raise StoreFailure(f"Failed to {action}", "DATABASE_ERROR") from e

    def insert(self, invitation: Invitation) -> Invitation:
        with self._unit_of_work("create invitation"):
            self.session.add(invitation)
        return invitation

    def list_by_organisation(self, organisation_id: int) -> List[Invitation]:
        with self._read("list invitations"):
            return (Invitation.query
                    .filter_by(organisation_id=organisation_id)
                    .order_by(Invitation.created_at.desc())
                    .all())

    def get_by_id(self, organisation_id: int, invitation_id: str) -> Optional[Invitation]:
        with self._read("load invitation"):
            return Invitation.query.filter_by(
                id=invitation_id,
                organisation_id=organisation_id
            ).first()

    def get_by_code(self, code: str) -> Optional[Invitation]:
        with self._read("load invitation"):
            return Invitation.query.filter_by(invitation_code=code).first()

    def code_exists(self, code: str) -> bool:
        with self._read("check invitation code"):
            return self.session.query(
                Invitation.query.filter_by(invitation_code=code).exists()
            ).scalar()

    def find_pending_for_email(self, organisation_id: int, email: str, now: datetime) -> Optional[Invitation]:
        with self._read("check existing invitations"):
            return Invitation.query.filter(
                Invitation.organisation_id == organisation_id,
                func.lower(Invitation.email) == email.lower(),
                Invitation.status == InvitationStatus.PENDING.value,
                Invitation.expires_at >= now
            ).first()

    def email_registered(self, email: str) -> bool:
        with self._read("check registered users"):
            return self.session.query(
                User.query.filter(func.lower(User.email) == email.lower()).exists()
            ).scalar()

    def _pending_filter(self, query, now: datetime):
        return query.filter(
            Invitation.status == InvitationStatus.PENDING.value,
            Invitation.expires_at >= now
        )

    def update_status(
        self,
        organisation_id: int,
        invitation_id: str,
        new_status: InvitationStatus,
        timestamp_field: str,
        now: datetime
    ) -> bool:
        """Move a still-pending, unexpired invitation to new_status. False if it wasn't."""
        with self._unit_of_work(f"mark invitation {new_status.value}"):
            query = Invitation.query.filter_by(id=invitation_id, organisation_id=organisation_id)
            updated = self._pending_filter(query, now).update(
                {'status': new_status.value, timestamp_field: now},
                synchronize_session=False
            )
        self.session.expire_all()
        return updated == 1

    def accept_with_member(self, invitation: Invitation, member: User, now: datetime) -> bool:
        """Accept the invitation and create its member in one transaction."""
        with self._unit_of_work("redeem invitation"):
            query = Invitation.query.filter_by(id=invitation.id)
            updated = self._pending_filter(query, now).update(
                {'status': InvitationStatus.ACCEPTED.value, 'accepted_at': now},
                synchronize_session=False
            )
            if updated != 1:
                self.session.rollback()
                return False

            self.session.add(member)
            self.session.flush()
            Invitation.query.filter_by(id=invitation.id).update(
                {'accepted_by': member.id},
                synchronize_session=False
            )
        self.session.expire_all()
        return True

    def delete_by_id(self, organisation_id: int, invitation_id: str) -> bool:
        with self._unit_of_work("delete invitation"):
            deleted = Invitation.query.filter_by(
                id=invitation_id,
                organisation_id=organisation_id
            ).delete(synchronize_session=False)
        self.session.expire_all()
        return deleted == 1

    def delete_expired(self, organisation_id: int, now: datetime) -> int:
        with self._unit_of_work("clean up expired invitations"):
            deleted = Invitation.query.filter(
                Invitation.organisation_id == organisation_id,
                Invitation.status == InvitationStatus.PENDING.value,
                Invitation.expires_at < now
            ).delete(synchronize_session=False)
        self.session.expire_all()
        return deleted

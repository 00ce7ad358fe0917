import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from onboarding.exceptions import ServiceException
from onboarding.services import onboarding_service
from onboarding.services.invitation_service import InvitationService, effective_status
from onboarding.utils.action_guard import ActionGuard

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    ok: bool
    payload: Any = None
    warnings: List[str] = field(default_factory=list)
    error: Optional[ServiceException] = None

    @classmethod
    def success(cls, payload=None, warnings=None) -> 'OperationResult':
        return cls(ok=True, payload=payload, warnings=list(warnings or []))

    @classmethod
    def failure(cls, error: ServiceException) -> 'OperationResult':
        return cls(ok=False, error=error)

    @property
    def status_code(self) -> int:
        return 200 if self.ok else self.error.status_code

    @property
    def message(self) -> Optional[str]:
        return self.error.message if self.error else None


class InvitationConsole:
    """
    What the admin screens and the signup funnel call. No business rules
    live here: it runs mutations under the session's action guard and turns
    service exceptions into results.
    """

    def __init__(self, service: InvitationService, guard: ActionGuard = None):
        self.service = service
        self.guard = guard or ActionGuard()

    def _run(self, operation: str, fn, *args, **kwargs) -> OperationResult:
        try:
            return fn(*args, **kwargs)
        except ServiceException as e:
            logger.info("%s failed: %s (%s)", operation, e.message, e.error_code)
            return OperationResult.failure(e)

    def _guarded(self, invitation_id: str, action: str, fn) -> OperationResult:
        def run():
            with self.guard.hold(invitation_id, action):
                return fn()
        return self._run(action, run)

    def _serialize(self, invitation) -> dict:
        return invitation.to_dict(effective_status(invitation, self.service.now()))

    def create_invitation(self, organisation_id, inviter_id, name, email, phone=None, role='teacher') -> OperationResult:
        def run():
            created = self.service.create_invitation(organisation_id, inviter_id, name, email, phone, role)
            return OperationResult.success(self._serialize(created.invitation), created.warnings)
        return self._run("create_invitation", run)

    def list_invitations(self, organisation_id) -> OperationResult:
        def run():
            invitations = self.service.list_invitations(organisation_id)
            return OperationResult.success([self._serialize(i) for i in invitations])
        return self._run("list_invitations", run)

    def get_invitation(self, organisation_id, invitation_id) -> OperationResult:
        def run():
            invitation = self.service.get_invitation(organisation_id, invitation_id)
            payload = self._serialize(invitation)
            payload['in_flight'] = self.guard.in_flight(invitation_id)
            return OperationResult.success(payload)
        return self._run("get_invitation", run)

    def resend_invitation(self, organisation_id, invitation_id) -> OperationResult:
        def run():
            warnings = self.service.resend_invitation(organisation_id, invitation_id)
            invitation = self.service.get_invitation(organisation_id, invitation_id)
            return OperationResult.success(self._serialize(invitation), warnings)
        return self._guarded(invitation_id, 'resend', run)

    def revoke_invitation(self, organisation_id, invitation_id) -> OperationResult:
        def run():
            invitation = self.service.revoke_invitation(organisation_id, invitation_id)
            return OperationResult.success(self._serialize(invitation))
        return self._guarded(invitation_id, 'revoke', run)

    def delete_invitation(self, organisation_id, invitation_id) -> OperationResult:
        def run():
            self.service.delete_invitation(organisation_id, invitation_id)
            return OperationResult.success({'id': invitation_id})
        return self._guarded(invitation_id, 'delete', run)

    def cleanup_expired(self, organisation_id) -> OperationResult:
        def run():
            return OperationResult.success({'deleted_count': self.service.cleanup_expired(organisation_id)})
        return self._run("cleanup_expired", run)

    def redeem_invitation(self, code, email, name, phone=None) -> OperationResult:
        def run():
            redemption = self.service.redeem_invitation(code, email, name, phone)
            return OperationResult.success({
                'invitation': self._serialize(redemption.invitation),
                'user_id': redemption.member.id,
                'organisation_id': redemption.member.organisation_id,
                'role': redemption.member.role,
            })
        return self._run("redeem_invitation", run)

    @staticmethod
    def resolve_onboarding_route(plan_id, role_id, has_invitation_code=False) -> OperationResult:
        return OperationResult.success(onboarding_service.resolve(plan_id, role_id, has_invitation_code))

    @staticmethod
    def should_prompt_for_invitation_code(plan_id, role_id) -> OperationResult:
        return OperationResult.success(onboarding_service.should_prompt_for_invitation_code(plan_id, role_id))

from flask import current_app, jsonify

from onboarding.db.store import InvitationStore
from onboarding.middleware.auth import client_session_id
from onboarding.services.control_surface import InvitationConsole, OperationResult
from onboarding.services.invitation_service import InvitationService
from onboarding.utils.action_guard import RedisActionGuard


def get_service() -> InvitationService:
    ext = current_app.extensions['onboarding']
    return InvitationService(
        store=InvitationStore(),
        notifier=ext['notifier'],
        clock=ext['clock']
    )


def get_console(guarded: bool = True) -> InvitationConsole:
    """Built per request; only the guard's Redis keys outlive it"""
    guard = None
    if guarded:
        ext = current_app.extensions['onboarding']
        guard = RedisActionGuard(
            ext['redis'],
            client_session_id(),
            expire_seconds=current_app.config['ACTION_GUARD_TTL_SECONDS']
        )
    return InvitationConsole(get_service(), guard)


def render(result: OperationResult, key: str, message: str = None, status_code: int = 200):
    if not result.ok:
        return jsonify(result.error.to_dict()), result.error.status_code

    body = {key: result.payload}
    if message:
        body['message'] = message
    if result.warnings:
        body['warnings'] = result.warnings
    return jsonify(body), status_code

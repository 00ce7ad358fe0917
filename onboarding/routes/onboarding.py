from flask import Blueprint, request

from onboarding.routes import render
from onboarding.services.control_surface import InvitationConsole, OperationResult

onboarding_bp = Blueprint('onboarding', __name__)


@onboarding_bp.route('/route', methods=['GET'])
def resolve_route():
    """Where should this plan/role/code combination sign up?"""
    result = InvitationConsole.resolve_onboarding_route(
        request.args.get('plan'),
        request.args.get('role'),
        request.args.get('has_code', '')
    )
    return render(OperationResult.success(result.payload.to_dict()), 'decision')

@onboarding_bp.route('/prompt', methods=['GET'])
def should_prompt():
    result = InvitationConsole.should_prompt_for_invitation_code(
        request.args.get('plan'),
        request.args.get('role')
    )
    return render(result, 'prompt_for_invitation_code')

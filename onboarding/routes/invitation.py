from flask import Blueprint, current_app, request, jsonify

from onboarding.exceptions import ServiceException, ValidationError
from onboarding.middleware.auth import requires_auth
from onboarding.routes import get_console, render


invitation_bp = Blueprint('invitation', __name__)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", "INVALID_BODY")
    return data


@invitation_bp.route('/', methods=['POST'])
@requires_auth
def create_invitation():
    """Invite someone into the caller's organisation"""
    try:
        data = _json_body()
        name = data.get('name')
        email = data.get('email')

        if not all([name, email]):
            raise ValidationError("Missing required fields", "MISSING_REQUIRED_FIELDS")

        result = get_console(guarded=False).create_invitation(
            request.user['organisation_id'],
            request.user['user_id'],
            name,
            email,
            phone=data.get('phone'),
            role=data.get('role', 'teacher')
        )
        return render(result, 'invitation', 'Invitation created successfully', 201)

    except ServiceException as e:
        raise

@invitation_bp.route('/', methods=['GET'])
@requires_auth
def list_invitations():
    """List the organisation's invitations, newest first"""
    result = get_console(guarded=False).list_invitations(request.user['organisation_id'])
    return render(result, 'invitations')

@invitation_bp.route('/<invitation_id>', methods=['GET'])
@requires_auth
def get_invitation(invitation_id):
    result = get_console().get_invitation(request.user['organisation_id'], invitation_id)
    return render(result, 'invitation')

@invitation_bp.route('/<invitation_id>/resend', methods=['POST'])
@requires_auth
def resend_invitation(invitation_id):
    result = get_console().resend_invitation(request.user['organisation_id'], invitation_id)
    return render(result, 'invitation', 'Invitation resent')

@invitation_bp.route('/<invitation_id>/revoke', methods=['POST'])
@requires_auth
def revoke_invitation(invitation_id):
    result = get_console().revoke_invitation(request.user['organisation_id'], invitation_id)
    return render(result, 'invitation', 'Invitation revoked')

@invitation_bp.route('/<invitation_id>', methods=['DELETE'])
@requires_auth
def delete_invitation(invitation_id):
    result = get_console().delete_invitation(request.user['organisation_id'], invitation_id)
    return render(result, 'invitation', 'Invitation deleted')

@invitation_bp.route('/cleanup', methods=['POST'])
@requires_auth
def cleanup_expired():
    """Remove expired invitations now, or queue the sweep with ?schedule=true"""
    organisation_id = request.user['organisation_id']

    if request.args.get('schedule', '').lower() == 'true':
        queue_service = current_app.extensions['onboarding']['queue']
        job_id = queue_service.enqueue_cleanup(organisation_id)
        return jsonify({'message': 'Cleanup queued', 'job_id': job_id}), 202

    result = get_console(guarded=False).cleanup_expired(organisation_id)
    return render(result, 'cleanup')

@invitation_bp.route('/redeem', methods=['POST'])
def redeem_invitation():
    """Accept an invitation with its code. Public: the invitee has no account yet."""
    try:
        data = _json_body()
        code = data.get('code')
        email = data.get('email')
        name = data.get('name')

        if not all([code, email, name]):
            raise ValidationError("Missing required fields (code, email, name)", "MISSING_REQUIRED_FIELDS")

        result = get_console(guarded=False).redeem_invitation(code, email, name, data.get('phone'))
        return render(result, 'redemption', 'Invitation accepted')

    except ServiceException as e:
        raise

from onboarding.db.models.organisation import Organisation
from onboarding.db.models.user import User
from onboarding.db.models.invitation import Invitation, InvitationStatus, InvitationRole

__all__ = ['Organisation', 'User', 'Invitation', 'InvitationStatus', 'InvitationRole']

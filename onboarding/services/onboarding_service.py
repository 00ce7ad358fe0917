"""
Signup routing. Maps the plan and role picked on the pricing page, plus
whether the person holds an invitation code, to the onboarding flow they
should go through. Everything here is pure and must never raise: an error
in this funnel means a lost signup, so unknown input falls back to defaults.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional
from urllib.parse import urlencode


class SubscriptionTier(Enum):
    FREE = "free"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


class SignupRole(Enum):
    ORGANIZATION_CREATOR = "organization-creator"
    MEMBER = "member"
    DEPENDENT = "dependent"


class OnboardingCategory(Enum):
    INSTITUTIONAL = "institutional"
    INDIVIDUAL = "individual"
    ORGANIZATION_CREATION = "organization_creation"


# plan the organisation pays for when a dependent joins with a code
COVERED_BY_ORGANISATION = "institutional"

PLAN_TIERS = {
    'free': SubscriptionTier.FREE,
    'neural-starter': SubscriptionTier.FREE,
    'starter': SubscriptionTier.FREE,
    'premium': SubscriptionTier.PREMIUM,
    'quantum-pro': SubscriptionTier.PREMIUM,
    'enterprise': SubscriptionTier.ENTERPRISE,
    'singularity': SubscriptionTier.ENTERPRISE,
}

ROLE_ALIASES = {
    'organization-creator': SignupRole.ORGANIZATION_CREATOR,
    'organisation-creator': SignupRole.ORGANIZATION_CREATOR,
    'principal': SignupRole.ORGANIZATION_CREATOR,
    'member': SignupRole.MEMBER,
    'teacher': SignupRole.MEMBER,
    'dependent': SignupRole.DEPENDENT,
    'parent': SignupRole.DEPENDENT,
}

AFFILIATION_HINTS = {
    SignupRole.ORGANIZATION_CREATOR: 'institution',
    SignupRole.MEMBER: 'institution',
    SignupRole.DEPENDENT: 'none',
}

SIGNUP_PATH = '/signup'
JOIN_PATH = '/signup/join'
ORGANISATION_PATH = '/signup/organization'

FLOW_DESCRIPTIONS = {
    'organization_creation': 'Create and register your school',
    'independent_member': 'Set up your independent teaching practice',
    'institutional_join': 'Join an existing school',
    'individual_family': 'Set up family learning',
    'institutional_dependent': "Connect with your child's school",
    'default': 'Create your account',
}


@dataclass(frozen=True)
class RoutingDecision:
    path: str
    params: Dict[str, str]
    category: OnboardingCategory
    required_steps: List[str]
    institution_type: str = 'none'

    @property
    def flow_type(self) -> str:
        return self.params.get('flow_type', 'default')

    @property
    def url(self) -> str:
        return f"{self.path}?{urlencode(self.params)}"

    def to_dict(self) -> dict:
        return {
            'path': self.path,
            'url': self.url,
            'params': dict(self.params),
            'onboarding_category': self.category.value,
            'required_steps': list(self.required_steps),
            'institution_type': self.institution_type,
            'description': describe_flow(self),
        }


TRUTHY = ('1', 'true', 'yes', 'on')


def _normalise(value) -> str:
    if not isinstance(value, str):
        return ''
    return value.strip().lower().replace('_', '-')


def as_flag(value) -> bool:
    """Query strings and form posts send 'false' and '0' as text"""
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY
    return bool(value)


def map_plan_to_tier(plan_id) -> SubscriptionTier:
    return PLAN_TIERS.get(_normalise(plan_id), SubscriptionTier.FREE)


def map_role(role_id) -> Optional[SignupRole]:
    return ROLE_ALIASES.get(_normalise(role_id))


def resolve(plan_id, role_id, has_invitation_code=False) -> RoutingDecision:
    """
    Pick the onboarding flow. First matching rule wins:
    organisation creators, then members and dependents with/without a code,
    then a generic signup for anything unrecognised.
    """
    tier = map_plan_to_tier(plan_id).value
    role = map_role(role_id)
    has_code = as_flag(has_invitation_code)
    role_param = role.value if role else (_normalise(role_id) or 'unknown')
    institution_type = AFFILIATION_HINTS.get(role, 'none')

    if role == SignupRole.ORGANIZATION_CREATOR:
        return RoutingDecision(
            path=ORGANISATION_PATH,
            params={'plan': tier, 'role': role_param, 'flow_type': 'organization_creation'},
            category=OnboardingCategory.ORGANIZATION_CREATION,
            required_steps=[
                'registration_request',
                'approval_wait',
                'setup',
                'configuration',
                'invite_others'
            ],
            institution_type=institution_type
        )

    if role == SignupRole.MEMBER and not has_code:
        return RoutingDecision(
            path=SIGNUP_PATH,
            params={
                'plan': tier,
                'role': role_param,
                'flow_type': 'independent_member',
                'account_type': 'individual'
            },
            category=OnboardingCategory.INDIVIDUAL,
            required_steps=[
                'account_creation',
                'profile_setup',
                'plan_selection',
                'payment',
                'feature_configuration'
            ],
            institution_type=institution_type
        )

    if role == SignupRole.MEMBER and has_code:
        return RoutingDecision(
            path=JOIN_PATH,
            params={'plan': tier, 'role': role_param, 'flow_type': 'institutional_join'},
            category=OnboardingCategory.INSTITUTIONAL,
            required_steps=[
                'code_validation',
                'account_creation',
                'profile_completion',
                'organization_integration'
            ],
            institution_type=institution_type
        )

    if role == SignupRole.DEPENDENT and not has_code:
        return RoutingDecision(
            path=SIGNUP_PATH,
            params={
                'plan': tier,
                'role': role_param,
                'flow_type': 'individual_family',
                'account_type': 'individual'
            },
            category=OnboardingCategory.INDIVIDUAL,
            required_steps=[
                'account_creation',
                'family_profile',
                'dependent_registration',
                'plan_selection',
                'preference_setup'
            ],
            institution_type=institution_type
        )

    if role == SignupRole.DEPENDENT and has_code:
        # the school covers the subscription
        return RoutingDecision(
            path=JOIN_PATH,
            params={
                'plan': COVERED_BY_ORGANISATION,
                'role': role_param,
                'flow_type': 'institutional_dependent'
            },
            category=OnboardingCategory.INSTITUTIONAL,
            required_steps=[
                'code_validation',
                'account_creation',
                'enrollment_confirmation',
                'preference_setup'
            ],
            institution_type=institution_type
        )

    return RoutingDecision(
        path=SIGNUP_PATH,
        params={'plan': tier, 'role': role_param, 'flow_type': 'default'},
        category=OnboardingCategory.INDIVIDUAL,
        required_steps=['account_creation', 'profile_completion'],
        institution_type=institution_type
    )


def should_prompt_for_invitation_code(plan_id, role_id) -> bool:
    """Plan/role combinations where people usually arrive with a school invitation"""
    tier = PLAN_TIERS.get(_normalise(plan_id))
    role = map_role(role_id)

    if tier == SubscriptionTier.FREE and role in (SignupRole.MEMBER, SignupRole.DEPENDENT):
        return True
    if tier == SubscriptionTier.PREMIUM and role == SignupRole.MEMBER:
        return True
    return False


def describe_flow(decision: RoutingDecision) -> str:
    return FLOW_DESCRIPTIONS.get(decision.flow_type, FLOW_DESCRIPTIONS['default'])

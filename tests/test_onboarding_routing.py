import pytest

from onboarding.services.onboarding_service import (
    COVERED_BY_ORGANISATION,
    OnboardingCategory,
    RoutingDecision,
    describe_flow,
    map_plan_to_tier,
    resolve,
    should_prompt_for_invitation_code,
    SubscriptionTier,
)


def test_organisation_creator_scenario_e():
    decision = resolve("enterprise", "organization-creator", False)

    assert decision.category == OnboardingCategory.ORGANIZATION_CREATION
    assert "approval_wait" in decision.required_steps
    assert decision.required_steps == [
        'registration_request', 'approval_wait', 'setup', 'configuration', 'invite_others'
    ]
    assert decision.params['plan'] == "enterprise"
    assert decision.params['role'] == "organization-creator"


def test_creator_ignores_invitation_code():
    with_code = resolve("enterprise", "organization-creator", True)
    without = resolve("enterprise", "organization-creator", False)
    assert with_code == without


def test_dependent_with_code_scenario_f():
    """The school pays: the selected plan is replaced"""
    decision = resolve("free", "dependent", True)

    assert decision.params['plan'] == COVERED_BY_ORGANISATION
    assert decision.params['plan'] != "free"
    assert decision.category == OnboardingCategory.INSTITUTIONAL
    assert decision.required_steps == [
        'code_validation', 'account_creation', 'enrollment_confirmation', 'preference_setup'
    ]


def test_member_without_code():
    decision = resolve("premium", "member", False)

    assert decision.category == OnboardingCategory.INDIVIDUAL
    assert decision.params == {
        'plan': 'premium',
        'role': 'member',
        'flow_type': 'independent_member',
        'account_type': 'individual',
    }
    assert decision.required_steps == [
        'account_creation', 'profile_setup', 'plan_selection', 'payment', 'feature_configuration'
    ]


def test_member_with_code():
    decision = resolve("premium", "member", True)

    assert decision.category == OnboardingCategory.INSTITUTIONAL
    assert decision.params['plan'] == "premium"
    assert 'account_type' not in decision.params
    assert decision.required_steps[0] == 'code_validation'
    assert decision.required_steps[-1] == 'organization_integration'
    assert decision.path != resolve("premium", "member", False).path


def test_dependent_without_code():
    decision = resolve("free", "dependent", False)

    assert decision.category == OnboardingCategory.INDIVIDUAL
    assert decision.params['account_type'] == 'individual'
    assert decision.required_steps == [
        'account_creation', 'family_profile', 'dependent_registration', 'plan_selection', 'preference_setup'
    ]


def test_unknown_role_falls_back():
    decision = resolve("premium", "astronaut", True)

    assert decision.category == OnboardingCategory.INDIVIDUAL
    assert decision.params['flow_type'] == 'default'
    assert decision.required_steps == ['account_creation', 'profile_completion']


@pytest.mark.parametrize("plan_id, role_id, has_code", [
    (None, None, None),
    (42, ["member"], "yes"),
    ("", "", False),
    ("ENTERPRISE ", " Organization_Creator", 0),
])
def test_resolve_never_raises(plan_id, role_id, has_code):
    decision = resolve(plan_id, role_id, has_code)
    assert isinstance(decision, RoutingDecision)
    assert decision.required_steps


def test_input_normalisation():
    decision = resolve("ENTERPRISE ", " Organization_Creator", False)
    assert decision.category == OnboardingCategory.ORGANIZATION_CREATION
    assert decision.params['plan'] == "enterprise"


def test_legacy_plan_and_role_names():
    assert map_plan_to_tier("neural-starter") == SubscriptionTier.FREE
    assert map_plan_to_tier("quantum-pro") == SubscriptionTier.PREMIUM
    assert map_plan_to_tier("singularity") == SubscriptionTier.ENTERPRISE
    assert map_plan_to_tier("mystery-plan") == SubscriptionTier.FREE

    assert resolve("quantum-pro", "principal").category == OnboardingCategory.ORGANIZATION_CREATION
    assert resolve("neural-starter", "teacher", True).params['flow_type'] == 'institutional_join'
    assert resolve("neural-starter", "parent", True).params['plan'] == COVERED_BY_ORGANISATION


def test_resolve_is_deterministic():
    for plan in ("free", "premium", "enterprise", "unknown"):
        for role in ("organization-creator", "member", "dependent", "other"):
            for has_code in (True, False):
                assert resolve(plan, role, has_code) == resolve(plan, role, has_code)


def test_institution_hint():
    assert resolve("free", "member").institution_type == 'institution'
    assert resolve("free", "organization-creator").institution_type == 'institution'
    assert resolve("free", "dependent").institution_type == 'none'
    assert resolve("free", "nobody").institution_type == 'none'


def test_should_prompt_for_invitation_code():
    assert should_prompt_for_invitation_code("free", "member") == True
    assert should_prompt_for_invitation_code("free", "dependent") == True
    assert should_prompt_for_invitation_code("premium", "member") == True
    assert should_prompt_for_invitation_code("neural-starter", "parent") == True

    assert should_prompt_for_invitation_code("premium", "dependent") == False
    assert should_prompt_for_invitation_code("enterprise", "member") == False
    assert should_prompt_for_invitation_code("free", "organization-creator") == False
    assert should_prompt_for_invitation_code("mystery-plan", "member") == False
    assert should_prompt_for_invitation_code(None, None) == False


def test_decision_url_and_description():
    decision = resolve("free", "dependent", True)

    assert decision.url.startswith(decision.path + "?")
    assert "plan=institutional" in decision.url
    assert describe_flow(decision) == "Connect with your child's school"
    assert describe_flow(resolve("free", "other")) == "Create your account"

    payload = decision.to_dict()
    assert payload['onboarding_category'] == 'institutional'
    assert payload['required_steps'] == decision.required_steps


@pytest.mark.parametrize("flag, flow_type", [
    ("false", "individual_family"),
    ("0", "individual_family"),
    ("", "individual_family"),
    ("no", "individual_family"),
    ("true", "institutional_dependent"),
    (" TRUE ", "institutional_dependent"),
    ("1", "institutional_dependent"),
])
def test_code_flag_given_as_text(flag, flow_type):
    """'false' typed into a form is still no code"""
    assert resolve("free", "dependent", flag).flow_type == flow_type

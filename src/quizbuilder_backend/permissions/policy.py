"""
Subscription policy table.

Single source of truth mapping subscription tiers to the features they
unlock and the usage quotas they carry. The access-control core, the
navigation router and the subscription gating service all read from here.
"""

from typing import Dict, FrozenSet, Iterable, Optional
from pydantic import BaseModel, ConfigDict

from quizbuilder_backend.permissions.principal import PlanTier

MB = 1024 * 1024
UNLIMITED = -1

_ALL = frozenset({PlanTier.BASIC, PlanTier.PRO, PlanTier.ENTERPRISE})
_PRO_UP = frozenset({PlanTier.PRO, PlanTier.ENTERPRISE})
_ENTERPRISE = frozenset({PlanTier.ENTERPRISE})

FEATURE_MATRIX: Dict[str, FrozenSet[PlanTier]] = {
    # Every plan
    "create_quizzes": _ALL,
    "manage_classrooms": _ALL,
    "basic_analytics": _ALL,
    "invite_students": _ALL,
    "take_quizzes": _ALL,
    "view_own_results": _ALL,

    # Pro
    "advanced_analytics": _PRO_UP,
    "quiz_export": _PRO_UP,
    "export_data": _PRO_UP,
    "media_upload": _PRO_UP,
    "scheduled_exams": _PRO_UP,
    "quiz_templates": _PRO_UP,
    "bulk_operations": _PRO_UP,
    "api_access_limited": _PRO_UP,
    "student_pwa": _PRO_UP,
    "automated_grading": _PRO_UP,

    # Enterprise
    "unlimited_students": _ENTERPRISE,
    "unlimited_classrooms": _ENTERPRISE,
    "unlimited_quizzes": _ENTERPRISE,
    "custom_branding": _ENTERPRISE,
    "api_access": _ENTERPRISE,
    "api_access_full": _ENTERPRISE,
    "priority_support": _ENTERPRISE,
    "custom_integrations": _ENTERPRISE,
    "advanced_security": _ENTERPRISE,
    "dedicated_account_manager": _ENTERPRISE,
    "white_labeling": _ENTERPRISE,
    "offline_mode": _ENTERPRISE,
    "advanced_proctoring": _ENTERPRISE,
    "ai_question_generation": _ENTERPRISE,
    "plagiarism_detection": _ENTERPRISE,
}


class UsageLimits(BaseModel):
    """Numeric quotas for a tier; -1 means unlimited"""

    model_config = ConfigDict(frozen=True)

    max_quizzes: int
    max_classrooms: int
    max_students: int
    max_questions_per_quiz: int
    max_file_size: int
    max_monthly_exports: int
    max_api_calls_per_day: int


USAGE_LIMITS: Dict[PlanTier, UsageLimits] = {
    PlanTier.BASIC: UsageLimits(
        max_quizzes=10,
        max_classrooms=3,
        max_students=50,
        max_questions_per_quiz=20,
        max_file_size=5 * MB,
        max_monthly_exports=5,
        max_api_calls_per_day=100,
    ),
    PlanTier.PRO: UsageLimits(
        max_quizzes=100,
        max_classrooms=20,
        max_students=500,
        max_questions_per_quiz=50,
        max_file_size=10 * MB,
        max_monthly_exports=50,
        max_api_calls_per_day=1000,
    ),
    PlanTier.ENTERPRISE: UsageLimits(
        max_quizzes=UNLIMITED,
        max_classrooms=UNLIMITED,
        max_students=UNLIMITED,
        max_questions_per_quiz=UNLIMITED,
        max_file_size=50 * MB,
        max_monthly_exports=UNLIMITED,
        max_api_calls_per_day=UNLIMITED,
    ),
}

ACTION_LIMITS: Dict[str, str] = {
    "create_quiz": "max_quizzes",
    "create_classroom": "max_classrooms",
    "add_student": "max_students",
    "add_question": "max_questions_per_quiz",
    "upload_file": "max_file_size",
    "export_quiz": "max_monthly_exports",
    "api_call": "max_api_calls_per_day",
}


def normalize_tier(tier: Optional[str]) -> PlanTier:
    """Map a raw plan name to a PlanTier, unknown or missing plans are basic"""
    try:
        return PlanTier(tier)
    except ValueError:
        return PlanTier.BASIC


def tier_grants(tier: Optional[str], feature: str) -> bool:
    return normalize_tier(tier) in FEATURE_MATRIX.get(feature, frozenset())


def tier_grants_all(tier: Optional[str], features: Iterable[str]) -> bool:
    return all(tier_grants(tier, feature) for feature in features)


def features_for(tier: Optional[str]) -> list[str]:
    plan = normalize_tier(tier)
    return [feature for feature, tiers in FEATURE_MATRIX.items() if plan in tiers]


def limits_for(tier: Optional[str]) -> UsageLimits:
    return USAGE_LIMITS[normalize_tier(tier)]


def required_plan_for(feature: str) -> PlanTier:
    """Cheapest tier unlocking a feature; unknown features need enterprise"""
    tiers = FEATURE_MATRIX.get(feature)
    if not tiers:
        return PlanTier.ENTERPRISE
    for plan in (PlanTier.BASIC, PlanTier.PRO, PlanTier.ENTERPRISE):
        if plan in tiers:
            return plan
    return PlanTier.ENTERPRISE


def limit_key_for(action: str) -> Optional[str]:
    return ACTION_LIMITS.get(action)


def limit_for(tier: Optional[str], action: str) -> Optional[int]:
    key = limit_key_for(action)
    if key is None:
        return None
    return getattr(limits_for(tier), key)


def can_perform_action(tier: Optional[str], action: str, current_count: int = 0) -> bool:
    """Quota check; actions without a quota are always allowed"""
    limit = limit_for(tier, action)
    if limit is None or limit == UNLIMITED:
        return True
    return current_count < limit

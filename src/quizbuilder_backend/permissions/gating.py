"""
Subscription-based feature gating.

A per-session service answering feature and quota questions for the current
user's plan. It reads the shared policy table; when injected into
``AccessControl`` it takes precedence over direct policy lookups.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

import httpx
from pydantic import BaseModel

from quizbuilder_backend.permissions import policy
from quizbuilder_backend.permissions.errors import NoContextError, SubscriptionError
from quizbuilder_backend.permissions.principal import Actor, PlanTier
from quizbuilder_backend.settings import settings

logger = logging.getLogger(__name__)

CACHE_EXPIRY = timedelta(minutes=5)
USAGE_PATH = "/api/subscription/usage"

PLAN_NAMES = {
    PlanTier.BASIC: "Basic",
    PlanTier.PRO: "Professional",
    PlanTier.ENTERPRISE: "Enterprise",
}

FEATURE_NAMES = {
    "create_quizzes": "Creating quizzes",
    "manage_classrooms": "Managing classrooms",
    "basic_analytics": "Basic analytics",
    "invite_students": "Inviting students",
    "take_quizzes": "Taking quizzes",
    "view_own_results": "Viewing results",
    "advanced_analytics": "Advanced analytics and reporting",
    "quiz_export": "Exporting quizzes",
    "export_data": "Exporting data",
    "media_upload": "Uploading media files",
    "scheduled_exams": "Scheduling exams",
    "quiz_templates": "Using quiz templates",
    "bulk_operations": "Bulk operations",
    "api_access_limited": "Limited API access",
    "unlimited_students": "Unlimited students",
    "unlimited_classrooms": "Unlimited classrooms",
    "unlimited_quizzes": "Unlimited quizzes",
    "custom_branding": "Custom branding",
    "api_access": "API access",
    "api_access_full": "Full API access",
    "priority_support": "Priority support",
    "custom_integrations": "Custom integrations",
    "advanced_security": "Advanced security features",
    "dedicated_account_manager": "Dedicated account manager",
    "white_labeling": "White labeling",
    "student_pwa": "Student PWA access",
    "offline_mode": "Offline mode",
    "advanced_proctoring": "Advanced proctoring",
    "ai_question_generation": "AI-powered question generation",
    "automated_grading": "Automated grading",
    "plagiarism_detection": "Plagiarism detection",
}


class Subscription(BaseModel):
    plan_type: str = PlanTier.BASIC.value
    status: str = "inactive"
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False


class SubscriptionStatus(BaseModel):
    status: str
    plan: str
    expires_at: Optional[datetime] = None
    is_trialing: bool = False
    is_canceled: bool = False
    will_renew: bool = False


class SubscriptionGatingService:

    def __init__(self, client: Optional[httpx.AsyncClient] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.client = client
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.actor: Optional[Actor] = None
        self.subscription: Optional[Subscription] = None
        self._feature_cache: Dict[str, Tuple[bool, datetime]] = {}
        self._usage_cache: Dict[str, Tuple[Any, datetime]] = {}

    def initialize(self, actor: Optional[Actor], subscription: Optional[Subscription] = None):
        self.actor = actor
        self.subscription = subscription
        self.clear_cache()

    def clear_cache(self):
        self._feature_cache.clear()
        self._usage_cache.clear()

    def current_plan(self) -> PlanTier:
        if self.subscription is not None:
            return policy.normalize_tier(self.subscription.plan_type)
        if self.actor is not None:
            return policy.normalize_tier(self.actor.subscription_tier)
        return PlanTier.BASIC

    def _fresh(self, timestamp: datetime) -> bool:
        return self._clock() - timestamp < CACHE_EXPIRY

    # Features

    def has_feature_access(self, feature: str, actor: Optional[Actor] = None) -> bool:
        """Feature check for the session user, or for ``actor`` by its own tier when it is someone else"""
        if actor is not None and (self.actor is None or actor.id != self.actor.id):
            return policy.tier_grants(actor.subscription_tier, feature)

        plan = self.current_plan()
        cache_key = f"{feature}_{plan.value}"

        cached = self._feature_cache.get(cache_key)
        if cached is not None and self._fresh(cached[1]):
            return cached[0]

        has_access = policy.tier_grants(plan.value, feature)
        self._feature_cache[cache_key] = (has_access, self._clock())
        return has_access

    def has_any_feature_access(self, features: Iterable[str]) -> bool:
        return any(self.has_feature_access(feature) for feature in features)

    def available_features(self) -> list[str]:
        return policy.features_for(self.current_plan().value)

    def restriction_message(self, feature: str, current_plan: PlanTier, required_plan: PlanTier) -> str:
        feature_name = FEATURE_NAMES.get(feature, feature)
        return (
            f"{feature_name} is not available on the {PLAN_NAMES[current_plan]} plan. "
            f"Upgrade to {PLAN_NAMES[required_plan]} to unlock this feature."
        )

    def validate_feature_access(self, feature: str, custom_message: Optional[str] = None) -> bool:
        """Raise SubscriptionError when the current plan lacks ``feature``"""
        if self.has_feature_access(feature):
            return True

        required_plan = policy.required_plan_for(feature)
        message = custom_message or self.restriction_message(feature, self.current_plan(), required_plan)
        raise SubscriptionError(message, "FEATURE_RESTRICTED", upgrade_required=True)

    # Quotas

    def usage_limits(self) -> policy.UsageLimits:
        return policy.limits_for(self.current_plan().value)

    def can_perform_action(self, action: str, current_count: int = 0) -> bool:
        return policy.can_perform_action(self.current_plan().value, action, current_count)

    def is_near_usage_limit(self, action: str, current_usage: int, threshold: float = 0.8) -> bool:
        limit = policy.limit_for(self.current_plan().value, action)
        if limit is None or limit == policy.UNLIMITED or limit == 0:
            return False
        return current_usage / limit >= threshold

    def usage_warning_message(self, action: str, current_usage: int) -> Optional[str]:
        limit = policy.limit_for(self.current_plan().value, action)
        if limit is None or limit == policy.UNLIMITED:
            return None

        remaining = limit - current_usage

        if remaining <= 0:
            return f"You've reached your limit for {action}. Upgrade your plan to continue."

        if remaining <= 5:
            return f"You have {remaining} {action} remaining. Consider upgrading to avoid interruptions."

        return None

    async def current_usage(self) -> Any:
        """Fetch usage statistics for the current user, cached for five minutes"""
        if self.actor is None:
            raise NoContextError("User context required")

        cache_key = f"usage_{self.actor.id}"
        cached = self._usage_cache.get(cache_key)
        if cached is not None and self._fresh(cached[1]):
            return cached[0]

        client = self.client or httpx.AsyncClient(base_url=settings.API_BASE_URL, timeout=settings.API_TIMEOUT)
        headers = {"Authorization": f"Bearer {settings.API_TOKEN}"} if settings.API_TOKEN else {}

        try:
            response = await client.get(USAGE_PATH, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch usage data: {e}")
            raise SubscriptionError("Failed to fetch usage data", "NETWORK_ERROR")
        finally:
            if self.client is None:
                await client.aclose()

        if response.is_error:
            raise SubscriptionError("Failed to fetch usage data", "USAGE_FETCH_ERROR")

        usage = response.json()
        self._usage_cache[cache_key] = (usage, self._clock())
        return usage

    # Subscription state

    def subscription_status(self) -> SubscriptionStatus:
        subscription = self.subscription
        if subscription is None:
            return SubscriptionStatus(status="inactive", plan=PlanTier.BASIC.value)

        return SubscriptionStatus(
            status=subscription.status,
            plan=subscription.plan_type,
            expires_at=subscription.current_period_end,
            is_trialing=subscription.status == "trialing",
            is_canceled=subscription.cancel_at_period_end,
            will_renew=not subscription.cancel_at_period_end,
        )

    def is_subscription_active(self) -> bool:
        return self.subscription_status().status in ("active", "trialing")

    def days_until_expiration(self) -> Optional[int]:
        expires_at = self.subscription_status().expires_at
        if expires_at is None:
            return None

        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        days = math.ceil((expires_at - self._clock()).total_seconds() / 86400)
        return days if days > 0 else 0

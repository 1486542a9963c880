"""Aggregate model imports for Alembic auto-detection."""

from schoolhub.models.user import User, UserStatus, UserType  # noqa: F401
from schoolhub.models.user_onboarding import (  # noqa: F401
    OnboardingStatus,
    OnboardingStep,
    UserOnboarding,
)
from schoolhub.models.activity_log import ActivityLog  # noqa: F401

"""Tracks onboarding progress per user.

One row per user (created on the first initialize request). Stores the
ordered step the user is on, which steps are completed, and the payload
submitted with each completed step.

Steps are gated by STEP_DEPENDENCIES rather than by their position in the
canonical order: the school branch (registration → verification) and the
role branch (role selection → permissions) both open once school selection
is done and can be worked through in either order.
"""

import enum
import uuid
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolhub.database import Base


class OnboardingStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    REQUIRES_APPROVAL = "requires_approval"


class OnboardingStep(str, enum.Enum):
    # Account
    ACCOUNT_CREATION = "account_creation"
    EMAIL_VERIFICATION = "email_verification"
    PROFILE_SETUP = "profile_setup"

    # School
    SCHOOL_SELECTION = "school_selection"
    SCHOOL_REGISTRATION = "school_registration"
    SCHOOL_VERIFICATION = "school_verification"

    # Role
    ROLE_SELECTION = "role_selection"
    PERMISSIONS_SETUP = "permissions_setup"

    # Final
    DASHBOARD_TOUR = "dashboard_tour"
    COMPLETION = "completion"


# Canonical order: drives next-step scanning and the progress denominator.
STEP_ORDER: tuple[OnboardingStep, ...] = tuple(OnboardingStep)
TOTAL_STEPS = len(STEP_ORDER)

# Step prerequisites: {step: (must_be_completed_first, ...)}
STEP_DEPENDENCIES: Mapping[OnboardingStep, tuple[OnboardingStep, ...]] = MappingProxyType({
    OnboardingStep.ACCOUNT_CREATION: (),
    OnboardingStep.EMAIL_VERIFICATION: (OnboardingStep.ACCOUNT_CREATION,),
    OnboardingStep.PROFILE_SETUP: (OnboardingStep.EMAIL_VERIFICATION,),
    OnboardingStep.SCHOOL_SELECTION: (OnboardingStep.PROFILE_SETUP,),
    OnboardingStep.SCHOOL_REGISTRATION: (OnboardingStep.SCHOOL_SELECTION,),
    OnboardingStep.SCHOOL_VERIFICATION: (OnboardingStep.SCHOOL_REGISTRATION,),
    OnboardingStep.ROLE_SELECTION: (OnboardingStep.SCHOOL_SELECTION,),
    OnboardingStep.PERMISSIONS_SETUP: (OnboardingStep.ROLE_SELECTION,),
    OnboardingStep.DASHBOARD_TOUR: (OnboardingStep.PERMISSIONS_SETUP,),
    OnboardingStep.COMPLETION: (OnboardingStep.DASHBOARD_TOUR,),
})


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class UserOnboarding(Base):
    __tablename__ = "user_onboarding"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    status: Mapped[OnboardingStatus] = mapped_column(
        SAEnum(
            OnboardingStatus,
            name="onboarding_status_enum",
            values_callable=_enum_values,
        ),
        default=OnboardingStatus.NOT_STARTED,
        index=True,
    )
    current_step: Mapped[OnboardingStep] = mapped_column(
        SAEnum(
            OnboardingStep,
            name="onboarding_step_enum",
            values_callable=_enum_values,
        ),
        default=OnboardingStep.ACCOUNT_CREATION,
        index=True,
    )
    # JSON columns are reassigned on every change, never mutated in place,
    # so the ORM sees the new value on flush.
    completed_steps: Mapped[list] = mapped_column(JSON, default=list)
    step_data: Mapped[dict | None] = mapped_column(JSON, default=dict)

    started_at: Mapped[datetime | None] = mapped_column(DateTime)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)
    last_step_at: Mapped[datetime | None] = mapped_column(DateTime)
    abandoned_at: Mapped[datetime | None] = mapped_column(DateTime)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime)
    approved_by: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL")
    )
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    user = relationship("User", foreign_keys="UserOnboarding.user_id", lazy="raise")

    # ── Status predicates ──────────────────────────────────────

    @property
    def is_completed(self) -> bool:
        return self.status == OnboardingStatus.COMPLETED

    @property
    def is_in_progress(self) -> bool:
        return self.status == OnboardingStatus.IN_PROGRESS

    @property
    def is_abandoned(self) -> bool:
        return self.status == OnboardingStatus.ABANDONED

    @property
    def is_pending_approval(self) -> bool:
        return self.status == OnboardingStatus.REQUIRES_APPROVAL

    # ── Derived views ──────────────────────────────────────────

    @property
    def progress_percentage(self) -> int:
        completed = self.completed_steps or []
        if not completed:
            return 0
        return round(100 * len(completed) / TOTAL_STEPS)

    def has_completed_step(self, step: OnboardingStep) -> bool:
        return step in (self.completed_steps or [])

    def can_proceed_to_step(self, step: OnboardingStep) -> bool:
        return all(self.has_completed_step(dep) for dep in STEP_DEPENDENCIES[step])

    def get_next_step(self) -> OnboardingStep | None:
        """First eligible, uncompleted step after the current one, if any."""
        start = STEP_ORDER.index(OnboardingStep(self.current_step)) + 1
        for step in STEP_ORDER[start:]:
            if self.can_proceed_to_step(step) and not self.has_completed_step(step):
                return step
        return None

    def get_step_data(self, step: OnboardingStep) -> Any:
        return (self.step_data or {}).get(step.value)

    def set_step_data(self, step: OnboardingStep, data: Any) -> None:
        step_data = dict(self.step_data or {})
        step_data[step.value] = data
        self.step_data = step_data

    # ── Transitions (called only by the onboarding service) ────

    def complete_step(self, step: OnboardingStep) -> None:
        if not self.has_completed_step(step):
            self.completed_steps = list(self.completed_steps or []) + [step.value]
        self.last_step_at = datetime.utcnow()

    def start(self) -> None:
        self.status = OnboardingStatus.IN_PROGRESS
        self.started_at = datetime.utcnow()

    def complete(self) -> None:
        self.status = OnboardingStatus.COMPLETED
        self.completed_at = datetime.utcnow()

    def abandon(self) -> None:
        self.status = OnboardingStatus.ABANDONED
        if self.abandoned_at is None:
            self.abandoned_at = datetime.utcnow()

    def require_approval(self) -> None:
        self.status = OnboardingStatus.REQUIRES_APPROVAL

    def approve(self, approved_by: str) -> None:
        self.status = OnboardingStatus.COMPLETED
        self.approved_at = datetime.utcnow()
        self.approved_by = approved_by

    def reset(self) -> None:
        self.status = OnboardingStatus.NOT_STARTED
        self.current_step = OnboardingStep.ACCOUNT_CREATION
        self.completed_steps = []
        self.step_data = {}
        self.started_at = None
        self.completed_at = None
        self.last_step_at = None
        self.abandoned_at = None
        self.approved_at = None
        self.approved_by = None
        self.notes = None

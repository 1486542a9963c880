"""Pydantic schemas for the user onboarding workflow.

Request bodies, the record/progress/stats responses, and the per-step
payload schemas. Payload schemas only pin the fields a step cannot do
without; every one of them keeps extra keys so the dashboard can store
whatever else it collects alongside.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from schoolhub.models.user import UserType
from schoolhub.models.user_onboarding import OnboardingStatus, OnboardingStep


# ── Per-step payloads ───────────────────────────────────────

class StepPayload(BaseModel):
    model_config = ConfigDict(extra="allow")


class ProfileSetupData(StepPayload):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone: str | None = None
    avatar: str | None = None


class SchoolSelectionData(StepPayload):
    school_id: str = Field(min_length=1)


class SchoolRegistrationData(StepPayload):
    """Submitted when the user's school is not yet on the platform."""
    school_name: str = Field(min_length=1)
    address: str | None = None
    city: str | None = None
    country: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None


class RoleSelectionData(StepPayload):
    role: Literal["student", "teacher", "admin"]


class PermissionsSetupData(StepPayload):
    permissions: list[str]


STEP_PAYLOAD_SCHEMAS: dict[OnboardingStep, type[StepPayload]] = {
    OnboardingStep.PROFILE_SETUP: ProfileSetupData,
    OnboardingStep.SCHOOL_SELECTION: SchoolSelectionData,
    OnboardingStep.SCHOOL_REGISTRATION: SchoolRegistrationData,
    OnboardingStep.ROLE_SELECTION: RoleSelectionData,
    OnboardingStep.PERMISSIONS_SETUP: PermissionsSetupData,
}


def validate_step_data(step: OnboardingStep, data: dict) -> dict:
    """Validate a step payload and return it as a plain JSON-ready dict.

    Steps without a registered schema accept any object unchanged.
    """
    schema = STEP_PAYLOAD_SCHEMAS.get(step)
    if schema is None:
        return data
    return schema.model_validate(data).model_dump(mode="json", exclude_none=True)


# ── Request bodies ──────────────────────────────────────────

class StepCompletion(BaseModel):
    step: OnboardingStep
    data: dict | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def _validate_payload(self):
        if self.data is not None:
            try:
                self.data = validate_step_data(self.step, self.data)
            except ValidationError as exc:
                problems = "; ".join(
                    f"{'.'.join(str(p) for p in err['loc']) or 'data'}: {err['msg']}"
                    for err in exc.errors()
                )
                raise ValueError(f"Invalid data for step {self.step.value}: {problems}")
        return self


class AbandonOnboarding(BaseModel):
    reason: str | None = None


class RequireApproval(BaseModel):
    notes: str | None = None


class ApproveOnboarding(BaseModel):
    notes: str | None = None


# ── Responses ───────────────────────────────────────────────

class OnboardingOut(BaseModel):
    id: str
    user_id: str
    status: OnboardingStatus
    current_step: OnboardingStep
    completed_steps: list[OnboardingStep]
    step_data: dict | None = None
    progress_percentage: int
    started_at: datetime | None = None
    completed_at: datetime | None = None
    last_step_at: datetime | None = None
    abandoned_at: datetime | None = None
    approved_at: datetime | None = None
    approved_by: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OnboardingUserSummary(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    user_type: UserType

    model_config = {"from_attributes": True}


class PendingApprovalOut(OnboardingOut):
    user: OnboardingUserSummary


class OnboardingProgress(BaseModel):
    """Read-only projection of one user's onboarding state."""
    id: str
    user_id: str
    status: OnboardingStatus
    current_step: OnboardingStep
    completed_steps: list[OnboardingStep]
    progress_percentage: int
    started_at: datetime | None = None
    completed_at: datetime | None = None
    last_step_at: datetime | None = None
    can_proceed: bool
    next_step: OnboardingStep | None = None

    model_config = ConfigDict(frozen=True)


class OnboardingStats(BaseModel):
    total: int
    completed: int
    in_progress: int
    abandoned: int
    pending_approval: int
    not_started: int

    model_config = ConfigDict(frozen=True)

"""User onboarding: per-user progress through the setup steps.

Endpoints (caller's own record):
  POST /api/onboarding/initialize        → create (or fetch) the record
  POST /api/onboarding/start             → not_started → in_progress
  PUT  /api/onboarding/step              → complete one step
  GET  /api/onboarding/progress          → progress projection
  POST /api/onboarding/abandon           → give up
  POST /api/onboarding/require-approval  → hand over to an admin

Admin endpoints:
  POST /api/onboarding/approve/{user_id} → admin, super_admin
  GET  /api/onboarding/pending-approval  → admin, super_admin
  GET  /api/onboarding/stats             → super_admin
  POST /api/onboarding/reset/{user_id}   → super_admin

Every successful transition is written to the activity log.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.auth.deps import get_current_user, require_role
from schoolhub.database import get_db
from schoolhub.models.user import User, UserType
from schoolhub.models.user_onboarding import UserOnboarding
from schoolhub.schemas.onboarding import (
    AbandonOnboarding,
    ApproveOnboarding,
    OnboardingOut,
    OnboardingProgress,
    OnboardingStats,
    PendingApprovalOut,
    RequireApproval,
    StepCompletion,
)
from schoolhub.services import onboarding as onboarding_service
from schoolhub.utils.activity import log_activity

router = APIRouter()

ADMIN_ROLES = (UserType.ADMIN, UserType.SUPER_ADMIN)


async def _record(
    db: AsyncSession,
    actor: User,
    onboarding: UserOnboarding,
    action: str,
    summary: str,
    details: dict | None = None,
) -> None:
    await log_activity(
        db, actor,
        action=action,
        entity_type="onboarding",
        entity_id=onboarding.id,
        entity_code=onboarding.user_id,
        summary=summary,
        details=details,
    )


# ── Caller's own onboarding ──────────────────────────────────

@router.post("/initialize", response_model=OnboardingOut, status_code=status.HTTP_201_CREATED)
async def initialize_onboarding(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    onboarding = await onboarding_service.initialize_onboarding(db, user.id)
    await _record(db, user, onboarding, "initialized", f"Initialized onboarding for {user.email}")
    return onboarding


@router.post("/start", response_model=OnboardingOut)
async def start_onboarding(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    onboarding = await onboarding_service.start_onboarding(db, user.id)
    await _record(db, user, onboarding, "started", f"Started onboarding for {user.email}")
    return onboarding


@router.put("/step", response_model=OnboardingOut)
async def complete_step(
    body: StepCompletion,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Complete one step. `data` is validated against the step's payload schema."""
    onboarding = await onboarding_service.complete_step(db, user.id, body.step, body.data)

    details = {"step": body.step.value, "status": onboarding.status.value}
    if body.notes:
        details["notes"] = body.notes
    await _record(
        db, user, onboarding, "step_completed",
        f"Completed onboarding step {body.step.value}",
        details=details,
    )
    return onboarding


@router.get("/progress", response_model=OnboardingProgress)
async def get_progress(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await onboarding_service.get_onboarding_progress(db, user.id)


@router.post("/abandon", response_model=OnboardingOut)
async def abandon_onboarding(
    body: AbandonOnboarding,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    onboarding = await onboarding_service.abandon_onboarding(db, user.id, body.reason)
    await _record(db, user, onboarding, "abandoned", body.reason or "Abandoned onboarding")
    return onboarding


@router.post("/require-approval", response_model=OnboardingOut)
async def require_approval(
    body: RequireApproval,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    onboarding = await onboarding_service.require_approval(db, user.id, body.notes)
    await _record(
        db, user, onboarding, "approval_required",
        body.notes or "Onboarding sent for approval",
    )
    return onboarding


# ── Admin ────────────────────────────────────────────────────

@router.post("/approve/{user_id}", response_model=OnboardingOut)
async def approve_onboarding(
    user_id: str,
    body: ApproveOnboarding,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_role(*ADMIN_ROLES)),
):
    onboarding = await onboarding_service.approve_onboarding(db, user_id, admin.id, body.notes)
    await _record(
        db, admin, onboarding, "approved",
        body.notes or f"Approved onboarding for user {user_id}",
    )
    return onboarding


@router.get("/pending-approval", response_model=list[PendingApprovalOut])
async def list_pending_approval(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_role(*ADMIN_ROLES)),
):
    return await onboarding_service.list_pending_approval(db)


@router.get("/stats", response_model=OnboardingStats)
async def get_stats(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_role(UserType.SUPER_ADMIN)),
):
    return await onboarding_service.get_onboarding_stats(db)


@router.post("/reset/{user_id}", response_model=OnboardingOut)
async def reset_onboarding(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_role(UserType.SUPER_ADMIN)),
):
    onboarding = await onboarding_service.reset_onboarding(db, user_id)
    await _record(db, admin, onboarding, "reset", f"Reset onboarding for user {user_id}")
    return onboarding

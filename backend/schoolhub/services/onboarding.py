"""User onboarding workflow.

State machine:
  not_started ─start─▶ in_progress ─▶ completed | abandoned | requires_approval
  requires_approval ─approve─▶ completed
  any ─reset─▶ not_started

Every mutating operation loads the user's record with SELECT ... FOR UPDATE
so concurrent requests for the same user serialize on the row, applies one
transition, and flushes. Committing is left to the caller's session scope.

Completion is derived: once a step is completed and no eligible,
uncompleted step remains after it, the record moves to completed on its
own. Steps only need their declared prerequisites, not every step that
precedes them in the canonical order.

Raises the typed errors from schoolhub.middleware.exceptions; nothing here
logs, retries, or partially applies a transition.
"""

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from schoolhub.middleware.exceptions import (
    InvalidOnboardingStateError,
    OnboardingNotFoundError,
    PrerequisiteNotMetError,
    UserNotFoundError,
)
from schoolhub.models.user_onboarding import (
    STEP_DEPENDENCIES,
    OnboardingStatus,
    OnboardingStep,
    UserOnboarding,
)
from schoolhub.schemas.onboarding import OnboardingProgress, OnboardingStats
from schoolhub.services.users import user_exists


# ── Helpers ──────────────────────────────────────────────────

async def _find_onboarding(
    db: AsyncSession, user_id: str, *, for_update: bool = False
) -> UserOnboarding | None:
    stmt = select(UserOnboarding).where(UserOnboarding.user_id == user_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_onboarding(
    db: AsyncSession, user_id: str, *, for_update: bool = False
) -> UserOnboarding:
    """Load a user's onboarding record or raise OnboardingNotFoundError."""
    onboarding = await _find_onboarding(db, user_id, for_update=for_update)
    if onboarding is None:
        raise OnboardingNotFoundError(user_id)
    return onboarding


# ── Commands ─────────────────────────────────────────────────

async def initialize_onboarding(db: AsyncSession, user_id: str) -> UserOnboarding:
    """Create the user's onboarding record, or return the existing one unchanged."""
    if not await user_exists(db, user_id):
        raise UserNotFoundError(user_id)

    existing = await _find_onboarding(db, user_id)
    if existing is not None:
        return existing

    onboarding = UserOnboarding(
        user_id=user_id,
        status=OnboardingStatus.NOT_STARTED,
        current_step=OnboardingStep.ACCOUNT_CREATION,
        completed_steps=[],
        step_data={},
    )
    try:
        # A lost race rolls back only this savepoint.
        async with db.begin_nested():
            db.add(onboarding)
    except IntegrityError:
        # A concurrent request inserted the row first (unique user_id).
        existing = await _find_onboarding(db, user_id)
        if existing is None:
            raise
        return existing
    return onboarding


async def start_onboarding(db: AsyncSession, user_id: str) -> UserOnboarding:
    onboarding = await get_onboarding(db, user_id, for_update=True)

    if onboarding.status != OnboardingStatus.NOT_STARTED:
        raise InvalidOnboardingStateError("Onboarding has already been started")

    onboarding.start()
    await db.flush()
    return onboarding


async def complete_step(
    db: AsyncSession,
    user_id: str,
    step: OnboardingStep,
    data: dict | None = None,
) -> UserOnboarding:
    """Mark `step` complete, storing `data` under it when given.

    Moves the record to completed when no eligible step is left after it.
    """
    step = OnboardingStep(step)
    onboarding = await get_onboarding(db, user_id, for_update=True)

    if onboarding.status != OnboardingStatus.IN_PROGRESS:
        raise InvalidOnboardingStateError("Onboarding is not in progress")

    if not onboarding.can_proceed_to_step(step):
        missing = [
            dep.value for dep in STEP_DEPENDENCIES[step]
            if not onboarding.has_completed_step(dep)
        ]
        raise PrerequisiteNotMetError(step.value, missing)

    if data is not None:
        onboarding.set_step_data(step, data)

    onboarding.complete_step(step)
    onboarding.current_step = step

    if onboarding.get_next_step() is None:
        onboarding.complete()

    await db.flush()
    return onboarding


async def abandon_onboarding(
    db: AsyncSession, user_id: str, reason: str | None = None
) -> UserOnboarding:
    onboarding = await get_onboarding(db, user_id, for_update=True)

    if onboarding.status == OnboardingStatus.COMPLETED:
        raise InvalidOnboardingStateError("Cannot abandon completed onboarding")

    onboarding.abandon()
    if reason:
        onboarding.notes = reason

    await db.flush()
    return onboarding


async def require_approval(
    db: AsyncSession, user_id: str, notes: str | None = None
) -> UserOnboarding:
    onboarding = await get_onboarding(db, user_id, for_update=True)

    onboarding.require_approval()
    if notes:
        onboarding.notes = notes

    await db.flush()
    return onboarding


async def approve_onboarding(
    db: AsyncSession,
    user_id: str,
    approver_id: str,
    notes: str | None = None,
) -> UserOnboarding:
    onboarding = await get_onboarding(db, user_id, for_update=True)

    if onboarding.status != OnboardingStatus.REQUIRES_APPROVAL:
        raise InvalidOnboardingStateError("Onboarding does not require approval")

    onboarding.approve(approver_id)
    if notes:
        onboarding.notes = notes

    await db.flush()
    return onboarding


async def reset_onboarding(db: AsyncSession, user_id: str) -> UserOnboarding:
    """Return the record to its freshly-initialized state, in place."""
    onboarding = await get_onboarding(db, user_id, for_update=True)
    onboarding.reset()
    await db.flush()
    return onboarding


# ── Queries ──────────────────────────────────────────────────

async def get_onboarding_progress(db: AsyncSession, user_id: str) -> OnboardingProgress:
    onboarding = await get_onboarding(db, user_id)

    return OnboardingProgress(
        id=onboarding.id,
        user_id=onboarding.user_id,
        status=onboarding.status,
        current_step=onboarding.current_step,
        completed_steps=list(onboarding.completed_steps or []),
        progress_percentage=onboarding.progress_percentage,
        started_at=onboarding.started_at,
        completed_at=onboarding.completed_at,
        last_step_at=onboarding.last_step_at,
        can_proceed=onboarding.can_proceed_to_step(OnboardingStep(onboarding.current_step)),
        next_step=onboarding.get_next_step(),
    )


async def list_pending_approval(db: AsyncSession) -> list[UserOnboarding]:
    """Records awaiting approval, oldest first, with their users loaded."""
    result = await db.execute(
        select(UserOnboarding)
        .where(UserOnboarding.status == OnboardingStatus.REQUIRES_APPROVAL)
        .options(selectinload(UserOnboarding.user))
        .order_by(UserOnboarding.created_at.asc())
    )
    return list(result.scalars().all())


async def get_onboarding_stats(db: AsyncSession) -> OnboardingStats:
    """Count records per status in a single grouped query."""
    result = await db.execute(
        select(UserOnboarding.status, func.count(UserOnboarding.id))
        .group_by(UserOnboarding.status)
    )
    counts = {status: count for status, count in result.all()}

    return OnboardingStats(
        total=sum(counts.values()),
        completed=counts.get(OnboardingStatus.COMPLETED, 0),
        in_progress=counts.get(OnboardingStatus.IN_PROGRESS, 0),
        abandoned=counts.get(OnboardingStatus.ABANDONED, 0),
        pending_approval=counts.get(OnboardingStatus.REQUIRES_APPROVAL, 0),
        not_started=counts.get(OnboardingStatus.NOT_STARTED, 0),
    )

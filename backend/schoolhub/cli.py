"""Management CLI for onboarding administration.

Usage:
    python -m schoolhub.cli stats              # Onboarding counts per status
    python -m schoolhub.cli pending            # Records waiting for approval
    python -m schoolhub.cli reset <user_id>    # Reset a user's onboarding
"""

import asyncio
import sys

from schoolhub.database import async_session
from schoolhub.middleware.exceptions import OnboardingNotFoundError
from schoolhub.services import onboarding as onboarding_service


async def show_stats():
    async with async_session() as db:
        stats = await onboarding_service.get_onboarding_stats(db)
    for name, count in stats.model_dump().items():
        print(f"  {name:<17}{count}")


async def list_pending():
    async with async_session() as db:
        records = await onboarding_service.list_pending_approval(db)
    for record in records:
        print(f"  {record.user_id}  {record.user.email}  since {record.created_at:%Y-%m-%d}")
    print(f"\n{len(records)} pending approval(s)")


async def reset(user_id: str) -> int:
    async with async_session() as db:
        try:
            await onboarding_service.reset_onboarding(db, user_id)
        except OnboardingNotFoundError as exc:
            print(f"  FAILED: {exc.message}")
            return 1
        await db.commit()
    print(f"  Reset onboarding for {user_id}")
    return 0


def main(argv: list[str]) -> int:
    cmd = argv[1] if len(argv) > 1 else ""
    if cmd == "stats":
        asyncio.run(show_stats())
    elif cmd == "pending":
        asyncio.run(list_pending())
    elif cmd == "reset" and len(argv) > 2:
        return asyncio.run(reset(argv[2]))
    else:
        print("Usage: python -m schoolhub.cli [stats|pending|reset <user_id>]")
        return 2
    return 0


def run():
    sys.exit(main(sys.argv))


if __name__ == "__main__":
    run()

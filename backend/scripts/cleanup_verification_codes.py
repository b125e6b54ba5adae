"""Delete expired email verification codes.

Standalone script for a daily cron job. Codes are kept for a day after
they expire, then hard deleted. Account creation tokens are never deleted.

Usage:
    cd backend && python -m scripts.cleanup_verification_codes
"""

import logging
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.services.verification_code_service import VerificationCodeService

logger = logging.getLogger(__name__)


async def run_cleanup(session: AsyncSession, now: datetime) -> int:
    """Delete codes that expired more than a day before ``now``.

    Args:
        session: Active async database session. Caller commits.
        now: Reference time.

    Returns:
        Number of deleted codes.
    """
    return await VerificationCodeService(session).cleanup_expired(now)


async def main() -> None:
    """CLI entry point: run cleanup against the configured database."""
    from app.core.database import async_session_factory, engine

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    async with async_session_factory() as session:
        deleted = await run_cleanup(session, datetime.now(UTC))
        await session.commit()

    await engine.dispose()

    logger.info("Cleanup complete: %d verification codes deleted", deleted)


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())

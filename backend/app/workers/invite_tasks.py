"""
Invite background tasks.
Hard-deletes invites whose expiry has passed. Accept re-checks expiry on
its own, so a late run never lets an expired invite through.
"""

from __future__ import annotations

import asyncio
import logging

from app.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    name="app.workers.invite_tasks.purge_expired_invites",
    bind=True,
    max_retries=3,
    default_retry_delay=30,
)
def purge_expired_invites(self) -> dict[str, int]:
    try:
        # Always create a fresh event loop: forked workers can inherit a
        # closed one, and pooled connections bound to it.
        from app.core.database import async_engine
        async_engine.sync_engine.dispose()

        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            deleted = loop.run_until_complete(_purge())
        finally:
            loop.close()
        logger.info("Purged expired invites count=%d", deleted)
        return {"deleted": deleted}
    except Exception as exc:
        logger.error("purge_expired_invites failed: %s", exc)
        raise self.retry(exc=exc)


async def _purge() -> int:
    from app.core.database import AsyncSessionLocal
    from app.models.base import utcnow
    from app.services.membership_store import MembershipStore

    async with AsyncSessionLocal() as session:
        deleted = await MembershipStore(session).delete_expired_invites(utcnow())
        await session.commit()
        return deleted

"""
Rate Counter Store
Atomic increment-or-create over the rate_limits table
"""

from datetime import datetime

from sqlalchemy import delete
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from chartshare.core.logging import get_logger
from chartshare.db.models import RateCounter

logger = get_logger(__name__)

_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}

# Dialects already reported as lacking an upsert
_unsupported_dialects = set()


class RateCounterStore:
    """Counter records keyed by identity:action:windowIndex"""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _insert(self):
        dialect = self.db.bind.dialect.name
        try:
            return _INSERTS[dialect]
        except KeyError:
            if dialect not in _unsupported_dialects:
                _unsupported_dialects.add(dialect)
                logger.warning(f"No atomic upsert for dialect {dialect}; rate limits are not enforced")
            raise NotImplementedError(f"No atomic upsert for dialect: {dialect}")

    async def increment(
        self,
        counter_id: str,
        identity: str,
        action: str,
        window_start: datetime,
        expires_at: datetime,
    ) -> int:
        """
        Increment a counter, creating it at 1 if absent

        One INSERT ... ON CONFLICT DO UPDATE ... RETURNING round-trip, so
        concurrent callers never observe a stale count.

        Returns:
            Count after the increment
        """
        insert = self._insert()
        stmt = insert(RateCounter).values(
            id=counter_id,
            user_id=identity,
            action=action,
            count=1,
            window_start=window_start,
            expires_at=expires_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[RateCounter.id],
            set_={"count": RateCounter.count + 1},
        ).returning(RateCounter.count)

        result = await self.db.execute(stmt)
        count = result.scalar_one()
        await self.db.commit()
        return count

    async def purge_expired(self, now: datetime) -> int:
        """Delete counters whose window has closed; returns rows removed"""
        result = await self.db.execute(delete(RateCounter).where(RateCounter.expires_at <= now))
        await self.db.commit()
        purged = result.rowcount or 0
        if purged:
            logger.info(f"Purged {purged} expired rate counters")
        return purged

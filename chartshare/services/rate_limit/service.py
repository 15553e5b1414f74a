"""
Rate Limiter
Per-identity, per-action throttling over fixed epoch-aligned windows
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Dict, Mapping, Optional, Tuple

from chartshare.core.config import settings
from chartshare.core.exceptions import FailurePolicy
from chartshare.core.logging import get_logger
from chartshare.db.base import utcnow
from chartshare.monitoring import rate_limit_decisions_total, store_faults_total
from chartshare.services.rate_limit.models import RateLimitResult
from chartshare.services.rate_limit.policies import ANONYMOUS_PREFIX, RATE_LIMITS, RateLimitPolicy
from chartshare.services.rate_limit.store import RateCounterStore

logger = get_logger(__name__)

_EPOCH = datetime(1970, 1, 1)
# Counters outlive their window by this much before they may be purged
EXPIRY_BUFFER = timedelta(minutes=1)


def get_client_ip(headers: Mapping[str, str]) -> str:
    """Original client address; the first x-forwarded-for entry wins"""
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return headers.get("x-client-ip") or headers.get("x-real-ip") or "unknown"


def _epoch_ms(moment: datetime) -> int:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return int((moment - _EPOCH) / timedelta(milliseconds=1))


class RateLimiter:
    """
    Fixed-window rate limiter

    Any counter store fault allows the call through; throttling is advisory
    next to availability.
    """

    FAILURE_POLICY = FailurePolicy.FAIL_OPEN

    def __init__(
        self,
        db,
        policies: Optional[Dict[str, RateLimitPolicy]] = None,
        store: Optional[RateCounterStore] = None,
    ):
        self.db = db
        self.policies = policies if policies is not None else RATE_LIMITS
        self.store = store or RateCounterStore(db)

    def policy_for(self, action: str, is_anonymous: bool = False) -> Tuple[str, Optional[RateLimitPolicy]]:
        """Effective action name and policy, preferring the anonymous variant"""
        if is_anonymous:
            anonymous_action = f"{ANONYMOUS_PREFIX}{action}"
            if anonymous_action in self.policies:
                return anonymous_action, self.policies[anonymous_action]
        return action, self.policies.get(action)

    async def check(
        self,
        identity: Optional[str],
        action: str,
        is_anonymous: bool = False,
        now: Optional[datetime] = None,
    ) -> RateLimitResult:
        """
        Count one attempt and decide whether it may proceed

        Args:
            identity: User id, or the caller IP for anonymous callers
            action: Policy name such as SAVE_CHART
            is_anonymous: Use the ANONYMOUS_ policy when one exists
            now: Clock override

        Returns:
            RateLimitResult; a denial carries retry_after_seconds >= 1
        """
        if not settings.RATE_LIMIT_ENABLED:
            return RateLimitResult(allowed=True)

        if not identity:
            logger.warning(f"Rate limiter: no identity for {action}, allowing")
            return RateLimitResult(allowed=True)

        action, policy = self.policy_for(action, is_anonymous)
        if policy is None:
            return RateLimitResult(allowed=True)

        now = now or utcnow()
        window_index = _epoch_ms(now) // policy.window_ms
        window_start = _EPOCH + timedelta(milliseconds=window_index * policy.window_ms)
        window_end = window_start + timedelta(milliseconds=policy.window_ms)
        counter_id = f"{identity}:{action}:{window_index}"

        try:
            count = await self.store.increment(
                counter_id=counter_id,
                identity=identity,
                action=action,
                window_start=window_start,
                expires_at=window_end + EXPIRY_BUFFER,
            )
        except Exception as e:
            logger.error(f"Rate limiter error for {counter_id}: {e}")
            store_faults_total.labels(component="rate_limiter", policy=self.FAILURE_POLICY.value).inc()
            try:
                await self.db.rollback()
            except Exception as rollback_error:
                logger.error(f"Rate limiter rollback failed: {rollback_error}")
            return RateLimitResult(allowed=True)

        if count > policy.max:
            retry_after = max(1, math.ceil((window_end - now).total_seconds()))
            logger.warning(f"Rate limit exceeded for {identity} on {action}: {count}/{policy.max}")
            rate_limit_decisions_total.labels(action=action, outcome="denied").inc()
            return RateLimitResult(
                allowed=False,
                retry_after_seconds=retry_after,
                message=f"Rate limit exceeded: {policy.max} {action} requests per {policy.name}",
            )

        rate_limit_decisions_total.labels(action=action, outcome="allowed").inc()
        return RateLimitResult(allowed=True, remaining=max(0, policy.max - count))

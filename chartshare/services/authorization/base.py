"""
Base Resolution Step
Abstract rung of the access resolution chain
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from chartshare.core.logging import get_logger
from chartshare.core.permissions import ChartRole
from chartshare.db.models import Chart
from chartshare.services.authorization.models import AccessDecision

logger = get_logger(__name__)


@dataclass
class ResolutionContext:
    """Inputs shared by every rung"""

    chart_id: str
    chart: Optional[Chart]
    caller_id: Optional[str]
    required_role: ChartRole


class ResolutionStep(ABC):
    """
    One rung of the resolution chain

    evaluate() returns a decision to stop the chain, or None to defer to the
    next rung.
    """

    name: str = "step"

    @abstractmethod
    async def evaluate(self, ctx: ResolutionContext) -> Optional[AccessDecision]:
        pass

    def _log_decision(self, ctx: ResolutionContext, decision: AccessDecision) -> None:
        logger.debug(
            f"{self.name}: caller={ctx.caller_id} chart={ctx.chart_id} "
            f"required={ctx.required_role.value} allowed={decision.allowed}"
        )

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set

from ..config import INTER_LIST_DELAY_SECONDS
from ..core.models import CampaignConfig, FilterCriteria, Identifier
from ..core.pacing import Clock, Throttle
from .campaign_allocator import AllocationResult, CampaignAllocator

logger = logging.getLogger(__name__)


@dataclass
class CampaignOutcome:
    """Settled result of one campaign: `fulfilled` with a value or `rejected` with a reason."""

    campaign: str
    status: str
    value: Optional[AllocationResult] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "fulfilled"


@dataclass
class RunSummary:
    successful: int = 0
    failed: int = 0
    total_requested: int = 0
    total_fulfilled: int = 0
    average_fulfillment: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "successful": self.successful,
            "failed": self.failed,
            "total_requested": self.total_requested,
            "total_fulfilled": self.total_fulfilled,
            "average_fulfillment": self.average_fulfillment,
        }


@dataclass
class RunReport:
    outcomes: List[CampaignOutcome] = field(default_factory=list)
    summary: RunSummary = field(default_factory=RunSummary)


def summarize(configs: Sequence[CampaignConfig], outcomes: Sequence[CampaignOutcome]) -> RunSummary:
    successful = [o.value for o in outcomes if o.ok and o.value is not None]
    failed = [o for o in outcomes if not o.ok]
    average = 0
    if successful:
        average = int(sum(r.fulfillment_percentage for r in successful) / len(successful) + 0.5)
    return RunSummary(
        successful=len(successful),
        failed=len(failed),
        total_requested=sum(c.count for c in configs),
        total_fulfilled=sum(r.contact_count for r in successful),
        average_fulfillment=average,
    )


class CampaignRunner:
    """Run campaign allocations one after another with spaced start times"""

    def __init__(
        self,
        allocator: CampaignAllocator,
        *,
        inter_campaign_delay: float = INTER_LIST_DELAY_SECONDS,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.allocator = allocator
        self.inter_campaign_delay = inter_campaign_delay
        self.clock = clock or Clock()
        self.logger = logger or logging.getLogger(f"{__name__}.runner")

    async def run(
        self,
        configs: Sequence[CampaignConfig],
        filter_criteria: Optional[FilterCriteria] = None,
    ) -> RunReport:
        """
        Allocate every config in `order`, sharing one used-contacts set.

        A failing campaign is recorded as rejected and the run continues.
        """
        ordered = sorted(configs, key=lambda c: c.order)
        used: Set[Identifier] = set()
        throttle = Throttle(self.inter_campaign_delay, self.clock)
        report = RunReport()

        self.logger.info(
            f"Starting campaign execution with {self.inter_campaign_delay / 60:g} min spacing "
            f"({len(ordered)} campaigns)"
        )

        for index, config in enumerate(ordered, start=1):
            waited = await throttle.wait()
            if waited:
                self.logger.info(f"Waited {round(waited)} seconds before next campaign")

            self.logger.info(f"[{index}/{len(ordered)}] Processing: {config.campaign}")
            try:
                result = await self.allocator.allocate(config, used, filter_criteria)
                report.outcomes.append(CampaignOutcome(config.campaign, "fulfilled", value=result))
            except Exception as e:
                self.logger.error(f"Campaign failed: {config.campaign} | {e}")
                report.outcomes.append(CampaignOutcome(config.campaign, "rejected", reason=str(e)))

        report.summary = summarize(ordered, report.outcomes)
        s = report.summary
        self.logger.info("Campaign run complete")
        self.logger.info(f"Success: {s.successful} | Failed: {s.failed}")
        self.logger.info(f"Total Requested: {s.total_requested} | Total Fulfilled: {s.total_fulfilled}")
        self.logger.info(f"Average Fulfillment: {s.average_fulfillment}%")
        return report

# continuity_sync/Sync/full_save.py
#
#
# Imports
from dataclasses import dataclass, field
from typing import List, Mapping
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from continuity_sync.Constants import ALL_CATEGORIES
from continuity_sync.Metrics.metrics_logger import log_counter
from .scheduler import DebounceScheduler, SaveFn, SaveResult, TRIGGER_FULL_SAVE
#
#######################################################################################################################
#
# Functions:

@dataclass
class FullSaveReport:
    failed_categories: List[str] = field(default_factory=list)
    results: List[SaveResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_categories


class FullSaveOrchestrator:
    """
    Pushes every category once, e.g. right before sign-out. Pending debounced saves are dropped
    first since this run covers them. One category failing never stops the others.
    """

    def __init__(self, scheduler: DebounceScheduler, category_saves: Mapping[str, SaveFn]):
        self.scheduler = scheduler
        self.category_saves = category_saves

    def _ordered_categories(self) -> List[str]:
        known = [category for category in ALL_CATEGORIES if category in self.category_saves]
        extra = [category for category in self.category_saves if category not in ALL_CATEGORIES]
        return known + extra

    async def save_everything(self) -> FullSaveReport:
        self.scheduler.cancel_all()
        report = FullSaveReport()
        logger.info("[SaveAll] Saving all project data")
        for category in self._ordered_categories():
            result = await self.scheduler.run_save(category, self.category_saves[category], TRIGGER_FULL_SAVE)
            report.results.append(result)
            if not result.success:
                report.failed_categories.append(category)

        if report.failed_categories:
            logger.warning(f"[SaveAll] Finished with failures in: {report.failed_categories}")
            log_counter("sync_full_save_failed", labels={"failed": len(report.failed_categories)})
        else:
            logger.info(f"[SaveAll] All {len(report.results)} categories saved")
            log_counter("sync_full_save_ok")
        return report

#
# End of full_save.py
#######################################################################################################################

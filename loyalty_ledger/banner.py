"""One-time "new loyalty year" notice shown after a rollover."""

from __future__ import annotations

import logging

from .ledger import LedgerStore
from .models import BannerState, RolloverResult

logger = logging.getLogger(__name__)


def banner_for(result: RolloverResult) -> BannerState:
    """A rollover from an empty balance has nothing to announce."""

    previous = result.previous_points
    return BannerState(visible=previous > 0, previous_points=previous)


class BannerCoordinator:
    def __init__(self, store: LedgerStore) -> None:
        self.store = store

    @property
    def state(self) -> BannerState:
        return self.store.banner

    def dismiss(self) -> BannerState:
        """Hide the banner and persist that. Repeated calls change nothing."""

        current = self.store.banner
        if not current.visible:
            return current
        dismissed = self.store.set_banner(BannerState(visible=False, previous_points=current.previous_points))
        logger.info("new year banner dismissed", extra={"previous_points": current.previous_points})
        return dismissed

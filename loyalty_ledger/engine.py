"""Start-up wiring: load the ledger and run the yearly rollover once."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone, tzinfo
from typing import Callable, Optional

from .awards import AwardEngine
from .banner import BannerCoordinator, banner_for
from .ledger import LedgerStore, year_summary
from .models import RolloverResult, YearSummary

logger = logging.getLogger(__name__)


def year_clock(tz: Optional[tzinfo] = None) -> Callable[[], int]:
    zone = tz or timezone.utc
    return lambda: datetime.now(zone).year


class LoyaltyEngine:
    """Own the collaborators for one customer ledger.

    ``initialize`` is guarded by a one-shot flag: only the first call in a
    process consults the rollover detector. The store's compare-and-set
    stops a second process or a stale result from archiving a year twice.
    """

    def __init__(
        self,
        store: LedgerStore,
        awards: AwardEngine,
        banner: BannerCoordinator,
        current_year: Optional[Callable[[], int]] = None,
        tz: Optional[tzinfo] = None,
    ) -> None:
        self.store = store
        self.awards = awards
        self.banner = banner
        self.tz = tz
        self.current_year = current_year or year_clock(tz)
        self._init_lock = threading.Lock()
        self._initialized = False
        self.last_rollover: Optional[RolloverResult] = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> Optional[RolloverResult]:
        with self._init_lock:
            if self._initialized:
                return None
            year = self.current_year()
            result = self.store.rollover_if_due(year, banner_for=banner_for, tz=self.tz)
            self._initialized = True
        if result is None:
            logger.info(
                "no loyalty rollover due",
                extra={"current_year": year, "last_reset_year": self.store.ledger.last_reset_year},
            )
        self.last_rollover = result
        return result

    def summary(self, year: Optional[int] = None) -> YearSummary:
        return year_summary(self.store.ledger, year if year is not None else self.current_year(), self.tz)

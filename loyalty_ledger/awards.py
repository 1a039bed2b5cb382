"""Turn completed orders into loyalty transactions."""

from __future__ import annotations

import logging
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Callable, Optional, Union

from .ledger import LedgerStore
from .models import Transaction, new_transaction_id, utc_now_iso

logger = logging.getLogger(__name__)

Amount = Union[Decimal, int, float, str]
AwardPolicy = Callable[[Decimal], int]

DEFAULT_POINTS_PER_ORDER = 50
ORDER_LABEL = "طلب"


def flat_per_order(points: int = DEFAULT_POINTS_PER_ORDER) -> AwardPolicy:
    """Same number of points for every paid order, whatever it cost."""

    def policy(amount: Decimal) -> int:
        return points if amount > 0 else 0

    policy.__name__ = f"flat_per_order({points})"
    return policy


def per_currency_unit(points_per_unit: int = 1) -> AwardPolicy:
    """``points_per_unit`` points for each whole unit spent; fractions are dropped."""

    def policy(amount: Decimal) -> int:
        return int(amount.to_integral_value(rounding=ROUND_DOWN)) * points_per_unit

    policy.__name__ = f"per_currency_unit({points_per_unit})"
    return policy


def default_description(order_id: Optional[int]) -> str:
    """Storefront wording: "طلب #12", or just "طلب" without an order id."""

    return f"{ORDER_LABEL} #{order_id}" if order_id is not None else ORDER_LABEL


def _to_decimal(amount: Amount) -> Optional[Decimal]:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        return None
    return value if value.is_finite() else None


class AwardEngine:
    """Award points for completed orders through the ledger store."""

    def __init__(
        self,
        store: LedgerStore,
        policy: Optional[AwardPolicy] = None,
        enabled: bool = True,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self.store = store
        self.policy = policy or flat_per_order()
        self.enabled = enabled
        self.clock = clock

    def points_for(self, amount: Amount) -> int:
        value = _to_decimal(amount)
        if value is None:
            return 0
        return self.policy(value)

    def award(
        self,
        amount: Amount,
        description: str = "",
        order_id: Optional[int] = None,
    ) -> Optional[Transaction]:
        """Append a transaction for a completed order.

        Returns ``None`` without touching the ledger when the program is
        switched off or the amount earns no points.
        """

        if not self.enabled:
            logger.info("loyalty program disabled, no points awarded", extra={"order_id": order_id})
            return None

        points = self.points_for(amount)
        if points <= 0:
            logger.warning(
                "award rejected, amount earns no points",
                extra={"order_id": order_id, "amount": str(amount), "policy": getattr(self.policy, "__name__", "")},
            )
            return None

        transaction = Transaction(
            id=new_transaction_id(),
            timestamp=self.clock(),
            points=points,
            description=description or default_description(order_id),
            order_id=order_id,
        )
        self.store.append(transaction)
        return transaction

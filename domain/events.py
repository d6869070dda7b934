"""
Domain: Sale events.

Committed state changes are announced as immutable events so they can be
logged or kept as an audit trail. Events are never used to rebuild ledger
state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional
from uuid import UUID, uuid4

from .time import require_utc_timestamp


class SaleEventKind(str, Enum):
    TOKENS_PURCHASED = "TOKENS_PURCHASED"
    TOKENS_RELEASED = "TOKENS_RELEASED"
    FUNDS_WITHDRAWN = "FUNDS_WITHDRAWN"
    PRICE_CHANGED = "PRICE_CHANGED"
    SALE_END_TIME_CHANGED = "SALE_END_TIME_CHANGED"
    PRICE_FEED_CHANGED = "PRICE_FEED_CHANGED"


@dataclass(frozen=True, slots=True)
class SaleEvent:
    """
    Immutable record of one committed operation.

    `wallet` is the buyer, releasing wallet or withdrawal recipient;
    `amount` is in the base units of the asset named in `details`.
    """

    kind: SaleEventKind
    occurred_at: datetime
    wallet: Optional[str] = None
    amount: Optional[int] = None
    details: Mapping[str, Any] = field(default_factory=dict)
    event_id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        require_utc_timestamp("occurred_at", self.occurred_at)


__all__ = ["SaleEvent", "SaleEventKind"]

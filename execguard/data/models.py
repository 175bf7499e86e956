"""
Canonical market data models.

Order book snapshots are ephemeral: fetched fresh for each protection check
and never persisted.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class BookLevel:
    """Single order book level with price and quantity."""
    price: float
    quantity: float


@dataclass(frozen=True)
class OrderBookSnapshot:
    """Order book snapshot with sorted levels."""
    symbol: str
    bids: list[BookLevel] = field(default_factory=list)    # Sorted by price descending
    asks: list[BookLevel] = field(default_factory=list)    # Sorted by price ascending
    last_update_id: Optional[int] = None                    # Exchange sequence id
    event_time_ms: Optional[int] = None

    @property
    def best_bid(self) -> Optional[float]:
        """Best bid price, None if no bids."""
        return self.bids[0].price if self.bids else None

    @property
    def best_ask(self) -> Optional[float]:
        """Best ask price, None if no asks."""
        return self.asks[0].price if self.asks else None

    @property
    def mid_price(self) -> Optional[float]:
        """Mid price between best bid/ask, None if missing either side."""
        if self.best_bid is None or self.best_ask is None:
            return None
        return (self.best_bid + self.best_ask) / 2.0

    @property
    def spread(self) -> Optional[float]:
        """Bid-ask spread, None if missing either side."""
        if self.best_bid is None or self.best_ask is None:
            return None
        return self.best_ask - self.best_bid

    @property
    def is_crossed(self) -> bool:
        """True when best bid >= best ask, which a healthy market never shows."""
        spread = self.spread
        return spread is not None and spread <= 0

    def levels_for(self, side: str) -> list[BookLevel]:
        """Levels a market order on this side consumes: asks for BUY, bids for SELL."""
        side = side.upper()
        if side == "BUY":
            return self.asks
        if side == "SELL":
            return self.bids
        raise ValueError(f"Unknown order side: {side}")

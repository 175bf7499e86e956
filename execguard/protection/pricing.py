"""Side-aware price arithmetic helpers"""


def _check_side(side: str) -> str:
    side = side.upper()
    if side not in ("BUY", "SELL"):
        raise ValueError(f"Unknown order side: {side}")
    return side


def quote_to_base(quote_amount: float, price: float) -> float:
    """Convert a quote currency amount to base quantity at price"""
    if price <= 0:
        raise ValueError(f"Price must be positive, got {price}")
    return quote_amount / price


def base_to_quote(base_quantity: float, price: float) -> float:
    """Convert a base quantity to quote currency at price"""
    return base_quantity * price


def percentage_change(old_price: float, new_price: float) -> float:
    """Percent change from old_price to new_price"""
    if old_price == 0:
        raise ValueError("Old price must be non-zero")
    return ((new_price - old_price) / old_price) * 100


def price_with_slippage(price: float, slippage_bps: float, side: str) -> float:
    """
    Price moved against the order by slippage_bps.

    BUY orders pay more, SELL orders receive less.
    """
    factor = slippage_bps / 10000
    if _check_side(side) == "BUY":
        return price * (1 + factor)
    return price * (1 - factor)


def calculate_stop_loss(entry_price: float, stop_loss_percent: float, side: str) -> float:
    """Stop loss below entry for longs, above entry for shorts"""
    factor = stop_loss_percent / 100
    if _check_side(side) == "BUY":
        return entry_price * (1 - factor)
    return entry_price * (1 + factor)


def calculate_take_profit(entry_price: float, take_profit_percent: float, side: str) -> float:
    """Take profit above entry for longs, below entry for shorts"""
    factor = take_profit_percent / 100
    if _check_side(side) == "BUY":
        return entry_price * (1 + factor)
    return entry_price * (1 - factor)

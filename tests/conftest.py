"""Pytest configuration and shared fixtures."""

import pytest
from typing import Dict, Any

from execguard.filters.registry import FilterRegistry

API_SECRET = "NhqPtmdSJYdKjVHjA7PZj4Mge3R5YNiP1e3UZjInClVN65XAbvqqM6A7H5fATj0j"


@pytest.fixture
def api_secret() -> str:
    """Documented exchange example secret."""
    return API_SECRET


@pytest.fixture
def btc_symbol_info() -> Dict[str, Any]:
    """BTCUSDT exchange-info entry."""
    return {
        "symbol": "BTCUSDT",
        "status": "TRADING",
        "baseAsset": "BTC",
        "quoteAsset": "USDT",
        "orderTypes": ["LIMIT", "MARKET"],
        "timeInForce": ["GTC", "IOC", "FOK"],
        "filters": [
            {"filterType": "PRICE_FILTER", "minPrice": "0.01", "maxPrice": "1000000", "tickSize": "0.01"},
            {"filterType": "LOT_SIZE", "minQty": "0.00001", "maxQty": "9000", "stepSize": "0.00001"},
            {"filterType": "MIN_NOTIONAL", "notional": "5.0"},
        ],
    }


@pytest.fixture
def eth_symbol_info() -> Dict[str, Any]:
    """ETHUSDT entry with a separate MARKET_LOT_SIZE and PERCENT_PRICE."""
    return {
        "symbol": "ETHUSDT",
        "filters": [
            {"filterType": "PRICE_FILTER", "minPrice": "0.10", "maxPrice": "0", "tickSize": "0.05"},
            {"filterType": "LOT_SIZE", "minQty": "0.001", "maxQty": "10000", "stepSize": "0.001"},
            {"filterType": "MARKET_LOT_SIZE", "minQty": "0.01", "maxQty": "500", "stepSize": "0.01"},
            {"filterType": "MIN_NOTIONAL", "notional": "5"},
            {"filterType": "PERCENT_PRICE", "multiplierUp": "1.05", "multiplierDown": "0.95",
             "multiplierDecimal": "4"},
            {"filterType": "MAX_NUM_ORDERS", "limit": 200},
        ],
    }


@pytest.fixture
def exchange_info(btc_symbol_info, eth_symbol_info) -> Dict[str, Any]:
    """Exchange-info payload with two symbols."""
    return {"timezone": "UTC", "serverTime": 1700000000000, "symbols": [btc_symbol_info, eth_symbol_info]}


@pytest.fixture
def registry(btc_symbol_info) -> FilterRegistry:
    """Registry with BTCUSDT loaded."""
    registry = FilterRegistry()
    registry.load_symbol_filters(btc_symbol_info)
    return registry


@pytest.fixture
def normal_book() -> Dict[str, Any]:
    """Five tight levels per side around 50000."""
    return {
        "lastUpdateId": 123456,
        "bids": [
            ["50000.00", "1.5"],
            ["49999.50", "2.0"],
            ["49999.00", "1.0"],
            ["49998.50", "0.5"],
            ["49998.00", "3.0"],
        ],
        "asks": [
            ["50001.00", "1.2"],
            ["50001.50", "1.8"],
            ["50002.00", "2.5"],
            ["50002.50", "1.0"],
            ["50003.00", "0.8"],
        ],
    }


@pytest.fixture
def low_liquidity_book() -> Dict[str, Any]:
    """Two tiny levels per side."""
    return {
        "lastUpdateId": 123457,
        "bids": [["50000.00", "0.01"], ["49999.00", "0.01"]],
        "asks": [["50001.00", "0.01"], ["50002.00", "0.01"]],
    }


@pytest.fixture
def wide_spread_book() -> Dict[str, Any]:
    """1000-wide gaps between levels."""
    return {
        "lastUpdateId": 123458,
        "bids": [["49000.00", "1.0"], ["48000.00", "2.0"]],
        "asks": [["51000.00", "1.0"], ["52000.00", "2.0"]],
    }


@pytest.fixture
def deep_book() -> Dict[str, Any]:
    """Twenty levels per side, half a dollar apart, growing size."""
    return {
        "lastUpdateId": 123459,
        "bids": [[f"{50000 - i * 0.5:.2f}", str(10 + i)] for i in range(20)],
        "asks": [[f"{50001 + i * 0.5:.2f}", str(10 + i)] for i in range(20)],
    }

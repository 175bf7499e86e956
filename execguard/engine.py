"""
Order submission coordinator.

Runs the safety pipeline for one order:
Filters (validate/round) → Price protection (market orders) → Sign/dispatch
"""

from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal
from pathlib import Path
from typing import Any, Optional, Union

import structlog

from .config.defaults import EngineConfig
from .config.loader import ConfigLoader
from .data.models import OrderBookSnapshot
from .data.parsers import ParseError, parse_order_book
from .errors import ValidationError
from .filters.models import FilterValidationResult
from .filters.registry import FilterRegistry
from .filters.rounding import to_decimal
from .protection.engine import PriceProtectionEngine
from .protection.models import ProtectionVerdict, Recommendation, UserSettings
from .protection.pricing import quote_to_base
from .protection.summary import format_protection_summary
from .signing.clock import ClockSync
from .signing.ids import create_client_order_id
from .signing.signer import RequestSigner
from .transport.rest import ExchangeRestClient

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class OrderPreparation:
    """A validated, protection-checked order ready for submission."""
    symbol: str
    side: str
    order_type: str
    validation: FilterValidationResult
    verdict: Optional[ProtectionVerdict] = None          # Market orders only
    order_params: dict[str, str] = field(default_factory=dict)
    approved: bool = False
    requires_confirmation: bool = False

    @property
    def reasons(self) -> list[str]:
        """Why the order is not approved, or what the user should confirm."""
        reasons = list(self.validation.errors)
        if self.verdict is not None and self.verdict.is_protected:
            reasons.extend(self.verdict.warnings)
        return reasons

    def summary(self) -> str:
        """Plain-text description for the user."""
        lines = [f"{self.side} {self.order_params.get('quantity', '?')} {self.symbol} ({self.order_type})"]
        lines.extend(self.validation.notices)
        lines.extend(self.validation.errors)
        if self.verdict is not None:
            lines.append(format_protection_summary(self.verdict))
        return "\n".join(lines)


class OrderSafetyEngine:
    """
    Coordinates filter validation, price protection and submission.

    Nothing reaches the exchange unless filters pass, market orders are not
    rejected by price protection, and WARNING verdicts are confirmed.
    """

    def __init__(
        self,
        client: Optional[ExchangeRestClient] = None,
        config: Optional[EngineConfig] = None,
        registry: Optional[FilterRegistry] = None,
        config_dir: Optional[Union[str, Path]] = None,
    ) -> None:
        self.config = config or ConfigLoader.create(Path(config_dir) if config_dir else None).load_config()
        self.client = client
        self.registry = registry or (client.registry if client is not None else FilterRegistry())
        self.protection = PriceProtectionEngine(self.registry, self.config.protection)

        logger.info("Order safety engine initialized", has_client=client is not None)

    @classmethod
    def create(
        cls,
        api_key: str,
        api_secret: str,
        config_dir: Optional[Union[str, Path]] = None,
        overrides: Optional[dict[str, Any]] = None,
    ) -> "OrderSafetyEngine":
        """Build an engine with a REST client from merged configuration."""
        config = ConfigLoader.create(Path(config_dir) if config_dir else None).load_config(overrides)
        signer = RequestSigner.from_params(config.signing, ClockSync())
        registry = FilterRegistry()
        client = ExchangeRestClient(
            api_key,
            api_secret,
            params=config.transport,
            rate_limit_params=config.rate_limit,
            signer=signer,
            registry=registry,
            client_order_id_prefix=config.signing.client_order_id_prefix,
        )
        return cls(client=client, config=config, registry=registry)

    def prepare_order(
        self,
        symbol: str,
        side: str,
        order_type: str,
        quantity: Any,
        price: Any = None,
        order_book: Union[OrderBookSnapshot, dict[str, Any], None] = None,
        user_settings: Union[UserSettings, dict[str, Any], None] = None,
        reduce_only: bool = False,
    ) -> OrderPreparation:
        """
        Validate an order and, for MARKET orders, classify its execution risk.

        MARKET orders need an order book: the best price on the consumed side
        is the notional estimate and the book drives price protection.

        Returns:
            OrderPreparation; order_params is empty when validation failed
        """
        side = str(side).upper()
        order_type = str(order_type).upper()

        if side not in ("BUY", "SELL"):
            return self._rejected(symbol, side, order_type, f"Unknown order side {side}")

        verdict: Optional[ProtectionVerdict] = None

        if order_type == "MARKET":
            if order_book is None:
                return self._rejected(symbol, side, order_type,
                                      "Order book required for market order protection")
            try:
                book = order_book if isinstance(order_book, OrderBookSnapshot) else parse_order_book(order_book, symbol)
            except ParseError as e:
                return self._rejected(symbol, side, order_type, f"Invalid order book: {e}")
            estimate = book.best_ask if side == "BUY" else book.best_bid

            validation = self.registry.validate_order(symbol, estimate, quantity, "MARKET", reduce_only)
            if validation.is_valid:
                checked_qty = validation.adjusted_quantity if validation.adjusted_quantity is not None else quantity
                verdict = self.protection.analyze_market_order(symbol, side, checked_qty, book, user_settings)
        else:
            validation = self.registry.validate_order(symbol, price, quantity, order_type, reduce_only)

        order_params: dict[str, str] = {}
        if validation.is_valid:
            order_params = self._build_order_params(symbol, side, order_type, quantity, price,
                                                    validation, reduce_only)

        approved = validation.is_valid and (verdict is None or verdict.recommendation is not Recommendation.REJECT)
        requires_confirmation = verdict is not None and verdict.requires_confirmation

        logger.info(
            "Order prepared",
            symbol=symbol,
            side=side,
            order_type=order_type,
            approved=approved,
            requires_confirmation=requires_confirmation,
            recommendation=verdict.recommendation.value if verdict else None,
            errors=validation.errors or None
        )

        return OrderPreparation(
            symbol=symbol,
            side=side,
            order_type=order_type,
            validation=validation,
            verdict=verdict,
            order_params=order_params,
            approved=approved,
            requires_confirmation=requires_confirmation,
        )

    def _build_order_params(
        self,
        symbol: str,
        side: str,
        order_type: str,
        quantity: Any,
        price: Any,
        validation: FilterValidationResult,
        reduce_only: bool,
    ) -> dict[str, str]:
        final_qty = validation.adjusted_quantity if validation.adjusted_quantity is not None else to_decimal(quantity)

        params = {
            "symbol": symbol,
            "side": side,
            "type": order_type,
            "quantity": format(final_qty, "f"),
        }
        if order_type == "LIMIT":
            final_price = validation.adjusted_price if validation.adjusted_price is not None else to_decimal(price)
            params["price"] = format(final_price, "f")
            params["timeInForce"] = "GTC"
        if reduce_only:
            params["reduceOnly"] = "true"
        params["newClientOrderId"] = create_client_order_id(self.config.signing.client_order_id_prefix)
        params["newOrderRespType"] = "RESULT"
        return params

    def _rejected(self, symbol: str, side: str, order_type: str, error: str) -> OrderPreparation:
        logger.info("Order rejected before validation", symbol=symbol, side=side, error=error)
        return OrderPreparation(
            symbol=symbol,
            side=side,
            order_type=order_type,
            validation=FilterValidationResult(is_valid=False, errors=[error]),
        )

    async def submit_order(self, preparation: OrderPreparation, confirmed: bool = False) -> dict[str, Any]:
        """
        Dispatch a prepared order.

        Raises:
            ValidationError: If the order is not approved, or needs
                confirmation that was not given
            RuntimeError: If the engine has no REST client
        """
        if self.client is None:
            raise RuntimeError("Order safety engine has no REST client")

        if not preparation.approved:
            raise ValidationError(
                f"Order rejected: {'; '.join(preparation.reasons) or 'not approved'}",
                context={"symbol": preparation.symbol}
            )

        if preparation.requires_confirmation and not confirmed:
            raise ValidationError(
                "Order requires confirmation: " + "; ".join(preparation.reasons),
                context={"symbol": preparation.symbol}
            )

        return await self.client.create_order(preparation.order_params)

    async def load_filters(self) -> list[str]:
        """Fetch exchange metadata and (re)load every symbol's filters."""
        if self.client is None:
            raise RuntimeError("Order safety engine has no REST client")
        payload = await self.client.get_exchange_info(load_filters=False)
        return self.registry.load_exchange_info(payload)

    async def prepare_market_order(
        self,
        symbol: str,
        side: str,
        quantity: Any,
        user_settings: Union[UserSettings, dict[str, Any], None] = None,
        reduce_only: bool = False,
    ) -> OrderPreparation:
        """prepare_order for a MARKET order against a freshly fetched book."""
        if self.client is None:
            raise RuntimeError("Order safety engine has no REST client")
        book = await self.client.get_order_book(symbol)
        return self.prepare_order(symbol, side, "MARKET", quantity, order_book=book,
                                  user_settings=user_settings, reduce_only=reduce_only)

    def quantity_for_notional(self, symbol: str, quote_amount: Any, price: Any) -> Decimal:
        """Base quantity buying quote_amount at price, rounded down to the step."""
        base = quote_to_base(float(quote_amount), float(price))
        return self.registry.round_quantity(symbol, base, rounding=ROUND_DOWN)

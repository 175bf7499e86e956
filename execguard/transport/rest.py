"""
Async REST client for the futures API.

Signed reads, deletes and puts carry the signed query string in the URL;
signed POSTs send the exact signed string as a form-encoded body. Every
attempt is signed afresh, so a 429 retry never replays a stale timestamp.
"""

import asyncio
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Optional

import aiohttp
import orjson
import structlog
from yarl import URL

from ..config.defaults import RateLimitParams, TransportParams
from ..data.models import OrderBookSnapshot
from ..data.parsers import ParseError, parse_json_payload, parse_order_book
from ..errors import AuthError, ExchangeError, NetworkError, RateLimitedError, ValidationError
from ..filters.registry import FilterRegistry
from ..signing.clock import ClockSync
from ..signing.ids import create_client_order_id
from ..signing.ratelimit import RateLimitGovernor, RateLimitInfo
from ..signing.signer import RequestSigner, build_query_string

logger = structlog.get_logger(__name__)

API_KEY_HEADER = "X-MBX-APIKEY"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def _error_details(body: bytes) -> tuple[Optional[int], str]:
    """Exchange error code and message from an error body."""
    try:
        payload = orjson.loads(body) if body else {}
    except orjson.JSONDecodeError:
        return None, body.decode("utf-8", errors="replace")
    if not isinstance(payload, dict):
        return None, str(payload)
    code = payload.get("code")
    return (int(code) if isinstance(code, int) else None), str(payload.get("msg", ""))


class ExchangeRestClient:
    """REST transport with signing, rate limit observation and bounded 429 retry."""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        params: Optional[TransportParams] = None,
        rate_limit_params: Optional[RateLimitParams] = None,
        signer: Optional[RequestSigner] = None,
        registry: Optional[FilterRegistry] = None,
        session: Optional[aiohttp.ClientSession] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
        client_order_id_prefix: str = "bot",
    ) -> None:
        self.api_key = api_key
        self._api_secret = api_secret
        self.params = params or TransportParams()
        self.signer = signer or RequestSigner()
        self.governor = RateLimitGovernor(rate_limit_params)
        self.registry = registry or FilterRegistry()
        self.client_order_id_prefix = client_order_id_prefix

        self._session = session
        self._owns_session = session is None
        self._sleep = sleep or asyncio.sleep

    @property
    def base_url(self) -> str:
        return self.params.base_url.rstrip("/")

    @property
    def clock(self) -> ClockSync:
        return self.signer.clock

    async def __aenter__(self) -> "ExchangeRestClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.params.timeout_seconds),
                headers={"User-Agent": self.params.user_agent},
            )
            self._owns_session = True
        return self._session

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        signed: bool = False,
        with_api_key: bool = False,
        **signing_kwargs: Any,
    ) -> Any:
        """
        Dispatch one REST call.

        Args:
            method: HTTP method
            path: Endpoint path, e.g. /fapi/v1/order
            params: Parameters in the order they must be sent
            signed: Sign with timestamp/recvWindow/signature
            with_api_key: Send the API key header on an unsigned call
            **signing_kwargs: recv_window / placement overrides for signing

        Returns:
            Decoded JSON body

        Raises:
            RateLimitedError: 429 after max_retries retries, or 418
            AuthError: 401/403
            ExchangeError: Any other error status
            NetworkError: No response received
        """
        method = method.upper()
        session = self._ensure_session()
        retries = 0

        while True:
            headers: dict[str, str] = {}
            data: Optional[str] = None

            if signed or with_api_key:
                headers[API_KEY_HEADER] = self.api_key

            if signed:
                signed_request = self.signer.sign_request(
                    method, path, params, self._api_secret, **signing_kwargs
                )
                if method == "POST":
                    url = f"{self.base_url}{path}"
                    data = signed_request.query_string
                    headers["Content-Type"] = FORM_CONTENT_TYPE
                else:
                    url = f"{self.base_url}{signed_request.url}"
            else:
                query = build_query_string(params)
                url = f"{self.base_url}{path}?{query}" if query else f"{self.base_url}{path}"

            logger.debug("REST request", method=method, path=path, signed=signed, attempt=retries + 1)

            try:
                # encoded=True keeps the signed query bytes untouched
                async with session.request(method, URL(url, encoded=True), data=data, headers=headers) as response:
                    status = response.status
                    info = self.governor.observe(response.headers)
                    body = await response.read()
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise NetworkError(
                    f"{method} {path} failed: {str(e) or type(e).__name__}",
                    method=method,
                    path=path
                ) from e

            if status == 429:
                if self.governor.should_retry(retries):
                    retries += 1
                    delay_ms = self.governor.retry_delay_ms(info)
                    logger.warning(
                        "Rate limited, retrying",
                        method=method,
                        path=path,
                        retry=retries,
                        max_retries=self.governor.params.max_retries,
                        delay_ms=delay_ms
                    )
                    await self._sleep(delay_ms / 1000)
                    continue

                raise RateLimitedError(
                    f"{method} {path} still rate limited after {retries} retries",
                    status=status,
                    retry_after_ms=info.retry_after_ms,
                    attempts=retries + 1,
                    context={"path": path}
                )

            if status >= 400:
                raise self._map_error(status, body, info, method, path)

            if not body:
                return {}
            try:
                return parse_json_payload(body)
            except ParseError as e:
                raise ExchangeError(f"{method} {path} returned invalid JSON: {e}", status=status) from e

    def _map_error(self, status: int, body: bytes, info: RateLimitInfo,
                   method: str, path: str) -> ExchangeError:
        code, msg = _error_details(body)
        message = f"{method} {path} failed with HTTP {status}: {msg or 'no message'}"
        context = {"path": path}

        logger.warning("REST request failed", method=method, path=path, status=status, code=code, msg=msg)

        if status == 418:
            return RateLimitedError(message, status=status, code=code,
                                    retry_after_ms=info.retry_after_ms, context=context)
        if status in (401, 403):
            return AuthError(message, status=status, code=code, context=context)
        return ExchangeError(message, status=status, code=code, context=context)

    # Market data

    async def ping(self) -> bool:
        """True if the REST API is reachable."""
        try:
            await self.request("GET", "/fapi/v1/ping")
        except (NetworkError, ExchangeError) as e:
            logger.warning("Connectivity check failed", error=str(e))
            return False
        return True

    async def get_server_time(self) -> int:
        payload = await self.request("GET", "/fapi/v1/time")
        return int(payload["serverTime"])

    async def sync_server_time(self) -> int:
        """Measure and store the server clock offset used for signing."""
        try:
            return await self.clock.sync_server_time(self._ensure_session(), self.base_url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"Server time sync failed: {e}", method="GET", path="/fapi/v1/time") from e

    def is_clock_synced(self, max_drift_ms: int = 1000) -> bool:
        return self.clock.is_clock_drift_acceptable(max_drift_ms)

    async def get_exchange_info(self, load_filters: bool = True) -> dict[str, Any]:
        """Fetch exchange metadata, loading every symbol's filters by default."""
        payload = await self.request("GET", "/fapi/v1/exchangeInfo")
        if load_filters:
            self.registry.load_exchange_info(payload)
        return payload

    async def get_order_book(self, symbol: str, limit: Optional[int] = None) -> OrderBookSnapshot:
        limit = limit or self.params.order_book_limit
        payload = await self.request("GET", "/fapi/v1/depth", {"symbol": symbol, "limit": limit})
        return parse_order_book(payload, symbol)

    async def get_24hr_ticker(self, symbol: Optional[str] = None) -> Any:
        """One ticker for a symbol, or all tickers."""
        return await self.request("GET", "/fapi/v1/ticker/24hr", {"symbol": symbol})

    async def get_mark_price(self, symbol: Optional[str] = None) -> Any:
        return await self.request("GET", "/fapi/v1/premiumIndex", {"symbol": symbol})

    # Account

    async def get_account(self) -> dict[str, Any]:
        return await self.request("GET", "/fapi/v1/account", {}, signed=True)

    async def get_position_risk(self, symbol: Optional[str] = None) -> list[dict[str, Any]]:
        return await self.request("GET", "/fapi/v1/positionRisk", {"symbol": symbol}, signed=True)

    async def change_leverage(self, symbol: str, leverage: int) -> dict[str, Any]:
        result = await self.request(
            "POST", "/fapi/v1/leverage", {"symbol": symbol, "leverage": int(leverage)}, signed=True
        )
        logger.info("Leverage changed", symbol=symbol, leverage=leverage)
        return result

    # Orders

    async def create_order(self, order_params: Mapping[str, Any]) -> dict[str, Any]:
        """
        Submit an order.

        A client order id is generated when none is given and the response
        type is always RESULT. Parameter order is preserved.

        Raises:
            ValidationError: If symbol, side or type is missing
        """
        missing = [key for key in ("symbol", "side", "type") if not order_params.get(key)]
        if missing:
            raise ValidationError(f"Missing required order parameters: {', '.join(missing)}")

        params = dict(order_params)
        if not params.get("newClientOrderId"):
            params["newClientOrderId"] = create_client_order_id(self.client_order_id_prefix)
        params["newOrderRespType"] = "RESULT"

        result = await self.request("POST", "/fapi/v1/order", params, signed=True)

        logger.info(
            "Order submitted",
            symbol=params["symbol"],
            side=params["side"],
            type=params["type"],
            client_order_id=params["newClientOrderId"],
            order_id=result.get("orderId") if isinstance(result, dict) else None
        )
        return result

    async def cancel_order(
        self,
        symbol: str,
        order_id: Optional[int] = None,
        client_order_id: Optional[str] = None,
    ) -> dict[str, Any]:
        if order_id is None and not client_order_id:
            raise ValidationError("Either order_id or client_order_id must be provided")

        return await self.request(
            "DELETE",
            "/fapi/v1/order",
            {"symbol": symbol, "orderId": order_id, "origClientOrderId": client_order_id},
            signed=True,
        )

    async def cancel_all_orders(self, symbol: str) -> dict[str, Any]:
        return await self.request("DELETE", "/fapi/v1/allOpenOrders", {"symbol": symbol}, signed=True)

    # User data stream session keys

    async def create_listen_key(self) -> str:
        payload = await self.request("POST", "/fapi/v1/listenKey", with_api_key=True)
        return payload["listenKey"]

    async def keepalive_listen_key(self, listen_key: str) -> None:
        await self.request("PUT", "/fapi/v1/listenKey", {"listenKey": listen_key}, signed=True)

    async def delete_listen_key(self, listen_key: str) -> None:
        await self.request("DELETE", "/fapi/v1/listenKey", {"listenKey": listen_key}, signed=True)

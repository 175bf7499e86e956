"""
Server clock synchronization for signed requests.

The exchange rejects signed requests whose timestamp falls outside recvWindow
of its own clock, so every timestamp is produced as local time plus the last
measured server offset.
"""

from typing import Callable, Optional

import aiohttp
import structlog

from ..utils.time import current_time_ms

logger = structlog.get_logger(__name__)

SERVER_TIME_PATH = "/fapi/v1/time"


class ClockSync:
    """Tracks the offset between the local clock and the exchange clock."""

    def __init__(self, time_source: Optional[Callable[[], int]] = None) -> None:
        self._time_source = time_source or current_time_ms
        self.offset_ms = 0
        self.last_sync_ms: Optional[int] = None

    def local_ms(self) -> int:
        """Local wall-clock time in milliseconds."""
        return self._time_source()

    def now_ms(self) -> int:
        """Drift-corrected time used for every signed timestamp."""
        return self._time_source() + self.offset_ms

    def apply_server_time(self, server_time_ms: int, local_time_ms: Optional[int] = None) -> int:
        """
        Record a server time observation.

        Args:
            server_time_ms: Exchange server time in milliseconds
            local_time_ms: Local time at which the server time was valid,
                defaults to now

        Returns:
            The new offset (server - local) in milliseconds
        """
        if local_time_ms is None:
            local_time_ms = self._time_source()

        self.offset_ms = int(server_time_ms) - int(local_time_ms)
        self.last_sync_ms = local_time_ms

        logger.info(
            "Server time synchronized",
            offset_ms=self.offset_ms,
            server_time_ms=server_time_ms
        )
        return self.offset_ms

    async def sync_server_time(self, session: aiohttp.ClientSession, base_url: str) -> int:
        """
        Fetch exchange server time once and store the offset.

        The local reference is the midpoint of the round trip so request
        latency is split evenly between both legs.

        Args:
            session: Open aiohttp session
            base_url: REST base URL of the exchange

        Returns:
            The new offset in milliseconds
        """
        sent_ms = self._time_source()
        async with session.get(f"{base_url.rstrip('/')}{SERVER_TIME_PATH}") as response:
            response.raise_for_status()
            payload = await response.json()
        received_ms = self._time_source()

        return self.apply_server_time(
            int(payload["serverTime"]),
            local_time_ms=(sent_ms + received_ms) // 2
        )

    def get_time_drift(self) -> int:
        """Absolute offset between local and server clocks in milliseconds."""
        return abs(self.offset_ms)

    def is_clock_drift_acceptable(self, max_drift_ms: int = 1000) -> bool:
        """True if the clocks differ by no more than max_drift_ms in either direction."""
        return self.get_time_drift() <= max_drift_ms

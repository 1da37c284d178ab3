import asyncio
import time

from pydantic import BaseModel, Field, PrivateAttr

from newsletter_digest_mcp.utils.logging import BASE_LOGGER

logger = BASE_LOGGER.getChild(__name__)


class CallSpacer(BaseModel):
    """Keeps consecutive calls to a backend at least `min_interval` seconds apart.

    One instance is shared by everything that calls the backend. Waiting callers are serialized by a lock, so
    the spacing holds no matter which headline, article or task asked for the call."""

    min_interval: float = Field(default=10.0, ge=0)
    """The minimum number of seconds between the start of two calls."""

    _lock: asyncio.Lock = PrivateAttr(default_factory=asyncio.Lock)
    _last_call: float | None = PrivateAttr(default=None)

    @classmethod
    def from_milliseconds(cls, min_interval_ms: int) -> "CallSpacer":
        return cls(min_interval=min_interval_ms / 1000)

    @property
    def last_call(self) -> float | None:
        """The monotonic time at which the last call was allowed through."""
        return self._last_call

    async def wait(self) -> float:
        """Wait until the next call is allowed and record it. Returns the number of seconds waited."""

        async with self._lock:
            waited = 0.0

            if self._last_call is not None:
                remaining = self.min_interval - (time.monotonic() - self._last_call)

                if remaining > 0:
                    logger.info(f"Waiting {remaining:.1f}s before the next model call")
                    await asyncio.sleep(remaining)
                    waited = remaining

            self._last_call = time.monotonic()

            return waited

"""
Continuous probing as an async iterator.

``ProbeStream`` drives repeated single-attempt probes against one host and
yields one ``ProbeResult`` per attempt. Its lifecycle is an explicit state
machine:

    IDLE -> EMITTING -> (INTERVAL_WAIT -> EMITTING)* -> TERMINAL

The configuration is snapshotted on the first pull. Probe failures are
yielded as values; a pipeline fault in one attempt is converted into a
failure result so a long-running monitor survives it. Cancellation ends the
stream cleanly and is never raised to the consumer.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional, TYPE_CHECKING

from ..execution import ProbeAbortedError
from ..models.config import ProbeConfig
from ..models.results import ProbeOptions, ProbeResult
from ..parsing import result_from_error
from ..validation import ErrorSeverity, handle_error

if TYPE_CHECKING:
    from ..ping import Ping

logger = logging.getLogger(__name__)


class StreamState(Enum):
    """Lifecycle states of a ``ProbeStream``."""
    IDLE = "idle"
    EMITTING = "emitting"
    INTERVAL_WAIT = "interval_wait"
    TERMINAL = "terminal"


class ProbeStream:
    """
    Lazy, strictly sequential sequence of probe results for one ``Ping``.

    No attempt starts until the consumer pulls, and attempts never overlap.
    """

    def __init__(self, ping: "Ping"):
        self._ping = ping
        self._config: Optional[ProbeConfig] = None
        self.state = StreamState.IDLE
        self.attempts = 0

    @property
    def config(self) -> Optional[ProbeConfig]:
        """The snapshot in use, or None before the first pull."""
        return self._config

    def __aiter__(self) -> "ProbeStream":
        return self

    async def __anext__(self) -> ProbeResult:
        if self.state is StreamState.IDLE:
            self._config = self._ping.snapshot()
            logger.debug(f"Starting stream for {self._config.host} (count={self._config.count})")
            self.state = StreamState.TERMINAL if self._is_cancelled() else StreamState.EMITTING

        if self.state is StreamState.INTERVAL_WAIT:
            completed = await self._wait_interval()
            self.state = StreamState.EMITTING if completed else StreamState.TERMINAL

        if self.state is StreamState.EMITTING and self._is_cancelled():
            self.state = StreamState.TERMINAL

        if self.state is StreamState.TERMINAL:
            raise StopAsyncIteration

        result = await self._emit()
        if result is None:
            raise StopAsyncIteration
        return result

    async def _emit(self) -> Optional[ProbeResult]:
        """Run one attempt and choose the next state."""
        assert self._config is not None
        config = self._config
        attempt = self._ping.single_attempt(config)

        try:
            result = await attempt.run_async()
        except ProbeAbortedError:
            logger.debug(f"Stream for {config.host} aborted during attempt {self.attempts + 1}")
            self.state = StreamState.TERMINAL
            return None
        except asyncio.CancelledError:
            self.state = StreamState.TERMINAL
            raise
        except Exception as e:
            handle_error(
                error=e,
                context=f"probing {config.host}",
                severity=ErrorSeverity.WARNING,
                reraise=False,
                logger=logger
            )
            result = result_from_error(e, config.host, self._options())

        self.attempts += 1
        if not config.is_infinite and self.attempts >= config.count:
            self.state = StreamState.TERMINAL
        elif config.interval_seconds > 0:
            self.state = StreamState.INTERVAL_WAIT
        else:
            self.state = StreamState.EMITTING
        return result

    async def _wait_interval(self) -> bool:
        """Sleep for the interval; False if cancellation cut it short."""
        assert self._config is not None
        interval = self._config.interval_seconds
        token = self._config.cancel_token
        if token is None:
            await asyncio.sleep(interval)
            return True

        loop = asyncio.get_running_loop()
        cancelled = asyncio.Event()

        def _on_cancel() -> None:
            try:
                loop.call_soon_threadsafe(cancelled.set)
            except RuntimeError:
                logger.debug("Cancellation arrived after the event loop closed")

        token.add_callback(_on_cancel)
        try:
            await asyncio.wait_for(cancelled.wait(), timeout=interval)
            return False
        except asyncio.TimeoutError:
            return not token.is_cancelled
        finally:
            token.remove_callback(_on_cancel)

    def _is_cancelled(self) -> bool:
        token = self._config.cancel_token if self._config else self._ping.cancel_token
        return token is not None and token.is_cancelled

    def _options(self) -> ProbeOptions:
        assert self._config is not None
        return ProbeOptions(
            timeout_seconds=self._config.timeout_seconds,
            interval_seconds=self._config.interval_seconds,
            packet_size_bytes=self._config.packet_size_bytes,
            ttl=self._config.ttl,
            ip_version=self._config.ip_version,
        )

    async def aclose(self) -> None:
        """Stop the stream; further pulls end immediately."""
        self.state = StreamState.TERMINAL

    def __repr__(self) -> str:
        host = self._config.host if self._config else self._ping.hostname
        return f"ProbeStream(host={host!r}, state={self.state.value}, attempts={self.attempts})"

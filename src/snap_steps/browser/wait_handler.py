# Standard Library Imports
import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

# Playwright Imports
from playwright.async_api import Error as PlaywrightError
import structlog

# Local Imports
from .exceptions import ExpectationFailure
from .models import EXTENDED_TIMEOUT, TimeoutConfig
from .session import NodeElement

# --- Logger Setup ---
logger = structlog.get_logger(__name__)

T = TypeVar("T")

Predicate = Callable[[T], bool | Awaitable[bool]]


class Poller:
    """
    Re-evaluates a condition until it holds or a timeout elapses.

    Between attempts control goes back to the event loop, so page scripts and
    other browser activity keep running while a step waits. The clock and the
    sleep function are injectable for deterministic tests.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._clock = clock
        self._sleep = sleep

    async def poll(
        self,
        predicate: Predicate,
        handle: Any,
        timeout: TimeoutConfig,
        on_timeout: Exception | None = None,
        tolerate: tuple[type[BaseException], ...] = (),
    ) -> bool:
        """
        Polls ``predicate(handle)`` every ``timeout.poll_interval_ms``.

        Returns True as soon as the predicate is truthy. When the timeout
        elapses first, ``on_timeout`` is raised if given, otherwise False is
        returned. Errors listed in ``tolerate`` count as "not yet"; any other
        error propagates immediately.
        """
        timeout_s = timeout.timeout_ms / 1000
        interval_s = timeout.poll_interval_ms / 1000
        start = self._clock()
        attempts = 0

        while True:
            attempts += 1
            try:
                result = predicate(handle)
                if inspect.isawaitable(result):
                    result = await result
            except tolerate as e:
                logger.debug(
                    "Tolerated error while polling.",
                    attempt=attempts,
                    error=f"{type(e).__name__}: {e}",
                )
                result = False

            elapsed = self._clock() - start
            if result:
                logger.debug(
                    "Poll satisfied.", attempts=attempts, elapsed_ms=int(elapsed * 1000)
                )
                return True
            if elapsed >= timeout_s:
                break
            await self._sleep(min(interval_s, timeout_s - elapsed))

        logger.debug(
            "Poll timed out.", attempts=attempts, timeout_ms=timeout.timeout_ms
        )
        if on_timeout is not None:
            raise on_timeout
        return False

    async def is_node_visible(
        self,
        node: NodeElement,
        timeout: TimeoutConfig = EXTENDED_TIMEOUT,
        on_timeout: ExpectationFailure | None = None,
    ) -> bool:
        """
        Waits for ``node`` to become visible.

        A node that detaches mid-check is treated as not visible yet. Without
        ``on_timeout`` this is a best-effort probe that never raises.
        """
        return await self.poll(
            lambda n: n.is_visible(),
            node,
            timeout,
            on_timeout=on_timeout,
            tolerate=(PlaywrightError,),
        )

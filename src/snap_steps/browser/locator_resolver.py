from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from .exceptions import NotFoundError
from .models import Found, Locator, LookupResult, NotFound, TimeoutConfig, TimeoutPresets
from .selectors import strip_position
from .session import BaseSession, NodeElement
from .wait_handler import Poller

logger = structlog.get_logger(__name__)

NodeAction = Callable[[NodeElement], Awaitable[Any]]


async def click(node: NodeElement) -> None:
    await node.click()


class CandidateResolver:
    """
    Resolves a locator to the node a user would actually interact with.

    Pages often render the same element more than once (e.g. desktop and
    mobile navigation) with only one copy visible at a time. The resolver
    checks the first match, and when it is hidden widens the query to every
    structurally identical node and takes the first visible one.
    """

    def __init__(
        self,
        session: BaseSession,
        poller: Poller,
        timeouts: TimeoutPresets | None = None,
    ):
        if not session:
            raise ValueError("Session object is required for CandidateResolver.")
        self.session = session
        self.poller = poller
        self.timeouts = timeouts or TimeoutPresets()

    async def locate(
        self, locator: Locator, container: NodeElement | None = None
    ) -> LookupResult:
        """Single lookup returning a tagged result instead of raising."""
        node = await self.session.find(locator, container)
        if node is None:
            return NotFound(locator, f"{locator.describe()} could not be found")
        return Found(node)

    async def first_found(
        self,
        strategies: list[Callable[[], Awaitable[LookupResult]]],
    ) -> LookupResult:
        """
        Tries lookup strategies in order and returns the first ``Found``.

        Only a ``NotFound`` moves on to the next strategy; errors raised by a
        strategy propagate untouched.
        """
        result: LookupResult | None = None
        for index, strategy in enumerate(strategies, start=1):
            result = await strategy()
            if isinstance(result, Found):
                logger.debug("Lookup strategy matched.", strategy=index)
                return result
            logger.debug(
                "Lookup strategy found nothing.", strategy=index, reason=result.message
            )
        if result is None:
            raise ValueError("At least one lookup strategy is required.")
        return result

    async def resolve_and_act(
        self,
        locator: Locator,
        action: NodeAction | None = click,
        timeout: TimeoutConfig | None = None,
    ) -> NodeElement:
        """
        Acts on the first visible node for ``locator`` and returns it.

        Raises ``NotFoundError`` when nothing matches or no match becomes
        visible, and ``ContractViolation`` when the first match's path cannot
        be widened into a sibling query.
        """
        timeout = timeout or self.timeouts.default
        log = logger.bind(locator=locator.describe())

        first = await self.session.find(locator)
        if first is None:
            raise NotFoundError(
                f"{locator.describe()} could not be found", self.session
            )

        # Fast path: the first match is the one on screen.
        if await self.poller.is_node_visible(first, timeout):
            log.debug("First match is visible.", xpath=first.xpath)
            if action is not None:
                await action(first)
            return first

        broader = strip_position(first.xpath)
        candidates = await self.session.find_all_by_query(broader)
        log.info(
            "First match hidden, scanning siblings.",
            query=broader,
            candidates=len(candidates),
        )

        for node in candidates:
            if node == first:
                continue
            if await self.poller.is_node_visible(node, self.timeouts.reduced):
                log.info("Visible sibling found.", xpath=node.xpath)
                if action is not None:
                    await action(node)
                return node

        raise NotFoundError(
            f'At least one node should be visible for the xpath "{broader}"',
            self.session,
        )

    async def resolve_and_assert(
        self, locator: Locator, timeout: TimeoutConfig | None = None
    ) -> NodeElement:
        """Same resolution as ``resolve_and_act`` without touching the node."""
        return await self.resolve_and_act(locator, action=None, timeout=timeout)

    async def scan_for_visible(
        self, locator: Locator, action: NodeAction | None = click
    ) -> NodeElement:
        """
        Checks every match of ``locator`` in document order with the reduced
        timeout and acts on the first visible one.
        """
        candidates = await self.session.find_all(locator)
        for node in candidates:
            if await self.poller.is_node_visible(node, self.timeouts.reduced):
                if action is not None:
                    await action(node)
                return node

        last = candidates[-1].xpath if candidates else locator.expression
        raise NotFoundError(
            f'At least one node should be visible for the xpath "{last}"', self.session
        )

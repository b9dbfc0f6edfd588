"""
Shared plumbing for step classes: node lookups that raise readable failures,
and visibility/existence waits built on the ``Poller``.
"""

import structlog

from ..browser.exceptions import ExpectationFailure, NotFoundError, WaitTimeoutError
from ..browser.locator_resolver import CandidateResolver
from ..browser.models import Locator, SelectorType, TimeoutConfig
from ..browser.session import BaseSession, NodeElement
from ..browser.wait_handler import Poller
from ..config import Settings

logger = structlog.get_logger(__name__)


def locator_for(element: str, selector_type: str | SelectorType) -> Locator:
    """Builds a locator from the two quoted arguments of a step phrase."""
    return Locator(selector=SelectorType(selector_type), expression=element)


class BaseSteps:
    """Base class for all step classes; collaborators are passed in, never looked up."""

    def __init__(
        self,
        session: BaseSession,
        settings: Settings | None = None,
        poller: Poller | None = None,
        resolver: CandidateResolver | None = None,
    ):
        if not session:
            raise ValueError("Session object is required for step classes.")
        self.session = session
        self.settings = settings or Settings()
        self.timeouts = self.settings.timeouts()
        self.poller = poller or Poller()
        self.resolver = resolver or CandidateResolver(session, self.poller, self.timeouts)

    def expectation(self, message: str) -> ExpectationFailure:
        return ExpectationFailure(message, self.session)

    async def find(
        self,
        locator: Locator,
        failure: ExpectationFailure | None = None,
        container: NodeElement | None = None,
    ) -> NodeElement:
        """
        First node for ``locator``, waiting up to the default timeout for it to
        appear. Raises ``failure`` (or NotFoundError) when it never does.
        """
        found: list[NodeElement] = []

        async def exists(loc: Locator) -> bool:
            node = await self.session.find(loc, container)
            if node is None:
                return False
            found.append(node)
            return True

        if not await self.poller.poll(exists, locator, self.timeouts.default):
            if failure is not None:
                raise failure
            raise NotFoundError(f"{locator.describe()} could not be found", self.session)
        return found[-1]

    async def find_all(
        self, locator: Locator, container: NodeElement | None = None
    ) -> list[NodeElement]:
        return await self.session.find_all(locator, container)

    async def get_selected_node(self, selector_type: str, element: str) -> NodeElement:
        return await self.find(locator_for(element, selector_type))

    async def get_node_in_container(
        self,
        selector_type: str,
        element: str,
        container_type: str,
        container_element: str,
    ) -> NodeElement:
        container = await self.get_selected_node(container_type, container_element)
        return await self.find(locator_for(element, selector_type), container=container)

    async def is_node_visible(
        self,
        node: NodeElement,
        timeout: TimeoutConfig | None = None,
        failure: ExpectationFailure | None = None,
    ) -> bool:
        return await self.poller.is_node_visible(
            node, timeout or self.timeouts.extended, on_timeout=failure
        )

    async def ensure_node_is_visible(self, node: NodeElement) -> NodeElement:
        failure = WaitTimeoutError(
            f'"{node.xpath}" xpath node is not visible yet', self.session
        )
        await self.poller.is_node_visible(node, self.timeouts.default, on_timeout=failure)
        return node

    async def ensure_element_is_visible(
        self, element: str, selector_type: str
    ) -> NodeElement:
        """Waits until a node for the locator exists and is visible."""
        locator = locator_for(element, selector_type)
        found: list[NodeElement] = []

        async def visible(loc: Locator) -> bool:
            node = await self.session.find(loc)
            if node is None or not await node.is_visible():
                return False
            found.append(node)
            return True

        failure = WaitTimeoutError(
            f"{locator.describe()} is not visible", self.session
        )
        await self.poller.poll(visible, locator, self.timeouts.default, on_timeout=failure)
        return found[-1]

    async def ensure_element_exists(self, element: str, selector_type: str) -> None:
        locator = locator_for(element, selector_type)

        async def exists(loc: Locator) -> bool:
            return await self.session.find(loc) is not None

        failure = NotFoundError(f"{locator.describe()} does not exist", self.session)
        await self.poller.poll(exists, locator, self.timeouts.default, on_timeout=failure)

    async def ensure_element_does_not_exist(self, element: str, selector_type: str) -> None:
        locator = locator_for(element, selector_type)

        async def absent(loc: Locator) -> bool:
            return await self.session.find(loc) is None

        failure = self.expectation(f"{locator.describe()} exists")
        await self.poller.poll(absent, locator, self.timeouts.default, on_timeout=failure)

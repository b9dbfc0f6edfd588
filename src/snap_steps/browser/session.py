"""
Browser session abstraction used by every step.

``BaseSession`` is the one seam between the step library and the browser:
step classes receive it through their constructor and never reach for a
global driver. Node handles are thin ``NodeElement`` objects that only hold a
position path; every read goes back to the browser through the session, so
nothing about visibility or text is ever cached between checks.
"""

import asyncio
import itertools
from abc import ABC, abstractmethod
from typing import Any

from playwright.async_api import BrowserContext, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
import structlog

from .exceptions import WindowNotFoundError
from .models import Locator
from .selectors import DOCUMENT_ROOT, position_path, to_query

logger = structlog.get_logger(__name__)


class NodeElement:
    """Handle to a single element, addressed by its position path."""

    def __init__(self, session: "BaseSession", xpath: str):
        self.session = session
        self.xpath = xpath

    async def is_visible(self) -> bool:
        return await self.session.node_is_visible(self.xpath)

    async def get_text(self) -> str:
        return await self.session.node_text(self.xpath)

    async def get_html(self) -> str:
        return await self.session.node_html(self.xpath)

    async def get_attribute(self, name: str) -> str | None:
        return await self.session.node_attribute(self.xpath, name)

    async def click(self) -> None:
        logger.debug("Clicking node.", xpath=self.xpath)
        await self.session.node_click(self.xpath)

    async def attach_file(self, path: str) -> None:
        await self.session.node_attach_file(self.xpath, path)

    async def set_value(self, value: str) -> None:
        await self.session.node_set_value(self.xpath, value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NodeElement):
            return NotImplemented
        return self.session is other.session and self.xpath == other.xpath

    def __hash__(self) -> int:
        return hash(self.xpath)

    def __repr__(self) -> str:
        return f"NodeElement({self.xpath!r})"


class BaseSession(ABC):
    """Everything the step library needs from a browser session."""

    # --- Page level ---

    @abstractmethod
    async def visit(self, url: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def current_url(self) -> str:
        raise NotImplementedError

    @abstractmethod
    async def execute_script(self, script: str) -> None:
        """Runs statements in the page, discarding any result."""
        raise NotImplementedError

    @abstractmethod
    async def evaluate_script(self, script: str) -> Any:
        """Evaluates an expression (or a ``return ...`` body) and returns its value."""
        raise NotImplementedError

    @abstractmethod
    async def wait(self, timeout_ms: int, condition: str) -> bool:
        """Waits for a JS condition to become truthy; False on timeout."""
        raise NotImplementedError

    # --- Windows ---

    @abstractmethod
    async def get_window_name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    async def switch_to_window(self, name: str) -> None:
        raise NotImplementedError

    # --- Node queries ---

    @abstractmethod
    async def count_nodes(self, query: str) -> int:
        raise NotImplementedError

    @abstractmethod
    async def node_is_visible(self, xpath: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def node_text(self, xpath: str) -> str:
        raise NotImplementedError

    @abstractmethod
    async def node_html(self, xpath: str) -> str:
        raise NotImplementedError

    @abstractmethod
    async def node_attribute(self, xpath: str, name: str) -> str | None:
        raise NotImplementedError

    @abstractmethod
    async def node_click(self, xpath: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def node_attach_file(self, xpath: str, path: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def node_set_value(self, xpath: str, value: str) -> None:
        raise NotImplementedError

    # --- Lookups built on the primitives above ---

    async def find(
        self, locator: Locator, container: NodeElement | None = None
    ) -> NodeElement | None:
        """First node matching ``locator`` (optionally under ``container``), or None."""
        root = container.xpath if container else DOCUMENT_ROOT
        query = to_query(locator, root)
        if await self.count_nodes(query) == 0:
            logger.debug("No node matched.", locator=locator.describe(), query=query)
            return None
        return NodeElement(self, position_path(query, 1))

    async def find_all(
        self, locator: Locator, container: NodeElement | None = None
    ) -> list[NodeElement]:
        root = container.xpath if container else DOCUMENT_ROOT
        return await self.find_all_by_query(to_query(locator, root))

    async def find_all_by_query(self, query: str) -> list[NodeElement]:
        """Every node matched by an absolute xpath query, in document order."""
        count = await self.count_nodes(query)
        logger.debug("Nodes matched.", query=query, count=count)
        return [NodeElement(self, position_path(query, i)) for i in range(1, count + 1)]


class PlaywrightSession(BaseSession):
    """``BaseSession`` over an async Playwright page and its browser context."""

    WINDOW_SWITCH_TIMEOUT_MS = 5000
    WINDOW_SWITCH_INTERVAL_MS = 100

    _window_ids = itertools.count(1)

    def __init__(self, page: Page):
        if not page:
            raise ValueError("Page object is required for PlaywrightSession.")
        self.page = page

    @property
    def context(self) -> BrowserContext:
        return self.page.context

    def _locate(self, xpath: str):
        return self.page.locator(f"xpath={xpath}")

    async def visit(self, url: str) -> None:
        logger.info("Visiting page.", url=url)
        await self.page.goto(url)

    def current_url(self) -> str:
        return self.page.url

    async def execute_script(self, script: str) -> None:
        await self.page.evaluate(f"() => {{ {script} }}")

    async def evaluate_script(self, script: str) -> Any:
        script = script.strip().rstrip(";")
        if script.startswith("return "):
            return await self.page.evaluate(f"() => {{ {script}; }}")
        return await self.page.evaluate(f"() => ({script})")

    async def wait(self, timeout_ms: int, condition: str) -> bool:
        try:
            await self.page.wait_for_function(f"() => ({condition})", timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            logger.debug("Condition not met in time.", timeout_ms=timeout_ms)
            return False

    async def get_window_name(self) -> str:
        name = await self.page.evaluate("() => window.name")
        if not name:
            name = f"snap-steps-window-{next(self._window_ids)}"
            await self.page.evaluate("(name) => { window.name = name; }", name)
        return name

    async def _page_named(self, name: str) -> Page | None:
        for page in self.context.pages:
            if page.is_closed():
                continue
            try:
                if await page.evaluate("() => window.name") == name:
                    return page
            except PlaywrightError:
                continue
        return None

    async def switch_to_window(self, name: str) -> None:
        # Windows opened from script show up in the context asynchronously.
        attempts = self.WINDOW_SWITCH_TIMEOUT_MS // self.WINDOW_SWITCH_INTERVAL_MS
        for _ in range(max(1, attempts)):
            page = await self._page_named(name)
            if page is not None:
                self.page = page
                await page.bring_to_front()
                logger.debug("Switched window.", window=name)
                return
            await asyncio.sleep(self.WINDOW_SWITCH_INTERVAL_MS / 1000)
        raise WindowNotFoundError(f"No window named '{name}'")

    async def count_nodes(self, query: str) -> int:
        return await self._locate(query).count()

    async def node_is_visible(self, xpath: str) -> bool:
        return await self._locate(xpath).is_visible()

    async def node_text(self, xpath: str) -> str:
        text = await self._locate(xpath).inner_text()
        return " ".join(text.split())

    async def node_html(self, xpath: str) -> str:
        return await self._locate(xpath).inner_html()

    async def node_attribute(self, xpath: str, name: str) -> str | None:
        return await self._locate(xpath).get_attribute(name)

    async def node_click(self, xpath: str) -> None:
        await self._locate(xpath).click()

    async def node_attach_file(self, xpath: str, path: str) -> None:
        await self._locate(xpath).set_input_files(path)

    async def node_set_value(self, xpath: str, value: str) -> None:
        locator = self._locate(xpath)
        tag = await locator.evaluate("el => el.tagName.toLowerCase()")
        if tag == "select":
            await locator.select_option(value)
        else:
            await locator.fill(value)

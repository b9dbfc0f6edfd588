import json
import re
from dataclasses import dataclass, field
from typing import Any

import pytest

from snap_steps.browser.exceptions import WindowNotFoundError
from snap_steps.browser.models import Locator
from snap_steps.browser.selectors import DOCUMENT_ROOT, to_query
from snap_steps.browser.session import BaseSession
from snap_steps.browser.wait_handler import Poller
from snap_steps.config import Settings

_PATH = re.compile(r"^\((?P<query>.+)\)\[(?P<index>\d+)\]$", re.DOTALL)
_WINDOW_OPEN = re.compile(r"^window\.open\((?P<url>\".*?\"), (?P<name>\".*?\")\)$")


@dataclass
class FakeElement:
    """Scripted DOM node. ``visible_after`` makes it appear after that many checks."""

    text: str = ""
    visible: bool = True
    visible_after: int | None = None
    html: str = ""
    attributes: dict[str, str] = field(default_factory=dict)
    error: Exception | None = None
    checks: int = 0
    clicks: int = 0
    value: str | None = None
    attached: list[str] = field(default_factory=list)

    def check_visible(self) -> bool:
        self.checks += 1
        if self.error is not None:
            raise self.error
        if self.visible_after is not None:
            return self.checks > self.visible_after
        return self.visible


class FakeSession(BaseSession):
    """In-memory ``BaseSession``: queries map to scripted element lists."""

    def __init__(self, url: str = "http://localhost/"):
        self.url = url
        self.nodes: dict[str, list[FakeElement]] = {}
        self.extra_counts: dict[str, int] = {}
        self.count_queries: list[str] = []
        self.visited: list[str] = []
        self.scripts: list[str] = []
        self.evaluations: dict[str, Any] = {}
        self.wait_result = True
        self.windows: dict[str, str] = {"main": url}
        self.window = "main"
        self.switches: list[str] = []

    # --- Test helpers ---

    def add(self, locator: Locator, *elements: FakeElement, root: str = DOCUMENT_ROOT) -> str:
        query = to_query(locator, root)
        self.nodes.setdefault(query, []).extend(elements)
        return query

    def element(self, xpath: str) -> FakeElement:
        match = _PATH.match(xpath)
        assert match, f"unexpected node path {xpath}"
        return self.nodes[match.group("query")][int(match.group("index")) - 1]

    @property
    def clicked(self) -> list[FakeElement]:
        return [el for elements in self.nodes.values() for el in elements if el.clicks]

    # --- BaseSession ---

    async def visit(self, url: str) -> None:
        self.visited.append(url)
        self.url = url

    def current_url(self) -> str:
        return self.url

    async def execute_script(self, script: str) -> None:
        self.scripts.append(script)
        opened = _WINDOW_OPEN.match(script)
        if opened:
            self.windows[json.loads(opened.group("name"))] = json.loads(opened.group("url"))
        elif script == "window.close()":
            self.windows.pop(self.window, None)

    async def evaluate_script(self, script: str) -> Any:
        self.scripts.append(script)
        return self.evaluations.get(script)

    async def wait(self, timeout_ms: int, condition: str) -> bool:
        self.scripts.append(condition)
        return self.wait_result

    async def get_window_name(self) -> str:
        return self.window

    async def switch_to_window(self, name: str) -> None:
        self.switches.append(name)
        if name not in self.windows:
            raise WindowNotFoundError(f"No window named '{name}'")
        self.window = name
        self.url = self.windows[name]

    async def count_nodes(self, query: str) -> int:
        self.count_queries.append(query)
        if query in self.nodes:
            return len(self.nodes[query])
        return self.extra_counts.get(query, 0)

    async def node_is_visible(self, xpath: str) -> bool:
        return self.element(xpath).check_visible()

    async def node_text(self, xpath: str) -> str:
        return self.element(xpath).text

    async def node_html(self, xpath: str) -> str:
        return self.element(xpath).html

    async def node_attribute(self, xpath: str, name: str) -> str | None:
        return self.element(xpath).attributes.get(name)

    async def node_click(self, xpath: str) -> None:
        self.element(xpath).clicks += 1

    async def node_attach_file(self, xpath: str, path: str) -> None:
        self.element(xpath).attached.append(path)

    async def node_set_value(self, xpath: str, value: str) -> None:
        self.element(xpath).value = value


class FakeClock:
    """Monotonic clock that only moves when the poller sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def time(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def poller(fake_clock: FakeClock) -> Poller:
    return Poller(clock=fake_clock.time, sleep=fake_clock.sleep)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(wwwroot="http://moodle.test", dirroot=tmp_path)

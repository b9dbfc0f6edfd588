from contextlib import asynccontextmanager

import structlog

from ..browser.locator_resolver import CandidateResolver
from ..browser.providers.browser_manager import BrowserManager
from ..browser.session import BaseSession
from ..browser.wait_handler import Poller
from ..config import Settings
from .course import DataGenerator, SnapCourseSteps
from .filepicker import FilePickerSteps
from .general import FormSteps, GeneralSteps
from .theme import SnapThemeSteps

logger = structlog.get_logger(__name__)


class StepLibrary:
    """All step classes for one session, sharing a poller and a resolver."""

    def __init__(
        self,
        session: BaseSession,
        settings: Settings | None = None,
        poller: Poller | None = None,
        data_generator: DataGenerator | None = None,
    ):
        self.session = session
        self.settings = settings or Settings()
        self.poller = poller or Poller()
        self.resolver = CandidateResolver(session, self.poller, self.settings.timeouts())

        shared = (session, self.settings, self.poller, self.resolver)
        self.general = GeneralSteps(*shared)
        self.forms = FormSteps(*shared)
        self.theme = SnapThemeSteps(*shared, general=self.general, forms=self.forms)
        self.course = SnapCourseSteps(
            *shared, general=self.general, forms=self.forms, data_generator=data_generator
        )
        self.filepicker = FilePickerSteps(*shared)


@asynccontextmanager
async def open_library(settings: Settings, data_generator: DataGenerator | None = None):
    """Launches the configured browser and yields a ``StepLibrary`` bound to it."""
    provider = BrowserManager.get_provider(settings.provider)
    try:
        session = await provider.open_session(settings.browser_type, settings.headless)
        logger.info("Step library ready.", browser_type=settings.browser_type)
        yield StepLibrary(session, settings, data_generator=data_generator)
    finally:
        await provider.close()

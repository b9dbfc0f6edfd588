from abc import ABC, abstractmethod

from ..session import BaseSession


class BaseBrowserProvider(ABC):
    """Abstract Base Class for everything that can hand out a browser session."""

    @abstractmethod
    async def open_session(self, browser_type: str, headless: bool) -> BaseSession:
        """
        Starts a browser and returns a session bound to a fresh page.
        """
        raise NotImplementedError

    @abstractmethod
    async def close(self):
        """
        Closes the browser and anything started alongside it.
        """
        raise NotImplementedError

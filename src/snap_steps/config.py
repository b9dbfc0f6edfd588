"""
Settings for the step library.

Values come from an optional YAML file and are then overridden by
``SNAP_STEPS_<FIELD>`` environment variables, e.g.::

    SNAP_STEPS_WWWROOT=http://localhost:8000
    SNAP_STEPS_TIMEOUT_FACTOR=2
"""

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError
import structlog
import yaml

from .browser.exceptions import ConfigurationError
from .browser.models import TimeoutPresets

logger = structlog.get_logger(__name__)

ENV_PREFIX = "SNAP_STEPS_"

DEFAULT_STRINGS = {
    "login": "Log in",
    "logout": "Log out",
    "username": "Username",
    "password": "Password",
    "available_from": "Available from",
}


class Settings(BaseModel):
    wwwroot: str = Field("http://localhost", description="Base URL of the site under test.")
    dirroot: Path | None = Field(None, description="Code root of the site under test.")
    fixtures_dir: Path | None = Field(
        None, description="Upload fixtures; defaults to <dirroot>/theme/snap/tests/fixtures."
    )
    provider: str = "local"
    browser_type: str = "chromium"
    headless: bool = True
    timeout_factor: float = Field(1.0, gt=0)
    personal_menu_login_toggle: bool = Field(
        True, description="Whether the personal menu opens itself after login."
    )
    date_format: str = Field("%d %B %Y", description="strftime format of dates shown on the site.")
    strings: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_STRINGS))

    @classmethod
    def load(cls, path: Path | None = None, environ: dict[str, str] | None = None) -> "Settings":
        environ = os.environ if environ is None else environ
        data: dict[str, Any] = {}

        if path is not None:
            if not path.is_file():
                raise ConfigurationError(f"Settings file not found: {path}")
            loaded = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            if not isinstance(loaded, dict):
                raise ConfigurationError(f"Settings file must contain a mapping: {path}")
            data.update(loaded)

        for name in cls.model_fields:
            if name == "strings":
                continue
            value = environ.get(ENV_PREFIX + name.upper())
            if value is not None:
                data[name] = value

        if "strings" in data:
            data["strings"] = {**DEFAULT_STRINGS, **(data["strings"] or {})}

        try:
            settings = cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings: {e}") from e
        logger.debug("Settings loaded.", source=str(path) if path else "env")
        return settings

    def timeouts(self) -> TimeoutPresets:
        return TimeoutPresets().scaled(self.timeout_factor)

    def string(self, key: str) -> str:
        return self.strings.get(key, DEFAULT_STRINGS.get(key, key))

    def locate_path(self, path: str) -> str:
        return self.wwwroot.rstrip("/") + "/" + path.lstrip("/")

    def fixture_path(self, filename: str) -> Path:
        """Absolute path of an upload fixture; directory parts of ``filename`` are dropped."""
        root = self.fixtures_dir
        if root is None:
            if self.dirroot is None:
                raise ConfigurationError("Either fixtures_dir or dirroot must be set.")
            root = self.dirroot / "theme" / "snap" / "tests" / "fixtures"
        return root / Path(filename).name

# browser/models.py

"""
Contains Pydantic models and simple data classes describing the values that
flow between step functions, the session and the resolution engine.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import ContractViolation

if TYPE_CHECKING:
    from .session import NodeElement


class SelectorType(str, Enum):
    """Selector strategies understood by step phrases (``"<locator>" "<selector>"``)."""

    CSS = "css_element"
    XPATH = "xpath_element"
    LINK = "link"
    BUTTON = "button"
    FIELD = "field"
    TEXT = "text"
    DIALOGUE = "dialogue"
    REGION = "region"


class Locator(BaseModel):
    """A selector strategy plus an expression in that strategy's syntax."""

    model_config = ConfigDict(frozen=True)

    selector: SelectorType = Field(..., description="Selector strategy.")
    expression: str = Field(..., description="Expression in the strategy's syntax.")

    @field_validator("expression")
    @classmethod
    def _not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("Locator expression must not be empty.")
        return value

    @classmethod
    def css(cls, expression: str) -> "Locator":
        return cls(selector=SelectorType.CSS, expression=expression)

    @classmethod
    def xpath(cls, expression: str) -> "Locator":
        return cls(selector=SelectorType.XPATH, expression=expression)

    @classmethod
    def named(cls, selector: SelectorType | str, text: str) -> "Locator":
        return cls(selector=SelectorType(selector), expression=text)

    def describe(self) -> str:
        return f'"{self.expression}" {self.selector.value}'


class TimeoutConfig(BaseModel):
    """How long to poll for a condition and how often to re-check it."""

    model_config = ConfigDict(frozen=True)

    timeout_ms: int = Field(..., gt=0)
    poll_interval_ms: int = Field(100, gt=0)

    def scaled(self, factor: float) -> "TimeoutConfig":
        """Returns a copy with the timeout multiplied by ``factor``."""
        if factor <= 0:
            raise ValueError("Timeout factor must be positive.")
        return TimeoutConfig(
            timeout_ms=max(1, int(self.timeout_ms * factor)),
            poll_interval_ms=self.poll_interval_ms,
        )


DEFAULT_TIMEOUT = TimeoutConfig(timeout_ms=6000, poll_interval_ms=100)
EXTENDED_TIMEOUT = TimeoutConfig(timeout_ms=10000, poll_interval_ms=100)
REDUCED_TIMEOUT = TimeoutConfig(timeout_ms=2000, poll_interval_ms=100)


@dataclass(frozen=True)
class TimeoutPresets:
    default: TimeoutConfig = DEFAULT_TIMEOUT
    extended: TimeoutConfig = EXTENDED_TIMEOUT
    reduced: TimeoutConfig = REDUCED_TIMEOUT

    def scaled(self, factor: float) -> "TimeoutPresets":
        return TimeoutPresets(
            default=self.default.scaled(factor),
            extended=self.extended.scaled(factor),
            reduced=self.reduced.scaled(factor),
        )


# --- Lookup results ---


@dataclass(frozen=True)
class Found:
    node: "NodeElement"


@dataclass(frozen=True)
class NotFound:
    locator: Locator
    message: str


LookupResult = Union[Found, NotFound]


# --- Step results ---


class NoFurtherSteps(BaseModel):
    """The step did all of its work itself."""

    model_config = ConfigDict(frozen=True)


class Steps(BaseModel):
    """Ordered step phrases the registry must run next, stopping at the first failure."""

    model_config = ConfigDict(frozen=True)

    phrases: tuple[str, ...] = ()

    @classmethod
    def of(cls, *items: "str | Steps") -> "Steps":
        phrases: list[str] = []
        for item in items:
            if isinstance(item, Steps):
                phrases.extend(item.phrases)
            elif isinstance(item, str):
                phrases.append(item)
            else:
                raise ContractViolation(
                    f"A step must be a string or Steps instance, got {type(item).__name__}"
                )
        return cls(phrases=tuple(phrases))


NO_FURTHER_STEPS = NoFurtherSteps()

StepResult = Union[NoFurtherSteps, Steps]

import re

from cssselect import GenericTranslator

from .exceptions import ContractViolation
from .models import Locator, SelectorType

# Root every query is anchored to.
DOCUMENT_ROOT = "//html"

_CLASS = "contains(concat(' ', normalize-space(@class), ' '), ' {} ')"

# Named selector templates. ``%locator%`` is replaced by an xpath literal.
NAMED_SELECTORS: dict[SelectorType, str] = {
    SelectorType.LINK: (
        ".//a[./@href][(((./@id = %locator% or contains(normalize-space(string(.)), %locator%))"
        " or contains(./@title, %locator%)) or .//img[contains(./@alt, %locator%)])]"
        " | .//*[./@role = 'link'][((./@id = %locator% or contains(./@value, %locator%))"
        " or contains(./@title, %locator%) or contains(normalize-space(string(.)), %locator%))]"
    ),
    SelectorType.BUTTON: (
        ".//input[./@type = 'submit' or ./@type = 'image' or ./@type = 'button' or ./@type = 'reset']"
        "[(((./@id = %locator% or ./@name = %locator%) or contains(./@value, %locator%))"
        " or contains(./@title, %locator%))]"
        " | .//button[((((./@id = %locator% or ./@name = %locator%) or contains(./@value, %locator%))"
        " or contains(normalize-space(string(.)), %locator%)) or contains(./@title, %locator%))]"
        " | .//*[./@role = 'button'][((./@id = %locator% or contains(./@title, %locator%))"
        " or contains(normalize-space(string(.)), %locator%))]"
    ),
    SelectorType.FIELD: (
        ".//*[self::input | self::textarea | self::select]"
        "[not(./@type = 'submit' or ./@type = 'image' or ./@type = 'hidden')]"
        "[((./@id = %locator% or ./@name = %locator%)"
        " or ./@id = //label[normalize-space(string(.)) = %locator%]/@for"
        " or ./@placeholder = %locator%)]"
        " | .//label[normalize-space(string(.)) = %locator%]"
        "//*[self::input | self::textarea | self::select]"
        "[not(./@type = 'submit' or ./@type = 'image' or ./@type = 'hidden')]"
    ),
    SelectorType.TEXT: (
        ".//*[contains(normalize-space(.), %locator%)]"
        "[not(./descendant::*[contains(normalize-space(.), %locator%)])]"
    ),
    SelectorType.DIALOGUE: (
        ".//div[" + _CLASS.format("moodle-dialogue") + " and not(" + _CLASS.format("moodle-dialogue-hidden") + ")]"
        "//div[" + _CLASS.format("moodle-dialogue-hd") + "][normalize-space(.) = %locator%]"
        "/ancestor::div[" + _CLASS.format("moodle-dialogue") + "]"
    ),
    SelectorType.REGION: (
        ".//*[self::div | self::section | self::aside | self::header | self::footer]"
        "[./@id = %locator%]"
    ),
}

_POSITION_PATH = re.compile(r"^\((?P<query>.+)\)\[(?P<index>\d+)\]$", re.DOTALL)

_css_translator = GenericTranslator()


def xpath_literal(value: str) -> str:
    """Safely embed a string literal inside an xpath expression."""
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'

    parts = value.split("'")
    concat_parts: list[str] = []
    for idx, part in enumerate(parts):
        if part:
            concat_parts.append(f"'{part}'")
        if idx != len(parts) - 1:
            concat_parts.append("\"'\"")
    return "concat(" + ", ".join(concat_parts) + ")"


def class_contains(classname: str) -> str:
    """Xpath predicate body matching elements carrying ``classname``."""
    return _CLASS.format(classname)


def split_union(xpath: str) -> list[str]:
    """Splits an xpath on its top-level ``|`` operators."""
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    current: list[str] = []
    for char in xpath:
        if quote:
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
        elif char in "([":
            depth += 1
        elif char in ")]":
            depth -= 1
        elif char == "|" and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    parts.append("".join(current).strip())
    return [part for part in parts if part]


def _closing_paren(xpath: str) -> int:
    """Index of the ``)`` matching the ``(`` that opens ``xpath``, or -1."""
    depth = 0
    quote: str | None = None
    for idx, char in enumerate(xpath):
        if quote:
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return idx
    return -1


def prepend(prefix: str, xpath: str) -> str:
    """
    Anchors every branch of ``xpath`` under ``prefix``.

    A branch opening with a parenthesised expression, such as ``(//a)[2]``,
    is anchored inside the parentheses. A union prefix is wrapped in
    parentheses so it binds as one step.
    """
    if len(split_union(prefix)) > 1:
        prefix = f"({prefix})"
    anchored = []
    for part in split_union(xpath):
        end = _closing_paren(part) if part.startswith("(") else -1
        if part.startswith(prefix):
            anchored.append(part)
        elif end > 0:
            anchored.append(f"({prepend(prefix, part[1:end])}){part[end + 1:]}")
        elif part.startswith("/"):
            anchored.append(prefix + part)
        else:
            anchored.append(f"{prefix}/{part}")
    return " | ".join(anchored)


def to_relative_xpath(locator: Locator) -> str:
    """Renders any locator as an xpath relative to its search root."""
    if locator.selector is SelectorType.XPATH:
        return locator.expression
    if locator.selector is SelectorType.CSS:
        return _css_translator.css_to_xpath(
            locator.expression, prefix="descendant-or-self::"
        )
    template = NAMED_SELECTORS.get(locator.selector)
    if template is None:
        raise ContractViolation(f"No xpath template for selector '{locator.selector.value}'")
    return template.replace("%locator%", xpath_literal(locator.expression))


def to_query(locator: Locator, root: str = DOCUMENT_ROOT) -> str:
    """Absolute xpath query matching every node ``locator`` selects under ``root``."""
    return prepend(root, to_relative_xpath(locator))


def position_path(query: str, index: int) -> str:
    """Path of the ``index``-th (1-based) node matched by ``query``."""
    return f"({query})[{index}]"


def strip_position(path: str) -> str:
    """
    Removes the trailing positional qualifier from a node path, giving the
    query that matches the node together with all of its structural siblings.
    """
    match = _POSITION_PATH.match(path.replace("\n", ""))
    if not match:
        raise ContractViolation(f"Failed to extract xpath from {path}")
    return match.group("query")

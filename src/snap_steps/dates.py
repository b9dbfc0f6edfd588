"""
Relative date phrases used in scenarios ("tomorrow", "+2 weeks", "3 days ago",
"next month") and absolute dates ("1 January 2030"), resolved against a
reference time.
"""

import re
from datetime import datetime, timedelta

from dateutil.parser import ParserError, parse
from dateutil.relativedelta import relativedelta

_UNITS = {
    "sec": "seconds",
    "second": "seconds",
    "min": "minutes",
    "minute": "minutes",
    "hour": "hours",
    "day": "days",
    "week": "weeks",
    "fortnight": "fortnights",
    "month": "months",
    "year": "years",
}

_ANCHORS = {"today": 0, "midnight": 0, "tomorrow": 1, "yesterday": -1}

_TERM = re.compile(
    r"(?P<sign>[+-])?\s*(?P<amount>\d+)\s*(?P<unit>[a-z]+?)s?(?P<ago>\s+ago)?(?=\s|$)"
    r"|(?P<word>next|last)\s+(?P<wunit>[a-z]+?)s?(?=\s|$)"
)

TIMESTAMP_PHRASE = re.compile(r"(?:the|a) timestamp of (.*)$")


def _delta(unit: str, amount: int) -> relativedelta:
    name = _UNITS.get(unit)
    if name is None:
        raise ValueError(f"Unknown date unit '{unit}'")
    if name == "fortnights":
        return relativedelta(weeks=2 * amount)
    return relativedelta(**{name: amount})


def resolve_date(text: str, now: datetime | None = None) -> datetime:
    """Resolves ``text`` to a datetime, raising ``ValueError`` when it is not a date."""
    now = now or datetime.now()
    phrase = text.strip().lower()

    if phrase == "now":
        return now
    if phrase in _ANCHORS:
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return midnight + timedelta(days=_ANCHORS[phrase])

    result = now
    position = 0
    matched = False
    while position < len(phrase):
        if phrase[position].isspace():
            position += 1
            continue
        match = _TERM.match(phrase, position)
        if not match:
            break
        unit = match.group("wunit") or match.group("unit")
        # "1 January 2030" starts like a term; leave it to the parser.
        if unit not in _UNITS:
            break
        matched = True
        if match.group("word"):
            amount = 1 if match.group("word") == "next" else -1
        else:
            amount = int(match.group("amount"))
            if match.group("sign") == "-" or match.group("ago"):
                amount = -amount
        result += _delta(unit, amount)
        position = match.end()

    if matched and position >= len(phrase):
        return result

    try:
        return parse(text, default=now.replace(hour=0, minute=0, second=0, microsecond=0))
    except (ParserError, OverflowError) as e:
        raise ValueError(f"Unrecognised date '{text}'") from e


def timestamp(text: str, now: datetime | None = None) -> int:
    return int(resolve_date(text, now).timestamp())


def replace_timestamp_phrases(value: str, now: datetime | None = None) -> str:
    """Rewrites "the timestamp of <date>" (or "a timestamp of ...") to a unix timestamp."""
    return TIMESTAMP_PHRASE.sub(lambda m: str(timestamp(m.group(1), now)), value)


def format_date(moment: datetime, fmt: str) -> str:
    """``strftime`` with ``%d`` rendered without its leading zero, as the site shows days."""
    return moment.strftime(fmt.replace("%d", str(moment.day)))

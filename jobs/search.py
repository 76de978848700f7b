"""
Free-text job search.

A query is a whitespace separated list of `field:value` tokens, e.g.

    id:1 state:failed source:foo host:bar submitted:2_days_ago

Each recognised token becomes one clause. Bare words, unknown fields and
values that cannot be read (a non-numeric id, a date like `foo_bar_baz`) are
dropped without error. Turning clauses into database filters is done by
jobs.filters.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta

from django.utils import timezone
from django.utils.dateparse import parse_date


@dataclass(frozen=True)
class Exact:
    field: str
    value: object


@dataclass(frozen=True)
class Substring:
    field: str
    value: str


@dataclass(frozen=True)
class SubstringEitherOf:
    fields: tuple
    value: str


@dataclass(frozen=True)
class JoinSubstring:
    relation: str
    field: str
    value: str


@dataclass(frozen=True)
class DateRange:
    field: str
    start: datetime
    end: datetime


_AGO_RE = re.compile(r"^(\d+)\s+(minute|hour|day|week)s?\s+ago$")


def beginning_of_day(moment: datetime) -> datetime:
    local = timezone.localtime(moment) if timezone.is_aware(moment) else moment
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def parse_day(value: str, now: datetime | None = None) -> tuple[datetime, datetime] | None:
    """
    Resolve a date shortcut to the day-long window [start, start + 1 day).

    Understands `today`, `yesterday`, `N_<minutes|hours|days|weeks>_ago` and
    ISO dates. Returns None for anything else.
    """
    now = now or timezone.now()
    text = value.replace("_", " ").strip().lower()

    if text == "today":
        moment = now
    elif text == "yesterday":
        moment = now - timedelta(days=1)
    elif m := _AGO_RE.match(text):
        amount, unit = int(m.group(1)), m.group(2)
        try:
            moment = now - timedelta(**{f"{unit}s": amount})
        except (OverflowError, ValueError):
            return None
    else:
        try:
            day = parse_date(value)
        except ValueError:  # well formed but impossible, e.g. 2024-02-31
            day = None
        if day is None:
            return None
        moment = datetime(day.year, day.month, day.day)
        if timezone.is_aware(now):
            moment = timezone.make_aware(moment)

    try:
        start = beginning_of_day(moment)
        return start, start + timedelta(days=1)
    except (OverflowError, ValueError):  # window runs past datetime.min/max
        return None


MAX_ID = 2**63 - 1


def _id(value, now):
    if value.isascii() and value.isdecimal() and int(value) <= MAX_ID:
        return Exact("id", int(value))
    return None


def _substring(field):
    return lambda value, now: Substring(field, value)


def _join(relation, field):
    return lambda value, now: JoinSubstring(relation, field, value)


def _date(field):
    def build(value, now):
        window = parse_day(value, now)
        if window is None:
            return None
        return DateRange(field, *window)
    return build


FIELDS = {
    "id": _id,
    "state": lambda value, now: Exact("state", value.lower()),
    "source": _substring("source_file"),
    "input": _substring("source_file"),
    "dest": _substring("destination_file"),
    "output": _substring("destination_file"),
    "file": lambda value, now: SubstringEitherOf(("source_file", "destination_file"), value),
    "preset": _join("preset", "name"),
    "host": _join("host", "name"),
    "submitted": _date("created_at"),
    "created": _date("created_at"),
    "completed": _date("completed_at"),
    "started": _date("transcoding_started_at"),
}


def tokenize(query: str) -> list[tuple[str, str]]:
    """Split a query into (field, value) pairs; bare words are skipped."""
    pairs = []
    for token in (query or "").split():
        field, sep, value = token.partition(":")
        if sep and field and value:
            pairs.append((field.lower(), value))
    return pairs


def parse_query(query: str, now: datetime | None = None) -> list:
    """Parse a search string into clauses, in token order."""
    now = now or timezone.now()
    clauses = []
    for field, value in tokenize(query):
        build = FIELDS.get(field)
        if build is None:
            continue
        clause = build(value, now)
        if clause is not None:
            clauses.append(clause)
    return clauses

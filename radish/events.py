from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{1,2}-\d{1,2}$")
YEAR_PATTERN = re.compile(r"^\d{4}$")


class UnknownEvent(ValueError):
    """A release date answer named an event missing from the calendar."""


def is_iso_date(value: Optional[str]) -> bool:
    return bool(value) and bool(ISO_DATE_PATTERN.match(value))


def parse_release_date(value: str) -> date:
    year, month, day = (int(part) for part in value.split("-"))
    return date(year, month, day)


def release_day(value: Optional[str]) -> Optional[date]:
    """The calendar day of an ISO release date, or None for years and placeholders like ``0000-00-00``."""
    if not is_iso_date(value):
        return None
    try:
        return parse_release_date(value)
    except ValueError:
        return None


def _parse_event_date(value: str) -> date:
    year, month, day = (int(part) for part in value.strip().split("."))
    return date(year, month, day)


@dataclass(slots=True)
class EventCalendar:
    """Release events (conventions, festivals) and the days they run on."""

    dates_by_event: Dict[str, date] = field(default_factory=dict)
    events_by_date: Dict[date, List[str]] = field(default_factory=dict)

    @classmethod
    def load(cls, path: Optional[Path]) -> "EventCalendar":
        calendar = cls()
        if path is None:
            return calendar
        for line in path.read_text(encoding="utf-8").splitlines():
            if not line.strip() or line.startswith("#"):
                continue
            name, _, dates_str = line.partition(": ")
            if "-" in dates_str:
                start_str, end_str = dates_str.split("-", 1)
                start, end = _parse_event_date(start_str), _parse_event_date(end_str)
                days = [start + timedelta(days=offset) for offset in range((end - start).days + 1)]
            else:
                days = [_parse_event_date(dates_str)]
            # An event is dated by its last day.
            calendar.dates_by_event[name] = days[-1]
            for day in days:
                calendar.events_by_date.setdefault(day, []).append(name)
        logger.info(
            "Loaded %d events with %d total dates",
            len(calendar.dates_by_event),
            len(calendar.events_by_date),
        )
        return calendar

    def events_on(self, day: date) -> List[str]:
        return list(self.events_by_date.get(day, []))


def parse_release_input(
    answer: Optional[str],
    calendar: EventCalendar,
    current: Optional[str] = None,
) -> Tuple[Optional[str], Optional[str]]:
    """Turn a release date answer into ``(release_date, event)``.

    ``answer`` may be a digit picking one of the events held on ``current``, an ISO
    date, a bare year, or an event name.
    """
    if answer is None:
        return None, None
    if answer.isdigit() and len(answer) == 1:
        day = release_day(current)
        if day is None:
            raise UnknownEvent(f"No events are listed for release date {current!r}")
        options = calendar.events_on(day)
        index = int(answer)
        if index >= len(options):
            raise UnknownEvent(f"No event numbered {index} on {current}")
        return day.isoformat(), options[index]
    if is_iso_date(answer):
        day = release_day(answer)
        if day is None:
            raise UnknownEvent(f'"{answer}" is not a valid date')
        return day.isoformat(), None
    if YEAR_PATTERN.match(answer):
        return answer, None
    if answer in calendar.dates_by_event:
        return calendar.dates_by_event[answer].isoformat(), answer
    raise UnknownEvent(f'Could not find event "{answer}"')

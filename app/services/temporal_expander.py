"""Temporal expander — relative week/day/time placements → absolute timestamps.

Pure functions, no I/O. The same code serves the preview endpoint and the
authoritative provisioning run, so both always agree.

Model:
    A program is a sequence of blocks. Each block has a duration in weeks and
    may be preceded by a delay (weeks). A placement positions one session
    inside a block: ``startWeek``/``endWeek`` are zero-based week offsets
    within the block, days are Mon–Fri, times are 24h ``HH:MM``.

    Week 0 / Monday of the program is the *reference Monday*: the first
    Monday on or after the cohort's anchor date. A Wednesday anchor therefore
    puts "Week 0 Mon" on the following Monday; a weekend anchor rolls forward,
    never back.

Usage:
    offsets = block_start_weeks(blocks, delays)
    expanded = expand_placements(placements, blocks, delays, anchor=date(2025, 10, 6))
    weeks = total_duration_weeks(expanded, default_weeks=12)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Mapping, Sequence

SIMPLE_BLOCK_ID = "simple-program"

WEEKDAY_INDEX: dict[str, int] = {"Mon": 0, "Tue": 1, "Wed": 2, "Thu": 3, "Fri": 4}

_DAY_ALIASES: dict[str, str] = {
    "mon": "Mon", "monday": "Mon",
    "tue": "Tue", "tues": "Tue", "tuesday": "Tue",
    "wed": "Wed", "wednesday": "Wed",
    "thu": "Thu", "thur": "Thu", "thurs": "Thu", "thursday": "Thu",
    "fri": "Fri", "friday": "Fri",
}

_ONE_WEEK = timedelta(days=7)


@dataclass(frozen=True)
class Block:
    """A fixed-duration program phase."""

    id: str
    duration_weeks: int
    name: str = ""


@dataclass(frozen=True)
class Placement:
    """A session positioned relative to its block."""

    session_id: str
    block_id: str
    start_week: int
    start_day: str
    start_time: time
    end_week: int
    end_day: str
    end_time: time
    session_name: str = ""


@dataclass(frozen=True)
class ExpandedPlacement:
    """A placement resolved to absolute start/end instants for one anchor."""

    placement: Placement
    start: datetime
    end: datetime

    @property
    def session_id(self) -> str:
        return self.placement.session_id

    @property
    def spans_weeks(self) -> bool:
        return self.placement.end_week > self.placement.start_week

    def to_dict(self) -> dict:
        return {
            "sessionId": self.placement.session_id,
            "sessionName": self.placement.session_name,
            "blockId": self.placement.block_id,
            "startTime": self.start.isoformat(),
            "endTime": self.end.isoformat(),
        }


def normalize_day(value: str) -> str:
    """Return the canonical ``Mon``…``Fri`` label for a weekday string.

    Raises:
        ValueError: for weekends and unknown labels.
    """
    key = str(value or "").strip().lower()
    if key not in _DAY_ALIASES:
        raise ValueError(f"Invalid day {value!r}. Use Mon, Tue, Wed, Thu or Fri.")
    return _DAY_ALIASES[key]


def day_index(value: str) -> int:
    return WEEKDAY_INDEX[normalize_day(value)]


def block_start_weeks(
    blocks: Sequence[Block],
    delays: Mapping[str, int] | None = None,
) -> dict[str, int]:
    """Absolute start-week offset of every block.

    Walks blocks in order accumulating ``previous duration + delay before
    this block``. A delay configured for the first block is ignored.
    """
    delays = delays or {}
    offsets: dict[str, int] = {}
    current = 0
    for position, block in enumerate(blocks):
        if position > 0:
            current += max(int(delays.get(block.id, 0) or 0), 0)
        offsets[block.id] = current
        current += block.duration_weeks
    return offsets


def reference_monday(anchor: date) -> date:
    """First Monday on or after ``anchor``."""
    return anchor + timedelta(days=(7 - anchor.weekday()) % 7)


def resolve_instant(
    monday: date,
    block_offset: int,
    week: int,
    day: str,
    time_of_day: time,
) -> datetime:
    """``monday + 7 × (block_offset + week) days + dayIndex(day)`` at ``time_of_day``."""
    target = monday + timedelta(days=7 * (block_offset + week) + day_index(day))
    return datetime.combine(target, time_of_day)


def expand_placement(
    placement: Placement,
    offsets: Mapping[str, int],
    monday: date,
) -> ExpandedPlacement:
    """Resolve one placement. Raises KeyError for an unknown block."""
    block_offset = offsets[placement.block_id]
    start = resolve_instant(
        monday, block_offset, placement.start_week, placement.start_day, placement.start_time,
    )
    end = resolve_instant(
        monday, block_offset, placement.end_week, placement.end_day, placement.end_time,
    )
    return ExpandedPlacement(placement=placement, start=start, end=end)


def expand_placements(
    placements: Iterable[Placement],
    blocks: Sequence[Block],
    delays: Mapping[str, int] | None,
    anchor: date,
) -> list[ExpandedPlacement]:
    """Expand every placement against one cohort anchor, preserving input order."""
    offsets = block_start_weeks(blocks, delays)
    monday = reference_monday(anchor)
    return [expand_placement(p, offsets, monday) for p in placements]


def span_weeks(start: datetime, end: datetime, minimum_weeks: int = 1) -> int:
    """``ceil((end - start) / 7 days)``, never below ``minimum_weeks``."""
    weeks = math.ceil((end - start) / _ONE_WEEK)
    return max(minimum_weeks, weeks)


def total_duration_weeks(
    expanded: Sequence[ExpandedPlacement],
    *,
    fallback_start: datetime | None = None,
    fallback_end: datetime | None = None,
    default_weeks: int = 12,
    minimum_weeks: int = 1,
) -> int:
    """Program/cohort length in weeks.

    Measured from the earliest session start to the latest session end.
    Without scheduled sessions, the explicit cohort window is used, and
    without that, ``default_weeks``.
    """
    if expanded:
        first_start = min(e.start for e in expanded)
        last_end = max(e.end for e in expanded)
        return span_weeks(first_start, last_end, minimum_weeks)
    if fallback_start is not None and fallback_end is not None and fallback_end > fallback_start:
        return span_weeks(fallback_start, fallback_end, minimum_weeks)
    return max(minimum_weeks, default_weeks)


def cohort_window(
    anchor: date,
    expanded: Sequence[ExpandedPlacement],
    *,
    explicit_end: date | None = None,
    default_weeks: int = 12,
) -> tuple[datetime, datetime]:
    """Concrete (startDate, endDate) for a cohort.

    Start is the anchor at midnight. End is the explicit end date when given,
    else the latest session end, else ``default_weeks`` past the start.
    """
    start = datetime.combine(anchor, time.min)
    if explicit_end is not None:
        end = datetime.combine(explicit_end, time.min)
    elif expanded:
        end = max(e.end for e in expanded)
    else:
        end = start + timedelta(weeks=default_weeks)
    return start, end

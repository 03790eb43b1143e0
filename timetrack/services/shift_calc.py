from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Iterable
from zoneinfo import ZoneInfo

from timetrack.errors import InvalidClockTimeError

if TYPE_CHECKING:
    from timetrack.services.intervals import Segment

MINUTES_PER_DAY = 1440
CLOCK_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
HOURS_QUANTUM = Decimal("0.01")
ZERO_HOURS = Decimal("0.00")


@dataclass(frozen=True)
class ShiftWindows:
    evening_start: str
    evening_end: str
    night_start: str
    night_end: str

    def validate(self) -> ShiftWindows:
        for value in (self.evening_start, self.evening_end, self.night_start, self.night_end):
            parse_clock_minutes(value)
        return self


DEFAULT_SHIFT_WINDOWS = ShiftWindows(
    evening_start="18:00",
    evening_end="22:00",
    night_start="22:00",
    night_end="06:00",
)


@dataclass(frozen=True)
class SegmentSummary:
    total_hours: Decimal
    evening_hours: Decimal
    night_hours: Decimal


def parse_clock_minutes(value: str) -> int:
    match = CLOCK_PATTERN.match(value or "")
    if match is None:
        raise InvalidClockTimeError()
    return int(match.group(1)) * 60 + int(match.group(2))


def quantize_hours(value: Decimal) -> Decimal:
    return value.quantize(HOURS_QUANTUM, rounding=ROUND_HALF_UP)


def minutes_to_hours(minutes: int | Decimal) -> Decimal:
    return quantize_hours(Decimal(minutes) / Decimal(60))


def sum_hours(values: Iterable[Decimal]) -> Decimal:
    return quantize_hours(sum(values, ZERO_HOURS))


def _clipped_minutes(seg_start: int, seg_end: int, window_start: int, window_end: int) -> int:
    start = max(seg_start, window_start)
    end = min(seg_end, window_end)
    return end - start if start < end else 0


def overlap_minutes(seg_start_min: int, seg_end_min: int, shift_start_min: int, shift_end_min: int) -> int:
    if shift_start_min < shift_end_min:
        return _clipped_minutes(seg_start_min, seg_end_min, shift_start_min, shift_end_min)
    return _clipped_minutes(seg_start_min, seg_end_min, shift_start_min, MINUTES_PER_DAY) + _clipped_minutes(
        seg_start_min, seg_end_min, 0, shift_end_min
    )


def overlap_hours(seg_start_min: int, seg_end_min: int, shift_start_min: int, shift_end_min: int) -> Decimal:
    """Hours of a same-day segment that fall inside a shift window.

    All arguments are minutes since local midnight. ``seg_end_min`` may be 1440
    for a segment that runs through midnight. A window whose start is not
    before its end wraps midnight and is counted as ``[start, 1440)`` plus
    ``[0, end)``.
    """
    return minutes_to_hours(overlap_minutes(seg_start_min, seg_end_min, shift_start_min, shift_end_min))


def _minutes_of_day(value: datetime) -> int:
    return value.hour * 60 + value.minute


def _next_offset_change(start_utc: datetime, end_utc: datetime, zone: ZoneInfo) -> datetime:
    offset = start_utc.astimezone(zone).utcoffset()
    if end_utc.astimezone(zone).utcoffset() == offset:
        return end_utc

    low, high = 0, int((end_utc - start_utc).total_seconds())
    while high - low > 1:
        middle = (low + high) // 2
        if (start_utc + timedelta(seconds=middle)).astimezone(zone).utcoffset() == offset:
            low = middle
        else:
            high = middle
    return min(start_utc + timedelta(seconds=max(high, 1)), end_utc)


def local_minute_ranges(segment: Segment, zone: ZoneInfo) -> list[tuple[int, int]]:
    """Wall-clock minute ranges covered by a same-day segment.

    The segment is cut wherever the zone's UTC offset changes, so a repeated
    DST hour appears as two ranges and a skipped hour as a gap. Each range is
    read in the offset that was in force at its start; an end that lands on
    the next local midnight is 1440.
    """
    ranges: list[tuple[int, int]] = []
    cursor = segment.start_utc
    while cursor < segment.end_utc:
        piece_end = _next_offset_change(cursor, segment.end_utc, zone)
        start_local = cursor.astimezone(zone)
        end_fixed = piece_end.astimezone(timezone(start_local.utcoffset()))
        day_shift = (end_fixed.date() - start_local.date()).days
        ranges.append((_minutes_of_day(start_local), day_shift * MINUTES_PER_DAY + _minutes_of_day(end_fixed)))
        cursor = piece_end
    return ranges


def summarize_segment(segment: Segment, windows: ShiftWindows, zone: ZoneInfo) -> SegmentSummary:
    elapsed_seconds = int((segment.end_utc - segment.start_utc).total_seconds())
    total_hours = quantize_hours(Decimal(elapsed_seconds) / Decimal(3600))

    evening = (parse_clock_minutes(windows.evening_start), parse_clock_minutes(windows.evening_end))
    night = (parse_clock_minutes(windows.night_start), parse_clock_minutes(windows.night_end))
    evening_minutes = 0
    night_minutes = 0
    for start_minutes, end_minutes in local_minute_ranges(segment, zone):
        evening_minutes += overlap_minutes(start_minutes, end_minutes, *evening)
        night_minutes += overlap_minutes(start_minutes, end_minutes, *night)

    return SegmentSummary(
        total_hours=total_hours,
        evening_hours=minutes_to_hours(evening_minutes),
        night_hours=minutes_to_hours(night_minutes),
    )

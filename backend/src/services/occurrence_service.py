"""
Occurrence expansion engine.

Turns compact weekly recurrence rules plus per-date overrides into concrete
dated occurrences. Used by the UI occurrence listing and by calendar feed
generation; both call expand_occurrences() so they can never disagree on
resolution precedence.

Design:
- Pure and synchronous: inputs are value records, nothing is read from or
  written to the database here
- A single date walker (iter_dates) drives every expansion
- Malformed slots are data-quality issues: they are logged, returned in
  ExpansionResult.issues and skipped, never raised
- Resolution precedence for each field: override, then slot, then event
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union
from zoneinfo import ZoneInfo

from backend.src.services.calendar_records import (
    EventRecord,
    Occurrence,
    OccurrenceOverride,
    TransportationDetails,
    parse_time_of_day,
)
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every calendar date from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def day_of_week(value: date) -> int:
    """Day index with 0 = Sunday .. 6 = Saturday."""
    return (value.weekday() + 1) % 7


@dataclass(frozen=True)
class ExpansionIssue:
    """A data-quality problem found while expanding one event."""

    event_id: Optional[str]
    reason: str
    slot_index: Optional[int] = None


@dataclass
class ExpansionResult:
    """Occurrences in output order plus the issues met along the way."""

    occurrences: List[Occurrence] = field(default_factory=list)
    issues: List[ExpansionIssue] = field(default_factory=list)


@dataclass(frozen=True)
class _ParsedSlot:
    index: int
    day_ordinal: int
    day_of_week: int
    start_time: time
    end_time: time
    transportation: Optional[TransportationDetails]


def _parse_slots(event: EventRecord) -> Tuple[List[_ParsedSlot], List[ExpansionIssue]]:
    """Validate an event's slots, keeping the good ones in declaration order."""
    parsed = []
    issues = []
    per_day = Counter()

    for index, slot in enumerate(event.slots):
        dow = slot.day_of_week
        if isinstance(dow, bool) or not isinstance(dow, int) or not 0 <= dow <= 6:
            issues.append(ExpansionIssue(event.id, f"invalid dayOfWeek {dow!r}", index))
            continue

        # Counted before the time checks so a broken sibling never shifts it
        ordinal = per_day[dow]
        per_day[dow] += 1

        try:
            start = parse_time_of_day(slot.start_time)
            end = parse_time_of_day(slot.end_time)
        except ValueError as e:
            issues.append(ExpansionIssue(event.id, f"unparseable slot time: {e}", index))
            continue

        if start >= end:
            issues.append(ExpansionIssue(
                event.id,
                f"slot start {slot.start_time} is not before end {slot.end_time}",
                index,
            ))
            continue

        parsed.append(_ParsedSlot(index, ordinal, dow, start, end, slot.transportation))

    return parsed, issues


def _to_utc(day: date, moment: time, zone: tzinfo) -> datetime:
    return datetime.combine(day, moment, tzinfo=zone).astimezone(timezone.utc)


def _resolve(
    event: EventRecord,
    slot: _ParsedSlot,
    day: date,
    override: Optional[OccurrenceOverride],
    zone: tzinfo,
) -> Occurrence:
    active = override if override is not None and not override.is_noop else None

    if active is not None and active.transportation is not None:
        transportation = active.transportation
    else:
        transportation = slot.transportation or event.transportation

    if active is not None and active.participants is not None:
        participants = active.participants
    else:
        participants = event.participants

    return Occurrence(
        event_id=event.id,
        slot_index=slot.index,
        date=day,
        start_time=slot.start_time,
        end_time=slot.end_time,
        start=_to_utc(day, slot.start_time, zone),
        end=_to_utc(day, slot.end_time, zone),
        title=event.title,
        category=event.category,
        participants=participants,
        transportation=transportation,
        location=event.location,
        notes=event.notes,
        updated_at=event.updated_at,
        day_ordinal=slot.day_ordinal,
        overridden=active is not None,
    )


def expand_occurrences(
    events: Iterable[EventRecord],
    overrides: Iterable[OccurrenceOverride],
    window_start: date,
    window_end: date,
    tz: Union[str, tzinfo] = "UTC",
) -> ExpansionResult:
    """
    Expand recurring events into dated occurrences within a window.

    Args:
        events: Event records to expand
        overrides: Per-date overrides; matched by exact (event_id, date)
        window_start: First date of the window (inclusive)
        window_end: Last date of the window (inclusive)
        tz: IANA timezone name (or tzinfo) in which slot times are local

    Returns:
        ExpansionResult with occurrences ordered by date, then event input
        order, then slot declaration order. Cancelled occurrences are omitted.

    Raises:
        ValueError: If window_end is before window_start
    """
    if window_end < window_start:
        raise ValueError(f"window end {window_end} is before window start {window_start}")

    zone = ZoneInfo(tz) if isinstance(tz, str) else tz
    override_index: Dict[Tuple[str, date], OccurrenceOverride] = {
        (o.event_id, o.date): o for o in overrides
    }

    result = ExpansionResult()
    keyed: List[Tuple[date, int, int, Occurrence]] = []
    seen_ids = set()

    for event_index, event in enumerate(events):
        if event.id in seen_ids:
            result.issues.append(ExpansionIssue(event.id, "duplicate event id"))
            continue
        seen_ids.add(event.id)

        if not event.slots:
            result.issues.append(ExpansionIssue(event.id, "event has no recurrence slots"))
            continue
        if event.end_date is not None and event.end_date < event.start_date:
            result.issues.append(ExpansionIssue(
                event.id, f"end date {event.end_date} is before start date {event.start_date}"
            ))
            continue

        slots, slot_issues = _parse_slots(event)
        result.issues.extend(slot_issues)

        first = max(event.start_date, window_start)
        last = min(event.end_date or window_end, window_end)
        if not slots or first > last:
            continue

        slots_by_day: Dict[int, List[_ParsedSlot]] = {}
        for slot in slots:
            slots_by_day.setdefault(slot.day_of_week, []).append(slot)

        for current in iter_dates(first, last):
            day_slots = slots_by_day.get(day_of_week(current))
            if not day_slots:
                continue

            override = override_index.get((event.id, current))
            if override is not None and override.cancelled:
                continue

            for slot in day_slots:
                keyed.append((
                    current,
                    event_index,
                    slot.index,
                    _resolve(event, slot, current, override, zone),
                ))

    keyed.sort(key=lambda item: item[:3])
    result.occurrences = [item[3] for item in keyed]

    for issue in result.issues:
        logger.warning(
            f"Skipping malformed recurrence data for event {issue.event_id}: {issue.reason}",
            extra={"event_id": issue.event_id, "slot_index": issue.slot_index},
        )

    return result

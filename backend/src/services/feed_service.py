"""
Calendar feed serializer.

Renders expanded occurrences into an RFC 5545 (iCalendar) document for
subscription by external calendar applications.

Design:
- Documents are built with the icalendar library, which escapes backslash,
  semicolon, comma and newline in text values and folds long lines
- Output is byte-for-byte reproducible for identical input: no wall-clock
  values are written (DTSTAMP comes from the event's last update, or the
  occurrence start when that is unknown)
- VEVENT UIDs are derived from the event id, the occurrence date and the
  slot's position on that weekday, so repeated fetches yield the same UID
  for the same logical occurrence whatever else is filtered out
"""

import re
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from icalendar import Calendar, Event as ICalEvent

from backend.src.services.calendar_records import MemberRef, Occurrence


MemberNameLookup = Callable[[MemberRef], str]

DEFAULT_PRODUCT_ID = "-//FamilyHub//Family Calendar//EN"
DEFAULT_UID_DOMAIN = "familyhub.app"


def feed_filename(feed_name: str) -> str:
    """Download filename: non-alphanumeric characters collapsed to underscores."""
    return f"{re.sub(r'[^a-zA-Z0-9]', '_', feed_name)}.ics"


def filter_by_responsible_member(
    occurrences: Iterable[Occurrence],
    member: Optional[MemberRef],
) -> List[Occurrence]:
    """
    Keep occurrences where the member handles drop-off or pick-up.

    Without a member every occurrence is kept. With one, occurrences that
    have no transportation at all cannot match and are dropped.
    """
    if member is None:
        return list(occurrences)
    return [
        occ for occ in occurrences
        if occ.transportation is not None and member in occ.transportation.responsible_members
    ]


def build_description(occurrence: Occurrence, name_for: MemberNameLookup) -> str:
    """Assemble the multi-line VEVENT description."""
    lines = []

    if occurrence.participants:
        names = ", ".join(name_for(p) for p in occurrence.participants)
        lines.append(f"Participants: {names}")

    transport = occurrence.transportation
    if transport is not None:
        if transport.drop_off_person and transport.drop_off_method:
            lines.append(
                f"Drop-off: {name_for(transport.drop_off_person)} ({transport.drop_off_method})"
            )
        if transport.pick_up_person and transport.pick_up_method:
            lines.append(
                f"Pick-up: {name_for(transport.pick_up_person)} ({transport.pick_up_method})"
            )

    description = "\n".join(lines)
    if occurrence.notes:
        separator = "\n\n" if description else ""
        description = f"{description}{separator}Notes: {occurrence.notes}"
    return description


class FeedSerializer:
    """
    Serializer for token-addressed household calendar feeds.

    Usage:
        >>> serializer = FeedSerializer()
        >>> document = serializer.serialize(occurrences, "Family", directory.name_for)
    """

    def __init__(
        self,
        product_id: str = DEFAULT_PRODUCT_ID,
        uid_domain: str = DEFAULT_UID_DOMAIN,
    ):
        self.product_id = product_id
        self.uid_domain = uid_domain

    def occurrence_uid(self, occ: Occurrence) -> str:
        """
        Stable UID for one occurrence.

        The base form is {event_id}-{YYYY-MM-DD}@{domain}. When an event has
        several slots on the same weekday, the later ones get -1, -2... by
        their position among the declared slots for that weekday, so the UID
        does not depend on which sibling occurrences are rendered.
        """
        base = f"{occ.event_id}-{occ.date.isoformat()}"
        if occ.day_ordinal:
            base = f"{base}-{occ.day_ordinal}"
        return f"{base}@{self.uid_domain}"

    def serialize(
        self,
        occurrences: Iterable[Occurrence],
        feed_name: str,
        name_for: MemberNameLookup,
        filter_member: Optional[MemberRef] = None,
    ) -> bytes:
        """
        Render occurrences as an iCalendar document.

        Args:
            occurrences: Expanded occurrences for one household
            feed_name: Human-readable feed name (X-WR-CALNAME)
            name_for: Member-name lookup used in descriptions
            filter_member: Optional responsible-person filter

        Returns:
            The document as CRLF-terminated UTF-8 bytes
        """
        selected = filter_by_responsible_member(occurrences, filter_member)

        cal = Calendar()
        cal.add("prodid", self.product_id)
        cal.add("version", "2.0")
        cal.add("calscale", "GREGORIAN")
        cal.add("method", "PUBLISH")
        cal.add("x-wr-calname", feed_name)
        cal.add("x-wr-timezone", "UTC")

        for occ in selected:
            cal.add_component(self._build_event(occ, self.occurrence_uid(occ), name_for))

        return cal.to_ical()

    @staticmethod
    def _stamp(occ: Occurrence) -> datetime:
        # DTSTAMP is mandatory; the occurrence start stands in when the event
        # has no recorded update time
        stamp = occ.updated_at if occ.updated_at is not None else occ.start
        if stamp.tzinfo is None:
            stamp = stamp.replace(tzinfo=timezone.utc)
        return stamp.astimezone(timezone.utc).replace(microsecond=0)

    def _build_event(self, occ: Occurrence, uid: str, name_for: MemberNameLookup) -> ICalEvent:
        event = ICalEvent()
        event.add("uid", uid)
        event.add("dtstamp", self._stamp(occ))
        event.add("dtstart", occ.start.astimezone(timezone.utc))
        event.add("dtend", occ.end.astimezone(timezone.utc))
        event.add("summary", occ.title)

        description = build_description(occ, name_for)
        if description:
            event.add("description", description)
        if occ.location:
            event.add("location", occ.location)

        event.add("status", "CONFIRMED")
        event.add("sequence", 0)
        return event

"""
Tests for the occurrence expansion engine.

Covers weekly slot matching, window clipping, output ordering, override
precedence and cancellation, data-quality issue reporting, and
timezone-aware instant resolution.
"""

import pytest
from datetime import date, datetime, time, timezone

from backend.src.services.calendar_records import (
    EventRecord,
    MemberRef,
    OccurrenceOverride,
    RecurrenceSlot,
    TransportationDetails,
)
from backend.src.services.occurrence_service import (
    day_of_week,
    expand_occurrences,
    iter_dates,
)


KID1 = MemberRef(MemberRef.LEGACY, "kid1")
KID2 = MemberRef(MemberRef.LEGACY, "kid2")
PARENT1 = MemberRef(MemberRef.LEGACY, "parent1")
PARENT2 = MemberRef(MemberRef.LEGACY, "parent2")


def _slot(dow, start="16:00", end="18:00", transportation=None):
    return RecurrenceSlot(day_of_week=dow, start_time=start, end_time=end,
                          transportation=transportation)


def _make_event(
    id="evt_a",
    title="BJJ Training",
    slots=None,
    start_date=date(2026, 3, 2),
    end_date=None,
    participants=(KID1,),
    transportation=None,
    category="sports",
):
    return EventRecord(
        id=id,
        title=title,
        category=category,
        start_date=start_date,
        end_date=end_date,
        slots=tuple(slots if slots is not None else [_slot(1)]),
        participants=tuple(participants),
        transportation=transportation,
    )


class TestDateHelpers:
    """Tests for the shared date walker."""

    def test_iter_dates_inclusive(self):
        days = list(iter_dates(date(2026, 2, 27), date(2026, 3, 2)))
        assert days == [date(2026, 2, 27), date(2026, 2, 28), date(2026, 3, 1), date(2026, 3, 2)]

    def test_iter_dates_empty_when_inverted(self):
        assert list(iter_dates(date(2026, 3, 2), date(2026, 3, 1))) == []

    def test_day_of_week_sunday_is_zero(self):
        assert day_of_week(date(2026, 3, 1)) == 0  # Sunday
        assert day_of_week(date(2026, 3, 2)) == 1  # Monday
        assert day_of_week(date(2026, 3, 7)) == 6  # Saturday


class TestExpansion:
    """Tests for slot matching and window handling."""

    def test_two_slots_in_one_week(self):
        """Mon 16-18 and Wed 17-18 over one week give Monday then Wednesday."""
        event = _make_event(slots=[_slot(1, "16:00", "18:00"), _slot(3, "17:00", "18:00")])

        result = expand_occurrences([event], [], date(2026, 3, 2), date(2026, 3, 8))

        assert [o.date for o in result.occurrences] == [date(2026, 3, 2), date(2026, 3, 4)]
        assert result.occurrences[0].start_time == time(16, 0)
        assert result.occurrences[1].start_time == time(17, 0)
        assert result.occurrences[1].end_time == time(18, 0)
        assert result.issues == []

    def test_single_slot_count_matches_weeks(self):
        event = _make_event()

        result = expand_occurrences([event], [], date(2026, 3, 2), date(2026, 3, 29))

        assert len(result.occurrences) == 4

    def test_unaligned_window(self):
        event = _make_event(start_date=date(2026, 1, 1))

        result = expand_occurrences([event], [], date(2026, 3, 4), date(2026, 3, 31))

        assert len(result.occurrences) == 4
        assert all(date(2026, 3, 4) <= o.date <= date(2026, 3, 31) for o in result.occurrences)

    def test_event_starting_after_window(self):
        event = _make_event(start_date=date(2026, 4, 1))
        result = expand_occurrences([event], [], date(2026, 3, 1), date(2026, 3, 31))
        assert result.occurrences == []

    def test_event_ending_before_window(self):
        event = _make_event(start_date=date(2026, 1, 5), end_date=date(2026, 2, 1))
        result = expand_occurrences([event], [], date(2026, 3, 1), date(2026, 3, 31))
        assert result.occurrences == []

    def test_end_date_is_inclusive(self):
        event = _make_event(end_date=date(2026, 3, 9))
        result = expand_occurrences([event], [], date(2026, 3, 1), date(2026, 3, 31))
        assert [o.date for o in result.occurrences] == [date(2026, 3, 2), date(2026, 3, 9)]

    def test_weekday_absent_from_short_window(self):
        event = _make_event(slots=[_slot(5)])  # Friday
        result = expand_occurrences([event], [], date(2026, 3, 2), date(2026, 3, 4))
        assert result.occurrences == []

    def test_inverted_window_raises(self):
        with pytest.raises(ValueError):
            expand_occurrences([_make_event()], [], date(2026, 3, 8), date(2026, 3, 1))

    def test_resolved_fields_copied_from_event(self):
        event = EventRecord(
            id="evt_a", title="Piano", category="education",
            start_date=date(2026, 3, 2), slots=(_slot(1),),
            location="Music School", notes="Bring books",
        )
        occ = expand_occurrences([event], [], date(2026, 3, 2), date(2026, 3, 2)).occurrences[0]
        assert occ.title == "Piano"
        assert occ.category == "education"
        assert occ.location == "Music School"
        assert occ.notes == "Bring books"
        assert occ.cancelled is False


class TestOrdering:
    """Tests for deterministic output order."""

    def test_ordered_by_date_across_events(self):
        wednesday = _make_event(id="evt_a", slots=[_slot(3)])
        monday = _make_event(id="evt_b", slots=[_slot(1)])

        result = expand_occurrences([wednesday, monday], [], date(2026, 3, 2), date(2026, 3, 8))

        assert [o.event_id for o in result.occurrences] == ["evt_b", "evt_a"]

    def test_same_date_uses_event_input_order_then_slot_order(self):
        first = _make_event(id="evt_z", slots=[_slot(1, "18:00", "19:00"), _slot(1, "08:00", "09:00")])
        second = _make_event(id="evt_a", slots=[_slot(1, "07:00", "08:00")])

        result = expand_occurrences([first, second], [], date(2026, 3, 2), date(2026, 3, 2))

        assert [(o.event_id, o.slot_index) for o in result.occurrences] == [
            ("evt_z", 0), ("evt_z", 1), ("evt_a", 0),
        ]

    def test_day_ordinal_counts_slots_per_weekday(self):
        event = _make_event(slots=[
            _slot(3, "08:00", "09:00"),
            _slot(1, "08:00", "09:00"),
            _slot(1, "16:00", "18:00"),
        ])

        result = expand_occurrences([event], [], date(2026, 3, 2), date(2026, 3, 4))

        assert [(o.date, o.slot_index, o.day_ordinal) for o in result.occurrences] == [
            (date(2026, 3, 2), 1, 0),
            (date(2026, 3, 2), 2, 1),
            (date(2026, 3, 4), 0, 0),
        ]

    def test_day_ordinal_ignores_malformed_sibling(self):
        event = _make_event(slots=[_slot(1, "nope", "09:00"), _slot(1, "16:00", "18:00")])

        result = expand_occurrences([event], [], date(2026, 3, 2), date(2026, 3, 2))

        [occurrence] = result.occurrences
        assert occurrence.slot_index == 1
        assert occurrence.day_ordinal == 1

    def test_expansion_is_idempotent(self):
        events = [
            _make_event(id="evt_a", slots=[_slot(1), _slot(4)]),
            _make_event(id="evt_b", slots=[_slot(2)], start_date=date(2026, 2, 1)),
        ]
        first = expand_occurrences(events, [], date(2026, 3, 1), date(2026, 5, 31))
        second = expand_occurrences(events, [], date(2026, 3, 1), date(2026, 5, 31))

        assert first.occurrences == second.occurrences
        keys = [o.key for o in first.occurrences]
        assert len(keys) == len(set(keys))


class TestOverrides:
    """Tests for per-date overrides and resolution precedence."""

    def test_cancelled_override_removes_exactly_one_date(self):
        event = _make_event()
        cancel = OccurrenceOverride(event_id="evt_a", date=date(2026, 3, 9), cancelled=True)

        baseline = expand_occurrences([event], [], date(2026, 3, 1), date(2026, 3, 31))
        result = expand_occurrences([event], [cancel], date(2026, 3, 1), date(2026, 3, 31))

        assert len(result.occurrences) == len(baseline.occurrences) - 1
        assert date(2026, 3, 9) not in [o.date for o in result.occurrences]

    def test_restored_override_reproduces_original(self):
        event = _make_event()
        baseline = expand_occurrences([event], [], date(2026, 3, 1), date(2026, 3, 31))
        restored = OccurrenceOverride(event_id="evt_a", date=date(2026, 3, 9), cancelled=False)

        result = expand_occurrences([event], [restored], date(2026, 3, 1), date(2026, 3, 31))

        assert result.occurrences == baseline.occurrences
        assert not any(o.overridden for o in result.occurrences)

    def test_override_for_other_event_is_ignored(self):
        event = _make_event()
        cancel = OccurrenceOverride(event_id="evt_other", date=date(2026, 3, 2), cancelled=True)
        result = expand_occurrences([event], [cancel], date(2026, 3, 2), date(2026, 3, 2))
        assert len(result.occurrences) == 1

    def test_transportation_precedence(self):
        event_level = TransportationDetails(drop_off_method="bus", drop_off_person=PARENT2)
        slot_level = TransportationDetails(drop_off_method="car", drop_off_person=PARENT1)
        override_level = TransportationDetails(pick_up_method="walk", pick_up_person=PARENT2)

        event = _make_event(
            slots=[_slot(1, transportation=slot_level), _slot(3)],
            transportation=event_level,
        )
        override = OccurrenceOverride(
            event_id="evt_a", date=date(2026, 3, 9), transportation=override_level
        )

        result = expand_occurrences([event], [override], date(2026, 3, 2), date(2026, 3, 9))
        by_date = {o.date: o for o in result.occurrences}

        assert by_date[date(2026, 3, 2)].transportation == slot_level
        assert by_date[date(2026, 3, 4)].transportation == event_level
        assert by_date[date(2026, 3, 9)].transportation == override_level
        assert by_date[date(2026, 3, 9)].overridden is True

    def test_participant_override_replaces_event_participants(self):
        event = _make_event(participants=(KID1, KID2))
        override = OccurrenceOverride(event_id="evt_a", date=date(2026, 3, 2), participants=(KID2,))

        occ = expand_occurrences([event], [override], date(2026, 3, 2), date(2026, 3, 2)).occurrences[0]

        assert occ.participants == (KID2,)

    def test_empty_participant_override_means_nobody(self):
        event = _make_event(participants=(KID1,))
        override = OccurrenceOverride(event_id="evt_a", date=date(2026, 3, 2), participants=())

        occ = expand_occurrences([event], [override], date(2026, 3, 2), date(2026, 3, 2)).occurrences[0]

        assert occ.participants == ()


class TestDataQuality:
    """Malformed data is reported and skipped, never raised."""

    def test_unparseable_time_skips_only_that_slot(self):
        event = _make_event(slots=[_slot(1, "25:00", "26:00"), _slot(3)])

        result = expand_occurrences([event], [], date(2026, 3, 2), date(2026, 3, 8))

        assert [o.date for o in result.occurrences] == [date(2026, 3, 4)]
        assert len(result.issues) == 1
        assert result.issues[0].event_id == "evt_a"
        assert result.issues[0].slot_index == 0

    def test_start_not_before_end_is_an_issue(self):
        event = _make_event(slots=[_slot(1, "18:00", "16:00")])
        result = expand_occurrences([event], [], date(2026, 3, 2), date(2026, 3, 8))
        assert result.occurrences == []
        assert len(result.issues) == 1

    @pytest.mark.parametrize("dow", [7, -1, "1", None, True])
    def test_invalid_day_of_week(self, dow):
        event = _make_event(slots=[_slot(dow)])
        result = expand_occurrences([event], [], date(2026, 3, 1), date(2026, 3, 31))
        assert result.occurrences == []
        assert len(result.issues) == 1

    def test_event_without_slots_is_an_issue(self):
        event = _make_event(slots=[])
        result = expand_occurrences([event], [], date(2026, 3, 1), date(2026, 3, 31))
        assert result.occurrences == []
        assert "no recurrence slots" in result.issues[0].reason

    def test_inverted_validity_window_is_an_issue(self):
        bad = _make_event(id="evt_bad", start_date=date(2026, 3, 20), end_date=date(2026, 3, 1))
        good = _make_event(id="evt_good")

        result = expand_occurrences([bad, good], [], date(2026, 3, 1), date(2026, 3, 31))

        assert {o.event_id for o in result.occurrences} == {"evt_good"}
        assert [i.event_id for i in result.issues] == ["evt_bad"]

    def test_duplicate_event_id_is_expanded_once(self):
        event = _make_event()
        result = expand_occurrences([event, event], [], date(2026, 3, 2), date(2026, 3, 2))
        assert len(result.occurrences) == 1
        assert result.issues[0].reason == "duplicate event id"

    def test_issues_are_logged(self, mocker):
        mock_logger = mocker.patch("backend.src.services.occurrence_service.logger")
        event = _make_event(slots=[_slot(1, "nope", "18:00")])

        expand_occurrences([event], [], date(2026, 3, 2), date(2026, 3, 2))

        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args.kwargs["extra"]["event_id"] == "evt_a"


class TestInstants:
    """Tests for UTC instant resolution from the household timezone."""

    def test_utc_household(self):
        occ = expand_occurrences([_make_event()], [], date(2026, 3, 2), date(2026, 3, 2)).occurrences[0]
        assert occ.start == datetime(2026, 3, 2, 16, 0, tzinfo=timezone.utc)
        assert occ.end == datetime(2026, 3, 2, 18, 0, tzinfo=timezone.utc)

    def test_local_time_kept_across_dst_change(self):
        """New York switches to daylight time on 2026-03-08."""
        result = expand_occurrences(
            [_make_event()], [], date(2026, 3, 2), date(2026, 3, 9), tz="America/New_York"
        )
        before, after = result.occurrences

        assert before.start == datetime(2026, 3, 2, 21, 0, tzinfo=timezone.utc)
        assert after.start == datetime(2026, 3, 9, 20, 0, tzinfo=timezone.utc)
        assert before.start_time == after.start_time == time(16, 0)

    def test_seconds_in_slot_times_are_accepted(self):
        event = _make_event(slots=[_slot(1, "16:00:00", "17:30:00")])
        occ = expand_occurrences([event], [], date(2026, 3, 2), date(2026, 3, 2)).occurrences[0]
        assert occ.end_time == time(17, 30)

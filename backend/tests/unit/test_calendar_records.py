"""
Tests for the calendar value types.
"""

from datetime import time

import pytest

from backend.src.services.calendar_records import (
    MemberRef,
    RecurrenceSlot,
    TransportationDetails,
    format_time_of_day,
    parse_time_of_day,
)


class TestMemberRef:

    def test_legacy_role_parses_as_legacy(self):
        ref = MemberRef.parse("parent1")
        assert ref.is_legacy
        assert ref.key == "parent1"

    def test_other_values_parse_as_member(self):
        ref = MemberRef.parse("mem_01hgw2bbg00000000000000001")
        assert not ref.is_legacy
        assert str(ref) == "mem_01hgw2bbg00000000000000001"

    def test_refs_compare_by_value(self):
        assert MemberRef.parse("kid1") == MemberRef(MemberRef.LEGACY, "kid1")
        assert len({MemberRef.parse("kid1"), MemberRef.parse("kid1")}) == 1


class TestTimeOfDay:

    @pytest.mark.parametrize("raw,expected", [
        ("16:00", time(16, 0)),
        ("07:05", time(7, 5)),
        ("23:59:30", time(23, 59, 30)),
        (" 08:15 ", time(8, 15)),
    ])
    def test_valid(self, raw, expected):
        assert parse_time_of_day(raw) == expected

    @pytest.mark.parametrize("raw", ["", "16", "25:00", "ab:cd", "16:00:00:00", None, 1600])
    def test_invalid(self, raw):
        with pytest.raises(ValueError):
            parse_time_of_day(raw)

    def test_format(self):
        assert format_time_of_day(time(9, 5)) == "09:05"


class TestTransportationDetails:

    def test_person_id_wins_over_person(self):
        details = TransportationDetails.from_dict({
            "dropOffMethod": "car",
            "dropOffPerson": "parent1",
            "dropOffPersonId": "mem_abc",
        })
        assert details.drop_off_person == MemberRef(MemberRef.MEMBER, "mem_abc")

    def test_empty_mapping_is_none(self):
        assert TransportationDetails.from_dict({}) is None
        assert TransportationDetails.from_dict(None) is None
        assert TransportationDetails.from_dict({"dropOffMethod": ""}) is None

    def test_custom_resolver(self):
        claimed = MemberRef(MemberRef.MEMBER, "mem_dad")
        details = TransportationDetails.from_dict(
            {"pickUpMethod": "walk", "pickUpPerson": "parent1"},
            resolve=lambda raw: claimed,
        )
        assert details.pick_up_person is claimed
        assert details.responsible_members == frozenset({claimed})

    def test_to_dict_omits_missing_legs(self):
        details = TransportationDetails(drop_off_method="bus",
                                        drop_off_person=MemberRef.parse("parent2"))
        assert details.to_dict() == {"dropOffMethod": "bus", "dropOffPerson": "parent2"}


class TestRecurrenceSlot:

    def test_from_dict(self):
        slot = RecurrenceSlot.from_dict({
            "dayOfWeek": 3,
            "startTime": "17:00",
            "endTime": "18:00",
            "transportation": {"dropOffMethod": "car", "dropOffPerson": "parent1"},
        })
        assert slot.day_of_week == 3
        assert slot.start_time == "17:00"
        assert slot.transportation.drop_off_method == "car"

    def test_non_mapping_slot_keeps_nothing(self):
        slot = RecurrenceSlot.from_dict("monday")
        assert slot.day_of_week is None
        assert slot.start_time is None

    def test_to_dict(self):
        slot = RecurrenceSlot(day_of_week=1, start_time="16:00", end_time="18:00")
        assert slot.to_dict() == {"dayOfWeek": 1, "startTime": "16:00", "endTime": "18:00"}

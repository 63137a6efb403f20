"""
Tests for ImportService.

Covers household export, phase 1 conflict preview and phase 2 resolution.
"""

from datetime import date

import pytest

from backend.src.models import ActivityCategory, FamilyEvent
from backend.src.services.exceptions import NotFoundError
from backend.src.services.import_service import ImportService
from backend.src.services.reconciliation_service import ID_MATCH_REASON


@pytest.fixture
def import_service(test_db_session):
    return ImportService(test_db_session)


@pytest.fixture
def soccer(test_household, sample_event):
    return sample_event(test_household, title="Soccer Practice", participants=["kid1"])


def _document(title="Chess Club", start_date="2026-09-01", category="education", **extra):
    doc = {"title": title, "start_date": start_date, "category": category}
    doc.update(extra)
    return doc


class TestExport:
    """Tests for household export."""

    def test_export_shape(self, import_service, test_household, sample_event, sample_override):
        later = sample_event(test_household, title="Piano", start_date=date(2026, 4, 1),
                             recurrence_slots=[{"dayOfWeek": 3, "startTime": "17:00", "endTime": "18:00"}])
        earlier = sample_event(test_household, title="BJJ Training", participants=["kid1"])
        sample_override(earlier, date(2026, 3, 9), cancelled=True)

        export = import_service.export_events(test_household.guid)

        assert [e["title"] for e in export["events"]] == ["BJJ Training", "Piano"]
        first = export["events"][0]
        assert first["id"] == earlier.guid
        assert first["household_id"] == test_household.guid
        assert first["start_date"] == "2026-03-02"
        assert first["end_date"] is None
        assert first["participants"] == ["kid1"]
        assert first["recurrence_slots"] == [
            {"dayOfWeek": 1, "startTime": "16:00", "endTime": "18:00"}
        ]
        assert export["events"][1]["id"] == later.guid

        assert len(export["instances"]) == 1
        instance = export["instances"][0]
        assert instance["event_id"] == earlier.guid
        assert instance["date"] == "2026-03-09"
        assert instance["cancelled"] is True
        assert export["exported_at"] is not None

    def test_exported_documents_import_cleanly(self, import_service, test_household, soccer):
        export = import_service.export_events(test_household.guid)
        document = import_service.parse_document(export["events"][0], test_household)

        assert document is not None
        assert document.id == soccer.guid
        assert document.start_date == date(2026, 3, 2)

    def test_unknown_household(self, import_service):
        with pytest.raises(NotFoundError):
            import_service.export_events("hsh_01hgw2bbg00000000000000000")


class TestParseDocument:
    """Tests for per-record validation."""

    @pytest.mark.parametrize("raw", [
        "not a mapping",
        {"start_date": "2026-03-02", "category": "sports"},
        {"title": "   ", "start_date": "2026-03-02", "category": "sports"},
        {"title": "Swim", "start_date": "someday", "category": "sports"},
        {"title": "Swim", "start_date": "2026-03-02", "category": "juggling"},
        {"title": "Swim", "start_date": "2026-03-02", "end_date": "2026-03-01", "category": "sports"},
    ])
    def test_invalid_records(self, test_household, raw):
        assert ImportService.parse_document(raw, test_household) is None

    def test_other_household(self, sample_household):
        mine = sample_household(name="Mine")
        theirs = sample_household(name="Theirs")
        raw = _document(household_id=theirs.guid)

        assert ImportService.parse_document(raw, mine) is None
        assert ImportService.parse_document(raw, theirs) is not None

    @pytest.mark.parametrize("category", list(ActivityCategory))
    def test_accepts_every_model_category(self, test_household, category):
        document = ImportService.parse_document(_document(category=category.value), test_household)
        assert document.category is category

    def test_unknown_fields_ignored(self, test_household):
        document = ImportService.parse_document(
            _document(created_at="2026-01-01T00:00:00", colour="blue"), test_household
        )
        assert document.title == "Chess Club"


class TestPreview:
    """Tests for phase 1."""

    def test_no_conflicts(self, import_service, test_household, soccer):
        records = [
            _document(),
            {"start_date": "2026-03-02", "category": "sports"},
            _document(household_id="hsh_01hgw2bbg00000000000000000"),
            42,
        ]

        preview = import_service.preview_import(test_household.guid, records)

        assert preview["message"] == "No conflicts found"
        assert preview["summary"] == {
            "total_uploaded": 4,
            "conflicts": 0,
            "ready_to_import": 1,
            "skipped_invalid": 3,
        }
        assert [e["title"] for e in preview["valid_events"]] == ["Chess Club"]
        assert "conflicts" not in preview

    def test_conflicts(self, import_service, test_household, soccer):
        records = [
            _document(title="Socer Practice", start_date="2026-03-02", category="sports",
                      participants=["kid1"]),
            _document(),
            _document(id=soccer.guid, title="Renamed", start_date="2027-01-04", category="other"),
        ]

        preview = import_service.preview_import(test_household.guid, records)

        assert preview["summary"]["conflicts"] == 2
        assert preview["summary"]["ready_to_import"] == 1
        assert "message" not in preview

        fuzzy, exact = preview["conflicts"]
        assert fuzzy["index"] == 0
        assert fuzzy["exact_id"] is False
        assert fuzzy["match_score"] == 97
        assert fuzzy["match_reasons"] == [
            "Title similarity: 93%", "Same date", "1/1 participants match",
        ]
        assert fuzzy["uploaded_event"]["title"] == "Socer Practice"
        assert fuzzy["existing_event"]["id"] == soccer.guid

        assert exact["index"] == 2
        assert exact["exact_id"] is True
        assert exact["match_score"] == 100
        assert exact["match_reasons"] == [ID_MATCH_REASON]

    def test_preview_writes_nothing(self, import_service, test_db_session, test_household, soccer):
        import_service.preview_import(test_household.guid, [_document(), _document(title="Art")])
        assert test_db_session.query(FamilyEvent).count() == 1


class TestResolve:
    """Tests for phase 2."""

    def test_mixed_resolutions(self, import_service, test_db_session, test_household, soccer):
        records = [
            _document(title="Socer Practice", start_date="2026-03-02", category="sports"),
            _document(id=soccer.guid, title="Soccer (Spring)", start_date="2026-03-09",
                      category="sports", location="Field 2"),
            _document(),
            {"title": "Broken"},
        ]
        resolutions = {"0": "skip", "1": "update", "2": "create"}

        counts = import_service.resolve_import(test_household.guid, records, resolutions)

        assert counts == {"imported": 1, "updated": 1, "skipped": 1, "errors": 1}
        test_db_session.refresh(soccer)
        assert soccer.title == "Soccer (Spring)"
        assert soccer.start_date == date(2026, 3, 9)
        assert soccer.location == "Field 2"
        titles = sorted(e.title for e in test_db_session.query(FamilyEvent).all())
        assert titles == ["Chess Club", "Soccer (Spring)"]

    def test_update_uses_explicit_target(self, import_service, test_db_session, test_household,
                                         soccer):
        records = [_document(title="Soccer Practice", start_date="2026-03-02", category="sports",
                             notes="Bring shin guards")]

        counts = import_service.resolve_import(
            test_household.guid, records, {"0": "update"}, targets={"0": soccer.guid}
        )

        assert counts["updated"] == 1
        test_db_session.refresh(soccer)
        assert soccer.notes == "Bring shin guards"

    def test_update_missing_target_is_error(self, import_service, test_household):
        records = [_document(id="evt_01hgw2bbg00000000000000000")]

        counts = import_service.resolve_import(test_household.guid, records, {"0": "update"})

        assert counts == {"imported": 0, "updated": 0, "skipped": 0, "errors": 1}

    def test_update_without_target_creates(self, import_service, test_db_session, test_household):
        counts = import_service.resolve_import(test_household.guid, [_document()], {"0": "update"})

        assert counts["imported"] == 1
        assert test_db_session.query(FamilyEvent).count() == 1

    def test_missing_resolution_creates(self, import_service, test_db_session, test_household):
        counts = import_service.resolve_import(test_household.guid, [_document()], {})

        assert counts["imported"] == 1
        created = test_db_session.query(FamilyEvent).one()
        assert created.household_id == test_household.id
        assert created.guid.startswith("evt_")

    def test_unknown_resolution_is_error(self, import_service, test_household):
        counts = import_service.resolve_import(test_household.guid, [_document()], {"0": "merge"})
        assert counts["errors"] == 1
        assert counts["imported"] == 0

    def test_cannot_update_other_household_event(self, import_service, test_db_session,
                                                 sample_household, sample_event):
        mine = sample_household(name="Mine")
        theirs = sample_household(name="Theirs")
        their_event = sample_event(theirs, title="Theirs")

        counts = import_service.resolve_import(
            mine.guid, [_document(title="Hijack")], {"0": "update"}, targets={"0": their_event.guid}
        )

        assert counts["errors"] == 1
        test_db_session.refresh(their_event)
        assert their_event.title == "Theirs"

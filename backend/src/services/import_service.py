"""
Import service for bulk event export and two-phase import.

Handles:
- Household export ({events, instances, exported_at})
- Phase 1: validate uploaded records and classify them against existing
  events (id conflicts, fuzzy duplicates, clean)
- Phase 2: apply operator resolutions (skip / update / create)

Design:
- Phase 1 never writes; the reconciliation engine only classifies
- Invalid records are counted, never raised, so one bad row does not
  reject an upload
- Phase 2 counts failures per record and commits the successful ones
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from backend.src.models import FamilyEvent, EventInstance, Household
from backend.src.schemas.event_import import EventDocument, ImportResolution
from backend.src.services.calendar_records import EventRecord
from backend.src.services.event_service import EventService, MemberDirectory
from backend.src.services.exceptions import NotFoundError
from backend.src.services.reconciliation_service import ReconciliationService
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


class ImportService:
    """
    Service for exporting and importing household events.

    Usage:
        >>> service = ImportService(db_session)
        >>> preview = service.preview_import("hsh_01hgw2bbg...", uploaded)
        >>> if preview["conflicts"]:
        ...     counts = service.resolve_import("hsh_01hgw2bbg...", uploaded, {"0": "skip"})
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_service = EventService(db)

    # =========================================================================
    # Documents
    # =========================================================================

    @staticmethod
    def event_to_document(event: FamilyEvent, household: Household) -> Dict[str, Any]:
        """Export shape of a stored event."""
        return {
            "id": event.guid,
            "household_id": household.guid,
            "title": event.title,
            "description": event.description,
            "category": event.category,
            "participants": list(event.participants or []),
            "recurrence_slots": list(event.recurrence_slots or []),
            "transportation": event.transportation,
            "start_date": _iso(event.start_date),
            "end_date": _iso(event.end_date),
            "location": event.location,
            "notes": event.notes,
            "created_at": _iso(event.created_at),
            "updated_at": _iso(event.updated_at),
        }

    @staticmethod
    def instance_to_document(instance: EventInstance, household: Household) -> Dict[str, Any]:
        return {
            "id": instance.guid,
            "event_id": instance.event.guid,
            "household_id": household.guid,
            "date": _iso(instance.occurrence_date),
            "cancelled": instance.cancelled,
            "transportation": instance.transportation,
            "participants": instance.participants,
            "created_at": _iso(instance.created_at),
            "updated_at": _iso(instance.updated_at),
        }

    def export_events(self, household_guid: str) -> Dict[str, Any]:
        """
        Export all events and overrides of a household.

        Returns:
            Dict with events (by start date), instances (by date) and exported_at

        Raises:
            NotFoundError: If the household does not exist
        """
        household = self.event_service.get_household(household_guid)
        events = self.event_service.list_events(household)
        instances = (
            self.db.query(EventInstance)
            .filter(EventInstance.household_id == household.id)
            .order_by(EventInstance.occurrence_date, EventInstance.id)
            .all()
        )

        logger.info(
            f"Exported {len(events)} events and {len(instances)} instances "
            f"for household {household.guid}"
        )
        return {
            "events": [self.event_to_document(e, household) for e in events],
            "instances": [self.instance_to_document(i, household) for i in instances],
            "exported_at": datetime.utcnow(),
        }

    # =========================================================================
    # Validation
    # =========================================================================

    @staticmethod
    def parse_document(raw: Any, household: Household) -> Optional[EventDocument]:
        """
        Validate one uploaded record.

        Returns:
            The parsed document, or None when the record is invalid or names
            another household
        """
        if not isinstance(raw, dict):
            return None
        try:
            document = EventDocument.model_validate(raw)
        except PydanticValidationError as e:
            logger.info(f"Skipping invalid uploaded event: {e.error_count()} validation errors")
            return None

        if document.household_id and document.household_id != household.guid:
            logger.info(f"Skipping uploaded event for other household {document.household_id}")
            return None
        return document

    @staticmethod
    def to_candidate(document: EventDocument, directory: MemberDirectory) -> EventRecord:
        return EventRecord(
            id=document.id,
            title=document.title,
            category=document.category.value,
            start_date=document.start_date,
            end_date=document.end_date,
            participants=directory.resolve_all(document.participants),
            location=document.location,
            notes=document.notes,
            description=document.description,
        )

    # =========================================================================
    # Phase 1
    # =========================================================================

    def preview_import(self, household_guid: str, records: List[Any]) -> Dict[str, Any]:
        """
        Classify uploaded records without writing anything.

        Args:
            household_guid: Target household GUID
            records: Raw uploaded event documents

        Returns:
            {conflicts, summary} when any conflict exists, otherwise
            {message, summary, valid_events}

        Raises:
            NotFoundError: If the household does not exist
        """
        household = self.event_service.get_household(household_guid)
        directory = self.event_service.member_directory(household)

        existing_rows = self.event_service.list_events(household)
        existing_by_guid = {e.guid: e for e in existing_rows}
        existing = [EventService.to_record(e, directory) for e in existing_rows]

        valid: List[Tuple[int, EventDocument]] = []
        for index, raw in enumerate(records):
            document = self.parse_document(raw, household)
            if document is not None:
                valid.append((index, document))

        candidates = [self.to_candidate(doc, directory) for _, doc in valid]
        result = ReconciliationService.classify(candidates, existing)

        position = {id(candidate): valid[i] for i, candidate in enumerate(candidates)}

        conflicts = []
        for conflict in result.conflicts:
            index, document = position[id(conflict.candidate)]
            conflicts.append({
                "index": index,
                "uploaded_event": document.model_dump(mode="json"),
                "existing_event": self.event_to_document(
                    existing_by_guid[conflict.existing.id], household
                ),
                "match_score": conflict.score,
                "match_reasons": list(conflict.reasons),
                "exact_id": conflict.exact_id,
            })
        conflicts.sort(key=lambda c: c["index"])

        summary = {
            "total_uploaded": len(records),
            "conflicts": len(conflicts),
            "ready_to_import": len(result.clean),
            "skipped_invalid": len(records) - len(valid),
        }

        logger.info(
            f"Import preview for household {household.guid}: "
            f"{summary['total_uploaded']} uploaded, {summary['conflicts']} conflicts, "
            f"{summary['ready_to_import']} ready, {summary['skipped_invalid']} invalid"
        )

        if conflicts:
            return {"conflicts": conflicts, "summary": summary}

        return {
            "message": "No conflicts found",
            "summary": summary,
            "valid_events": [position[id(c)][1].model_dump(mode="json") for c in result.clean],
        }

    # =========================================================================
    # Phase 2
    # =========================================================================

    @staticmethod
    def _apply_document(event: FamilyEvent, document: EventDocument) -> None:
        event.title = document.title
        event.start_date = document.start_date
        event.end_date = document.end_date
        event.category = document.category.value
        event.participants = list(document.participants)
        event.location = document.location
        event.description = document.description
        event.notes = document.notes
        event.recurrence_slots = list(document.recurrence_slots)
        event.transportation = document.transportation or None

    def resolve_import(
        self,
        household_guid: str,
        records: List[Any],
        resolutions: Dict[str, Any],
        targets: Optional[Dict[str, str]] = None,
    ) -> Dict[str, int]:
        """
        Apply operator resolutions to uploaded records.

        Args:
            household_guid: Target household GUID
            records: Raw uploaded event documents
            resolutions: skip / update / create per record position (string
                key); records without a resolution are created
            targets: Existing event GUID to update per record position;
                defaults to the record's own id

        Returns:
            Counts {imported, updated, skipped, errors}

        Raises:
            NotFoundError: If the household does not exist
        """
        household = self.event_service.get_household(household_guid)
        targets = targets or {}
        counts = {"imported": 0, "updated": 0, "skipped": 0, "errors": 0}

        for index, raw in enumerate(records):
            key = str(index)
            try:
                resolution = ImportResolution(resolutions.get(key) or ImportResolution.CREATE)
            except ValueError:
                logger.warning(f"Unknown resolution for uploaded event {index}: {resolutions.get(key)!r}")
                counts["errors"] += 1
                continue

            if resolution == ImportResolution.SKIP:
                counts["skipped"] += 1
                continue

            document = self.parse_document(raw, household)
            if document is None:
                counts["errors"] += 1
                continue

            target_guid = targets.get(key) or document.id
            if resolution == ImportResolution.UPDATE and target_guid:
                try:
                    event = self.event_service.get_event(household, target_guid)
                except NotFoundError:
                    logger.warning(f"Update target {target_guid} for uploaded event {index} not found")
                    counts["errors"] += 1
                    continue
                self._apply_document(event, document)
                counts["updated"] += 1
            else:
                event = FamilyEvent(household_id=household.id)
                self._apply_document(event, document)
                self.db.add(event)
                counts["imported"] += 1

        self.db.commit()

        logger.info(
            f"Import complete for household {household.guid}: "
            f"{counts['imported']} imported, {counts['updated']} updated, "
            f"{counts['skipped']} skipped, {counts['errors']} errors"
        )
        return counts

"""
Import reconciliation engine.

Classifies uploaded event records against a household's existing records
before anything is written, so an operator can decide per conflict whether
to skip, update or create.

Provides:
- Exact id conflicts (candidate id already exists)
- Fuzzy duplicate scoring on three weighted dimensions: title similarity,
  start-date proximity and participant overlap
- Best-match reduction per candidate with deterministic tie breaking

Design:
- Pure: the engine never reads or writes the database
- Each candidate is scored independently against the full existing set, so
  the result does not depend on candidate or existing ordering
"""

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from backend.src.services.calendar_records import EventRecord


# Dimension weights (sum to 100)
TITLE_WEIGHT = 40
DATE_WEIGHT = 30
PARTICIPANT_WEIGHT = 30

# Title similarity must exceed this percentage to contribute at all
TITLE_SIMILARITY_THRESHOLD = 70

# A best match scoring above this is reported as a fuzzy conflict
FUZZY_CONFLICT_THRESHOLD = 70

ID_MATCH_REASON = "Exact ID match - event already exists"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class MatchScore:
    """Score of one candidate/existing pair with human-readable reasons."""

    score: int
    reasons: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Conflict:
    """A candidate that collides with an existing record."""

    candidate: EventRecord
    existing: EventRecord
    score: int
    reasons: Tuple[str, ...]
    exact_id: bool = False


@dataclass
class ReconciliationResult:
    """Classification of every candidate, in candidate input order."""

    id_conflicts: List[Conflict] = field(default_factory=list)
    fuzzy_conflicts: List[Conflict] = field(default_factory=list)
    clean: List[EventRecord] = field(default_factory=list)

    @property
    def conflicts(self) -> List[Conflict]:
        return self.id_conflicts + self.fuzzy_conflicts

    @property
    def has_conflicts(self) -> bool:
        return bool(self.id_conflicts or self.fuzzy_conflicts)


class ReconciliationService:
    """
    Duplicate detection for bulk event imports.

    Usage:
        >>> result = ReconciliationService.classify(candidates, existing)
        >>> for conflict in result.conflicts:
        ...     print(conflict.candidate.title, conflict.score, conflict.reasons)
    """

    # =========================================================================
    # Scoring dimensions
    # =========================================================================

    @staticmethod
    def levenshtein_distance(a: str, b: str) -> int:
        """Edit distance with unit cost insertions, deletions and substitutions."""
        if len(a) < len(b):
            a, b = b, a
        previous = list(range(len(b) + 1))
        for i, ca in enumerate(a, start=1):
            current = [i]
            for j, cb in enumerate(b, start=1):
                current.append(min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (ca != cb),
                ))
            previous = current
        return previous[-1]

    @staticmethod
    def title_similarity(a: str, b: str) -> int:
        """Case-insensitive similarity percentage (0-100)."""
        left, right = a.lower(), b.lower()
        longest = max(len(left), len(right))
        if longest == 0:
            return 100
        distance = ReconciliationService.levenshtein_distance(left, right)
        return _round_half_up((1 - distance / longest) * 100)

    @staticmethod
    def _score_title(candidate: EventRecord, existing: EventRecord) -> Tuple[float, Optional[str]]:
        similarity = ReconciliationService.title_similarity(candidate.title, existing.title)
        if similarity <= TITLE_SIMILARITY_THRESHOLD:
            return 0.0, None
        return similarity / 100 * TITLE_WEIGHT, f"Title similarity: {similarity}%"

    @staticmethod
    def _score_date(candidate: EventRecord, existing: EventRecord) -> Tuple[float, Optional[str]]:
        days = abs((candidate.start_date - existing.start_date).days)
        if days == 0:
            return float(DATE_WEIGHT), "Same date"
        if days <= 1:
            return 20.0, f"{days} day difference"
        if days <= 7:
            return 10.0, f"{days} days apart"
        return 0.0, None

    @staticmethod
    def _score_participants(candidate: EventRecord, existing: EventRecord) -> Tuple[float, Optional[str]]:
        ours = candidate.participant_set
        theirs = existing.participant_set
        union = ours | theirs
        if not union:
            return 0.0, None
        shared = ours & theirs
        reason = f"{len(shared)}/{len(union)} participants match" if shared else None
        return len(shared) / len(union) * PARTICIPANT_WEIGHT, reason

    @staticmethod
    def score_match(candidate: EventRecord, existing: EventRecord) -> MatchScore:
        """
        Score how likely a candidate duplicates an existing record.

        Returns:
            MatchScore with an integer score (0-100) and the reasons of every
            dimension that contributed
        """
        total = 0.0
        reasons = []
        for scorer in (
            ReconciliationService._score_title,
            ReconciliationService._score_date,
            ReconciliationService._score_participants,
        ):
            points, reason = scorer(candidate, existing)
            total += points
            if reason:
                reasons.append(reason)
        return MatchScore(score=_round_half_up(total), reasons=tuple(reasons))

    # =========================================================================
    # Classification
    # =========================================================================

    @staticmethod
    def best_match(
        candidate: EventRecord,
        existing: Iterable[EventRecord],
    ) -> Optional[Tuple[EventRecord, MatchScore]]:
        """Highest scoring existing record; ties go to the smallest id."""
        best = None
        for record in sorted(existing, key=lambda r: r.id or ""):
            match = ReconciliationService.score_match(candidate, record)
            if best is None or match.score > best[1].score:
                best = (record, match)
        return best

    @staticmethod
    def classify(
        candidates: Iterable[EventRecord],
        existing: Iterable[EventRecord],
    ) -> ReconciliationResult:
        """
        Classify candidates as id conflicts, fuzzy conflicts or clean.

        Args:
            candidates: Uploaded, already validated records
            existing: The household's current records

        Returns:
            ReconciliationResult preserving candidate input order in each list
        """
        existing = list(existing)
        by_id = {record.id: record for record in existing if record.id}
        result = ReconciliationResult()

        for candidate in candidates:
            if candidate.id and candidate.id in by_id:
                result.id_conflicts.append(Conflict(
                    candidate=candidate,
                    existing=by_id[candidate.id],
                    score=100,
                    reasons=(ID_MATCH_REASON,),
                    exact_id=True,
                ))
                continue

            best = ReconciliationService.best_match(candidate, existing)
            if best is not None and best[1].score > FUZZY_CONFLICT_THRESHOLD:
                record, match = best
                result.fuzzy_conflicts.append(Conflict(
                    candidate=candidate,
                    existing=record,
                    score=match.score,
                    reasons=match.reasons,
                ))
            else:
                result.clean.append(candidate)

        return result

"""Constraint validator — checks cached candidates against a trip query.

Every rule fails closed: when the cache lacks the data a rule needs, the
candidate is rejected with an *_UNKNOWN / *_UNVERIFIED code rather than
assumed compliant.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from milewise.schemas.planner import (
    CachedAwardCandidate,
    ConstraintViolation,
    RankedOption,
    TripQuery,
    parse_timestamp,
)

# A check yields a pass code, a violation, or None when the rule does not apply
CheckOutcome = str | ConstraintViolation | None


@dataclass
class ConstraintResult:
    passed: bool
    violations: list[ConstraintViolation] = field(default_factory=list)
    passed_codes: list[str] = field(default_factory=list)


def is_redeye(depart_at: str | None, arrive_at: str | None) -> bool | None:
    """Night departure [22:00, 05:00) UTC landing in [04:00, 08:00] UTC. None if unknown."""
    depart = parse_timestamp(depart_at)
    arrive = parse_timestamp(arrive_at)
    if depart is None or arrive is None:
        return None
    departs_at_night = depart.hour >= 22 or depart.hour < 5
    arrives_in_morning = 4 <= arrive.hour <= 8
    return departs_at_night and arrives_in_morning


class ConstraintChecker(ABC):
    @abstractmethod
    def check(self, candidate: CachedAwardCandidate, query: TripQuery) -> CheckOutcome:
        ...


class CabinChecker(ConstraintChecker):
    def check(self, candidate, query) -> CheckOutcome:
        # Unknown cabin is treated as compatible
        if query.cabin and candidate.cabin and candidate.cabin != query.cabin:
            return ConstraintViolation(
                code="CABIN_MISMATCH",
                message=f"Expected cabin {query.cabin}",
                path="cabin",
            )
        return "CABIN_OK"


class MaxStopsChecker(ConstraintChecker):
    def check(self, candidate, query) -> CheckOutcome:
        if query.max_stops is None:
            return None
        if candidate.stops is None:
            return ConstraintViolation(
                code="STOPS_UNKNOWN",
                message="Stops not available in cache",
                path="stops",
            )
        if candidate.stops > query.max_stops:
            return ConstraintViolation(
                code="TOO_MANY_STOPS",
                message=f"Stops {candidate.stops} exceed max {query.max_stops}",
                path="stops",
                meta={"candidateStops": candidate.stops, "maxStops": query.max_stops},
            )
        return "STOPS_OK"


class RedeyeChecker(ConstraintChecker):
    def check(self, candidate, query) -> CheckOutcome:
        if not query.no_redeyes:
            return None
        redeye = is_redeye(candidate.depart_at, candidate.arrive_at)
        if redeye is None:
            return ConstraintViolation(
                code="REDEYE_UNVERIFIED",
                message="Cannot verify redeye constraint",
                path="schedule",
            )
        if redeye:
            return ConstraintViolation(
                code="REDEYE_DISALLOWED",
                message="Redeye flights are not allowed",
                path="schedule",
            )
        return "REDEYE_OK"


class SeatsChecker(ConstraintChecker):
    def check(self, candidate, query) -> CheckOutcome:
        if query.passengers <= 1:
            return None
        if candidate.availability is None:
            return ConstraintViolation(
                code="SEATS_UNVERIFIED",
                message="Seat availability not present in cache",
                path="availability",
            )
        if candidate.availability < query.passengers:
            return ConstraintViolation(
                code="INSUFFICIENT_SEATS",
                message=f"Need {query.passengers} seats but only {candidate.availability} available",
                path="availability",
                meta={"availability": candidate.availability, "passengers": query.passengers},
            )
        return "SEATS_OK"


CHECKERS: list[ConstraintChecker] = [
    CabinChecker(),
    MaxStopsChecker(),
    RedeyeChecker(),
    SeatsChecker(),
]


def validate_candidate(candidate: CachedAwardCandidate, query: TripQuery) -> ConstraintResult:
    result = ConstraintResult(passed=True)
    for checker in CHECKERS:
        outcome = checker.check(candidate, query)
        if outcome is None:
            continue
        if isinstance(outcome, ConstraintViolation):
            result.violations.append(outcome)
        else:
            result.passed_codes.append(outcome)
    result.passed = not result.violations
    return result


def apply_constraints(
    candidates: list[CachedAwardCandidate],
    query: TripQuery,
) -> tuple[list[RankedOption], list[ConstraintViolation]]:
    """Split candidates into unscored accepted options and a flat list of every violation."""
    accepted: list[RankedOption] = []
    rejected: list[ConstraintViolation] = []

    for candidate in candidates:
        result = validate_candidate(candidate, query)
        if result.passed:
            accepted.append(RankedOption(
                candidate_id=candidate.id,
                candidate=candidate,
                verified=True,
                score=0,
                score_breakdown=[],
                passed_constraints=result.passed_codes,
                failed_constraints=[],
            ))
        else:
            rejected.extend(result.violations)

    return accepted, rejected

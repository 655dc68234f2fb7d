import pytest

from milewise.services.planner.constraints import apply_constraints, is_redeye, validate_candidate
from tests.factories import make_candidate, make_query


def _codes(result):
    return [v.code for v in result.violations]


# ─── Cabin ───

def test_cabin_mismatch_is_rejected():
    result = validate_candidate(make_candidate(cabin="economy"), make_query(cabin="business"))
    assert not result.passed
    assert _codes(result) == ["CABIN_MISMATCH"]
    assert result.violations[0].path == "cabin"


def test_unknown_cabin_is_compatible():
    result = validate_candidate(make_candidate(cabin=None), make_query(cabin="business"))
    assert result.passed
    assert result.passed_codes == ["CABIN_OK"]


# ─── Stops ───

def test_stops_not_checked_without_ceiling():
    result = validate_candidate(make_candidate(stops=None), make_query())
    assert result.passed
    assert not any(code.startswith("STOPS") for code in result.passed_codes)


def test_unknown_stops_fail_closed():
    result = validate_candidate(make_candidate(stops=None), make_query(maxStops=1))
    assert not result.passed
    assert _codes(result) == ["STOPS_UNKNOWN"]


def test_too_many_stops_carries_both_values():
    result = validate_candidate(make_candidate(stops=2), make_query(maxStops=0))
    assert _codes(result) == ["TOO_MANY_STOPS"]
    assert result.violations[0].meta == {"candidateStops": 2, "maxStops": 0}


def test_stops_within_ceiling_pass():
    result = validate_candidate(make_candidate(stops=1), make_query(maxStops=1))
    assert result.passed
    assert "STOPS_OK" in result.passed_codes


# ─── Red-eye ───

@pytest.mark.parametrize(
    "depart, arrive, expected",
    [
        ("2024-01-05T23:00:00Z", "2024-01-06T06:00:00Z", True),
        ("2024-01-05T04:59:00Z", "2024-01-05T08:59:00Z", True),
        ("2024-01-05T22:00:00Z", "2024-01-06T09:00:00Z", False),
        ("2024-01-05T05:00:00Z", "2024-01-05T07:00:00Z", False),
        ("2024-01-05T10:00:00Z", "2024-01-05T18:00:00Z", False),
        (None, "2024-01-05T18:00:00Z", None),
        ("not-a-date", "2024-01-05T18:00:00Z", None),
    ],
)
def test_is_redeye(depart, arrive, expected):
    assert is_redeye(depart, arrive) is expected


def test_redeye_disallowed():
    candidate = make_candidate(depart_at="2024-01-05T23:30:00Z", arrive_at="2024-01-06T07:00:00Z")
    result = validate_candidate(candidate, make_query(noRedeyes=True))
    assert _codes(result) == ["REDEYE_DISALLOWED"]


@pytest.mark.parametrize("field", ["depart_at", "arrive_at"])
def test_missing_schedule_fails_closed(field):
    candidate = make_candidate(**{field: None})
    result = validate_candidate(candidate, make_query(noRedeyes=True))
    assert _codes(result) == ["REDEYE_UNVERIFIED"]


def test_daytime_flight_passes_redeye_rule():
    result = validate_candidate(make_candidate(), make_query(noRedeyes=True))
    assert result.passed
    assert "REDEYE_OK" in result.passed_codes


# ─── Seats ───

def test_seats_not_checked_for_single_passenger():
    result = validate_candidate(make_candidate(availability=None), make_query(passengers=1))
    assert result.passed
    assert "SEATS_OK" not in result.passed_codes


def test_unknown_availability_fails_closed():
    result = validate_candidate(make_candidate(availability=None), make_query(passengers=2))
    assert _codes(result) == ["SEATS_UNVERIFIED"]


def test_insufficient_seats():
    result = validate_candidate(make_candidate(availability=1), make_query(passengers=3))
    assert _codes(result) == ["INSUFFICIENT_SEATS"]
    assert result.violations[0].meta == {"availability": 1, "passengers": 3}


def test_enough_seats_pass():
    result = validate_candidate(make_candidate(availability=3), make_query(passengers=3))
    assert "SEATS_OK" in result.passed_codes


# ─── Exhaustiveness ───

RULE_CODES = {
    "cabin": {"CABIN_OK", "CABIN_MISMATCH"},
    "stops": {"STOPS_OK", "TOO_MANY_STOPS", "STOPS_UNKNOWN"},
    "redeye": {"REDEYE_OK", "REDEYE_DISALLOWED", "REDEYE_UNVERIFIED"},
    "seats": {"SEATS_OK", "INSUFFICIENT_SEATS", "SEATS_UNVERIFIED"},
}


@pytest.mark.parametrize(
    "candidate",
    [
        make_candidate(),
        make_candidate(cabin="first", stops=None, availability=None, depart_at=None),
        make_candidate(stops=3, availability=1, depart_at="2024-01-05T23:00:00Z", arrive_at="2024-01-06T05:00:00Z"),
        make_candidate(cabin=None, stops=0, availability=9, arrive_at="garbage"),
    ],
)
def test_every_applicable_rule_yields_exactly_one_code(candidate):
    query = make_query(maxStops=1, noRedeyes=True, passengers=2)
    result = validate_candidate(candidate, query)
    codes = result.passed_codes + _codes(result)
    for rule, rule_codes in RULE_CODES.items():
        assert len([c for c in codes if c in rule_codes]) == 1, rule
    assert result.passed == (not result.violations)


# ─── apply_constraints ───

def test_apply_constraints_partitions_and_flattens():
    candidates = [
        make_candidate("ok", stops=0, availability=2),
        make_candidate("bad-stops", stops=None, availability=2),
        make_candidate("bad-both", stops=3, availability=None),
    ]
    accepted, rejected = apply_constraints(candidates, make_query(maxStops=1, passengers=2))

    assert [o.candidate_id for o in accepted] == ["ok"]
    assert accepted[0].score == 0
    assert accepted[0].score_breakdown == []
    assert accepted[0].passed_constraints == ["CABIN_OK", "STOPS_OK", "SEATS_OK"]
    assert [v.code for v in rejected] == ["STOPS_UNKNOWN", "TOO_MANY_STOPS", "SEATS_UNVERIFIED"]


def test_fractional_availability_is_compared_as_is():
    result = validate_candidate(make_candidate(availability=2.5), make_query(passengers=3))
    assert _codes(result) == ["INSUFFICIENT_SEATS"]
    assert result.violations[0].meta == {"availability": 2.5, "passengers": 3}

from datetime import timedelta

import pytest

from milewise.schemas.planner import PlanNeedsInput, PlanNoFeasible, PlanOk
from milewise.services.planner.plan_service import plan_service
from tests.factories import NOW, make_deal, make_query, make_session, seed


@pytest.fixture
async def session_row(db):
    await seed(db, make_session("sess-1", programs=["aa"]))
    return "sess-1"


async def _plan(db, query=None, session_id="sess-1", **kwargs):
    return await plan_service.plan(db, query or make_query(), session_id, request_id="req-1", now=NOW, **kwargs)


# ─── Outcomes ───

async def test_returns_ranked_options_from_fresh_cache(db, session_row):
    await seed(
        db,
        make_deal("nonstop", miles=60000),
        make_deal("one-stop", miles=40000, raw_data={"stops": 1, "availability": 4}),
        make_deal("ua", program="ua", miles=60000),
    )
    result = await _plan(db)

    assert isinstance(result, PlanOk)
    assert result.request_id == "req-1"
    assert [o.candidate_id for o in result.options] == ["one-stop", "nonstop", "ua"]
    assert all(o.verified for o in result.options)
    assert result.cache_status.stale is False
    assert result.cache_status.considered_count == 3
    assert result.cache_status.freshest_at == NOW.isoformat()
    assert result.query == make_query()


async def test_single_fresh_nonstop_is_the_only_option(db, session_row):
    await seed(db, make_deal("jfk-lhr", raw_data={"stops": 0, "availability": 2}))
    result = await _plan(db, make_query(maxStops=0))

    assert isinstance(result, PlanOk)
    assert len(result.options) == 1
    option = result.options[0]
    assert option.candidate_id == "jfk-lhr"
    assert option.verified is True
    assert option.candidate.cabin == "business"
    assert option.passed_constraints == ["CABIN_OK", "STOPS_OK"]


async def test_too_many_stops_is_no_feasible_plan(db, session_row):
    await seed(db, make_deal("two-stop", raw_data={"stops": 2, "availability": 4}))
    result = await _plan(db, make_query(maxStops=0))

    assert isinstance(result, PlanNoFeasible)
    assert [r.code for r in result.reasons] == ["TOO_MANY_STOPS"]
    assert result.reasons[0].meta == {"candidateStops": 2, "maxStops": 0}
    assert result.cache_status.stale is False


async def test_stale_cache_is_rejected(db, session_row):
    await seed(db, make_deal("old", updated_at=NOW - timedelta(hours=2)))
    result = await _plan(db)

    assert isinstance(result, PlanNoFeasible)
    assert [r.code for r in result.reasons] == ["CACHE_STALE"]
    assert result.reasons[0].meta == {"freshestAt": (NOW - timedelta(hours=2)).isoformat()}
    assert result.cache_status.stale is True
    assert result.cache_status.considered_count == 1


async def test_stale_cache_allowed_returns_unverified_options(db, session_row):
    await seed(db, make_deal("old", updated_at=NOW - timedelta(hours=2)))
    result = await _plan(db, make_query(allowStaleCache=True))

    assert isinstance(result, PlanOk)
    assert result.cache_status.stale is True
    assert [o.verified for o in result.options] == [False]


async def test_empty_cache(db, session_row):
    result = await _plan(db)

    assert isinstance(result, PlanNoFeasible)
    assert [r.code for r in result.reasons] == ["CACHE_EMPTY"]
    assert result.reasons[0].meta["origins"] == ["JFK"]
    assert result.reasons[0].meta["destinations"] == ["LHR"]
    assert result.cache_status.stale is True
    assert result.cache_status.considered_count == 0


async def test_all_candidates_rejected_lists_every_violation(db, session_row):
    await seed(
        db,
        make_deal("unknown-stops", raw_data={"availability": 4}),
        make_deal("low-seats", raw_data={"stops": 0, "availability": 1}),
    )
    result = await _plan(db, make_query(maxStops=0, passengers=2))

    assert isinstance(result, PlanNoFeasible)
    assert sorted(r.code for r in result.reasons) == ["INSUFFICIENT_SEATS", "STOPS_UNKNOWN"]
    assert result.cache_status.stale is False


async def test_rejected_candidates_do_not_block_accepted_ones(db, session_row):
    await seed(
        db,
        make_deal("ok", raw_data={
            "stops": 0, "availability": 4,
            "departure": "2024-01-05T10:00:00Z", "arrival": "2024-01-05T18:00:00Z",
        }),
        make_deal("redeye", raw_data={
            "stops": 0, "availability": 4,
            "departure": "2024-01-05T23:30:00Z", "arrival": "2024-01-06T06:45:00Z",
        }),
    )
    result = await _plan(db, make_query(noRedeyes=True))
    assert isinstance(result, PlanOk)
    assert [o.candidate_id for o in result.options] == ["ok"]


@pytest.mark.parametrize(
    "age, stale",
    [
        (timedelta(minutes=44, seconds=59), False),
        (timedelta(minutes=45), False),
        (timedelta(minutes=45, seconds=1), True),
    ],
)
async def test_staleness_boundary(db, session_row, age, stale):
    await seed(db, make_deal("edge", updated_at=NOW - age))
    result = await _plan(db)

    if stale:
        assert isinstance(result, PlanNoFeasible)
        assert result.reasons[0].code == "CACHE_STALE"
    else:
        assert isinstance(result, PlanOk)
        assert result.cache_status.stale is False


# ─── Missing input ───

@pytest.mark.parametrize(
    "overrides, path",
    [
        ({"origins": []}, "origins"),
        ({"dateWindow": None}, "dateWindow"),
        ({"dateWindow": {"start": "2024-01-01"}}, "dateWindow"),
        ({"dateWindow": {"start": "soon", "end": "later"}}, "dateWindow"),
        ({"cabin": None}, "cabin"),
    ],
)
async def test_missing_required_fields(db, session_row, overrides, path):
    result = await _plan(db, make_query(**overrides))

    assert isinstance(result, PlanNeedsInput)
    assert [m.path for m in result.missing] == [path]


async def test_missing_session_needs_input(db):
    result = await _plan(db, session_id=None)
    assert isinstance(result, PlanNeedsInput)
    assert [m.path for m in result.missing] == ["session"]


async def test_unknown_session_needs_input(db):
    await seed(db, make_deal("fresh"))
    result = await _plan(db, session_id="nobody")
    assert isinstance(result, PlanNeedsInput)
    assert result.missing[0].reason == "Unknown onboarding session"


async def test_needs_input_reports_every_missing_field(db):
    result = await _plan(db, make_query(origins=[], cabin=None), session_id=None)
    assert [m.path for m in result.missing] == ["origins", "cabin", "session"]


async def test_generates_request_id_when_absent(db, session_row):
    result = await plan_service.plan(db, make_query(), "sess-1", now=NOW)
    assert result.request_id

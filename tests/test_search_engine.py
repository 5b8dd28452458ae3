from dataclasses import replace

import pytest

from cma_comps.api.schemas import ComparableSearchRequest
from cma_comps.config import Settings
from cma_comps.errors import ListingsClientError, SearchValidationError, UpstreamError
from cma_comps.search import (
    NO_RESULTS_MESSAGE,
    ComparableSearch,
    criteria_params,
    search_comparables,
)

from conftest import FIXED_TODAY


def _listing(mls, number="100", name="Congress", suffix="Ave", zip_code="78701", **extra):
    raw = {
        "mlsNumber": mls,
        "standardStatus": extra.pop("status", "Active"),
        "address": {
            "streetNumber": number,
            "streetName": name,
            "streetSuffix": suffix,
            "city": "Austin",
            "state": "TX",
            "zip": zip_code,
        },
    }
    raw.update(extra)
    return raw


class _ScriptedClient:
    name = "scripted"

    def __init__(self, respond):
        self.respond = respond
        self.calls = []
        self.page_calls = []

    def search(self, params, status, *, sold_within_days):
        self.calls.append((dict(params), status, sold_within_days))
        result = self.respond(dict(params), status)
        if isinstance(result, Exception):
            raise result
        return result

    def search_page(self, params, *, page, per_page):
        self.page_calls.append((dict(params), page, per_page))
        result = self.respond(dict(params), None)
        if isinstance(result, Exception):
            raise result
        return result


def _settings(**overrides):
    return replace(Settings.from_env(), **overrides)


def _engine(client, **kwargs):
    kwargs.setdefault("settings", _settings())
    return ComparableSearch(client, today_fn=lambda: FIXED_TODAY, **kwargs)


def _request(**payload):
    return ComparableSearchRequest.model_validate(payload)


def test_exact_match_on_first_tier():
    def respond(params, status):
        if "streetNumber" in params and status == "Active":
            return [_listing("A1")]
        return []

    client = _ScriptedClient(respond)
    response = _engine(client).search(_request(search="100 Congress Ave, Austin, TX 78701"))

    assert len(response.listings) == 1
    assert response.listings[0].mls_number == "A1"
    assert response.address_parsed is True
    assert response.search_strategy == "exact_match"
    assert response.total == 1
    assert response.total_pages == 1
    assert response.results_per_page == 1


def test_first_non_empty_tier_stops_fallbacks_but_queries_every_status():
    def respond(params, status):
        if "streetNumber" in params:
            return [_listing("A1")] if status == "Active" else []
        return [_listing("SHOULD-NOT-APPEAR")]

    client = _ScriptedClient(respond)
    _engine(client).search(_request(search="100 Congress Ave, Austin, TX 78701"))

    assert [(sorted(p), s) for p, s, _ in client.calls] == [
        (["streetName", "streetNumber", "streetSuffix", "zip"], "Active"),
        (["streetName", "streetNumber", "streetSuffix", "zip"], "Closed"),
    ]


def test_results_from_every_status_are_combined():
    def respond(params, status):
        if "streetNumber" in params:
            return [_listing(f"{status}-1"), _listing(f"{status}-2", number="104")]
        return []

    response = _engine(_ScriptedClient(respond)).search(
        _request(search="100 Congress Ave, Austin, TX 78701")
    )
    assert [l.mls_number for l in response.listings] == [
        "Active-1",
        "Active-2",
        "Closed-1",
        "Closed-2",
    ]


def test_fallback_tier_without_exact_match():
    def respond(params, status):
        if "streetNumber" in params:
            return []
        if "streetName" in params and status == "Closed":
            return [_listing("C1", number="108", status="Closed")]
        return []

    client = _ScriptedClient(respond)
    response = _engine(client).search(_request(search="100 Congress Ave, Austin, TX 78701"))

    assert [l.mls_number for l in response.listings] == ["C1"]
    assert response.address_parsed is False
    assert response.search_strategy == "fallback_search"
    # exact tier (2 statuses) + relaxed tier (2 statuses)
    assert len(client.calls) == 4


def test_exact_match_ignores_suffix_and_case():
    def respond(params, status):
        return [_listing("U5", number="100", name="CONGRESS", suffix="St")] if status == "Active" else []

    response = _engine(_ScriptedClient(respond)).search(
        _request(search="100 Congress Ave, Austin, TX 78701")
    )
    assert response.address_parsed is True


def test_no_results_returns_message_not_error():
    client = _ScriptedClient(lambda params, status: [])
    response = _engine(client).search(_request(search="zzz nonexistent place"))

    assert response.listings == []
    assert response.total == 0
    assert response.total_pages == 0
    assert response.results_per_page == 25
    assert response.message == NO_RESULTS_MESSAGE
    assert response.address_parsed is False
    # only the free-text tier exists for this input
    assert [p for p, _, _ in client.calls] == [{"search": "zzz nonexistent place"}] * 2


def test_failures_are_isolated_per_call():
    def respond(params, status):
        if "streetNumber" in params:
            return RuntimeError("connection reset")
        if "streetName" in params and status == "Active":
            return ListingsClientError("HTTP 500", status_code=500)
        if "streetName" in params:
            return [_listing("C9", number="900", status="Closed")]
        return []

    engine = _engine(_ScriptedClient(respond))
    response = engine.search(_request(search="100 Congress Ave, Austin, TX 78701"))

    assert [l.mls_number for l in response.listings] == ["C9"]
    results = [(a.tier, a.status, a.result) for a in engine.last_attempts]
    assert results == [
        (1, "Active", "failed"),
        (1, "Closed", "failed"),
        (2, "Active", "failed"),
        (2, "Closed", "success"),
    ]


def test_every_call_failing_still_returns_empty_response():
    client = _ScriptedClient(lambda params, status: ListingsClientError("down"))
    response = _engine(client).search(_request(search="100 Congress Ave, Austin, TX 78701"))
    assert response.listings == []
    assert response.message == NO_RESULTS_MESSAGE
    assert len(client.calls) == 8


def test_malformed_payloads_are_skipped():
    def respond(params, status):
        return ["garbage", _listing("OK")] if status == "Active" else []

    response = _engine(_ScriptedClient(respond)).search(_request(search="100 Congress Ave"))
    assert [l.mls_number for l in response.listings] == ["OK"]


def test_deadline_stops_further_calls():
    now = [0.0]

    def respond(params, status):
        now[0] += 5.0
        return []

    client = _ScriptedClient(respond)
    engine = _engine(
        client,
        settings=_settings(search_deadline_seconds=1.0),
        clock=lambda: now[0],
    )
    response = engine.search(_request(search="100 Congress Ave, Austin, TX 78701"))

    assert len(client.calls) == 1
    assert response.listings == []
    assert engine.last_attempts[-1].result == "skipped"


def test_statuses_and_lookback_are_passed_through():
    client = _ScriptedClient(lambda params, status: [])
    _engine(client).search(
        _request(search="123 Main St", statuses=["sold", "bogus", "Closed"], dateSoldDays=90)
    )
    assert [(s, days) for _, s, days in client.calls] == [("Closed", 90)]


def test_ranking_truncates_and_prefers_comparable_sales():
    def respond(params, status):
        if status != "Active":
            return []
        out = [_listing(f"A{i}", number=str(200 + i)) for i in range(29)]
        out.insert(
            17,
            _listing(
                "BEST",
                number="250",
                status="Closed",
                soldDate="2025-01-01",
                details={"numBedrooms": 3, "numBathrooms": 2, "sqft": 1800},
                map={"latitude": 30.2650, "longitude": -97.7440},
            ),
        )
        return out

    response = _engine(_ScriptedClient(respond)).search(
        _request(
            search="100 Congress Ave, Austin, TX 78701",
            limit=10,
            subjectProperty={"lat": 30.2650, "lon": -97.7440, "beds": 3, "baths": 2, "sqft": 1800},
        )
    )
    assert len(response.listings) == 10
    assert response.listings[0].mls_number == "BEST"
    assert response.listings[0].distance_from_subject == 0
    # the rest tie on score and keep provider order
    assert [l.mls_number for l in response.listings[1:]] == [f"A{i}" for i in range(9)]
    assert response.address_parsed is False


def test_limit_is_clamped():
    def respond(params, status):
        return [_listing(f"A{i}") for i in range(60)] if status == "Active" else []

    response = _engine(_ScriptedClient(respond)).search(
        _request(search="100 Congress Ave, Austin, TX 78701", limit=500)
    )
    assert len(response.listings) == 50


def test_fixture_client_relaxed_search(fixture_client):
    response = _engine(fixture_client).search(
        _request(
            search="Rockingham Cir, Austin, TX 78704",
            subjectProperty={
                "latitude": 30.2410,
                "longitude": -97.7800,
                "beds": 3,
                "baths": 2,
                "sqft": 1850,
                "propertyType": "Single Family Residence",
            },
        )
    )
    assert [l.mls_number for l in response.listings] == ["SLD-2002", "ACT-1002"]
    assert response.search_strategy == "fallback_search"
    assert response.parsed_address == {
        "streetName": "Rockingham",
        "streetSuffix": "Cir",
        "city": "Austin",
        "state": "TX",
        "zip": "78704",
    }


def test_fixture_client_exact_search(fixture_client):
    response = search_comparables(
        _request(search="2402 Rockingham Cir, Austin, TX 78704"),
        fixture_client,
        settings=_settings(),
        today_fn=lambda: FIXED_TODAY,
    )
    assert [l.mls_number for l in response.listings] == ["ACT-1002"]
    assert response.address_parsed is True
    assert len(fixture_client.calls) == 2


def test_search_requires_address_or_criteria():
    with pytest.raises(SearchValidationError):
        _engine(_ScriptedClient(lambda p, s: [])).search(_request(search="   "))


def test_criteria_search_goes_straight_to_provider():
    client = _ScriptedClient(lambda params, status: ([_listing("A1"), _listing("A2")], 42))
    response = _engine(client).search(
        _request(city="Austin", minBeds=3, maxPrice="650000", limit=10, page=2)
    )
    assert client.calls == []
    params, page, per_page = client.page_calls[0]
    assert params == {
        "city": "Austin",
        "minBeds": "3",
        "maxPrice": "650000",
        "standardStatus": ["Active"],
    }
    assert (page, per_page) == (2, 10)
    assert response.total == 42
    assert response.total_pages == 5
    assert response.page == 2
    assert response.results_per_page == 10
    assert response.address_parsed is None


def test_criteria_search_closed_only_uses_sold_params():
    request = _request(zip="78704", statuses=["Closed"], dateSoldDays=30)
    params = criteria_params(request, FIXED_TODAY)
    assert params == {
        "zip": "78704",
        "status": "U",
        "lastStatus": "Sld",
        "minClosedDate": "2024-12-16",
    }


def test_mls_numbers_bypass_fallback_tiers():
    client = _ScriptedClient(lambda params, status: ([_listing("M1")], 1))
    response = _engine(client).search(
        _request(search="100 Congress Ave", mlsNumbers="M1, M2")
    )
    assert client.calls == []
    assert client.page_calls[0][0]["mlsNumber"] == ["M1", "M2"]
    assert [l.mls_number for l in response.listings] == ["M1"]


def test_criteria_upstream_failure_raises():
    client = _ScriptedClient(lambda params, status: ListingsClientError("HTTP 502"))
    with pytest.raises(UpstreamError):
        _engine(client).search(_request(city="Austin"))


@pytest.mark.parametrize("field", ["limit", "page"])
@pytest.mark.parametrize("value", ["inf", "-Infinity", "NaN", float("inf")])
def test_non_finite_paging_values_fall_back(field, value):
    request = _request(search="x", **{field: value})
    assert request.limit is None
    assert request.page == 1


def test_sold_days_is_capped_and_lookback_stays_in_range():
    request = _request(zip="78704", statuses=["Closed"], dateSoldDays=1000000)
    assert request.date_sold_days == 3650
    assert criteria_params(request, FIXED_TODAY)["minClosedDate"] == "2015-01-18"


def test_huge_sold_days_still_queries_closed_listings():
    client = _ScriptedClient(lambda params, status: [])
    engine = _engine(client)
    engine.search(_request(search="123 Main St", statuses=["Closed"], dateSoldDays="1e9"))
    assert [(s, days) for _, s, days in client.calls] == [("Closed", 3650)]
    assert [a.result for a in engine.last_attempts] == ["success"]


def test_missing_sold_days_uses_configured_default(monkeypatch):
    monkeypatch.setenv("CMA_DEFAULT_SOLD_DAYS", "90")
    client = _ScriptedClient(lambda params, status: ([], 0))
    engine = ComparableSearch(client, settings=Settings.from_env(), today_fn=lambda: FIXED_TODAY)

    request = _request(search="123 Main St", statuses=["Closed"])
    assert request.date_sold_days is None
    engine.search(request)
    assert [days for _, _, days in client.calls] == [90]

    engine.search(_request(zip="78704", statuses=["Closed"], dateSoldDays="soon"))
    assert client.page_calls[0][0]["minClosedDate"] == "2024-10-17"


def test_explicit_sold_days_beats_configured_default():
    client = _ScriptedClient(lambda params, status: [])
    _engine(client, settings=_settings(default_sold_days=90)).search(
        _request(search="123 Main St", statuses=["Closed"], dateSoldDays=45)
    )
    assert [days for _, _, days in client.calls] == [45]

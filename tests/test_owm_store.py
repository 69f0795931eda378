"""Tests for the OpenWeatherMap forecast store."""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime
from types import SimpleNamespace
from typing import Any

import httpx
import pytest

from wear_weather_sync.exceptions import SnapshotStoreError
from wear_weather_sync.phone.owm import OpenWeatherMapStore

NOT_BEFORE = datetime(2026, 2, 24, 15, 30, tzinfo=UTC)
# 2026-02-23, 2026-02-24 and 2026-02-25 at 12:00 UTC.
DAY_23 = 1771848000
DAY_24 = 1771934400
DAY_25 = 1772020800


def _make_settings(**overrides: Any) -> Any:
    defaults = {
        "owm_api_key": "owm-secret-key",
        "owm_api_base_url": "https://api.openweathermap.org",
        "owm_timeout_seconds": 5.0,
        "owm_units": "metric",
        "owm_forecast_days": 7,
    }
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def _make_store(**kwargs: Any) -> OpenWeatherMapStore:
    return OpenWeatherMapStore(
        settings=_make_settings(),
        logger=logging.getLogger("test-owm"),
        **kwargs,
    )


def _day(dt: int, weather_id: int, high: float, low: float, desc: str = "clear sky") -> dict[str, Any]:
    return {
        "dt": dt,
        "temp": {"day": (high + low) / 2, "min": low, "max": high},
        "weather": [{"id": weather_id, "main": "Clear", "description": desc}],
    }


def test_first_row_from_today_is_returned() -> None:
    store = _make_store()
    captured: dict[str, Any] = {}

    def fake_request(endpoint: str, *, params: dict[str, Any], context: str) -> dict[str, Any]:
        captured.update(endpoint=endpoint, params=params)
        return {
            "city": {"name": "Paris"},
            "list": [
                _day(DAY_25, 500, 11, 6, "light rain"),
                _day(DAY_23, 800, 9, 1),
                _day(DAY_24, 601, -2, -10, "snow"),
            ],
        }

    store._request_json = fake_request  # type: ignore[assignment]
    row = store.query_latest(" Paris ", NOT_BEFORE)
    store.close()

    assert row is not None
    assert row.forecast_date == date(2026, 2, 24)
    assert row.condition_code == 601
    assert row.max_temp == -2.0
    assert row.min_temp == -10.0
    assert row.short_desc == "snow"
    assert row.location == "Paris"
    assert captured["endpoint"] == "/data/2.5/forecast/daily"
    assert captured["params"]["q"] == "Paris"
    assert captured["params"]["cnt"] == 7
    assert captured["params"]["units"] == "metric"


def test_only_past_days_yields_none() -> None:
    store = _make_store()
    store._request_json = lambda endpoint, *, params, context: {  # type: ignore[assignment]
        "list": [_day(DAY_23, 800, 9, 1)]
    }

    assert store.query_latest("Paris", NOT_BEFORE) is None


def test_unparseable_days_raise() -> None:
    store = _make_store()
    store._request_json = lambda endpoint, *, params, context: {  # type: ignore[assignment]
        "list": [{"dt": DAY_24, "temp": {"max": "warm"}, "weather": []}]
    }

    with pytest.raises(SnapshotStoreError, match="not parseable"):
        store.query_latest("Paris", NOT_BEFORE)


def test_missing_list_raises() -> None:
    store = _make_store()
    store._request_json = lambda endpoint, *, params, context: {"cod": "200"}  # type: ignore[assignment]

    with pytest.raises(SnapshotStoreError, match="missing 'list'"):
        store.query_latest("Paris", NOT_BEFORE)


def test_missing_api_key_is_rejected() -> None:
    with pytest.raises(SnapshotStoreError, match="OWM_API_KEY"):
        OpenWeatherMapStore(
            settings=_make_settings(owm_api_key=None),
            logger=logging.getLogger("test-owm"),
        )


def test_client_error_is_not_retried_and_key_is_redacted() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(404, text=f"city not found for {request.url}")

    store = _make_store(retry_delay_seconds=0)
    store._client = httpx.Client(
        base_url="https://api.openweathermap.org",
        transport=httpx.MockTransport(handler),
    )

    with pytest.raises(SnapshotStoreError) as exc_info:
        store.query_latest("Atlantis", NOT_BEFORE)
    store.close()

    assert len(calls) == 1
    assert calls[0].url.params["appid"] == "owm-secret-key"
    assert "status 404" in str(exc_info.value)
    assert "owm-secret-key" not in str(exc_info.value)


def test_server_error_is_retried_once() -> None:
    responses = [
        httpx.Response(503, text="busy"),
        httpx.Response(200, json={"list": [_day(DAY_24, 802, 14, 8, "broken clouds")]}),
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    store = _make_store(retry_delay_seconds=0)
    store._client = httpx.Client(
        base_url="https://api.openweathermap.org",
        transport=httpx.MockTransport(handler),
    )

    row = store.query_latest("Paris", NOT_BEFORE)
    store.close()

    assert responses == []
    assert row is not None
    assert row.condition_code == 802

"""OpenWeatherMap daily-forecast store implementation."""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import Any

import httpx

from ..config import Settings
from ..exceptions import SnapshotStoreError
from ..redaction import sanitize_text
from .models import ForecastRow
from .store import SnapshotStore, first_row_from


class OpenWeatherMapStore(SnapshotStore):
    """Fetches daily forecasts from OpenWeatherMap and serves the first usable day."""

    forecast_endpoint = "/data/2.5/forecast/daily"

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        max_retries: int = 1,
        retry_delay_seconds: float = 1.0,
    ) -> None:
        if not settings.owm_api_key:
            raise SnapshotStoreError("OpenWeatherMap store requires OWM_API_KEY.")
        self.settings = settings
        self.logger = logger
        self._max_retries = max_retries
        self._retry_delay = retry_delay_seconds
        self._client = httpx.Client(
            base_url=str(settings.owm_api_base_url).rstrip("/"),
            timeout=settings.owm_timeout_seconds,
            headers={"Accept": "application/json"},
        )

    def __enter__(self) -> OpenWeatherMapStore:
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def query_latest(self, location: str, not_before: datetime) -> ForecastRow | None:
        """Fetch the forecast for ``location`` and return its first row from today on."""
        if not location.strip():
            raise SnapshotStoreError("Location must not be empty.")
        params = {
            "q": location.strip(),
            "mode": "json",
            "units": self.settings.owm_units,
            "cnt": self.settings.owm_forecast_days,
            "appid": self.settings.owm_api_key,
        }
        payload = self._request_json(self.forecast_endpoint, params=params, context="daily forecast")
        rows = self._normalize_rows(payload, location=location)
        return first_row_from(rows, not_before)

    def _request_json(
        self,
        endpoint: str,
        *,
        params: dict[str, Any],
        context: str,
    ) -> dict[str, Any]:
        last_error: Exception | None = None
        for attempt in range(self._max_retries + 1):
            try:
                response = self._client.get(endpoint, params=params)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                # 4xx other than rate limiting will not improve on retry.
                if 400 <= status < 500 and status != 429:
                    raise SnapshotStoreError(
                        f"OpenWeatherMap {context} failed with status {status}: "
                        f"{sanitize_text(exc.response.text[:300])}"
                    ) from exc
                last_error = exc
                if attempt < self._max_retries:
                    self.logger.warning(
                        "OpenWeatherMap %s failed (HTTP %d); retrying", context, status
                    )
                    time.sleep(self._retry_delay)
                    continue
                raise SnapshotStoreError(
                    f"OpenWeatherMap {context} failed with status {status}: "
                    f"{sanitize_text(exc.response.text[:300])}"
                ) from exc
            except httpx.HTTPError as exc:
                last_error = exc
                if attempt < self._max_retries:
                    self.logger.warning(
                        "OpenWeatherMap %s request failed (%s); retrying",
                        context,
                        type(exc).__name__,
                    )
                    time.sleep(self._retry_delay)
                    continue
                raise SnapshotStoreError(
                    f"OpenWeatherMap {context} request failed: {sanitize_text(str(exc))}"
                ) from exc

            try:
                payload = response.json()
            except ValueError as exc:
                raise SnapshotStoreError(
                    f"OpenWeatherMap {context} returned non-JSON response."
                ) from exc
            if not isinstance(payload, dict):
                raise SnapshotStoreError(
                    f"OpenWeatherMap {context} returned unexpected payload type "
                    f"{type(payload).__name__}."
                )
            return payload

        raise SnapshotStoreError(f"OpenWeatherMap {context} failed after retries: {last_error}")

    def _normalize_rows(self, payload: dict[str, Any], *, location: str) -> list[ForecastRow]:
        raw_days = payload.get("list")
        if not isinstance(raw_days, list):
            raise SnapshotStoreError("OpenWeatherMap payload missing 'list' array.")

        rows: list[ForecastRow] = []
        for item in raw_days:
            if not isinstance(item, dict):
                continue
            row = self._normalize_day(item, location=location)
            if row is not None:
                rows.append(row)
        if raw_days and not rows:
            raise SnapshotStoreError("OpenWeatherMap forecast days were present but not parseable.")
        return rows

    def _normalize_day(self, item: dict[str, Any], *, location: str) -> ForecastRow | None:
        timestamp = item.get("dt")
        temps = item.get("temp")
        weather = item.get("weather")
        if not isinstance(timestamp, (int, float)) or not isinstance(temps, dict):
            return None
        if not isinstance(weather, list) or not weather or not isinstance(weather[0], dict):
            return None

        condition_code = weather[0].get("id")
        max_temp = temps.get("max")
        min_temp = temps.get("min")
        if not isinstance(condition_code, int):
            return None
        if not isinstance(max_temp, (int, float)) or not isinstance(min_temp, (int, float)):
            return None

        description = weather[0].get("description")
        return ForecastRow(
            location=location.strip(),
            forecast_date=datetime.fromtimestamp(timestamp, UTC).date(),
            condition_code=condition_code,
            short_desc=description if isinstance(description, str) else None,
            max_temp=float(max_temp),
            min_temp=float(min_temp),
        )

"""Typed models for the phone-side fetch-and-publish pipeline."""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel

from ..protocol import WeatherSnapshot

PublishStatus = Literal[
    "published",
    "no_data",
    "store_error",
    "link_failed",
    "publish_failed",
]


class ForecastRow(BaseModel):
    """One day of forecast for a location, as held by the weather store."""

    location: str
    forecast_date: date
    condition_code: int
    short_desc: str | None = None
    max_temp: float
    min_temp: float


class PublishOutcome(BaseModel):
    """Result of one fetch-and-publish job run."""

    status: PublishStatus
    reason: str
    snapshot: WeatherSnapshot | None = None
    error: str | None = None

"""Tests for the phone-side fetch-and-publish job and its serial queue."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from datetime import UTC, date, datetime, timedelta

from wear_weather_sync.exceptions import SnapshotStoreError
from wear_weather_sync.link.loopback import LoopbackHub
from wear_weather_sync.link.session import LinkSession
from wear_weather_sync.phone.models import ForecastRow, PublishOutcome
from wear_weather_sync.phone.publisher import FetchAndPublishJob, PublishQueue
from wear_weather_sync.phone.store import InMemorySnapshotStore, SnapshotStore
from wear_weather_sync.timeutil import epoch_ms

START = datetime(2026, 2, 24, 12, 0, tzinfo=UTC)
LOGGER = logging.getLogger("test-publisher")


class _TickingClock:
    """Advance a few milliseconds on every read."""

    def __init__(self, start: datetime) -> None:
        self._now = start

    def now(self) -> datetime:
        value = self._now
        self._now += timedelta(milliseconds=5)
        return value


class _FailingStore(SnapshotStore):
    def query_latest(self, location: str, not_before: datetime) -> ForecastRow | None:
        raise SnapshotStoreError("OpenWeatherMap daily forecast failed with status 401: appid=abc123")


class _SlowStore(SnapshotStore):
    """Record how many queries overlap."""

    def __init__(self, row: ForecastRow) -> None:
        self.row = row
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def query_latest(self, location: str, not_before: datetime) -> ForecastRow | None:
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        time.sleep(0.02)
        with self._lock:
            self.active -= 1
        return self.row


def _row(location: str = "Paris", weather_id: int = 800, **overrides: object) -> ForecastRow:
    payload: dict[str, object] = {
        "location": location,
        "forecast_date": date(2026, 2, 24),
        "condition_code": weather_id,
        "short_desc": "Clear",
        "max_temp": 25.0,
        "min_temp": 15.0,
    }
    payload.update(overrides)
    return ForecastRow.model_validate(payload)


def _job(
    hub: LoopbackHub,
    store: SnapshotStore,
    *,
    location: str = "Paris",
    clock: _TickingClock | None = None,
) -> FetchAndPublishJob:
    transport = hub.create_transport("phone")
    hub.create_transport("watch")
    session = LinkSession(transport, LOGGER, name="phone")
    return FetchAndPublishJob(
        store=store,
        session=session,
        location_provider=lambda: location,
        logger=LOGGER,
        now_provider=(clock or _TickingClock(START)).now,
    )


def test_single_row_publishes_one_normalized_record() -> None:
    hub = LoopbackHub(LOGGER)

    async def scenario() -> PublishOutcome:
        job = _job(hub, InMemorySnapshotStore([_row()]))
        return await job.run()

    outcome = asyncio.run(scenario())
    assert outcome.status == "published"
    assert len(hub.put_log) == 1
    source, path, data, urgent = hub.put_log[0]
    assert source == "phone"
    assert path == "/weather"
    assert urgent is True
    assert data["weather_id"] == 800
    assert data["max_temp"] == 25.0
    assert data["min_temp"] == 15.0
    assert data["location"] == "PARIS"
    assert data["time"] > epoch_ms(START)
    assert hub.data_item("/weather") == data


def test_empty_store_publishes_nothing_and_never_opens_link() -> None:
    hub = LoopbackHub(LOGGER)

    async def scenario() -> tuple[PublishOutcome, str]:
        job = _job(hub, InMemorySnapshotStore())
        outcome = await job.run()
        return outcome, job.session.state

    outcome, state = asyncio.run(scenario())
    assert outcome.status == "no_data"
    assert outcome.error is None
    assert hub.put_log == []
    assert state == "disconnected"


def test_rows_before_today_are_not_used() -> None:
    hub = LoopbackHub(LOGGER)
    store = InMemorySnapshotStore(
        [
            _row(forecast_date=date(2026, 2, 23), condition_code=500),
            _row(forecast_date=date(2026, 2, 26), condition_code=601),
            _row(forecast_date=date(2026, 2, 25), condition_code=211),
        ]
    )

    async def scenario() -> PublishOutcome:
        return await _job(hub, store).run()

    outcome = asyncio.run(scenario())
    assert outcome.snapshot is not None
    assert outcome.snapshot.condition_code == 211


def test_link_failure_ends_job_without_publish() -> None:
    hub = LoopbackHub(LOGGER)

    async def scenario() -> tuple[PublishOutcome, str]:
        job = _job(hub, InMemorySnapshotStore([_row()]))
        hub.fail_next_connect("phone", "api_unavailable")
        outcome = await job.run()
        return outcome, job.session.state

    outcome, state = asyncio.run(scenario())
    assert outcome.status == "link_failed"
    assert hub.put_log == []
    assert state == "failed"


def test_store_error_is_reported_and_redacted() -> None:
    hub = LoopbackHub(LOGGER)

    async def scenario() -> PublishOutcome:
        return await _job(hub, _FailingStore()).run()

    outcome = asyncio.run(scenario())
    assert outcome.status == "store_error"
    assert outcome.error is not None
    assert "abc123" not in outcome.error
    assert hub.put_log == []


def test_back_to_back_publishes_get_distinct_timestamps() -> None:
    hub = LoopbackHub(LOGGER)

    class _FrozenClock:
        def now(self) -> datetime:
            return START

    async def scenario() -> list[int]:
        job = _job(hub, InMemorySnapshotStore([_row()]), clock=_FrozenClock())  # type: ignore[arg-type]
        first = await job.run()
        second = await job.run()
        assert first.snapshot is not None and second.snapshot is not None
        return [first.snapshot.disambiguating_timestamp, second.snapshot.disambiguating_timestamp]

    stamps = asyncio.run(scenario())
    assert stamps[0] == epoch_ms(START)
    assert stamps[1] == stamps[0] + 1


def test_queue_runs_jobs_serially() -> None:
    hub = LoopbackHub(LOGGER)
    store = _SlowStore(_row())

    async def scenario() -> PublishQueue:
        queue = PublishQueue(_job(hub, store), LOGGER)
        queue.start()
        for index in range(3):
            queue.submit(reason=f"request-{index}")
        await queue.drain()
        await queue.stop()
        return queue

    queue = asyncio.run(scenario())
    assert store.max_active == 1
    assert queue.completed_runs == 3
    assert queue.last_outcome is not None
    assert queue.last_outcome.reason == "request-2"
    assert len(hub.put_log) == 3


def test_submit_before_start_raises() -> None:
    hub = LoopbackHub(LOGGER)
    queue = PublishQueue(_job(hub, InMemorySnapshotStore()), LOGGER)
    try:
        queue.submit()
    except RuntimeError as exc:
        assert "start()" in str(exc)
    else:
        raise AssertionError("submit() before start() should fail")

"""Fetch-and-publish job and its serial work queue."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import UTC, datetime

from ..exceptions import JournalError, SnapshotStoreError
from ..journal import JournalWriter
from ..link.session import LinkSession
from ..protocol import WEATHER_PATH, WeatherSnapshot, encode_snapshot, normalize_location
from ..redaction import sanitize_text
from ..timeutil import as_utc, epoch_ms
from .models import PublishOutcome
from .store import SnapshotStore


class FetchAndPublishJob:
    """Read today's forecast from the store and publish it as the ``/weather`` record."""

    def __init__(
        self,
        *,
        store: SnapshotStore,
        session: LinkSession,
        location_provider: Callable[[], str],
        logger: logging.Logger,
        journal: JournalWriter | None = None,
        now_provider: Callable[[], datetime] | None = None,
        connect_timeout_seconds: float | None = None,
    ) -> None:
        self.store = store
        self.session = session
        self.logger = logger
        self.journal = journal
        self._location_provider = location_provider
        self._now_provider = now_provider or (lambda: datetime.now(UTC))
        self._connect_timeout = connect_timeout_seconds
        self._last_timestamp_ms = 0

    async def run(self, reason: str = "request") -> PublishOutcome:
        """Run one fetch-and-publish cycle. Failures are reported, never raised."""
        started = self._now()
        location = self._location_provider()

        try:
            row = await asyncio.to_thread(self.store.query_latest, location, started)
        except SnapshotStoreError as exc:
            safe_msg = sanitize_text(str(exc))
            self.logger.error("Weather store query failed for %s: %s", location, safe_msg)
            return self._finish(
                PublishOutcome(status="store_error", reason=reason, error=safe_msg)
            )

        if row is None:
            # No forecast for today onward: nothing is published and nothing is surfaced.
            self.logger.info("No forecast rows for %s; skipping publish", location)
            return self._finish(PublishOutcome(status="no_data", reason=reason))

        snapshot = WeatherSnapshot(
            condition_code=row.condition_code,
            max_temp=row.max_temp,
            min_temp=row.min_temp,
            location=normalize_location(location),
            disambiguating_timestamp=self._next_timestamp_ms(),
        )

        self.session.open()
        if not await self.session.wait_connected(timeout=self._connect_timeout):
            self.logger.warning(
                "Link %s unavailable (state=%s); snapshot not published",
                self.session.name,
                self.session.state,
            )
            return self._finish(
                PublishOutcome(
                    status="link_failed",
                    reason=reason,
                    snapshot=snapshot,
                    error=f"link state {self.session.state}",
                )
            )

        result = await self.session.put_data_item(
            WEATHER_PATH,
            encode_snapshot(snapshot),
            urgent=True,
        )
        if not result.ok:
            self.logger.warning("Failed to publish weather snapshot: %s", result.error)
            return self._finish(
                PublishOutcome(
                    status="publish_failed",
                    reason=reason,
                    snapshot=snapshot,
                    error=result.error,
                )
            )

        self.logger.info(
            "Published weather snapshot for %s (weather_id=%d)",
            snapshot.location,
            snapshot.condition_code,
            extra={"path": WEATHER_PATH},
        )
        return self._finish(PublishOutcome(status="published", reason=reason, snapshot=snapshot))

    def _next_timestamp_ms(self) -> int:
        # Strictly increasing so back-to-back publishes never collapse.
        value = max(epoch_ms(self._now()), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = value
        return value

    def _now(self) -> datetime:
        return as_utc(self._now_provider())

    def _finish(self, outcome: PublishOutcome) -> PublishOutcome:
        if self.journal is not None:
            try:
                self.journal.write_event(
                    event_type=f"publish_{outcome.status}",
                    payload=outcome.model_dump(mode="json"),
                )
            except JournalError as exc:
                self.logger.error(
                    "Failed to write publish journal event: %s", sanitize_text(str(exc))
                )
        return outcome


class PublishQueue:
    """Run fetch-and-publish jobs one at a time, in arrival order.

    Requests arriving while a job is in flight wait behind it instead of
    interleaving on the shared session.
    """

    def __init__(self, job: FetchAndPublishJob, logger: logging.Logger) -> None:
        self.job = job
        self.logger = logger
        self.completed_runs = 0
        self.last_outcome: PublishOutcome | None = None
        self._queue: asyncio.Queue[str] | None = None
        self._worker: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    def start(self) -> None:
        if self.is_running:
            return
        self._queue = asyncio.Queue()
        self._worker = asyncio.get_running_loop().create_task(self._run_worker())

    def submit(self, reason: str = "request") -> None:
        """Queue one job run without waiting for it."""
        if self._queue is None or not self.is_running:
            raise RuntimeError("PublishQueue.submit() called before start().")
        self._queue.put_nowait(reason)
        self.logger.debug("Queued fetch-and-publish (%s); pending=%d", reason, self.pending)

    async def drain(self) -> None:
        """Wait until every queued job has finished."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self) -> None:
        worker, self._worker = self._worker, None
        if worker is None:
            return
        worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await worker

    async def _run_worker(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            reason = await queue.get()
            try:
                self.last_outcome = await self.job.run(reason)
                self.completed_runs += 1
            except Exception:
                self.logger.exception("Fetch-and-publish job crashed (%s)", reason)
            finally:
                queue.task_done()

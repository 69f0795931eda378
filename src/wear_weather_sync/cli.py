"""Simulator CLI: run a phone and a watch over a loopback link and show the face."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import uuid
from datetime import UTC, datetime
from typing import Any

from rich.console import Console

from .config import Settings, load_settings
from .exceptions import ConfigError, JournalError, SnapshotStoreError
from .journal import JournalWriter
from .link.loopback import LoopbackHub
from .log_setup import setup_logger
from .phone.models import ForecastRow
from .phone.owm import OpenWeatherMapStore
from .phone.service import PhoneWeatherService
from .phone.store import InMemorySnapshotStore, SnapshotStore
from .watch.face import WatchFaceEngine


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse simulator arguments."""
    parser = argparse.ArgumentParser(
        description="Simulate phone-to-watch weather sync over a loopback link."
    )
    parser.add_argument(
        "--location",
        type=str,
        default=None,
        help="Preferred location (defaults to PREFERRED_LOCATION).",
    )
    parser.add_argument(
        "--store",
        choices=["memory", "openweathermap"],
        default=None,
        help="Forecast store backend (defaults to SNAPSHOT_STORE).",
    )
    parser.add_argument("--weather-id", type=int, default=800, help="Condition code to seed.")
    parser.add_argument("--max-temp", type=float, default=25.0, help="High temperature to seed.")
    parser.add_argument("--min-temp", type=float, default=15.0, help="Low temperature to seed.")
    parser.add_argument(
        "--empty-store",
        action="store_true",
        help="Seed no rows; the phone will publish nothing.",
    )
    parser.add_argument(
        "--ambient",
        action="store_true",
        help="Switch the watch into ambient mode after the first update.",
    )
    parser.add_argument(
        "--wait-seconds",
        type=float,
        default=5.0,
        help="How long to wait for the first snapshot.",
    )
    parser.add_argument(
        "--duration-seconds",
        type=float,
        default=0.0,
        help="Keep the face running this long after the first update.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log at DEBUG level regardless of LOG_LEVEL.",
    )
    return parser.parse_args(argv)


def _validate_args(args: argparse.Namespace) -> None:
    if args.wait_seconds <= 0:
        raise ConfigError("--wait-seconds must be > 0.")
    if args.duration_seconds < 0:
        raise ConfigError("--duration-seconds must be >= 0.")
    if args.location is not None and not args.location.strip():
        raise ConfigError("--location must not be empty.")


def _build_store(
    args: argparse.Namespace,
    settings: Settings,
    location: str,
    logger: logging.Logger,
) -> SnapshotStore:
    backend = args.store or settings.snapshot_store
    if backend == "openweathermap":
        return OpenWeatherMapStore(settings=settings, logger=logger)

    store = InMemorySnapshotStore()
    if not args.empty_store:
        store.add_row(
            ForecastRow(
                location=location,
                forecast_date=datetime.now(UTC).date(),
                condition_code=args.weather_id,
                max_temp=args.max_temp,
                min_temp=args.min_temp,
            )
        )
    return store


async def _wait_for_snapshot(engine: WatchFaceEngine, timeout: float) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while engine.holder.current is None:
        if loop.time() >= deadline:
            return False
        await asyncio.sleep(0.05)
    return True


async def run_simulation(
    args: argparse.Namespace,
    settings: Settings,
    logger: logging.Logger,
    console: Console,
    journal: JournalWriter | None = None,
) -> int:
    """Run one phone/watch session and return the exit code."""
    location = args.location or settings.preferred_location
    hub = LoopbackHub(logger)
    phone_transport = hub.create_transport("phone", "Phone")
    watch_transport = hub.create_transport("watch", "Watch")
    store = _build_store(args, settings, location, logger)

    phone = PhoneWeatherService(
        transport=phone_transport,
        store=store,
        location_provider=lambda: location,
        logger=logger,
        journal=journal,
        connect_timeout_seconds=settings.publish_connect_timeout_seconds,
    )
    engine = WatchFaceEngine(
        transport=watch_transport,
        logger=logger,
        frame_sink=console.print,
        update_rate_ms=settings.interactive_update_rate_ms,
        use_24_hour=settings.use_24_hour_time,
    )

    exit_code = 0
    try:
        phone.start()
        engine.on_visibility_changed(True)
        received = await _wait_for_snapshot(engine, args.wait_seconds)
        await phone.queue.drain()
        last_outcome = phone.queue.last_outcome

        if not received and last_outcome is not None and last_outcome.status == "store_error":
            console.print("No weather snapshot received: the forecast store failed.")
            console.print(f"- {last_outcome.error}")
            engine.invalidate()
            exit_code = 5
        elif not received:
            console.print("No weather snapshot received from the phone.")
            console.print("Diagnostic hints:")
            console.print("- The store may have no forecast for today onward (silent drop).")
            console.print("- Check PREFERRED_LOCATION / --location against the store contents.")
            engine.invalidate()
            exit_code = 4
        else:
            snapshot = engine.holder.current
            assert snapshot is not None
            _write_event(
                journal,
                logger,
                "snapshot_received",
                {"snapshot": snapshot.model_dump(mode="json"), "location": location},
            )

        if args.ambient:
            engine.on_ambient_mode_changed(True)
        if args.duration_seconds > 0:
            await asyncio.sleep(args.duration_seconds)
    finally:
        engine.shutdown()
        await phone.stop()
        store.close()

    _write_event(
        journal,
        logger,
        "session_summary",
        {
            "redraws": engine.redraw_count,
            "timer_fires": engine.scheduler.fire_count,
            "publishes": len(hub.put_log),
            "requests": phone.listener.requests_seen,
            "last_outcome": phone.queue.last_outcome.model_dump(mode="json")
            if phone.queue.last_outcome
            else None,
        },
    )
    return exit_code


def _write_event(
    journal: JournalWriter | None,
    logger: logging.Logger,
    event_type: str,
    payload: dict[str, Any],
) -> None:
    if journal is None:
        return
    try:
        journal.write_event(event_type=event_type, payload=payload)
    except JournalError as exc:
        logger.error("Failed to write %s journal event: %s", event_type, exc)


def main(argv: list[str] | None = None) -> int:
    """Run the phone/watch simulator."""
    args = parse_args(argv)
    logger = setup_logger()
    console = Console()
    session_id = uuid.uuid4().hex[:12]
    journal: JournalWriter | None = None

    try:
        _validate_args(args)
        settings = load_settings()
        setup_logger(level="DEBUG" if args.verbose else settings.log_level)
    except ConfigError as exc:
        logger.error("Configuration failure: %s", exc)
        return 2

    try:
        journal = JournalWriter(journal_dir=settings.journal_dir, session_id=session_id)
        journal.write_event(
            event_type="startup",
            payload=settings.safe_summary(),
            metadata={"session_id": session_id},
        )
    except JournalError as exc:
        logger.error("Failed to initialize journal: %s", exc)
        return 3

    exit_code = 0
    try:
        exit_code = asyncio.run(run_simulation(args, settings, logger, console, journal))
    except SnapshotStoreError as exc:
        exit_code = 5
        logger.error("Weather store unavailable: %s", exc)
    except Exception as exc:  # pragma: no cover - last-resort guard for the CLI
        exit_code = 99
        logger.exception("Unexpected failure: %s", exc)
    finally:
        _write_event(journal, logger, "shutdown", {"exit_code": exit_code})

    return exit_code


if __name__ == "__main__":
    sys.exit(main())

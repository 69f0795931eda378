"""Tests for the phone-side weather request listener."""

from __future__ import annotations

import logging

from wear_weather_sync.link.models import MessageEvent
from wear_weather_sync.phone.listener import RequestListener


class _RecordingQueue:
    def __init__(self) -> None:
        self.reasons: list[str] = []

    def submit(self, reason: str = "request") -> None:
        self.reasons.append(reason)


def test_weather_request_queues_one_job() -> None:
    queue = _RecordingQueue()
    listener = RequestListener(queue, logging.getLogger("test-listener"))  # type: ignore[arg-type]

    listener.on_message_received(MessageEvent(source_node_id="watch", path="/weather-req"))

    assert queue.reasons == ["request:watch"]
    assert listener.requests_seen == 1


def test_other_paths_are_ignored() -> None:
    queue = _RecordingQueue()
    listener = RequestListener(queue, logging.getLogger("test-listener"))  # type: ignore[arg-type]

    listener.on_message_received(MessageEvent(source_node_id="watch", path="/weather"))
    listener.on_message_received(MessageEvent(source_node_id="watch", path="/weather-req/extra"))

    assert queue.reasons == []
    assert listener.requests_seen == 0


def test_each_request_queues_its_own_job() -> None:
    queue = _RecordingQueue()
    listener = RequestListener(queue, logging.getLogger("test-listener"))  # type: ignore[arg-type]

    for source in ("watch", "watch", "tablet"):
        listener.on_message_received(MessageEvent(source_node_id=source, path="/weather-req"))

    assert queue.reasons == ["request:watch", "request:watch", "request:tablet"]

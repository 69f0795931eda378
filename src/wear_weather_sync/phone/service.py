"""Phone process wiring: session, store, publish queue and request listener."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from ..journal import JournalWriter
from ..link.session import LinkSession
from ..link.transport import LinkTransport
from .listener import RequestListener
from .publisher import FetchAndPublishJob, PublishQueue
from .store import SnapshotStore


class PhoneWeatherService:
    """Serve watch weather requests from the phone's forecast store."""

    def __init__(
        self,
        *,
        transport: LinkTransport,
        store: SnapshotStore,
        location_provider: Callable[[], str],
        logger: logging.Logger,
        journal: JournalWriter | None = None,
        now_provider: Callable[[], datetime] | None = None,
        connect_timeout_seconds: float | None = None,
    ) -> None:
        self.transport = transport
        self.store = store
        self.logger = logger
        self.session = LinkSession(transport, logger, name="phone")
        self.job = FetchAndPublishJob(
            store=store,
            session=self.session,
            location_provider=location_provider,
            logger=logger,
            journal=journal,
            now_provider=now_provider,
            connect_timeout_seconds=connect_timeout_seconds,
        )
        self.queue = PublishQueue(self.job, logger)
        self.listener = RequestListener(self.queue, logger)

    def start(self) -> None:
        """Start the publish worker and begin listening for requests."""
        self.queue.start()
        self.listener.attach(self.transport)
        self.logger.info("Phone weather service started on %s", self.transport.local_node_id)

    async def stop(self) -> None:
        """Stop listening, finish the worker and close the link."""
        self.listener.detach()
        await self.queue.stop()
        self.session.close()
        self.logger.info("Phone weather service stopped")

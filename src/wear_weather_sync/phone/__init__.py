"""Phone side: forecast stores and the fetch-and-publish pipeline."""

from .listener import RequestListener
from .models import ForecastRow, PublishOutcome
from .owm import OpenWeatherMapStore
from .publisher import FetchAndPublishJob, PublishQueue
from .service import PhoneWeatherService
from .store import InMemorySnapshotStore, SnapshotStore

__all__ = [
    "FetchAndPublishJob",
    "ForecastRow",
    "InMemorySnapshotStore",
    "OpenWeatherMapStore",
    "PhoneWeatherService",
    "PublishOutcome",
    "PublishQueue",
    "RequestListener",
    "SnapshotStore",
]

"""Services for SunSigns Fetcher: events, request queue, scheduler, context."""

from .events import EventBus
from .request_queue import RequestQueue
from .scheduler import Scheduler
from .context import FetchContext

__all__ = [
    "EventBus",
    "RequestQueue",
    "Scheduler",
    "FetchContext",
]

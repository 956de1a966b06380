from .event_sink import EventSinkPort
from .fetcher import FetcherPort
from .stream_validator import StreamValidatorPort

__all__ = [
    "EventSinkPort",
    "FetcherPort",
    "StreamValidatorPort",
]

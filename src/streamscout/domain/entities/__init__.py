from .context import (
    EmbedScrapeContext,
    MediaScrapeContext,
    RunContext,
    ScrapeContext,
    ValidationContext,
)
from .events import (
    DiscoveredEmbed,
    DiscoverEmbedsEvent,
    InitEvent,
    StartEvent,
    UpdateEvent,
)
from .features import FeatureSet, Flag, get_target_features, is_compatible
from .fetch import FetchResponse
from .media import EpisodeRef, MediaRequest, MediaType, SeasonRef
from .provider import (
    Embed,
    ProviderMeta,
    ProviderSelection,
    Source,
    make_embed,
    make_source,
)
from .run import ProxyConfig, RunOutcome, RunOverrides
from .stream import (
    Caption,
    EmbedOutput,
    EmbedReference,
    FileStream,
    HlsStream,
    SourceOutput,
    Stream,
    StreamFile,
    is_valid_stream,
)

__all__ = [
    "Caption",
    "DiscoverEmbedsEvent",
    "DiscoveredEmbed",
    "Embed",
    "EmbedOutput",
    "EmbedReference",
    "EmbedScrapeContext",
    "EpisodeRef",
    "FeatureSet",
    "FetchResponse",
    "FileStream",
    "Flag",
    "HlsStream",
    "InitEvent",
    "MediaRequest",
    "MediaScrapeContext",
    "MediaType",
    "ProviderMeta",
    "ProviderSelection",
    "ProxyConfig",
    "RunContext",
    "RunOutcome",
    "RunOverrides",
    "ScrapeContext",
    "SeasonRef",
    "Source",
    "SourceOutput",
    "StartEvent",
    "Stream",
    "StreamFile",
    "UpdateEvent",
    "ValidationContext",
    "get_target_features",
    "is_compatible",
    "is_valid_stream",
    "make_embed",
    "make_source",
]

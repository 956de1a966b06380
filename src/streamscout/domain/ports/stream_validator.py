"""Port for probing candidate streams for playability."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from streamscout.domain.entities.stream import Stream

if TYPE_CHECKING:
    from streamscout.domain.entities.context import ValidationContext


@runtime_checkable
class StreamValidatorPort(Protocol):
    """Confirms a stream is actually fetchable before it is handed out."""

    async def validate(
        self, stream: Stream, context: ValidationContext
    ) -> Stream | None:
        """Probe *stream*.

        Returns the stream (possibly narrowed, e.g. dead qualities
        dropped) when playable, ``None`` otherwise.  Must not raise for
        network failures.
        """
        ...

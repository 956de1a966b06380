"""HTTP fetch results handed back to providers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

HttpMethod = Literal["GET", "POST", "HEAD"]


@dataclass(frozen=True)
class FetchResponse:
    """Result of a fetcher call.

    ``body`` is decoded JSON for JSON responses, text otherwise.
    """

    status: int
    body: Any
    final_url: str
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

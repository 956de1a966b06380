"""Stream proxy planning."""

from __future__ import annotations

from .planner import ProxyPlanner, decode_payload_value, encode_payload

__all__ = ["ProxyPlanner", "decode_payload_value", "encode_payload"]

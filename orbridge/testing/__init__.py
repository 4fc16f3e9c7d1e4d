"""Testing utilities for in-process upstream simulations."""

from .fake_upstream import FakeUpstream, UpstreamResponse, encode_sse_event

__all__ = [
    "FakeUpstream",
    "UpstreamResponse",
    "encode_sse_event",
]

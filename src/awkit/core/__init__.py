"""Core domain types: tracked text ranges and the session error hierarchy."""

from .errors import AwkitError, InvalidRangeError
from .ranges import GrowPolicy, RangeTracker, TextRange, TrackedRange

__all__ = [
    "AwkitError",
    "InvalidRangeError",
    "GrowPolicy",
    "RangeTracker",
    "TextRange",
    "TrackedRange",
]

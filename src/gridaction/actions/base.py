"""
Result type shared by the payload parsers.
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar


T = TypeVar("T")


@dataclass(frozen=True)
class Parsed(Generic[T]):
    """A parsed payload.

    Payload parsers never raise on malformed input; they return the value
    the action should proceed with and flag when that value is a fallback.

    Attributes:
        value: The typed payload
        fallback: True when *value* is a documented fallback, not the input
        reason: Why the fallback was taken
    """
    value: T
    fallback: bool = False
    reason: Optional[str] = None

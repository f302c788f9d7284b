"""
Action records.

An ActionRecord is one atomic intent submitted by a caller ("write these
values", "chart this range", ...). It is the only schema that crosses the
boundary of the engine; on the wire it looks like::

    {"type": "sort", "target": "A1:D20", "data": "{\\"column\\": 2}"}

``data`` is frequently a JSON-encoded payload whose schema depends on
``type``; it is kept opaque here and parsed per kind by
``gridaction.actions.payloads``.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from gridaction.exceptions import InvalidPayloadError


# Wire keys with a dedicated field on ActionRecord; everything else lands in options.
_FIELD_KEYS = ("type", "target", "source", "data")


@dataclass(frozen=True)
class ActionRecord:
    """A single action submitted to the dispatcher.

    Attributes:
        kind: Action type (wire key ``type``), e.g. "formula" or "chart"
        target: Target address in A1 notation (optionally sheet-qualified)
        source: Source address for actions that read from a second range
        payload: Wire ``data``; a string (often JSON) or a structured value
        options: Remaining wire keys such as ``chartType``, ``title`` and
            ``position`` (read-only)
    """
    kind: str
    target: Optional[str] = None
    source: Optional[str] = None
    payload: Any = None
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.kind or not isinstance(self.kind, str):
            raise InvalidPayloadError("Action type must be a non-empty string")
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    def option(self, key: str, default: Any = None) -> Any:
        value = self.options.get(key)
        return default if value is None or value == "" else value

    def describe(self) -> str:
        return f"{self.kind} on {self.target or 'N/A'}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire representation."""
        data: Dict[str, Any] = {"type": self.kind}
        if self.target is not None:
            data["target"] = self.target
        if self.source is not None:
            data["source"] = self.source
        data.update(self.options)
        if self.payload is not None:
            data["data"] = self.payload
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ActionRecord":
        """Create from the wire representation.

        Raises:
            InvalidPayloadError: If data is not a mapping or has no ``type``
        """
        if not isinstance(data, Mapping):
            raise InvalidPayloadError(f"Action must be a mapping, got {type(data).__name__}")
        kind = data.get("type")
        if not kind or not isinstance(kind, str):
            raise InvalidPayloadError(f"Action has no type: {dict(data)!r}")
        return cls(
            kind=kind,
            target=data.get("target") or None,
            source=data.get("source") or None,
            payload=data.get("data"),
            options={k: v for k, v in data.items() if k not in _FIELD_KEYS},
        )

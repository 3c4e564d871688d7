"""
Cross-session Handoff
======================

An opaque record for passing a UR (or a batch of fragments) from one
session to another, for example from the converter to a scanner view.
The core only serializes it; storage and transport belong to the caller.

JSON form:
    {"data": {"source": "...", "type": "seed"}, "timestamp": 1700000000.0, "ttl": 3600}
"""

import json
import time
from dataclasses import dataclass, field
from typing import Optional

from urcodec.ur_types import (
    DEFAULT_HANDOFF_TTL, HandoffExpiredError, InvalidStructuredValueError,
    validate_type_tag,
)


@dataclass(frozen=True)
class Handoff:
    source: str
    declared_type: Optional[str] = None
    created_at: float = field(default_factory=time.time)
    ttl: float = DEFAULT_HANDOFF_TTL

    def __post_init__(self):
        if self.declared_type:
            validate_type_tag(self.declared_type)

    @property
    def expires_at(self) -> float:
        return self.created_at + self.ttl

    def is_expired(self, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return now > self.expires_at

    def to_json(self) -> str:
        return json.dumps({
            "data": {"source": self.source, "type": self.declared_type},
            "timestamp": self.created_at,
            "ttl": self.ttl,
        })

    @classmethod
    def from_json(cls, text: str, now: Optional[float] = None) -> "Handoff":
        try:
            record = json.loads(text)
            data = record["data"]
            handoff = cls(source=data["source"], declared_type=data.get("type"),
                          created_at=float(record["timestamp"]),
                          ttl=float(record.get("ttl", DEFAULT_HANDOFF_TTL)))
        except (ValueError, KeyError, TypeError) as e:
            raise InvalidStructuredValueError(f"Invalid handoff record: {e}")
        now = time.time() if now is None else now
        if handoff.is_expired(now):
            raise HandoffExpiredError(
                f"Handoff expired {now - handoff.expires_at:.0f}s ago")
        return handoff

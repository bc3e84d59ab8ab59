"""ADAGE envelope parsing and construction.

The analytics backend wraps every response as::

    {
        "data_source": ..., "dataset_type": ..., "dataset_id": ...,
        "time_object": {"timestamp": ..., "timezone": "UTC"},
        "events": [
            {"time_object": {...}, "event_type": ..., "event_id": ...,
             "attributes": {...}},
        ],
    }

Payloads are untrusted. Parsing never indexes into a structure it has not
checked, and builders produce the same structure for real, fallback and mock
data so consumers never branch on where a payload came from.
"""
from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from src.utils.errors import ShapeValidationError


# Fractional seconds of any length; fromisoformat before 3.11 accepts only 3 or 6 digits
_FRACTION = re.compile(r"(T\d{2}:\d{2}:\d{2})\.(\d+)")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp or date; naive values are taken as UTC."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", text)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class AdageEvent:
    """One event of an ADAGE envelope."""

    attributes: Dict[str, Any]
    time_object: Dict[str, Any] = field(default_factory=dict)
    event_type: str = ""
    event_id: str = ""

    @property
    def timestamp(self) -> Optional[datetime]:
        return parse_timestamp(self.time_object.get("timestamp"))

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["AdageEvent"]:
        """Build an event from untrusted input, or None if it is not an object.

        Some backend revisions send ``attribute`` instead of ``attributes``.
        """
        if not isinstance(raw, dict):
            return None
        attributes = raw.get("attributes")
        if not isinstance(attributes, dict):
            attributes = raw.get("attribute")
        time_object = raw.get("time_object")
        return cls(
            attributes=dict(attributes) if isinstance(attributes, dict) else {},
            time_object=dict(time_object) if isinstance(time_object, dict) else {},
            event_type=str(raw.get("event_type") or ""),
            event_id=str(raw.get("event_id") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time_object": self.time_object,
            "event_type": self.event_type,
            "event_id": self.event_id,
            "attributes": self.attributes,
        }


@dataclass
class AdageEnvelope:
    """Parsed ADAGE envelope."""

    events: List[AdageEvent]
    data_source: str = ""
    dataset_type: str = ""
    dataset_id: str = ""
    time_object: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def parse(cls, payload: Any, resource: str = "", pair: str = "") -> "AdageEnvelope":
        """Validate the top-level shape and parse every event.

        Raises:
            ShapeValidationError: payload is not an object or ``events`` is
                missing, not a list, or empty
        """
        if not isinstance(payload, dict):
            raise ShapeValidationError(
                f"Unexpected {resource or 'analytics'} response for {pair or 'request'}: expected a JSON object",
                resource=resource, pair=pair,
            )
        raw_events = payload.get("events")
        if not isinstance(raw_events, list) or not raw_events:
            raise ShapeValidationError(
                f"No {resource or 'analytics'} data returned for {pair or 'request'}",
                resource=resource, pair=pair,
            )
        events = [e for e in (AdageEvent.from_raw(r) for r in raw_events) if e is not None]
        time_object = payload.get("time_object")
        return cls(
            events=events,
            data_source=str(payload.get("data_source") or ""),
            dataset_type=str(payload.get("dataset_type") or ""),
            dataset_id=str(payload.get("dataset_id") or ""),
            time_object=dict(time_object) if isinstance(time_object, dict) else {},
        )

    def first_attributes(self) -> Dict[str, Any]:
        return self.events[0].attributes if self.events else {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data_source": self.data_source,
            "dataset_type": self.dataset_type,
            "dataset_id": self.dataset_id,
            "time_object": self.time_object,
            "events": [e.to_dict() for e in self.events],
        }


def first_attributes(payload: Any) -> Optional[Dict[str, Any]]:
    """Return ``events[0].attributes`` if present and an object, else None."""
    if not isinstance(payload, dict):
        return None
    events = payload.get("events")
    if not isinstance(events, list) or not events:
        return None
    event = AdageEvent.from_raw(events[0])
    if event is None or not event.attributes:
        return None
    return event.attributes


def replace_first_attributes(payload: Dict[str, Any], attributes: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``payload`` with ``events[0].attributes`` swapped out.

    The caller must already have checked that ``events[0]`` exists. A legacy
    ``attribute`` key on that event is replaced as well.
    """
    body = dict(payload)
    events = list(payload["events"])
    first = {k: v for k, v in events[0].items() if k != "attribute"}
    first["attributes"] = attributes
    events[0] = first
    body["events"] = events
    return body


def make_event(
    attributes: Dict[str, Any],
    event_type: str,
    timestamp: Optional[str] = None,
    event_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Build one ADAGE event dict."""
    return {
        "time_object": {
            "timestamp": timestamp or utc_now_iso(),
            "duration": 0,
            "duration_unit": "second",
            "timezone": "UTC",
        },
        "event_type": event_type,
        "event_id": event_id or f"{event_type}-{uuid.uuid4().hex[:12]}",
        "attributes": attributes,
    }


def build_envelope(
    dataset_type: str,
    events: Iterable[Dict[str, Any]],
    data_source: str = "CEWS Analytics",
    dataset_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Build a full ADAGE envelope dict around already-built events."""
    return {
        "data_source": data_source,
        "dataset_type": dataset_type,
        "dataset_id": dataset_id or f"{dataset_type}-{uuid.uuid4().hex[:12]}",
        "time_object": {"timestamp": utc_now_iso(), "timezone": "UTC"},
        "events": list(events),
    }


def single_event_envelope(
    dataset_type: str,
    attributes: Dict[str, Any],
    data_source: str = "CEWS Analytics",
) -> Dict[str, Any]:
    """Envelope carrying exactly one event, the shape every analytics resource uses."""
    return build_envelope(
        dataset_type,
        [make_event(attributes, event_type=dataset_type)],
        data_source=data_source,
    )

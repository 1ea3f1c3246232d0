"""Logical payloads carried over the wrist/camera channel.

Only scalar fields cross the channel. Every payload carries a ``type`` key and
travels inside a versioned envelope (see ``contracts.versioning``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from contracts.types import ImpactReport
from contracts.versioning import make_envelope, open_envelope
from exceptions import MessageDecodeError

SYNC_REQUEST = "sync_request"
SYNC_REPLY = "sync_reply"
IMPACT_REPORT = "impact_report"


@dataclass(frozen=True)
class SyncReply:
    t1: float
    t2: float
    t3: float


def message_type(message: Dict[str, Any]) -> str:
    return str(open_envelope(message).get("type", ""))


def encode_sync_request(t1: float) -> Dict[str, Any]:
    return make_envelope({"type": SYNC_REQUEST, "t1": float(t1)})


def decode_sync_request(message: Dict[str, Any]) -> float:
    payload = _expect(message, SYNC_REQUEST)
    return _float_field(payload, "t1")


def encode_sync_reply(t1: float, t2: float, t3: float) -> Dict[str, Any]:
    return make_envelope({"type": SYNC_REPLY, "t1": float(t1), "t2": float(t2), "t3": float(t3)})


def decode_sync_reply(message: Dict[str, Any]) -> SyncReply:
    payload = _expect(message, SYNC_REPLY)
    return SyncReply(
        t1=_float_field(payload, "t1"),
        t2=_float_field(payload, "t2"),
        t3=_float_field(payload, "t3"),
    )


def encode_impact_report(report: ImpactReport) -> Dict[str, Any]:
    return make_envelope(
        {
            "type": IMPACT_REPORT,
            "refined_t_s": float(report.refined_t_s),
            "confidence": float(report.confidence),
            "roll_deg": report.roll_deg,
            "pitch_deg": report.pitch_deg,
            "swing_r": report.swing_r,
        }
    )


def decode_impact_report(message: Dict[str, Any]) -> ImpactReport:
    payload = _expect(message, IMPACT_REPORT)
    return ImpactReport(
        refined_t_s=_float_field(payload, "refined_t_s"),
        confidence=_float_field(payload, "confidence"),
        roll_deg=_optional_float(payload, "roll_deg"),
        pitch_deg=_optional_float(payload, "pitch_deg"),
        swing_r=_optional_float(payload, "swing_r"),
    )


def _expect(message: Dict[str, Any], kind: str) -> Dict[str, Any]:
    payload = open_envelope(message)
    if payload.get("type") != kind:
        raise MessageDecodeError(f"Expected {kind} payload, got {payload.get('type')!r}", payload=payload)
    return payload


def _float_field(payload: Dict[str, Any], key: str) -> float:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MessageDecodeError(f"Field {key!r} must be a number, got {value!r}", payload=payload)
    return float(value)


def _optional_float(payload: Dict[str, Any], key: str) -> Optional[float]:
    if payload.get(key) is None:
        return None
    return _float_field(payload, key)

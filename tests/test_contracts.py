import numpy as np
import pytest

from contracts import BallDetection, ClockOffset, ImpactReport, PoseSample
from contracts.messages import (
    IMPACT_REPORT,
    SYNC_REQUEST,
    decode_impact_report,
    decode_sync_reply,
    decode_sync_request,
    encode_impact_report,
    encode_sync_reply,
    encode_sync_request,
    message_type,
)
from contracts.versioning import SCHEMA_VERSION, make_envelope, open_envelope
from exceptions import MessageDecodeError


def test_impact_report_over_the_wire() -> None:
    report = ImpactReport(refined_t_s=12.5, confidence=0.8, roll_deg=4.0, pitch_deg=None, swing_r=0.91)
    message = encode_impact_report(report)

    assert message["schema_version"] == SCHEMA_VERSION
    assert message_type(message) == IMPACT_REPORT
    assert decode_impact_report(message) == report


def test_sync_messages_carry_timestamps() -> None:
    request = encode_sync_request(1.25)
    assert message_type(request) == SYNC_REQUEST
    assert decode_sync_request(request) == 1.25

    reply = decode_sync_reply(encode_sync_reply(1.25, 7.5, 7.6))
    assert (reply.t1, reply.t2, reply.t3) == (1.25, 7.5, 7.6)


def test_decode_rejects_wrong_type() -> None:
    with pytest.raises(MessageDecodeError):
        decode_sync_reply(encode_sync_request(1.0))


def test_decode_rejects_non_numeric_fields() -> None:
    message = make_envelope({"type": IMPACT_REPORT, "refined_t_s": "soon", "confidence": 1.0})
    with pytest.raises(MessageDecodeError):
        decode_impact_report(message)

    message = make_envelope({"type": IMPACT_REPORT, "refined_t_s": True, "confidence": 1.0})
    with pytest.raises(MessageDecodeError):
        decode_impact_report(message)


def test_envelope_version_checks() -> None:
    with pytest.raises(MessageDecodeError):
        open_envelope({"type": SYNC_REQUEST, "t1": 1.0})

    with pytest.raises(MessageDecodeError):
        open_envelope({"schema_version": "2.0.0", "payload": {}})

    assert open_envelope({"schema_version": "1.4.2", "payload": {"type": "x"}}) == {"type": "x"}


def test_clock_offset_convert() -> None:
    offset = ClockOffset(offset_s=5.0, round_trip_s=0.01, is_complete=True)

    assert offset.convert(105.0) == pytest.approx(100.0)


def test_ball_detection_validity() -> None:
    good = BallDetection(t_s=0.0, x=10.0, y=10.0, radius_px=10.0, confidence=0.9)
    faint = BallDetection(t_s=0.0, x=10.0, y=10.0, radius_px=10.0, confidence=0.15)
    tiny = BallDetection(t_s=0.0, x=10.0, y=10.0, radius_px=3.0, confidence=0.9)

    assert good.is_valid()
    assert not faint.is_valid()
    assert not tiny.is_valid()


def test_pose_sample_helpers() -> None:
    pose = PoseSample(
        t_s=1.0,
        joints={"left_hip": (600.0, 500.0), "right_hip": (700.0, 510.0)},
        confidences={"left_hip": 0.8, "right_hip": 0.6},
    )

    assert pose.hip_center() == (650.0, 505.0)
    assert pose.average_confidence == pytest.approx(0.7)
    assert PoseSample(t_s=0.0, joints={"left_hip": (0.0, 0.0)}).hip_center() is None
    assert np.isclose(PoseSample(t_s=0.0, joints={}).average_confidence, 0.0)

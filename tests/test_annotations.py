from datetime import datetime, timedelta, timezone

import pytest

from modelctx.annotations import Annotations, Role


def test_for_resource_sets_priority_and_timestamp():
    moment = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    annotations = Annotations.for_resource(0.25, moment)
    assert annotations.priority == 0.25
    assert annotations.timestamp == moment
    assert annotations.audience is None


@pytest.mark.parametrize("priority", [-0.1, 1.5, float("nan")])
def test_for_resource_rejects_out_of_range(priority):
    with pytest.raises(ValueError, match="must be between 0.0 and 1.0"):
        Annotations.for_resource(priority, datetime.now(timezone.utc))


@pytest.mark.parametrize("priority", [0.0, 1.0])
def test_for_resource_accepts_bounds(priority):
    annotations = Annotations.for_resource(priority, datetime.now(timezone.utc))
    assert annotations.priority == priority


def test_empty_annotations_serialize_to_empty_object():
    assert Annotations().to_dict() == {}


def test_audience_serializes_lowercase():
    assert Annotations(audience=[Role.USER]).to_dict() == {"audience": ["user"]}


def test_timestamp_serializes_in_utc_with_z_suffix():
    moment = datetime(2024, 5, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
    text = Annotations(timestamp=moment).to_dict()["timestamp"]
    assert text.endswith("Z")
    assert Annotations.from_dict({"timestamp": text}).timestamp == moment


def test_round_trip():
    original = Annotations(
        audience=[Role.USER, Role.ASSISTANT],
        priority=0.75,
        timestamp=datetime(2023, 7, 8, 9, 10, 11, 120000, tzinfo=timezone.utc),
    )
    assert Annotations.from_dict(original.to_dict()) == original


def test_from_dict_accepts_nanosecond_fraction():
    parsed = Annotations.from_dict({"timestamp": "2024-01-02T03:04:05.123456789Z"})
    assert parsed.timestamp == datetime(2024, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc)


def test_from_dict_rejects_unknown_role():
    with pytest.raises(ValueError):
        Annotations.from_dict({"audience": ["robot"]})


def test_from_dict_rejects_bad_timestamp():
    with pytest.raises(ValueError):
        Annotations.from_dict({"timestamp": "yesterday"})
"""
Tests for the delta codec.

Critical: the same row must always encode to the same text, and decoding must
never coerce or silently drop data.
"""

import pytest

from deltaengine.core import codec
from deltaengine.core.codec import canonicalize, canonical_json_bytes, canonical_json_str
from deltaengine.core.errors import MalformedDeltaPayload


def test_canonicalize_dict_key_order():
    """Dict key order must not affect canonical output."""
    d1 = {"z": 1, "a": 2, "m": 3}
    d2 = {"a": 2, "m": 3, "z": 1}

    assert canonicalize(d1) == canonicalize(d2)
    assert canonical_json_str(d1) == canonical_json_str(d2)


def test_canonical_json_compact_and_utf8():
    """No whitespace, non-ASCII text kept as UTF-8."""
    s = canonical_json_str({"name": "Zoë", "id": 1})

    assert s == '{"id":1,"name":"Zoë"}'
    assert canonical_json_bytes({"name": "Zoë", "id": 1}) == s.encode("utf-8")


def test_encode_is_canonical():
    """Column order of the input must not matter."""
    a = codec.encode({"name": "A", "age": 5, "id": 1})
    b = codec.encode({"id": 1, "age": 5, "name": "A"})

    assert a == b == '{"age":5,"id":1,"name":"A"}'


def test_decode_restores_snapshot():
    """Decoding an encoded snapshot yields the original values and kinds."""
    snapshot = {"id": 7, "name": "Ada", "age": None, "active": False}

    decoded = codec.decode(codec.encode(snapshot))

    assert decoded == snapshot
    assert decoded["active"] is False
    assert decoded["age"] is None


def test_decode_accepts_bytes():
    assert codec.decode(b'{"id":1,"name":"B"}') == {"id": 1, "name": "B"}


def test_decode_accepts_postgres_spacing():
    """Payloads as returned by JSONB text output decode the same way."""
    assert codec.decode('{"id": 2, "age": 9, "name": "B"}') == {"id": 2, "age": 9, "name": "B"}


@pytest.mark.parametrize(
    "payload",
    [
        "{not json",
        "",
        "[1, 2]",
        '"text"',
        '{"id": 1.5}',
        '{"id": {"nested": 1}}',
        '{"tags": ["a"]}',
        '{"id": NaN}',
    ],
)
def test_decode_rejects_malformed(payload):
    """Anything but a flat object of text/integer/boolean/null is malformed."""
    with pytest.raises(MalformedDeltaPayload):
        codec.decode(payload)


def test_decode_rejects_duplicate_columns():
    """A repeated column would otherwise be silently overwritten."""
    with pytest.raises(MalformedDeltaPayload, match="duplicate"):
        codec.decode('{"id": 1, "id": 2}')


def test_decode_error_carries_delta_id():
    with pytest.raises(MalformedDeltaPayload) as exc_info:
        codec.decode("{oops", delta_id=42)

    assert exc_info.value.delta_id == 42


def test_decode_rejects_invalid_utf8():
    with pytest.raises(MalformedDeltaPayload):
        codec.decode(b'{"name": "\xff"}')


def test_encode_rejects_unsupported_values():
    with pytest.raises(MalformedDeltaPayload):
        codec.encode({"id": 1, "score": 1.5})
    with pytest.raises(MalformedDeltaPayload):
        codec.encode({1: "x"})


def test_encode_many_and_decode_many():
    """Snapshot files hold a canonical JSON array of row objects."""
    text = codec.encode_many([{"name": "A", "id": 1}, {"id": 2, "name": "B"}])

    assert text == '[{"id":1,"name":"A"},{"id":2,"name":"B"}]'
    assert codec.decode_many(text) == [{"id": 1, "name": "A"}, {"id": 2, "name": "B"}]


def test_decode_many_rejects_non_array():
    with pytest.raises(MalformedDeltaPayload):
        codec.decode_many('{"id": 1}')
    with pytest.raises(MalformedDeltaPayload):
        codec.decode_many('[{"id": 1}, 5]')

"""
Delta codec: row snapshots to and from canonical JSON payloads.

Every payload written by the engine goes through encode() so that the same
row always produces the same bytes. decode() is strict: it never coerces or
drops a field, and anything outside the supported value kinds is rejected.
"""

import json
from typing import Any, Dict, List, Optional, Tuple, Union

from .errors import MalformedDeltaPayload

# Supported column value kinds: text, integer, boolean, null.
SCALAR_TYPES = (str, int, bool, type(None))


def canonicalize(obj: Any) -> Any:
    """
    Convert arbitrary nested dict/list to canonical form.

    Rules:
    - dict keys sorted alphabetically
    - tuples converted to lists
    - recursive normalization
    """
    if isinstance(obj, dict):
        return {k: canonicalize(obj[k]) for k in sorted(obj.keys())}
    if isinstance(obj, (list, tuple)):
        return [canonicalize(x) for x in obj]
    return obj


def canonical_json_str(obj: Any) -> str:
    """
    Deterministic JSON string.

    Guarantees:
    - sorted keys at every level
    - no whitespace between tokens
    - ensure_ascii=False keeps UTF-8 text readable and stable
    """
    return json.dumps(canonicalize(obj), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def canonical_json_bytes(obj: Any) -> bytes:
    """UTF-8 bytes of canonical_json_str()."""
    return canonical_json_str(obj).encode("utf-8")


def _check_snapshot(snapshot: Any, delta_id: Optional[int] = None) -> Dict[str, Any]:
    if not isinstance(snapshot, dict):
        raise MalformedDeltaPayload(
            f"row snapshot must be an object, got {type(snapshot).__name__}", delta_id=delta_id
        )
    for key, value in snapshot.items():
        if not isinstance(key, str):
            raise MalformedDeltaPayload(f"column name must be a string: {key!r}", delta_id=delta_id)
        if not isinstance(value, SCALAR_TYPES):
            raise MalformedDeltaPayload(
                f"unsupported value for column {key!r}: {type(value).__name__}", delta_id=delta_id
            )
    return snapshot


def encode(snapshot: Dict[str, Any]) -> str:
    """
    Encode a row snapshot as a canonical JSON object.

    Args:
        snapshot: Mapping of column name to text/integer/boolean/null value

    Returns:
        Canonical JSON text

    Raises:
        MalformedDeltaPayload: If the snapshot holds unsupported values
    """
    return canonical_json_str(_check_snapshot(snapshot))


def _reject_duplicates(pairs: List[Tuple[str, Any]]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in pairs:
        if key in out:
            raise ValueError(f"duplicate column {key!r}")
        out[key] = value
    return out


def decode(payload: Union[str, bytes], delta_id: Optional[int] = None) -> Dict[str, Any]:
    """
    Decode a stored payload back into a row snapshot.

    Args:
        payload: JSON text (or UTF-8 bytes) of one snapshot object
        delta_id: Id of the delta being decoded, attached to errors

    Returns:
        Mapping of column name to value

    Raises:
        MalformedDeltaPayload: If the payload is not a flat JSON object of
            supported values, or repeats a column
    """
    if isinstance(payload, bytes):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as ex:
            raise MalformedDeltaPayload(f"payload is not UTF-8: {ex}", delta_id=delta_id) from ex
    if not isinstance(payload, str):
        raise MalformedDeltaPayload(
            f"payload must be JSON text, got {type(payload).__name__}", delta_id=delta_id
        )
    try:
        data = json.loads(payload, object_pairs_hook=_reject_duplicates)
    except ValueError as ex:
        raise MalformedDeltaPayload(f"payload is not valid JSON: {ex}", delta_id=delta_id) from ex
    return _check_snapshot(data, delta_id=delta_id)


def encode_many(snapshots: List[Dict[str, Any]]) -> str:
    """Encode a list of row snapshots as one canonical JSON array."""
    return canonical_json_str([_check_snapshot(s) for s in snapshots])


def decode_many(payload: Union[str, bytes]) -> List[Dict[str, Any]]:
    """
    Decode a JSON array of row snapshots with the same rules as decode().

    Raises:
        MalformedDeltaPayload: If the payload is not an array of valid snapshots
    """
    if isinstance(payload, bytes):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as ex:
            raise MalformedDeltaPayload(f"payload is not UTF-8: {ex}") from ex
    try:
        data = json.loads(payload, object_pairs_hook=_reject_duplicates)
    except ValueError as ex:
        raise MalformedDeltaPayload(f"payload is not valid JSON: {ex}") from ex
    if not isinstance(data, list):
        raise MalformedDeltaPayload(f"expected a JSON array, got {type(data).__name__}")
    return [_check_snapshot(item) for item in data]

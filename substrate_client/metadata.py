"""Runtime metadata: version sniffing and call-index lookup on the decoded ``MetadataVersioned`` value."""

from typing import Any, Dict, Iterable, Tuple

from scalecodec.base import ScaleBytes
from scalecodec.exceptions import RemainingScaleBytesNotEmptyException

from .codec import RUNTIME_CONFIG, hex_to_bytes
from .errors import ParseError


METADATA_MAGIC = b"meta"
PORTABLE_REGISTRY_VERSION = 14
EXPLICIT_INDEX_VERSION = 12


def metadata_version(blob: str) -> int:
    """Read the version byte that follows the ``meta`` magic."""
    try:
        raw = hex_to_bytes(blob)
    except (TypeError, ValueError, AttributeError):
        raise ParseError("state_getMetadata: result is not a hex string")
    if len(raw) < 5 or raw[:4] != METADATA_MAGIC:
        raise ParseError("state_getMetadata: missing metadata magic")
    return raw[4]


def decode_metadata(blob: str) -> Dict[str, Any]:
    metadata_version(blob)
    obj = RUNTIME_CONFIG.create_scale_object("MetadataVersioned", data=ScaleBytes(blob))
    try:
        obj.decode()
    except (ValueError, IndexError, KeyError, NotImplementedError, RemainingScaleBytesNotEmptyException) as e:
        raise ParseError(f"state_getMetadata: cannot decode metadata: {e}") from e
    return obj.value


def _versioned_body(value: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
    metadata = value.get("metadata") if isinstance(value, dict) else None
    if not isinstance(metadata, dict) or len(metadata) != 1:
        raise ParseError("metadata: expected a single versioned body")
    ((key, body),) = metadata.items()
    try:
        version = int(str(key).lstrip("Vv"))
    except ValueError:
        raise ParseError(f"metadata: unknown version tag {key!r}")
    return version, body


def _find_in_registry(body: Dict[str, Any], pallet: str, calls: Iterable[str]) -> Tuple[int, int]:
    types = {t["id"]: t["type"] for t in body["lookup"]["types"]}
    for entry in body["pallets"]:
        if entry["name"] != pallet:
            continue
        if not entry.get("calls"):
            break
        variants = types[entry["calls"]["ty"]]["def"]["variant"]["variants"]
        by_name = {v["name"]: v["index"] for v in variants}
        for name in calls:
            if name in by_name:
                return entry["index"], by_name[name]
        break
    raise ParseError(f"metadata: no {pallet} call among {list(calls)}")


def _find_in_modules(body: Dict[str, Any], version: int, pallet: str, calls: Iterable[str]) -> Tuple[int, int]:
    # Before v12 the call index of a module is its position among modules with calls.
    position = 0
    for module in body["modules"]:
        functions = module.get("calls") or []
        if module["name"] == pallet:
            index = module["index"] if version >= EXPLICIT_INDEX_VERSION else position
            names = [f["name"] for f in functions]
            for name in calls:
                if name in names:
                    return index, names.index(name)
            break
        if functions:
            position += 1
    raise ParseError(f"metadata: no {pallet} call among {list(calls)}")


def find_call_index(value: Dict[str, Any], pallet: str, calls: Iterable[str]) -> Tuple[int, int]:
    """Return ``(pallet_index, call_index)`` for the first of ``calls`` that ``pallet`` exposes."""
    calls = list(calls)
    version, body = _versioned_body(value)
    try:
        if version >= PORTABLE_REGISTRY_VERSION:
            return _find_in_registry(body, pallet, calls)
        return _find_in_modules(body, version, pallet, calls)
    except (KeyError, TypeError, AttributeError) as e:
        raise ParseError(f"metadata: unexpected V{version} layout ({e})") from e

"""SCALE codec on top of ``scalecodec``: integers, byte sequences, and versioned AccountInfo records.

Every wire type is resolved through one ``RuntimeConfigurationObject`` that
carries the ``core`` preset plus the record definitions registered here and
in :mod:`substrate_client.extrinsic`.  Encoders return ``bytes``.  Decoders
take ``(data, offset)`` and return ``(value, new_offset)`` so records can be
read field by field.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from scalecodec.base import RuntimeConfigurationObject, ScaleBytes
from scalecodec.exceptions import RemainingScaleBytesNotEmptyException
from scalecodec.type_registry import load_type_registry_preset

from .errors import MalformedStorageError


U8, U16, U32, U64, U128 = 1, 2, 4, 8, 16

LEGACY_MAX_METADATA_VERSION = 11

ACCOUNT_TYPES = {
    "AccountData": {
        "type": "struct",
        "type_mapping": [
            ["free", "u128"],
            ["reserved", "u128"],
            ["misc_frozen", "u128"],
            ["fee_frozen", "u128"],
        ],
    },
    "AccountInfoWithRefCount": {
        "type": "struct",
        "type_mapping": [
            ["nonce", "u32"],
            ["refcount", "u8"],
            ["data", "AccountData"],
        ],
    },
    "AccountInfoWithProviders": {
        "type": "struct",
        "type_mapping": [
            ["nonce", "u32"],
            ["consumers", "u32"],
            ["providers", "u32"],
            ["data", "AccountData"],
        ],
    },
}


def _runtime_config() -> RuntimeConfigurationObject:
    config = RuntimeConfigurationObject()
    config.update_type_registry(load_type_registry_preset("core"))
    config.update_type_registry({"types": ACCOUNT_TYPES})
    return config


RUNTIME_CONFIG = _runtime_config()


def register_types(types: Dict[str, Any]) -> None:
    """Add type definitions (scalecodec registry format) to the shared runtime config."""
    RUNTIME_CONFIG.update_type_registry({"types": types})


# ── Hex helpers ──

def hex_to_bytes(value: str) -> bytes:
    if value.startswith(("0x", "0X")):
        value = value[2:]
    return bytes.fromhex(value)


def bytes_to_hex(data: bytes) -> str:
    return "0x" + data.hex()


def as_bytes(value: Any) -> bytes:
    """Byte arrays come back from scalecodec as ``0x`` hex strings."""
    if isinstance(value, str):
        return hex_to_bytes(value)
    return bytes(value)


# ── scalecodec bridge ──

def scale_encode(type_string: str, value: Any) -> bytes:
    return bytes(RUNTIME_CONFIG.create_scale_object(type_string).encode(value).data)


def scale_decode(type_string: str, data: bytes, offset: int = 0) -> Tuple[Any, int]:
    chunk = bytes(data[offset:])
    scale_bytes = ScaleBytes(bytearray(chunk))
    obj = RUNTIME_CONFIG.create_scale_object(type_string, data=scale_bytes)
    try:
        obj.decode(check_remaining=False)
    except (ValueError, IndexError, RemainingScaleBytesNotEmptyException) as e:
        raise ValueError(f"cannot decode {type_string} at offset {offset}: {e}") from e
    if scale_bytes.offset > len(chunk):
        raise ValueError(f"truncated {type_string} at offset {offset}")
    return obj.value, offset + scale_bytes.offset


# ── Integers ──

def _uint_type(width: int) -> str:
    return f"u{width * 8}"


def encode_uint(value: int, width: int) -> bytes:
    if value < 0:
        raise ValueError(f"cannot encode negative integer {value}")
    if value >= 1 << (width * 8):
        raise ValueError(f"{value} does not fit in {width} bytes")
    return scale_encode(_uint_type(width), value)


def decode_uint(data: bytes, offset: int, width: int) -> Tuple[int, int]:
    if offset + width > len(data):
        raise ValueError(f"need {width} bytes at offset {offset}, have {len(data) - offset}")
    return scale_decode(_uint_type(width), data, offset)


def encode_compact(value: int) -> bytes:
    """Encode a non-negative integer in SCALE compact form.

    Modes, selected by the two low bits of the first byte:
      0b00  single byte, values < 2**6
      0b01  two bytes, values < 2**14
      0b10  four bytes, values < 2**30
      0b11  big-integer: ((n - 4) << 2) | 3 followed by n little-endian bytes
    """
    if value < 0:
        raise ValueError(f"cannot encode negative integer {value}")
    if value >= 1 << 128:
        raise ValueError("integer too large for Compact<u128>")
    return scale_encode("Compact<u128>", value)


def decode_compact(data: bytes, offset: int = 0) -> Tuple[int, int]:
    if offset >= len(data):
        raise ValueError("truncated compact integer")
    value, end = scale_decode("Compact<u128>", data, offset)
    return int(value), end


# ── Byte sequences, options, variants ──

def encode_bytes(data: bytes) -> bytes:
    return encode_compact(len(data)) + data


def decode_bytes(data: bytes, offset: int = 0) -> Tuple[bytes, int]:
    length, offset = decode_compact(data, offset)
    end = offset + length
    if end > len(data):
        raise ValueError("truncated byte sequence")
    return data[offset:end], end


def encode_option(encoded: Optional[bytes]) -> bytes:
    if encoded is None:
        return b"\x00"
    return b"\x01" + encoded


def encode_variant(index: int, payload: bytes = b"") -> bytes:
    return encode_uint(index, U8) + payload


# ── Account state ──

@dataclass(frozen=True)
class AccountData:
    free: int = 0
    reserved: int = 0
    misc_frozen: int = 0
    fee_frozen: int = 0

    def to_bytes(self) -> bytes:
        return scale_encode("AccountData", asdict(self))


@dataclass(frozen=True)
class AccountInfo:
    nonce: int = 0
    data: AccountData = field(default_factory=AccountData)
    refcount: int = 0
    consumers: int = 0
    providers: int = 0


class AccountInfoLayout(Enum):
    LEGACY = "AccountInfoWithRefCount"
    CURRENT = "AccountInfoWithProviders"

    @classmethod
    def for_metadata_version(cls, version: int) -> "AccountInfoLayout":
        if version < 0:
            raise ValueError(f"invalid metadata version {version}")
        if version <= LEGACY_MAX_METADATA_VERSION:
            return cls.LEGACY
        return cls.CURRENT

    @property
    def type_string(self) -> str:
        return self.value


def _record(info: AccountInfo, layout: AccountInfoLayout) -> Dict[str, Any]:
    record: Dict[str, Any] = {"nonce": info.nonce, "data": asdict(info.data)}
    if layout is AccountInfoLayout.LEGACY:
        record["refcount"] = info.refcount
    else:
        record["consumers"] = info.consumers
        record["providers"] = info.providers
    return record


def decode_account_info(data: bytes, metadata_version: int) -> AccountInfo:
    """Decode a System.Account storage value for the given metadata version.

    The bytes must be consumed exactly by the selected layout.
    """
    layout = AccountInfoLayout.for_metadata_version(metadata_version)
    try:
        value, end = scale_decode(layout.type_string, data)
    except ValueError as e:
        raise MalformedStorageError(f"{layout.type_string}: {e}") from e
    if end != len(data):
        raise MalformedStorageError(
            f"{layout.type_string} used {end} of {len(data)} bytes"
        )
    account_data = AccountData(**{k: int(v) for k, v in value["data"].items()})
    if layout is AccountInfoLayout.LEGACY:
        return AccountInfo(nonce=value["nonce"], data=account_data, refcount=value["refcount"])
    return AccountInfo(
        nonce=value["nonce"],
        data=account_data,
        consumers=value["consumers"],
        providers=value["providers"],
    )


def encode_account_info(info: AccountInfo, metadata_version: int) -> bytes:
    layout = AccountInfoLayout.for_metadata_version(metadata_version)
    return scale_encode(layout.type_string, _record(info, layout))

"""Extrinsic wire format: eras, calls, signing payloads, and signed extrinsics (version 4)."""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Optional, Tuple, Union

from .account import PUBLIC_KEY_LENGTH, Account
from .codec import (
    U8,
    as_bytes,
    bytes_to_hex,
    decode_compact,
    decode_uint,
    encode_compact,
    register_types,
    scale_decode,
    scale_encode,
)
from .storage import blake2_256


EXTRINSIC_VERSION = 4
SIGNED_BIT = 0b1000_0000
HASH_LENGTH = 32
MAX_UNHASHED_PAYLOAD = 256

MIN_ERA_PERIOD = 4
MAX_ERA_PERIOD = 1 << 16

IMMORTAL_ERA = "00"

EXTRINSIC_TYPES = {
    "AccountAddress": {
        "type": "enum",
        "type_mapping": [
            ["Id", f"[u8; {PUBLIC_KEY_LENGTH}]"],
            ["Index", "Compact<u32>"],
            ["Raw", "Bytes"],
            ["Address32", "[u8; 32]"],
            ["Address20", "[u8; 20]"],
        ],
    },
    "ExtrinsicMultiSignature": {
        "type": "enum",
        "type_mapping": [
            ["Ed25519", "[u8; 64]"],
            ["Sr25519", "[u8; 64]"],
            ["Ecdsa", "[u8; 65]"],
        ],
    },
    "ExtrinsicSignatureEnvelope": {
        "type": "struct",
        "type_mapping": [
            ["signer", "AccountAddress"],
            ["signature", "ExtrinsicMultiSignature"],
            ["era", "Era"],
            ["nonce", "Compact<u32>"],
            ["tip", "Compact<u128>"],
        ],
    },
    "ExtrinsicPayloadExtra": {
        "type": "struct",
        "type_mapping": [
            ["era", "Era"],
            ["nonce", "Compact<u32>"],
            ["tip", "Compact<u128>"],
            ["spec_version", "u32"],
            ["transaction_version", "u32"],
            ["genesis_hash", f"[u8; {HASH_LENGTH}]"],
            ["block_hash", f"[u8; {HASH_LENGTH}]"],
        ],
    },
}

register_types(EXTRINSIC_TYPES)


# ── Eras ──

@dataclass(frozen=True)
class ImmortalEra:
    @property
    def scale_value(self) -> Any:
        return IMMORTAL_ERA

    def to_bytes(self) -> bytes:
        return scale_encode("Era", self.scale_value)

    @property
    def is_mortal(self) -> bool:
        return False


@dataclass(frozen=True)
class MortalEra:
    """Transaction valid for ``period`` blocks starting at a block whose number % period == phase."""

    period: int
    phase: int

    def __post_init__(self) -> None:
        if self.period < MIN_ERA_PERIOD or self.period > MAX_ERA_PERIOD or self.period & (self.period - 1):
            raise ValueError(f"era period must be a power of two in [4, 65536], got {self.period}")
        if not 0 <= self.phase < self.period:
            raise ValueError(f"era phase {self.phase} outside period {self.period}")
        if self.phase % self._quantize_factor(self.period):
            raise ValueError(f"era phase {self.phase} is not quantized for period {self.period}")

    @staticmethod
    def _quantize_factor(period: int) -> int:
        return max(period >> 12, 1)

    @classmethod
    def for_block(cls, current: int, period: int = 64) -> "MortalEra":
        """Era anchored at block ``current``, period rounded up to a power of two."""
        period = 1 << max(period - 1, 1).bit_length()
        period = min(max(period, MIN_ERA_PERIOD), MAX_ERA_PERIOD)
        q = cls._quantize_factor(period)
        phase = current % period // q * q
        return cls(period, phase)

    @property
    def is_mortal(self) -> bool:
        return True

    @property
    def scale_value(self) -> Any:
        return (self.period, self.phase)

    def birth(self, current: int) -> int:
        """Block number whose hash must be used as the checkpoint."""
        return (max(current, self.phase) - self.phase) // self.period * self.period + self.phase

    def death(self, current: int) -> int:
        return self.birth(current) + self.period

    def to_bytes(self) -> bytes:
        return scale_encode("Era", self.scale_value)


ExtrinsicEra = Union[ImmortalEra, MortalEra]


def _era_from_value(value: Any) -> ExtrinsicEra:
    if isinstance(value, (tuple, list)):
        period, phase = value
        return MortalEra(int(period), int(phase))
    return ImmortalEra()


def decode_era(data: bytes, offset: int = 0) -> Tuple[ExtrinsicEra, int]:
    value, offset = scale_decode("Era", data, offset)
    return _era_from_value(value), offset


# ── Calls ──

def _address_id(public_key: bytes) -> Dict[str, str]:
    return {"Id": bytes_to_hex(public_key)}


@dataclass(frozen=True)
class Call:
    """An already-encoded runtime call."""

    data: bytes

    @staticmethod
    def transfer(pallet_index: int, call_index: int, dest: Account, amount: int) -> "Call":
        return Call(
            bytes([pallet_index, call_index])
            + scale_encode("AccountAddress", _address_id(dest.public_key))
            + encode_compact(amount)
        )

    def to_bytes(self) -> bytes:
        return self.data


# ── Signing payload ──

@dataclass(frozen=True)
class ExtrinsicPayload:
    call: Call
    era: ExtrinsicEra
    nonce: int
    tip: int
    spec_version: int
    transaction_version: int
    genesis_hash: bytes
    block_hash: bytes

    def to_bytes(self) -> bytes:
        extra = scale_encode("ExtrinsicPayloadExtra", {
            "era": self.era.scale_value,
            "nonce": self.nonce,
            "tip": self.tip,
            "spec_version": self.spec_version,
            "transaction_version": self.transaction_version,
            "genesis_hash": bytes_to_hex(self.genesis_hash),
            "block_hash": bytes_to_hex(self.block_hash),
        })
        return self.call.to_bytes() + extra

    def signing_bytes(self) -> bytes:
        """Bytes handed to the signature primitive; long payloads are signed by hash."""
        raw = self.to_bytes()
        if len(raw) > MAX_UNHASHED_PAYLOAD:
            return blake2_256(raw)
        return raw


def build_payload(
    call: Call,
    genesis_hash: bytes,
    era: ExtrinsicEra,
    nonce: int,
    spec_version: int,
    tip: int,
    transaction_version: int,
    block_hash: Optional[bytes] = None,
) -> ExtrinsicPayload:
    """Assemble the signing payload.  The checkpoint defaults to the genesis hash."""
    return ExtrinsicPayload(
        call=call,
        era=era,
        nonce=nonce,
        tip=tip,
        spec_version=spec_version,
        transaction_version=transaction_version,
        genesis_hash=genesis_hash,
        block_hash=genesis_hash if block_hash is None else block_hash,
    )


# ── Signed extrinsic ──

class SignatureScheme(IntEnum):
    ED25519 = 0
    SR25519 = 1
    ECDSA = 2

    @property
    def type_name(self) -> str:
        return _SCHEME_NAMES[self]

    @classmethod
    def from_type_name(cls, name: str) -> "SignatureScheme":
        for scheme, scheme_name in _SCHEME_NAMES.items():
            if scheme_name == name:
                return scheme
        raise ValueError(f"unknown signature scheme {name!r}")


_SCHEME_NAMES = {
    SignatureScheme.ED25519: "Ed25519",
    SignatureScheme.SR25519: "Sr25519",
    SignatureScheme.ECDSA: "Ecdsa",
}


@dataclass(frozen=True)
class ExtrinsicSignature:
    public_key: bytes
    signature: bytes
    era: ExtrinsicEra
    nonce: int
    tip: int
    scheme: SignatureScheme = SignatureScheme.ED25519

    @property
    def signer(self) -> Account:
        return Account(self.public_key)

    def to_bytes(self) -> bytes:
        return scale_encode("ExtrinsicSignatureEnvelope", {
            "signer": _address_id(self.public_key),
            "signature": {self.scheme.type_name: bytes_to_hex(self.signature)},
            "era": self.era.scale_value,
            "nonce": self.nonce,
            "tip": self.tip,
        })


@dataclass(frozen=True)
class Extrinsic:
    signature: Optional[ExtrinsicSignature]
    call: Call

    @property
    def is_signed(self) -> bool:
        return self.signature is not None

    def to_bytes(self) -> bytes:
        if self.signature is None:
            body = bytes([EXTRINSIC_VERSION]) + self.call.to_bytes()
        else:
            body = bytes([EXTRINSIC_VERSION | SIGNED_BIT]) + self.signature.to_bytes() + self.call.to_bytes()
        return encode_compact(len(body)) + body

    def to_hex(self) -> str:
        return "0x" + self.to_bytes().hex()


def _decode_signature(data: bytes, offset: int) -> Tuple[ExtrinsicSignature, int]:
    value, offset = scale_decode("ExtrinsicSignatureEnvelope", data, offset)
    signer = value["signer"]
    if not isinstance(signer, dict) or "Id" not in signer:
        raise ValueError(f"unsupported signer address {signer!r}")
    public_key = as_bytes(signer["Id"])
    if len(public_key) != PUBLIC_KEY_LENGTH:
        raise ValueError(f"signer public key must be {PUBLIC_KEY_LENGTH} bytes")
    ((scheme_name, signature),) = value["signature"].items()
    scheme = SignatureScheme.from_type_name(scheme_name)
    return ExtrinsicSignature(
        public_key=public_key,
        signature=as_bytes(signature),
        era=_era_from_value(value["era"]),
        nonce=int(value["nonce"]),
        tip=int(value["tip"]),
        scheme=scheme,
    ), offset


def decode_extrinsic(data: bytes) -> Extrinsic:
    length, offset = decode_compact(data)
    if offset + length != len(data):
        raise ValueError(f"extrinsic length prefix {length} does not match {len(data) - offset} bytes")
    version, offset = decode_uint(data, offset, U8)
    if version & ~SIGNED_BIT != EXTRINSIC_VERSION:
        raise ValueError(f"unsupported extrinsic version {version & ~SIGNED_BIT}")
    signature = None
    if version & SIGNED_BIT:
        signature, offset = _decode_signature(data, offset)
    return Extrinsic(signature, Call(data[offset:]))

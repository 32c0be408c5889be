"""Storage hashers and the System.Account map key."""

import hashlib
from typing import Union

import xxhash


def _as_bytes(data: Union[bytes, str]) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def twox128(data: Union[bytes, str]) -> bytes:
    """XXHash64 with seeds 0 and 1, each little-endian, concatenated."""
    raw = _as_bytes(data)
    return b"".join(
        xxhash.xxh64(raw, seed=seed).intdigest().to_bytes(8, "little")
        for seed in (0, 1)
    )


def blake2_128(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=16).digest()


def blake2_256(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=32).digest()


def blake2_128_concat(data: bytes) -> bytes:
    return blake2_128(data) + data


def storage_prefix(pallet: str, item: str) -> bytes:
    return twox128(pallet) + twox128(item)


def storage_map_key(pallet: str, item: str, key: bytes) -> bytes:
    return storage_prefix(pallet, item) + blake2_128_concat(key)


def derive_account_storage_key(public_key: bytes) -> bytes:
    """Key of ``System.Account(public_key)``.

    twox128("System") ++ twox128("Account") ++ blake2_128(pk) ++ pk
    """
    return storage_map_key("System", "Account", bytes(public_key))

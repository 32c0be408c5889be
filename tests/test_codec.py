import unittest

from substrate_client.codec import (
    AccountData,
    AccountInfo,
    AccountInfoLayout,
    decode_account_info,
    decode_bytes,
    decode_compact,
    encode_account_info,
    encode_bytes,
    encode_compact,
    encode_option,
    encode_variant,
    hex_to_bytes,
)
from substrate_client.errors import MalformedStorageError


class TestCompact(unittest.TestCase):
    VECTORS = [
        (0, "00"),
        (1, "04"),
        (63, "fc"),
        (64, "0101"),
        (16383, "fdff"),
        (16384, "02000100"),
        ((1 << 30) - 1, "feffffff"),
        (1 << 30, "0300000040"),
        (100000000000000, "0b00407a10f35a"),
    ]

    def test_known_vectors(self) -> None:
        for value, expected in self.VECTORS:
            with self.subTest(value=value):
                self.assertEqual(encode_compact(value).hex(), expected)
                self.assertEqual(decode_compact(bytes.fromhex(expected)), (value, len(expected) // 2))

    def test_u128_max(self) -> None:
        value = (1 << 128) - 1
        encoded = encode_compact(value)
        self.assertEqual(encoded[0], ((16 - 4) << 2) | 0b11)
        self.assertEqual(decode_compact(encoded), (value, 17))

    def test_negative_rejected(self) -> None:
        with self.assertRaises(ValueError):
            encode_compact(-1)

    def test_truncated_rejected(self) -> None:
        with self.assertRaises(ValueError):
            decode_compact(bytes.fromhex("0300"))
        with self.assertRaises(ValueError):
            decode_compact(b"")

    def test_bytes_and_option(self) -> None:
        self.assertEqual(encode_bytes(b"abc"), b"\x0cabc")
        self.assertEqual(decode_bytes(b"\x0cabcdef"), (b"abc", 4))
        self.assertEqual(encode_option(None), b"\x00")
        self.assertEqual(encode_option(b"\x2a"), b"\x01\x2a")
        self.assertEqual(encode_variant(2, b"\x01"), b"\x02\x01")


class TestAccountInfo(unittest.TestCase):
    def setUp(self) -> None:
        self.data = AccountData(free=10**18, reserved=7, misc_frozen=3, fee_frozen=2)

    def test_layout_dispatch(self) -> None:
        self.assertIs(AccountInfoLayout.for_metadata_version(0), AccountInfoLayout.LEGACY)
        self.assertIs(AccountInfoLayout.for_metadata_version(11), AccountInfoLayout.LEGACY)
        self.assertIs(AccountInfoLayout.for_metadata_version(12), AccountInfoLayout.CURRENT)
        self.assertIs(AccountInfoLayout.for_metadata_version(14), AccountInfoLayout.CURRENT)
        with self.assertRaises(ValueError):
            AccountInfoLayout.for_metadata_version(-1)

    def test_legacy_decodes_under_v11(self) -> None:
        raw = (
            (5).to_bytes(4, "little")
            + b"\x01"
            + b"".join(v.to_bytes(16, "little") for v in (10**18, 7, 3, 2))
        )
        info = decode_account_info(raw, 11)
        self.assertEqual(info.nonce, 5)
        self.assertEqual(info.refcount, 1)
        self.assertEqual(info.data, self.data)

    def test_legacy_bytes_fail_under_v12(self) -> None:
        raw = encode_account_info(AccountInfo(nonce=5, data=self.data, refcount=1), 11)
        with self.assertRaises(MalformedStorageError):
            decode_account_info(raw, 12)

    def test_current_bytes_fail_under_v11(self) -> None:
        raw = encode_account_info(AccountInfo(nonce=5, data=self.data, consumers=1, providers=1), 12)
        with self.assertRaises(MalformedStorageError):
            decode_account_info(raw, 11)

    def test_roundtrip_matching_version(self) -> None:
        legacy = AccountInfo(nonce=9, data=self.data, refcount=2)
        current = AccountInfo(nonce=9, data=self.data, consumers=1, providers=3)
        self.assertEqual(decode_account_info(encode_account_info(legacy, 10), 10), legacy)
        self.assertEqual(decode_account_info(encode_account_info(current, 13), 13), current)

    def test_truncated_storage(self) -> None:
        raw = encode_account_info(AccountInfo(nonce=1, data=self.data), 12)
        with self.assertRaises(MalformedStorageError):
            decode_account_info(raw[:-1], 12)

    def test_hex_helper(self) -> None:
        self.assertEqual(hex_to_bytes("0xdead"), b"\xde\xad")
        self.assertEqual(hex_to_bytes("beef"), b"\xbe\xef")

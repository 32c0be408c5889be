import unittest

from substrate_client.account import Account, Wallet
from substrate_client.codec import decode_compact, encode_compact
from substrate_client.extrinsic import (
    Call,
    Extrinsic,
    ImmortalEra,
    MortalEra,
    build_payload,
    decode_era,
    decode_extrinsic,
)
from substrate_client.signer import sign, verify
from substrate_client.storage import blake2_256


GENESIS = bytes.fromhex("91b171bb158e2d3848fa23a9f1c25182fb8e20313b2c1eb49219da7a70ce90c3")
DEST = Account(bytes(range(32)))


def _payload(**overrides):
    fields = dict(
        call=Call.transfer(5, 0, DEST, 10**12),
        genesis_hash=GENESIS,
        era=ImmortalEra(),
        nonce=5,
        spec_version=9180,
        tip=0,
        transaction_version=7,
    )
    fields.update(overrides)
    return build_payload(**fields)


class TestEra(unittest.TestCase):
    def test_immortal(self) -> None:
        self.assertEqual(ImmortalEra().to_bytes(), b"\x00")
        self.assertEqual(decode_era(b"\x00"), (ImmortalEra(), 1))

    def test_mortal_vector(self) -> None:
        era = MortalEra(64, 42)
        self.assertEqual(era.to_bytes(), bytes([5 + 42 % 16 * 16, 42 // 16]))
        self.assertEqual(decode_era(era.to_bytes()), (era, 2))

    def test_quantized_long_period(self) -> None:
        era = MortalEra.for_block(current=100_000, period=32768)
        self.assertEqual(era.period, 32768)
        self.assertEqual(era.phase % 8, 0)
        self.assertEqual(decode_era(era.to_bytes())[0], era)

    def test_for_block_and_birth(self) -> None:
        era = MortalEra.for_block(current=1000, period=50)
        self.assertEqual(era.period, 64)
        self.assertEqual(era.phase, 1000 % 64)
        self.assertEqual(era.birth(1000), 1000)
        self.assertEqual(era.birth(1010), 1000)
        self.assertEqual(era.death(1010), 1064)

    def test_invalid_period(self) -> None:
        with self.assertRaises(ValueError):
            MortalEra(48, 1)
        with self.assertRaises(ValueError):
            MortalEra(64, 64)


class TestPayload(unittest.TestCase):
    def test_field_order(self) -> None:
        payload = _payload()
        call = payload.call.to_bytes()
        expected = (
            call
            + b"\x00"
            + encode_compact(5)
            + encode_compact(0)
            + (9180).to_bytes(4, "little")
            + (7).to_bytes(4, "little")
            + GENESIS
            + GENESIS
        )
        self.assertEqual(payload.to_bytes(), expected)
        self.assertEqual(payload.block_hash, payload.genesis_hash)

    def test_transfer_call_layout(self) -> None:
        call = Call.transfer(5, 0, DEST, 10**12)
        self.assertEqual(call.data[:3], b"\x05\x00\x00")
        self.assertEqual(call.data[3:35], DEST.public_key)
        self.assertEqual(call.data[35:], encode_compact(10**12))

    def test_explicit_checkpoint(self) -> None:
        checkpoint = b"\x11" * 32
        payload = _payload(era=MortalEra(64, 8), block_hash=checkpoint)
        self.assertTrue(payload.to_bytes().endswith(GENESIS + checkpoint))

    def test_long_payload_signed_by_hash(self) -> None:
        payload = _payload(call=Call(b"\x07" * 300))
        self.assertEqual(payload.signing_bytes(), blake2_256(payload.to_bytes()))
        self.assertEqual(_payload().signing_bytes(), _payload().to_bytes())


class TestSigner(unittest.TestCase):
    def setUp(self) -> None:
        self.wallet = Wallet.from_private_key_hex("2a" * 32)

    def test_envelope_fields(self) -> None:
        payload = _payload()
        sig = sign(self.wallet, payload)
        self.assertEqual(sig.public_key, self.wallet.public_key)
        self.assertEqual(sig.nonce, 5)
        self.assertEqual(sig.tip, 0)
        self.assertEqual(sig.era, ImmortalEra())
        self.assertTrue(verify(sig, payload))

    def test_any_field_change_invalidates(self) -> None:
        base = _payload()
        sig = sign(self.wallet, base)
        for changed in (
            _payload(nonce=6),
            _payload(era=MortalEra(64, 0)),
            _payload(call=Call.transfer(5, 0, DEST, 10**12 + 1)),
        ):
            with self.subTest(changed=changed):
                self.assertNotEqual(changed.to_bytes(), base.to_bytes())
                self.assertNotEqual(sign(self.wallet, changed).signature, sig.signature)
                self.assertFalse(verify(sig, changed))


class TestExtrinsic(unittest.TestCase):
    def test_signed_roundtrip(self) -> None:
        wallet = Wallet.from_private_key_hex("2a" * 32)
        payload = _payload(era=MortalEra(64, 42), block_hash=b"\x22" * 32)
        ext = Extrinsic(sign(wallet, payload), payload.call)
        raw = ext.to_bytes()
        length, offset = decode_compact(raw)
        self.assertEqual(length, len(raw) - offset)
        self.assertEqual(raw[offset], 0x84)
        self.assertEqual(decode_extrinsic(raw), ext)
        self.assertTrue(ext.to_hex().startswith("0x"))

    def test_unsigned_roundtrip(self) -> None:
        ext = Extrinsic(None, Call(b"\x00\x01\x02"))
        raw = ext.to_bytes()
        self.assertEqual(raw, b"\x10\x04\x00\x01\x02")
        self.assertEqual(decode_extrinsic(raw), ext)
        self.assertFalse(decode_extrinsic(raw).is_signed)

    def test_bad_length_prefix(self) -> None:
        raw = Extrinsic(None, Call(b"\x00\x01")).to_bytes()
        with self.assertRaises(ValueError):
            decode_extrinsic(raw + b"\x00")

    def test_non_id_signer_rejected(self) -> None:
        envelope = b"\x01" + encode_compact(3) + b"\x00" + b"\x00" * 64 + b"\x00" + encode_compact(0) + encode_compact(0)
        body = b"\x84" + envelope + b"\x05\x00"
        with self.assertRaises(ValueError):
            decode_extrinsic(encode_compact(len(body)) + body)

"""Accounts and wallets: Ed25519 keypairs, SS58 addresses, and encrypted keystores."""

import hashlib
import json
import os
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)
from mnemonic import Mnemonic
from scalecodec.utils.ss58 import ss58_decode, ss58_encode

from .codec import hex_to_bytes
from .config import ensure_config_dir


PUBLIC_KEY_LENGTH = 32
DEFAULT_SS58_PREFIX = 42
KEY_FILE_NAME = "wallet.key"
PBKDF2_ITERATIONS = 600_000
BIP39_ROUNDS = 2048


def _derive_aes_key(password: str, salt: bytes) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(password.encode("utf-8"))


@dataclass(frozen=True)
class Account:
    public_key: bytes

    def __post_init__(self) -> None:
        if len(self.public_key) != PUBLIC_KEY_LENGTH:
            raise ValueError(f"public key must be {PUBLIC_KEY_LENGTH} bytes, got {len(self.public_key)}")

    @staticmethod
    def from_hex(public_key_hex: str) -> "Account":
        return Account(hex_to_bytes(public_key_hex))

    @staticmethod
    def from_ss58(address: str) -> "Account":
        """Accept an SS58 address on any network prefix."""
        return Account(hex_to_bytes(ss58_decode(address)))

    @property
    def public_key_hex(self) -> str:
        return self.public_key.hex()

    def ss58_address(self, prefix: int = DEFAULT_SS58_PREFIX) -> str:
        return ss58_encode(self.public_key, ss58_format=prefix)

    def to_bytes(self) -> bytes:
        return self.public_key


class Wallet:
    """Ed25519 private key plus its account.  The private key never leaves this object."""

    def __init__(self, private_key: Ed25519PrivateKey, mnemonic: Optional[str] = None):
        self._sk = private_key
        self._sk_bytes = private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
        pk_bytes = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        self._account = Account(pk_bytes)
        self._mnemonic = mnemonic

    def __repr__(self) -> str:
        return f"Wallet({self._account.ss58_address()})"

    @property
    def account(self) -> Account:
        return self._account

    @property
    def public_key(self) -> bytes:
        return self._account.public_key

    @property
    def mnemonic(self) -> Optional[str]:
        return self._mnemonic

    # ── Creation ──

    @classmethod
    def generate(cls) -> "Wallet":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def generate_with_mnemonic(cls, password: str = "") -> "Wallet":
        """Create a wallet backed by a fresh 24-word BIP39 phrase."""
        phrase = Mnemonic("english").generate(strength=256)
        return cls.from_mnemonic(phrase, password=password)

    @classmethod
    def from_private_key_hex(cls, private_key_hex: str) -> "Wallet":
        sk_bytes = hex_to_bytes(private_key_hex)
        if len(sk_bytes) != 32:
            raise ValueError("private key must be 32 bytes (64 hex chars)")
        return cls(Ed25519PrivateKey.from_private_bytes(sk_bytes))

    @classmethod
    def from_mnemonic(cls, phrase: str, password: str = "") -> "Wallet":
        """Derive the key the way Substrate tooling does for a bare BIP39 phrase.

        The seed is PBKDF2-HMAC-SHA512 over the phrase *entropy* (not the words),
        salted with ``"mnemonic" + password``; its first 32 bytes are the
        Ed25519 secret.
        """
        phrase = " ".join(phrase.split())
        m = Mnemonic("english")
        if not m.check(phrase):
            raise ValueError("invalid BIP39 mnemonic")
        entropy = bytes(m.to_entropy(phrase))
        salt = ("mnemonic" + password).encode("utf-8")
        seed = hashlib.pbkdf2_hmac("sha512", entropy, salt, BIP39_ROUNDS)[:32]
        return cls(Ed25519PrivateKey.from_private_bytes(seed), mnemonic=phrase)

    # ── Signing & Verification ──

    def sign(self, data: bytes) -> bytes:
        return self._sk.sign(data)

    @staticmethod
    def verify(public_key: bytes, signature: bytes, data: bytes) -> bool:
        try:
            Ed25519PublicKey.from_public_bytes(public_key).verify(signature, data)
            return True
        except (InvalidSignature, ValueError):
            return False

    # ── Keystore ──

    def export_encrypted(self, password: str) -> Dict[str, Any]:
        """Return an encrypted keystore dict (for portable backup)."""
        salt = secrets.token_bytes(16)
        nonce = secrets.token_bytes(12)
        aes_key = _derive_aes_key(password, salt)
        ciphertext = AESGCM(aes_key).encrypt(nonce, self._sk_bytes, None)
        return {
            "version": 1,
            "address": self._account.ss58_address(),
            "public_key_hex": self._account.public_key_hex,
            "encrypted": True,
            "salt": salt.hex(),
            "nonce": nonce.hex(),
            "ciphertext": ciphertext.hex(),
        }

    @classmethod
    def from_encrypted(cls, data: Dict[str, Any], password: str) -> "Wallet":
        """Restore a wallet from an encrypted keystore dict."""
        salt = bytes.fromhex(data["salt"])
        nonce = bytes.fromhex(data["nonce"])
        ciphertext = bytes.fromhex(data["ciphertext"])
        aes_key = _derive_aes_key(password, salt)
        try:
            sk_bytes = AESGCM(aes_key).decrypt(nonce, ciphertext, None)
        except Exception:
            raise ValueError("Wrong password or corrupted keystore")
        return cls(Ed25519PrivateKey.from_private_bytes(sk_bytes))

    def save(self, path: Optional[Path] = None, password: Optional[str] = None) -> Path:
        """Write the keystore (JSON, chmod 600); default ~/.substrate-client/wallet.key."""
        if path is None:
            path = ensure_config_dir() / KEY_FILE_NAME

        if password:
            data = self.export_encrypted(password)
        else:
            data = {
                "version": 1,
                "address": self._account.ss58_address(),
                "public_key_hex": self._account.public_key_hex,
                "encrypted": False,
                "private_key_hex": self._sk_bytes.hex(),
            }

        path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        try:
            os.chmod(path, 0o600)
        except Exception:
            pass
        return path

    @classmethod
    def load(cls, path: Optional[Path] = None, password: Optional[str] = None) -> "Wallet":
        if path is None:
            path = ensure_config_dir() / KEY_FILE_NAME
        if not path.exists():
            raise FileNotFoundError(f"No wallet found at {path}")

        data = json.loads(path.read_text(encoding="utf-8"))
        if data.get("encrypted"):
            if not password:
                raise ValueError("Wallet is password-encrypted; supply a password")
            return cls.from_encrypted(data, password)
        return cls.from_private_key_hex(data["private_key_hex"])

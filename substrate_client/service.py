"""Balance queries and the sign / estimate / submit pipeline for balance transfers."""

import logging
import threading
from contextlib import contextmanager
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, Iterator, List, Optional

from .account import Account, Wallet
from .codec import AccountInfo, bytes_to_hex, decode_account_info, hex_to_bytes
from .errors import AccountNotFoundError, ParseError
from .extrinsic import HASH_LENGTH, Extrinsic, ExtrinsicEra, ImmortalEra, build_payload
from .signer import sign
from .storage import derive_account_storage_key
from .transports.substrate import SubstrateProvider


logger = logging.getLogger(__name__)

TIP = 0


def gather(*calls: Callable[[], Any]) -> List[Any]:
    """Run independent calls concurrently and return their results in order.

    The first failure is raised as soon as it surfaces.  Calls that have not
    started are cancelled; running ones finish and their results are dropped.
    """
    if not calls:
        return []
    pool = ThreadPoolExecutor(max_workers=len(calls))
    try:
        futures = [pool.submit(c) for c in calls]
        done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        for f in futures:
            if f in done and f.exception() is not None:
                raise f.exception()
        return [f.result() for f in futures]
    finally:
        pool.shutdown(wait=False, cancel_futures=True)


def _checkpoint_bytes(era: ExtrinsicEra, checkpoint_hash: Optional[str]) -> Optional[bytes]:
    if not era.is_mortal:
        if checkpoint_hash is not None:
            raise ValueError("immortal era signs against the genesis hash; checkpoint_hash not allowed")
        return None
    if not checkpoint_hash:
        raise ValueError("mortal era requires a checkpoint block hash")
    try:
        checkpoint = hex_to_bytes(checkpoint_hash)
    except ValueError:
        raise ValueError(f"checkpoint hash is not hex: {checkpoint_hash!r}")
    if len(checkpoint) != HASH_LENGTH:
        raise ValueError(f"checkpoint hash must be {HASH_LENGTH} bytes, got {len(checkpoint)}")
    return checkpoint


def _is_empty_storage(raw: Optional[str]) -> bool:
    return raw is None or raw in ("", "0x")


def parse_partial_fee(info: Any) -> int:
    if not isinstance(info, dict) or "partialFee" not in info:
        raise ParseError("payment_queryInfo: missing partialFee")
    value = info["partialFee"]
    if isinstance(value, bool):
        raise ParseError(f"payment_queryInfo: bad partialFee {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            if value.startswith(("0x", "0X")):
                return int(value, 16)
            return int(value)
        except ValueError:
            pass
    raise ParseError(f"payment_queryInfo: bad partialFee {value!r}")


class TransactionService:
    def __init__(self, provider: SubstrateProvider):
        self.provider = provider
        # public key -> [lock, holders]; entries go away once nobody holds or waits.
        self._locks: Dict[bytes, List[Any]] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _wallet_lock(self, wallet: Wallet) -> Iterator[None]:
        key = wallet.public_key
        with self._locks_guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.RLock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    # ── Queries ──

    def get_account_info(self, account: Account, strict: bool = False) -> AccountInfo:
        """Read ``System.Account`` for ``account``.

        An account with no storage entry reads as a zero-state AccountInfo, or
        raises AccountNotFoundError when ``strict`` is set.
        """
        version = self.provider.get_metadata_version()
        key = derive_account_storage_key(account.public_key)
        raw = self.provider.get_storage(bytes_to_hex(key))
        if _is_empty_storage(raw):
            if strict:
                raise AccountNotFoundError(f"no account state for {account.ss58_address()}")
            logger.debug("no storage for %s, using zero state", account.ss58_address())
            return AccountInfo()
        try:
            data = hex_to_bytes(raw)
        except (TypeError, ValueError, AttributeError):
            raise ParseError("state_getStorage: result is not a hex string")
        return decode_account_info(data, version)

    def get_balance(self, account: Account) -> int:
        return self.get_account_info(account).data.free

    # ── Signing ──

    def sign_tx(
        self,
        wallet: Wallet,
        dest: Account,
        amount: int,
        era: Optional[ExtrinsicEra] = None,
        checkpoint_hash: Optional[str] = None,
    ) -> Extrinsic:
        """Build and sign a transfer of ``amount`` from ``wallet`` to ``dest``.

        Mortal eras need ``checkpoint_hash``, the hash of the era's birth block.
        Immortal transfers always use the genesis hash as checkpoint and reject one.
        """
        if era is None:
            era = ImmortalEra()
        checkpoint = _checkpoint_bytes(era, checkpoint_hash)
        if amount < 0:
            raise ValueError(f"amount must be non-negative, got {amount}")

        with self._wallet_lock(wallet):
            call, genesis_hash, spec_version, transaction_version, info = gather(
                lambda: self.provider.transfer_call(dest, amount),
                self.provider.get_genesis_hash,
                self.provider.get_spec_version,
                self.provider.get_transaction_version,
                lambda: self.get_account_info(wallet.account),
            )
            genesis = hex_to_bytes(genesis_hash)
            if len(genesis) != HASH_LENGTH:
                raise ParseError(f"chain_getBlockHash: genesis hash is {len(genesis)} bytes")
            payload = build_payload(
                call,
                genesis,
                era,
                info.nonce,
                spec_version,
                TIP,
                transaction_version,
                block_hash=checkpoint,
            )
            signature = sign(wallet, payload)
        logger.debug(
            "signed transfer %s -> %s nonce=%d spec=%d tx=%d",
            wallet.account.ss58_address(), dest.ss58_address(), info.nonce, spec_version, transaction_version,
        )
        return Extrinsic(signature, call)

    # ── Fees & submission ──

    def estimate_fee(self, extrinsic: Extrinsic) -> int:
        return parse_partial_fee(self.provider.query_fee_info(extrinsic.to_hex()))

    def send(self, extrinsic: Extrinsic) -> str:
        tx_hash = self.provider.submit_extrinsic(extrinsic.to_hex())
        logger.info("submitted extrinsic %s", tx_hash)
        return tx_hash

    def sign_and_send(
        self,
        wallet: Wallet,
        dest: Account,
        amount: int,
        era: Optional[ExtrinsicEra] = None,
        checkpoint_hash: Optional[str] = None,
    ) -> str:
        # Held across submission so transfers from one wallet go out one at a time.
        with self._wallet_lock(wallet):
            extrinsic = self.sign_tx(wallet, dest, amount, era=era, checkpoint_hash=checkpoint_hash)
            return self.send(extrinsic)

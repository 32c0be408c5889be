"""Substrate node RPCs: chain parameters, metadata, storage, fees and submission."""

import logging
from typing import Any, Dict, Optional, Tuple

from ..account import Account
from ..config import cfg_get
from ..errors import ParseError
from ..extrinsic import Call
from ..metadata import decode_metadata, find_call_index, metadata_version
from .rpc import RpcClient


logger = logging.getLogger(__name__)

BALANCES_PALLET = "Balances"
TRANSFER_CALLS = ("transfer", "transfer_allow_death")


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


class SubstrateProvider:
    """Node-facing collaborator of the transaction service.

    The Balances transfer call is located in the chain's metadata unless
    ``balances_pallet_index`` / ``transfer_call_index`` override it.
    """

    def __init__(
        self,
        rpc: RpcClient,
        balances_pallet_index: Optional[int] = None,
        transfer_call_index: Optional[int] = None,
    ):
        self.rpc = rpc
        self.balances_pallet_index = balances_pallet_index
        self.transfer_call_index = transfer_call_index

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "SubstrateProvider":
        rpc = RpcClient(
            url=cfg_get(cfg, "rpc", "url", default="http://127.0.0.1:9933"),
            timeout_s=int(cfg_get(cfg, "rpc", "timeout_s", default=20)),
            verify_ssl=bool(cfg_get(cfg, "rpc", "verify_ssl", default=True)),
        )
        return cls(
            rpc,
            balances_pallet_index=_optional_int(cfg_get(cfg, "chain", "balances_pallet_index")),
            transfer_call_index=_optional_int(cfg_get(cfg, "chain", "transfer_call_index")),
        )

    # ── Metadata ──

    def get_metadata(self) -> str:
        return self.rpc.send("state_getMetadata")

    def get_metadata_version(self) -> int:
        return metadata_version(self.get_metadata())

    def transfer_call_indices(self) -> Tuple[int, int]:
        pallet_index, call_index = self.balances_pallet_index, self.transfer_call_index
        if pallet_index is None or call_index is None:
            found_pallet, found_call = find_call_index(
                decode_metadata(self.get_metadata()), BALANCES_PALLET, TRANSFER_CALLS
            )
            logger.debug("Balances transfer resolved to [%d, %d]", found_pallet, found_call)
            if pallet_index is None:
                pallet_index = found_pallet
            if call_index is None:
                call_index = found_call
        return pallet_index, call_index

    def transfer_call(self, dest: Account, amount: int) -> Call:
        pallet_index, call_index = self.transfer_call_indices()
        return Call.transfer(pallet_index, call_index, dest, amount)

    # ── Chain parameters ──

    def get_block_hash(self, number: int) -> str:
        result = self.rpc.send("chain_getBlockHash", [number])
        if not isinstance(result, str):
            raise ParseError(f"chain_getBlockHash: no block {number}")
        return result

    def get_genesis_hash(self) -> str:
        return self.get_block_hash(0)

    def get_block_number(self) -> int:
        header = self.rpc.send("chain_getHeader")
        try:
            return int(header["number"], 16)
        except (TypeError, KeyError, ValueError):
            raise ParseError("chain_getHeader: missing block number")

    def get_runtime_version(self) -> Dict[str, Any]:
        result = self.rpc.send("state_getRuntimeVersion")
        if not isinstance(result, dict):
            raise ParseError("state_getRuntimeVersion: result is not an object")
        return result

    def _runtime_field(self, name: str) -> int:
        value = self.get_runtime_version().get(name)
        if not isinstance(value, int):
            raise ParseError(f"state_getRuntimeVersion: missing {name}")
        return value

    def get_spec_version(self) -> int:
        return self._runtime_field("specVersion")

    def get_transaction_version(self) -> int:
        return self._runtime_field("transactionVersion")

    # ── Storage, fees, submission ──

    def get_storage(self, key_hex: str) -> Optional[str]:
        return self.rpc.send("state_getStorage", [key_hex])

    def query_fee_info(self, extrinsic_hex: str) -> Any:
        return self.rpc.send("payment_queryInfo", [extrinsic_hex])

    def submit_extrinsic(self, extrinsic_hex: str) -> str:
        return self.rpc.send("author_submitExtrinsic", [extrinsic_hex])

import logging

__all__ = [
    "__version__",
    # Accounts
    "Account",
    "Wallet",
    # Codec
    "AccountData",
    "AccountInfo",
    "AccountInfoLayout",
    "decode_account_info",
    "encode_account_info",
    # Storage
    "derive_account_storage_key",
    # Extrinsics
    "Call",
    "Extrinsic",
    "ExtrinsicPayload",
    "ExtrinsicSignature",
    "ImmortalEra",
    "MortalEra",
    "build_payload",
    "decode_extrinsic",
    "sign",
    # Service
    "TransactionService",
    "SubstrateProvider",
    "RpcClient",
    # Errors
    "SubstrateError",
    "RpcError",
    "MalformedStorageError",
    "ParseError",
    "AccountNotFoundError",
]

__version__ = "0.4.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from .errors import (  # noqa: E402, F401
    AccountNotFoundError,
    MalformedStorageError,
    ParseError,
    RpcError,
    SubstrateError,
)
from .account import Account, Wallet  # noqa: E402, F401
from .codec import (  # noqa: E402, F401
    AccountData,
    AccountInfo,
    AccountInfoLayout,
    decode_account_info,
    encode_account_info,
)
from .storage import derive_account_storage_key  # noqa: E402, F401
from .extrinsic import (  # noqa: E402, F401
    Call,
    Extrinsic,
    ExtrinsicPayload,
    ExtrinsicSignature,
    ImmortalEra,
    MortalEra,
    build_payload,
    decode_extrinsic,
)
from .signer import sign  # noqa: E402, F401
from .transports import RpcClient, SubstrateProvider  # noqa: E402, F401
from .service import TransactionService  # noqa: E402, F401

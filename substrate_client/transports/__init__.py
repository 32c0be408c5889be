__all__ = [
    "RpcClient",
    "SubstrateProvider",
]

from .rpc import RpcClient
from .substrate import SubstrateProvider

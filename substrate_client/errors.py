from typing import Optional


class SubstrateError(RuntimeError):
    pass


class RpcError(SubstrateError):
    """Transport failure or a JSON-RPC error response."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class MalformedStorageError(SubstrateError):
    pass


class ParseError(SubstrateError):
    pass


class AccountNotFoundError(SubstrateError):
    pass

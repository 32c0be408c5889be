"""JSON-RPC 2.0 over HTTP."""

import itertools
import logging
import threading
from typing import Any, Callable, List, Optional

import requests

from .. import __version__
from ..errors import RpcError


logger = logging.getLogger(__name__)


class RpcClient:
    """Blocking JSON-RPC client.

    Each thread gets its own ``requests.Session`` from ``session_factory``, so
    the client can be shared by concurrent callers.
    """

    def __init__(
        self,
        url: str = "http://127.0.0.1:9933",
        timeout_s: int = 20,
        verify_ssl: bool = True,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ):
        self.url = url
        self.timeout_s = timeout_s
        self.verify_ssl = verify_ssl
        self.session_factory = session_factory
        self._local = threading.local()
        self._ids = itertools.count(1)
        self._ids_lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = self.session_factory()
            session.headers.update({
                "User-Agent": f"substrate-client/{__version__}",
                "Content-Type": "application/json",
            })
            self._local.session = session
        return session

    def _next_id(self) -> int:
        with self._ids_lock:
            return next(self._ids)

    def send(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Issue one request and return its ``result``.  Never retried."""
        request_id = self._next_id()
        body = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params or []}
        logger.debug("rpc %s #%d -> %s", method, request_id, self.url)
        try:
            resp = self.session.post(self.url, json=body, timeout=self.timeout_s, verify=self.verify_ssl)
        except requests.RequestException as e:
            raise RpcError(f"{method}: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = {"raw": resp.text}
        if resp.status_code >= 400:
            raise RpcError(_error_message(data) or f"{method}: HTTP {resp.status_code}")
        if not isinstance(data, dict) or "raw" in data:
            raise RpcError(f"{method}: response is not a JSON-RPC object")

        error = data.get("error")
        if error is not None:
            if isinstance(error, dict):
                raise RpcError(f"{method}: {error.get('message', error)}", code=error.get("code"))
            raise RpcError(f"{method}: {error}")
        if "result" not in data:
            raise RpcError(f"{method}: response has no result")
        return data["result"]


def _error_message(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, dict):
        return error.get("message")
    return error

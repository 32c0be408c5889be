import json
import os
from pathlib import Path
from typing import Any, Dict


CONFIG_DIR_NAME = ".substrate-client"


def config_dir() -> Path:
    return Path.home() / CONFIG_DIR_NAME


def _config_path() -> Path:
    return config_dir() / "config.json"


def ensure_config_dir() -> Path:
    cfg_dir = config_dir()
    cfg_dir.mkdir(parents=True, exist_ok=True)
    return cfg_dir


def load_config() -> Dict[str, Any]:
    path = _config_path()
    if not path.exists():
        return {}
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        return {}


def cfg_get(cfg: Dict[str, Any], *path: str, default: Any = None) -> Any:
    cur: Any = cfg
    for p in path:
        if not isinstance(cur, dict) or p not in cur:
            return default
        cur = cur[p]
    return cur


def write_default_config(overwrite: bool = False) -> Path:
    cfg_dir = ensure_config_dir()
    path = cfg_dir / "config.json"
    if path.exists() and not overwrite:
        return path

    default = {
        "rpc": {
            "url": "http://127.0.0.1:9933",
            "timeout_s": 20,
            "verify_ssl": True,
        },
        "chain": {
            "balances_pallet_index": None,
            "transfer_call_index": None,
            "ss58_prefix": 42,
        },
    }
    path.write_text(json.dumps(default, indent=2) + "\n", encoding="utf-8")

    # Best-effort: restrict perms (works on POSIX).
    try:
        os.chmod(path, 0o600)
    except Exception:
        pass

    return path

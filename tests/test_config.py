import json
import os
import tempfile
import unittest
from unittest import mock

from substrate_client.config import cfg_get, load_config, write_default_config


class TestConfig(unittest.TestCase):
    def test_default_config_roundtrip(self) -> None:
        with tempfile.TemporaryDirectory() as home, mock.patch.dict(os.environ, {"HOME": home}):
            self.assertEqual(load_config(), {})
            path = write_default_config()
            cfg = load_config()
            self.assertEqual(cfg_get(cfg, "rpc", "timeout_s"), 20)
            self.assertIsNone(cfg_get(cfg, "chain", "balances_pallet_index", default=5))
            self.assertEqual(cfg_get(cfg, "chain", "ss58_prefix"), 42)

            path.write_text(json.dumps({"rpc": {"url": "x"}}), encoding="utf-8")
            self.assertEqual(write_default_config(), path)
            self.assertEqual(cfg_get(load_config(), "rpc", "url"), "x")
            write_default_config(overwrite=True)
            self.assertEqual(cfg_get(load_config(), "rpc", "url"), "http://127.0.0.1:9933")

    def test_cfg_get_missing(self) -> None:
        self.assertEqual(cfg_get({"a": 1}, "a", "b", default="d"), "d")
        self.assertIsNone(cfg_get({}, "x"))

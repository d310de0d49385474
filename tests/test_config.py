import os
from unittest.mock import patch

from mcp_clipboard.config import _parse_int_env, _parse_max_items, _parse_private_max_age


class TestParseIntEnv:
    def test_default_when_not_set(self):
        env = os.environ.copy()
        env.pop("MCP_CLIPBOARD_TEST_VALUE", None)
        with patch.dict("os.environ", env, clear=True):
            assert _parse_int_env("MCP_CLIPBOARD_TEST_VALUE", 7, 1, 10) == 7

    def test_valid_value(self):
        with patch.dict("os.environ", {"MCP_CLIPBOARD_TEST_VALUE": "4"}):
            assert _parse_int_env("MCP_CLIPBOARD_TEST_VALUE", 7, 1, 10) == 4

    def test_invalid_non_integer(self):
        with patch.dict("os.environ", {"MCP_CLIPBOARD_TEST_VALUE": "abc"}):
            assert _parse_int_env("MCP_CLIPBOARD_TEST_VALUE", 7, 1, 10) == 7


class TestParseMaxItems:
    def test_default_when_not_set(self):
        env = os.environ.copy()
        env.pop("MCP_CLIPBOARD_MAX_ITEMS", None)
        with patch.dict("os.environ", env, clear=True):
            assert _parse_max_items() == 50

    def test_valid_value(self):
        with patch.dict("os.environ", {"MCP_CLIPBOARD_MAX_ITEMS": "200"}):
            assert _parse_max_items() == 200

    def test_clamped_below_minimum(self):
        with patch.dict("os.environ", {"MCP_CLIPBOARD_MAX_ITEMS": "0"}):
            assert _parse_max_items() == 1

    def test_clamped_above_maximum(self):
        with patch.dict("os.environ", {"MCP_CLIPBOARD_MAX_ITEMS": "999999"}):
            assert _parse_max_items() == 10_000

    def test_boundary_minimum(self):
        with patch.dict("os.environ", {"MCP_CLIPBOARD_MAX_ITEMS": "1"}):
            assert _parse_max_items() == 1


class TestParsePrivateMaxAge:
    def test_default_when_not_set(self):
        env = os.environ.copy()
        env.pop("MCP_CLIPBOARD_PRIVATE_TTL", None)
        with patch.dict("os.environ", env, clear=True):
            assert _parse_private_max_age() == 3600

    def test_valid_value(self):
        with patch.dict("os.environ", {"MCP_CLIPBOARD_PRIVATE_TTL": "600"}):
            assert _parse_private_max_age() == 600

    def test_clamped_below_minimum(self):
        with patch.dict("os.environ", {"MCP_CLIPBOARD_PRIVATE_TTL": "5"}):
            assert _parse_private_max_age() == 60

    def test_clamped_above_maximum(self):
        with patch.dict("os.environ", {"MCP_CLIPBOARD_PRIVATE_TTL": "99999999"}):
            assert _parse_private_max_age() == 604800

    def test_invalid_non_integer(self):
        with patch.dict("os.environ", {"MCP_CLIPBOARD_PRIVATE_TTL": "1h"}):
            assert _parse_private_max_age() == 3600

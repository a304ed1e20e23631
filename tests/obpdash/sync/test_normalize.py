"""Tests for response shape normalization."""

import pytest

from obpdash.sync.normalize import unwrap_list

ACCOUNTS = [{"id": "a1"}, {"id": "a2"}]


@pytest.mark.unit
class TestUnwrapList:
    @pytest.mark.parametrize(
        "payload",
        [
            ACCOUNTS,
            {"accounts": ACCOUNTS},
            {"success": True, "data": {"accounts": ACCOUNTS}},
            {"success": True, "data": ACCOUNTS},
        ],
    )
    def test_accepted_shapes_are_equivalent(self, payload: object) -> None:
        assert unwrap_list(payload, "accounts") == ACCOUNTS

    @pytest.mark.parametrize(
        "payload",
        [None, "accounts", 42, {}, {"accounts": "a1"}, {"data": {"banks": []}}],
    )
    def test_unrecognized_shapes_yield_empty(self, payload: object) -> None:
        assert unwrap_list(payload, "accounts") == []

    def test_key_is_respected(self) -> None:
        assert unwrap_list({"transactions": [1]}, "accounts") == []
        assert unwrap_list({"transactions": [1]}, "transactions") == [1]

"""Tests for runtime invariant checks."""

from __future__ import annotations

import logging

from workhub.core.invariants import assert_invariant, assert_owner_has_full_access


def test_violation_is_logged_not_raised(caplog) -> None:
    with caplog.at_level(logging.ERROR, logger="workhub"):
        result = assert_invariant(False, "EXAMPLE", "went wrong", {"user_id": "u1"})

    assert result is False
    assert "[INVARIANT VIOLATION] EXAMPLE: went wrong" in caplog.text
    assert "u1" in caplog.text


def test_holding_invariant_logs_nothing(caplog) -> None:
    with caplog.at_level(logging.ERROR, logger="workhub"):
        assert assert_invariant(True, "EXAMPLE", "fine")

    assert caplog.text == ""


def test_owner_full_access_only_applies_to_owner() -> None:
    assert assert_owner_has_full_access("MEMBER", False)
    assert assert_owner_has_full_access("OWNER", True)
    assert not assert_owner_has_full_access("OWNER", False)

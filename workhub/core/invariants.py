"""
Runtime invariants for access resolution.

A violated invariant is logged and reported to the caller as ``False``; it
never interrupts the request that detected it.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from workhub.utils import get_logger


log = get_logger(__name__)


@dataclass(frozen=True)
class InvariantViolation:
    invariant_name: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


def assert_invariant(
    condition: bool,
    invariant_name: str,
    message: str,
    context: Optional[Dict[str, Any]] = None
) -> bool:
    """
    Check an invariant condition.

    Returns the condition so callers can branch on it. On violation an
    ``InvariantViolation`` record is logged at ERROR level.
    """
    if condition:
        return True

    violation = InvariantViolation(
        invariant_name=invariant_name,
        message=message,
        context=dict(context or {}),
    )
    log.error(
        "[INVARIANT VIOLATION] %s: %s context=%s at=%s",
        violation.invariant_name,
        violation.message,
        violation.context,
        violation.timestamp,
    )
    return False


def assert_owner_has_full_access(
    role: Optional[str],
    has_access: bool,
    context: Optional[Dict[str, Any]] = None
) -> bool:
    """Organization OWNER must never resolve to a no-access result."""
    if role != "OWNER":
        return True
    return assert_invariant(
        has_access,
        "OWNER_FULL_ACCESS",
        "Organization owner resolved without full access",
        context,
    )

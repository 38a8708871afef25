"""
Revert reason classification.

Best-effort mapping of provider error text to a closed set of reasons.
This is heuristic string matching against known node phrasings (geth,
erigon, nethermind, hosted gateways); anything unrecognized falls back to
the generic bucket. It only shapes the user-facing message, never control
flow.
"""

import re
from enum import StrEnum


class RevertReason(StrEnum):
    """Why a transaction is predicted (or known) to fail."""

    INSUFFICIENT_FUNDS = "insufficient_funds"
    GAS_TOO_LOW = "gas_too_low"
    NONCE_CONFLICT = "nonce_conflict"
    REPLACEMENT_UNDERPRICED = "replacement_underpriced"
    GENERIC = "generic"


REASON_MESSAGES = {
    RevertReason.INSUFFICIENT_FUNDS: "Insufficient balance to complete transaction",
    RevertReason.GAS_TOO_LOW: "Gas limit too low",
    RevertReason.NONCE_CONFLICT: "Transaction nonce conflict",
    RevertReason.REPLACEMENT_UNDERPRICED: "Gas price too low to replace pending transaction",
    RevertReason.GENERIC: "Transaction will fail",
}

_PATTERNS: tuple[tuple[RevertReason, tuple[str, ...]], ...] = (
    (RevertReason.INSUFFICIENT_FUNDS, ("insufficient funds",)),
    (
        RevertReason.GAS_TOO_LOW,
        ("gas required exceeds allowance", "intrinsic gas too low", "out of gas"),
    ),
    (RevertReason.NONCE_CONFLICT, ("nonce too low", "nonce too high", "already known")),
    (
        RevertReason.REPLACEMENT_UNDERPRICED,
        ("replacement transaction underpriced", "replacement fee too low"),
    ),
)

_REASON_STRING = re.compile(r"reverted with reason string '(.+?)'")
_EXECUTION_REVERTED = re.compile(r"execution reverted: (.+)")


def classify_revert(error: BaseException | str) -> tuple[RevertReason, str]:
    """
    Classify a provider error into a revert reason.

    Args:
        error: Exception raised by the node, or its message

    Returns:
        Tuple of (reason, human-readable message). For generic reverts the
        message is the contract's reason string when one can be extracted.
    """
    message = str(error) if error is not None else ""
    lowered = message.lower()

    for reason, needles in _PATTERNS:
        if any(needle in lowered for needle in needles):
            return reason, REASON_MESSAGES[reason]

    match = _REASON_STRING.search(message) or _EXECUTION_REVERTED.search(message)
    if match:
        return RevertReason.GENERIC, match.group(1).strip().strip("'\"")

    return RevertReason.GENERIC, REASON_MESSAGES[RevertReason.GENERIC]

"""Error taxonomy for the submission pipeline.

Every failure raised by a pipeline stage derives from :class:`SubmissionError`
and carries the name of the stage that produced it, so the CLI can print a
single line that tells the operator where the submission stopped and why.
Underlying RPC exceptions are chained via ``raise ... from exc``.
"""

from __future__ import annotations


class SubmissionError(RuntimeError):
    """Base class for every pipeline failure."""

    stage = "submission"

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        if stage is not None:
            self.stage = stage
        super().__init__(f"[{self.stage}] {message}")
        self.reason = message


class MalformedInput(SubmissionError, ValueError):
    """Raised for bad address/amount/fee syntax before any network call."""

    stage = "input"


class MalformedAmount(MalformedInput):
    """Raised when a decimal amount cannot be represented in sub-units."""


class InsufficientFunds(SubmissionError):
    stage = "balance"

    def __init__(self, required: int, available: int, *, display: str | None = None) -> None:
        self.required = required
        self.available = available
        detail = display or f"required {required} wei, available {available} wei"
        super().__init__(f"Insufficient funds: {detail}")


class TransportError(SubmissionError):
    """Raised when a read-only chain query fails at the RPC layer."""


class FeeQueryFailed(SubmissionError):
    stage = "fee"


class SimulationFailed(SubmissionError):
    stage = "budget"


class ChainMismatch(SubmissionError):
    stage = "chain"

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Configured chain id {expected} does not match the node's chain id {actual}; "
            "check the RPC endpoint before signing."
        )


class BroadcastFailed(SubmissionError):
    stage = "broadcast"


class TransactionReverted(SubmissionError):
    """Raised when the transaction was included but the receipt reports failure."""

    stage = "confirm"

    def __init__(self, tx_hash: str, block_number: int | None) -> None:
        self.tx_hash = tx_hash
        self.block_number = block_number
        super().__init__(
            f"Transaction {tx_hash} was included in block {block_number} but reverted on-chain"
        )


class ConfirmationTimeout(SubmissionError):
    """Raised when no confirmation was observed before the deadline.

    The transaction was accepted by the node and may still be included later;
    ``tx_hash`` lets the caller check on it.
    """

    stage = "confirm"

    def __init__(self, tx_hash: str, waited: float) -> None:
        self.tx_hash = tx_hash
        self.waited = waited
        super().__init__(
            f"No confirmation for {tx_hash} after {waited:.1f}s; outcome unknown, "
            "the transaction may still be included"
        )

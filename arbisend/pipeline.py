"""Submission pipeline: balance → fee → budget → assemble → sign → broadcast → confirm.

Each stage runs exactly once per :meth:`SubmissionPipeline.submit` call. The
first failure moves the pipeline to ``FAILED`` and is re-raised unchanged, so
callers see the stage-specific error from :mod:`arbisend.errors`. The one
exception is :class:`~arbisend.errors.ConfirmationTimeout`: the transaction
was broadcast and its outcome is unknown, so the pipeline stays in
``BROADCAST`` while still raising.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List

from .balance import BalanceGuard
from .budget import BudgetEstimator
from .config import SubmissionConfig
from .errors import (
    BroadcastFailed,
    ChainMismatch,
    ConfirmationTimeout,
    MalformedInput,
    SubmissionError,
    TransportError,
)
from .fees import FeeEstimator
from .model import (
    Account,
    ComputationBudget,
    FeeRate,
    MonetaryAmount,
    SignedTransaction,
    SubmissionResult,
    UnsignedTransaction,
    parse_address,
)
from .rpc_client import EthereumRPCClient, RPCError, RPCTransportError, format_rpc_hint
from .signer import sign_transaction
from .tx_builder import assemble_transaction
from .watcher import ConfirmationWatcher

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    BALANCE_CHECKED = "balance_checked"
    FEE_PRICED = "fee_priced"
    BUDGET_ESTIMATED = "budget_estimated"
    ASSEMBLED = "assembled"
    SIGNED = "signed"
    BROADCAST = "broadcast"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class SubmissionPipeline:
    """Single-attempt transfer submission for one sender account."""

    def __init__(
        self,
        rpc: EthereumRPCClient,
        config: SubmissionConfig,
        account: Account,
        *,
        watcher: ConfirmationWatcher | None = None,
        on_transition: Callable[[PipelineState], None] | None = None,
    ) -> None:
        self.rpc = rpc
        self.config = config
        self.account = account
        self.balance_guard = BalanceGuard(rpc)
        self.fee_estimator = FeeEstimator(rpc)
        self.budget_estimator = BudgetEstimator(rpc)
        self.watcher = watcher or ConfirmationWatcher(
            rpc,
            timeout_seconds=config.confirmation_timeout,
            poll_interval_seconds=config.poll_interval,
            required_confirmations=config.required_confirmations,
        )
        self._on_transition = on_transition

        self.state = PipelineState.IDLE
        self.history: List[PipelineState] = [PipelineState.IDLE]
        self.failure: BaseException | None = None
        self.amount: MonetaryAmount | None = None
        self.fee_rate: FeeRate | None = None
        self.budget: ComputationBudget | None = None
        self.unsigned: UnsignedTransaction | None = None
        self.signed: SignedTransaction | None = None
        self.result: SubmissionResult | None = None

    def submit(self, destination: str | None = None, amount: str | None = None) -> SubmissionResult:
        """Run every stage once and return the confirmed result."""

        if self.state is not PipelineState.IDLE:
            raise RuntimeError(f"Pipeline already used (state={self.state.value}); build a new one")
        try:
            return self._run(destination, amount)
        except ConfirmationTimeout as exc:
            self.failure = exc
            logger.warning("%s", exc)
            raise
        except Exception as exc:
            self._fail(exc)
            raise

    def _run(self, destination: str | None, amount: str | None) -> SubmissionResult:
        raw_destination = destination if destination is not None else self.config.destination
        if raw_destination is None:
            raise MalformedInput("No destination address given; pass --to or set TO_ADDR")
        to_address = parse_address(raw_destination, label="destination address")
        value = MonetaryAmount.from_decimal(amount if amount is not None else self.config.transfer_amount)
        sender = self.account.address
        logger.info("Submitting %s from %s to %s", value, sender, to_address)

        self.amount = value
        self.balance_guard.check(sender, value)
        self._advance(PipelineState.BALANCE_CHECKED)

        self.fee_rate = self.fee_estimator.estimate(self.config.override_fee_rate)
        self._advance(PipelineState.FEE_PRICED)

        self.budget = self.budget_estimator.estimate(sender, to_address, value, self.fee_rate)
        self._advance(PipelineState.BUDGET_ESTIMATED)

        nonce = self._read_nonce(sender)
        self.unsigned = assemble_transaction(
            destination=to_address,
            value=value,
            fee_rate=self.fee_rate.wei_per_gas,
            gas_limit=self.budget.gas_limit,
            sender=sender,
            chain_id=self.config.chain_id,
            nonce=nonce,
        )
        self._advance(PipelineState.ASSEMBLED)

        if self.config.verify_chain_id:
            self._verify_chain_id()
        self.signed = sign_transaction(self.unsigned, self.account)
        self._advance(PipelineState.SIGNED)
        logger.info("Signed transaction %s", self.signed.tx_hash)

        tx_hash = self._broadcast(self.signed)
        self._advance(PipelineState.BROADCAST)

        self.result = self.watcher.wait(tx_hash)
        self._advance(PipelineState.CONFIRMED)
        return self.result

    def _read_nonce(self, sender: str) -> int:
        try:
            return self.rpc.get_transaction_count(sender)
        except (RPCError, RPCTransportError) as exc:
            raise TransportError(f"Nonce query for {sender} failed: {exc}", stage="assemble") from exc

    def _verify_chain_id(self) -> None:
        try:
            node_chain_id = self.rpc.chain_id()
        except (RPCError, RPCTransportError) as exc:
            raise TransportError(f"Chain id query failed: {exc}", stage="chain") from exc
        if node_chain_id != self.config.chain_id:
            raise ChainMismatch(self.config.chain_id, node_chain_id)

    def _broadcast(self, signed: SignedTransaction) -> str:
        try:
            node_hash = self.rpc.send_raw_transaction(signed.raw_transaction)
        except (RPCError, RPCTransportError) as exc:
            message = f"Broadcast of {signed.tx_hash} failed: {exc}"
            hint = format_rpc_hint(exc) if isinstance(exc, RPCError) else None
            if hint:
                message += f" Hint: {hint}"
            raise BroadcastFailed(message) from exc
        if isinstance(node_hash, str) and node_hash.lower() != signed.tx_hash.lower():
            logger.warning(
                "Node reported hash %s, locally computed %s; tracking the local hash",
                node_hash,
                signed.tx_hash,
            )
        logger.info("Broadcast transaction %s", signed.tx_hash)
        return signed.tx_hash

    def _advance(self, state: PipelineState) -> None:
        logger.debug("Pipeline %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)
        if self._on_transition is not None:
            self._on_transition(state)

    def _fail(self, exc: BaseException) -> None:
        stage = exc.stage if isinstance(exc, SubmissionError) else "unexpected"
        logger.error("Submission failed at %s (state=%s): %s", stage, self.state.value, exc)
        self.failure = exc
        self.state = PipelineState.FAILED
        self.history.append(PipelineState.FAILED)
        if self._on_transition is not None:
            self._on_transition(PipelineState.FAILED)

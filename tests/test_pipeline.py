from __future__ import annotations

import pytest

from arbisend.config import SubmissionConfig
from arbisend.errors import (
    BroadcastFailed,
    ChainMismatch,
    ConfirmationTimeout,
    InsufficientFunds,
    MalformedAmount,
    MalformedInput,
    SimulationFailed,
    TransactionReverted,
)
from arbisend.model import TransactionReceipt
from arbisend.pipeline import PipelineState, SubmissionPipeline
from arbisend.rpc_client import RPCError
from arbisend.signer import account_from_private_key
from arbisend.watcher import ConfirmationWatcher

TEST_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
DESTINATION = "0x2222222222222222222222222222222222222222"


class RecordingRPC:
    """In-memory node that records every call in order."""

    def __init__(
        self,
        events: list,
        *,
        balance: int = 10**18,
        gas_price: int = 1000,
        gas_estimate: int = 21_000,
        chain_id: int = 421614,
        receipt: TransactionReceipt | None = None,
        broadcast_error: Exception | None = None,
        estimate_error: Exception | None = None,
    ) -> None:
        self.events = events
        self.balance = balance
        self._gas_price = gas_price
        self.gas_estimate = gas_estimate
        self._chain_id = chain_id
        self.receipt = receipt or TransactionReceipt(included=True, block_number=77, status=1, gas_used=21_000)
        self.broadcast_error = broadcast_error
        self.estimate_error = estimate_error
        self.raw_sent: list[str] = []

    def get_balance(self, address: str) -> int:
        self.events.append("get_balance")
        return self.balance

    def gas_price(self) -> int:
        self.events.append("gas_price")
        return self._gas_price

    def estimate_gas(self, skeleton: dict) -> int:
        self.events.append("estimate_gas")
        if self.estimate_error is not None:
            raise self.estimate_error
        return self.gas_estimate

    def get_transaction_count(self, address: str) -> int:
        self.events.append("get_transaction_count")
        return 4

    def chain_id(self) -> int:
        self.events.append("chain_id")
        return self._chain_id

    def send_raw_transaction(self, raw_tx: str) -> str:
        self.events.append("send_raw_transaction")
        if self.broadcast_error is not None:
            raise self.broadcast_error
        self.raw_sent.append(raw_tx)
        return "0x" + "00" * 32

    def get_transaction_receipt(self, tx_hash: str) -> TransactionReceipt:
        self.events.append("get_transaction_receipt")
        return self.receipt

    def block_number(self) -> int:
        self.events.append("block_number")
        return 80


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds


def _pipeline(rpc: RecordingRPC, events: list, **config_kwargs) -> SubmissionPipeline:
    config_kwargs.setdefault("confirmation_timeout", 5.0)
    config = SubmissionConfig(**config_kwargs)
    clock = FakeClock()
    watcher = ConfirmationWatcher(
        rpc,  # type: ignore[arg-type]
        timeout_seconds=config.confirmation_timeout,
        poll_interval_seconds=config.poll_interval,
        required_confirmations=config.required_confirmations,
        sleep=clock.sleep,
        clock=clock,
    )
    return SubmissionPipeline(
        rpc,  # type: ignore[arg-type]
        config,
        account_from_private_key(TEST_KEY),
        watcher=watcher,
        on_transition=events.append,
    )


def test_end_to_end_with_override_fee() -> None:
    events: list = []
    rpc = RecordingRPC(events, balance=1_000_000_000_000_000_000, gas_estimate=21_000)
    pipeline = _pipeline(rpc, events, override_fee_rate=2)

    result = pipeline.submit(DESTINATION, "0.5")

    unsigned = pipeline.unsigned
    assert unsigned is not None
    assert unsigned.value.wei == 500_000_000_000_000_000
    assert unsigned.fee_rate == 2
    assert unsigned.gas_limit == 27_300
    assert unsigned.nonce == 4
    assert unsigned.chain_id == 421614

    broadcast_at = events.index("send_raw_transaction")
    assert events[broadcast_at - 1] is PipelineState.SIGNED
    assert "gas_price" not in events
    assert rpc.raw_sent == [pipeline.signed.raw_transaction]

    assert result.tx_hash == pipeline.signed.tx_hash
    assert result.block_number == 77
    assert pipeline.state is PipelineState.CONFIRMED
    assert pipeline.history == [
        PipelineState.IDLE,
        PipelineState.BALANCE_CHECKED,
        PipelineState.FEE_PRICED,
        PipelineState.BUDGET_ESTIMATED,
        PipelineState.ASSEMBLED,
        PipelineState.SIGNED,
        PipelineState.BROADCAST,
        PipelineState.CONFIRMED,
    ]


def test_sampled_fee_gets_margin() -> None:
    events: list = []
    rpc = RecordingRPC(events, gas_price=1000)
    pipeline = _pipeline(rpc, events)

    pipeline.submit(DESTINATION, "0.1")

    assert pipeline.unsigned.fee_rate == 1100
    assert events.index("get_balance") < events.index("gas_price") < events.index("estimate_gas")


def test_insufficient_funds_stops_before_fee_or_budget() -> None:
    events: list = []
    rpc = RecordingRPC(events, balance=0)
    pipeline = _pipeline(rpc, events)

    with pytest.raises(InsufficientFunds) as excinfo:
        pipeline.submit(DESTINATION, "0.001")

    assert excinfo.value.required == 10**15
    assert excinfo.value.available == 0
    assert events == ["get_balance", PipelineState.FAILED]
    assert pipeline.state is PipelineState.FAILED
    assert pipeline.failure is excinfo.value
    assert pipeline.signed is None


@pytest.mark.parametrize(
    "destination, amount, error",
    [
        ("0x1234", "0.1", MalformedInput),
        (DESTINATION, "0.1.2", MalformedAmount),
        (DESTINATION, "0.0000000000000000001", MalformedAmount),
    ],
)
def test_malformed_input_makes_no_network_call(destination, amount, error) -> None:
    events: list = []
    pipeline = _pipeline(RecordingRPC(events), events)

    with pytest.raises(error):
        pipeline.submit(destination, amount)

    assert events == [PipelineState.FAILED]


def test_destination_and_amount_default_from_config() -> None:
    events: list = []
    pipeline = _pipeline(RecordingRPC(events), events, destination=DESTINATION, transfer_amount="0.25")

    pipeline.submit()

    assert pipeline.unsigned.destination == DESTINATION
    assert pipeline.unsigned.value.wei == 250_000_000_000_000_000


def test_missing_destination_is_malformed_input() -> None:
    events: list = []
    pipeline = _pipeline(RecordingRPC(events), events)
    with pytest.raises(MalformedInput):
        pipeline.submit(None, "0.1")


def test_simulation_failure_aborts_before_signing() -> None:
    events: list = []
    rpc = RecordingRPC(events, estimate_error=RPCError(3, "execution reverted"))
    pipeline = _pipeline(rpc, events)

    with pytest.raises(SimulationFailed):
        pipeline.submit(DESTINATION, "0.1")

    assert "send_raw_transaction" not in events
    assert PipelineState.SIGNED not in pipeline.history
    assert pipeline.history[-1] is PipelineState.FAILED


def test_chain_mismatch_aborts_before_signing() -> None:
    events: list = []
    rpc = RecordingRPC(events, chain_id=1)
    pipeline = _pipeline(rpc, events)

    with pytest.raises(ChainMismatch):
        pipeline.submit(DESTINATION, "0.1")

    assert pipeline.signed is None
    assert "send_raw_transaction" not in events


def test_chain_check_can_be_disabled() -> None:
    events: list = []
    rpc = RecordingRPC(events, chain_id=1)
    pipeline = _pipeline(rpc, events, verify_chain_id=False)

    pipeline.submit(DESTINATION, "0.1")

    assert "chain_id" not in events


def test_broadcast_failure_carries_hint() -> None:
    events: list = []
    rpc = RecordingRPC(events, broadcast_error=RPCError(-32000, "nonce too low"))
    pipeline = _pipeline(rpc, events)

    with pytest.raises(BroadcastFailed) as excinfo:
        pipeline.submit(DESTINATION, "0.1")

    assert "Hint:" in str(excinfo.value)
    assert events.count("send_raw_transaction") == 1
    assert pipeline.state is PipelineState.FAILED


def test_unconfirmed_broadcast_times_out_with_hash() -> None:
    events: list = []
    rpc = RecordingRPC(events, receipt=TransactionReceipt(included=False))
    pipeline = _pipeline(rpc, events, confirmation_timeout=3.0)

    with pytest.raises(ConfirmationTimeout) as excinfo:
        pipeline.submit(DESTINATION, "0.1")

    assert not isinstance(excinfo.value, BroadcastFailed)
    assert excinfo.value.tx_hash == pipeline.signed.tx_hash
    assert pipeline.state is PipelineState.BROADCAST
    assert pipeline.failure is excinfo.value


def test_reverted_transaction_fails_pipeline() -> None:
    events: list = []
    rpc = RecordingRPC(events, receipt=TransactionReceipt(included=True, block_number=9, status=0))
    pipeline = _pipeline(rpc, events)

    with pytest.raises(TransactionReverted):
        pipeline.submit(DESTINATION, "0.1")

    assert pipeline.state is PipelineState.FAILED


def test_pipeline_is_single_use() -> None:
    events: list = []
    pipeline = _pipeline(RecordingRPC(events), events)
    pipeline.submit(DESTINATION, "0.1")
    with pytest.raises(RuntimeError):
        pipeline.submit(DESTINATION, "0.1")

from __future__ import annotations

import pytest

from arbisend.balance import BalanceGuard
from arbisend.budget import BudgetEstimator, apply_gas_margin
from arbisend.errors import InsufficientFunds, SimulationFailed, TransportError
from arbisend.model import FeeRate, MonetaryAmount
from arbisend.rpc_client import RPCError, RPCTransportError

SENDER = "0x1111111111111111111111111111111111111111"
DESTINATION = "0x2222222222222222222222222222222222222222"


class StubRPC:
    def __init__(self, balance: int = 0, estimate: int = 21_000, error: Exception | None = None) -> None:
        self.balance = balance
        self.estimate = estimate
        self.error = error
        self.skeletons: list[dict] = []

    def get_balance(self, address: str) -> int:
        if self.error is not None:
            raise self.error
        return self.balance

    def estimate_gas(self, skeleton: dict) -> int:
        self.skeletons.append(skeleton)
        if self.error is not None:
            raise self.error
        return self.estimate


def test_balance_below_required_fails_with_both_values() -> None:
    guard = BalanceGuard(StubRPC(balance=10**15 - 1))  # type: ignore[arg-type]
    with pytest.raises(InsufficientFunds) as excinfo:
        guard.check(SENDER, MonetaryAmount.from_decimal("0.001"))
    assert excinfo.value.required == 10**15
    assert excinfo.value.available == 10**15 - 1
    assert "required 0.001 ETH" in str(excinfo.value)


def test_exact_balance_is_enough() -> None:
    guard = BalanceGuard(StubRPC(balance=10**15))  # type: ignore[arg-type]
    assert guard.check(SENDER, MonetaryAmount.from_decimal("0.001")) == 10**15


def test_balance_query_failure_is_transport_error() -> None:
    guard = BalanceGuard(StubRPC(error=RPCTransportError("RPC connection failed")))  # type: ignore[arg-type]
    with pytest.raises(TransportError) as excinfo:
        guard.check(SENDER, MonetaryAmount(1))
    assert excinfo.value.stage == "balance"


def test_budget_adds_thirty_percent() -> None:
    rpc = StubRPC(estimate=21_000)
    budget = BudgetEstimator(rpc).estimate(  # type: ignore[arg-type]
        SENDER, DESTINATION, MonetaryAmount(5), FeeRate(wei_per_gas=2, source="override")
    )
    assert budget.gas_limit == 27_300
    assert budget.estimate == 21_000
    assert rpc.skeletons == [{"from": SENDER, "to": DESTINATION, "value": 5, "gasPrice": 2}]


@pytest.mark.parametrize("estimate, expected", [(0, 0), (1, 2), (10, 13), (21_001, 27_302), (100, 130)])
def test_gas_margin_rounds_up(estimate: int, expected: int) -> None:
    assert apply_gas_margin(estimate) == expected
    assert apply_gas_margin(estimate) >= estimate


def test_simulation_failure_is_fatal() -> None:
    rpc = StubRPC(error=RPCError(3, "execution reverted"))
    with pytest.raises(SimulationFailed) as excinfo:
        BudgetEstimator(rpc).estimate(SENDER, DESTINATION, MonetaryAmount(1))  # type: ignore[arg-type]
    assert "Hint:" in str(excinfo.value)
    assert len(rpc.skeletons) == 1

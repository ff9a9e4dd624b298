"""Gas-limit estimation by simulation."""

from __future__ import annotations

import logging
from typing import Any, Dict

from .errors import SimulationFailed
from .model import ComputationBudget, FeeRate, MonetaryAmount
from .rpc_client import EthereumRPCClient, RPCError, RPCTransportError, format_rpc_hint

logger = logging.getLogger(__name__)

GAS_MARGIN_NUMERATOR = 130
GAS_MARGIN_DENOMINATOR = 100


def apply_gas_margin(estimate: int) -> int:
    """Return ``ceil(estimate * 1.3)`` using integer arithmetic."""

    return -(-estimate * GAS_MARGIN_NUMERATOR // GAS_MARGIN_DENOMINATOR)


def build_call_skeleton(
    sender: str, destination: str, value: MonetaryAmount, fee_rate: FeeRate | None = None
) -> Dict[str, Any]:
    skeleton: Dict[str, Any] = {"from": sender, "to": destination, "value": value.wei}
    if fee_rate is not None:
        skeleton["gasPrice"] = fee_rate.wei_per_gas
    return skeleton


class BudgetEstimator:
    """Ask the node to simulate the transfer and add a 30% margin.

    A failed simulation usually predicts an on-chain failure, so it is fatal.
    """

    def __init__(self, rpc: EthereumRPCClient) -> None:
        self.rpc = rpc

    def estimate(
        self,
        sender: str,
        destination: str,
        value: MonetaryAmount,
        fee_rate: FeeRate | None = None,
    ) -> ComputationBudget:
        skeleton = build_call_skeleton(sender, destination, value, fee_rate)
        try:
            estimate = self.rpc.estimate_gas(skeleton)
        except (RPCError, RPCTransportError) as exc:
            hint = format_rpc_hint(exc) if isinstance(exc, RPCError) else None
            message = f"Gas estimation for transfer to {destination} failed: {exc}"
            if hint:
                message += f" Hint: {hint}"
            raise SimulationFailed(message) from exc

        if estimate < 0:
            raise SimulationFailed(f"Node returned a negative gas estimate: {estimate}")
        gas_limit = apply_gas_margin(estimate)
        logger.info("Gas limit %s (estimate %s +30%%)", gas_limit, estimate)
        return ComputationBudget(gas_limit=gas_limit, estimate=estimate)

"""Fee-rate selection and conversion helpers for EVM transfers."""

from __future__ import annotations

import logging

from .errors import FeeQueryFailed, MalformedInput
from .model import FeeRate
from .rpc_client import EthereumRPCClient, RPCError, RPCTransportError, format_rpc_hint
from .units import ETHER, GWEI

logger = logging.getLogger(__name__)

FEE_MULTIPLIER_NUMERATOR = 110
FEE_MULTIPLIER_DENOMINATOR = 100
BASE_TRANSFER_GAS = 21_000


def apply_fee_margin(suggested: int) -> int:
    """Scale a sampled fee rate by 110%, rounding down."""

    return suggested * FEE_MULTIPLIER_NUMERATOR // FEE_MULTIPLIER_DENOMINATOR


def calculate_fee_wei(fee_rate: int, gas: int = BASE_TRANSFER_GAS) -> int:
    return fee_rate * gas


def gwei_to_wei(value: str) -> int:
    return GWEI.to_sub_units(value)


def format_gwei(wei: int) -> str:
    return GWEI.format_display(wei)


class FeeEstimator:
    """Pick the gas price for a submission.

    An operator override is used verbatim; the operator takes responsibility
    for it. Otherwise the node's ``eth_gasPrice`` is sampled once and scaled
    by :func:`apply_fee_margin`. Failures are not retried.
    """

    def __init__(self, rpc: EthereumRPCClient) -> None:
        self.rpc = rpc

    def estimate(self, override: int | None = None) -> FeeRate:
        if override is not None:
            if isinstance(override, bool) or not isinstance(override, int) or override < 0:
                raise MalformedInput(f"Fee rate override must be a non-negative integer (wei), got {override!r}")
            logger.info("Using operator gas price %s gwei", format_gwei(override))
            return FeeRate(wei_per_gas=override, source="override")

        try:
            suggested = self.rpc.gas_price()
        except (RPCError, RPCTransportError) as exc:
            hint = format_rpc_hint(exc) if isinstance(exc, RPCError) else None
            message = f"Gas price query failed: {exc}"
            if hint:
                message += f" Hint: {hint}"
            raise FeeQueryFailed(message) from exc

        if suggested < 0:
            raise FeeQueryFailed(f"Node suggested a negative gas price: {suggested}")
        fee_rate = apply_fee_margin(suggested)
        logger.info(
            "Network gas price %s gwei, using %s gwei (+10%%)",
            format_gwei(suggested),
            format_gwei(fee_rate),
        )
        return FeeRate(wei_per_gas=fee_rate, source="network", sampled=suggested)


def quote_transfer_fee(rpc: EthereumRPCClient, gas: int = BASE_TRANSFER_GAS) -> dict[str, str | int]:
    """Return the node's current gas price and the fee for a plain transfer."""

    try:
        gas_price = rpc.gas_price()
    except (RPCError, RPCTransportError) as exc:
        raise FeeQueryFailed(f"Gas price query failed: {exc}") from exc
    fee_wei = calculate_fee_wei(gas_price, gas)
    return {
        "gas_price_wei": gas_price,
        "gas_price_gwei": format_gwei(gas_price),
        "gas": gas,
        "fee_wei": fee_wei,
        "fee_eth": ETHER.to_decimal_string(fee_wei),
    }

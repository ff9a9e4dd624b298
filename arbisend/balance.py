"""Pre-signing balance check."""

from __future__ import annotations

import logging

from .errors import InsufficientFunds, TransportError
from .model import MonetaryAmount
from .rpc_client import EthereumRPCClient, RPCError, RPCTransportError
from .units import ETHER

logger = logging.getLogger(__name__)


class BalanceGuard:
    """Reject a submission before signing when the sender cannot cover it.

    The check is advisory: the ledger has no way to reserve funds, so another
    spender on the same account can still win the race.
    """

    def __init__(self, rpc: EthereumRPCClient) -> None:
        self.rpc = rpc

    def check(self, address: str, required: MonetaryAmount) -> int:
        """Return the available balance, raising when it is below *required*."""

        try:
            available = self.rpc.get_balance(address)
        except (RPCError, RPCTransportError) as exc:
            raise TransportError(f"Balance query for {address} failed: {exc}", stage="balance") from exc

        if available < required.wei:
            logger.warning(
                "Insufficient funds for %s: required=%s available=%s",
                address,
                required.wei,
                available,
            )
            raise InsufficientFunds(
                required.wei,
                available,
                display=(
                    f"required {ETHER.format_display(required.wei)} {ETHER.symbol}, "
                    f"available {ETHER.format_display(available)} {ETHER.symbol}"
                ),
            )
        logger.info("Balance %s %s covers transfer", ETHER.format_display(available), ETHER.symbol)
        return available

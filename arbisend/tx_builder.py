"""Transaction assembly for native-value transfers."""

from __future__ import annotations

import logging

from .errors import MalformedInput
from .model import MonetaryAmount, UnsignedTransaction, parse_address

logger = logging.getLogger(__name__)


def _non_negative(value: object, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise MalformedInput(f"{label} must be a non-negative integer, got {value!r}")
    return value


def assemble_transaction(
    destination: str,
    value: MonetaryAmount,
    fee_rate: int,
    gas_limit: int,
    sender: str,
    chain_id: int,
    nonce: int = 0,
) -> UnsignedTransaction:
    """Combine the priced and budgeted fields into an immutable record.

    The chain id is part of the record so the signature cannot be replayed on
    another network. No I/O is performed.
    """

    if not isinstance(value, MonetaryAmount):
        raise MalformedInput(f"Value must be a MonetaryAmount, got {type(value).__name__}")
    if isinstance(chain_id, bool) or not isinstance(chain_id, int) or chain_id <= 0:
        raise MalformedInput(f"Chain id must be a positive integer, got {chain_id!r}")

    unsigned = UnsignedTransaction(
        destination=parse_address(destination, label="destination address"),
        value=value,
        fee_rate=_non_negative(fee_rate, "Fee rate"),
        gas_limit=_non_negative(gas_limit, "Gas limit"),
        sender=parse_address(sender, label="sender address"),
        chain_id=chain_id,
        nonce=_non_negative(nonce, "Nonce"),
    )
    logger.debug(
        "Assembled transfer of %s wei to %s (gas=%s gasPrice=%s nonce=%s chain_id=%s)",
        value.wei,
        unsigned.destination,
        unsigned.gas_limit,
        unsigned.fee_rate,
        unsigned.nonce,
        unsigned.chain_id,
    )
    return unsigned

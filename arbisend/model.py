"""Domain models for transaction submission.

Values that control funds are stored as Python ints counted in wei. Decimal
strings exist only as derived renderings for display and are never parsed
back into a transaction field.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

from eth_utils import is_address, to_checksum_address

from .errors import MalformedInput
from .units import ETHER


def parse_address(raw: str, *, label: str = "address") -> str:
    """Return the checksummed form of *raw* or raise :class:`MalformedInput`."""

    if not isinstance(raw, str) or not is_address(raw.strip()):
        raise MalformedInput(f"Invalid {label}: {raw!r}")
    return to_checksum_address(raw.strip())


def _require_non_negative(value: Any, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise MalformedInput(f"{label} must be a non-negative integer, got {value!r}")
    return value


@dataclass(frozen=True)
class Account:
    """An address and, for the sender only, its private key."""

    address: str
    private_key: str | None = field(default=None, repr=False, compare=False)

    @classmethod
    def watch_only(cls, raw_address: str) -> "Account":
        return cls(address=parse_address(raw_address))

    @property
    def can_sign(self) -> bool:
        return self.private_key is not None


@dataclass(frozen=True)
class MonetaryAmount:
    wei: int

    def __post_init__(self) -> None:
        _require_non_negative(self.wei, "Amount")

    @classmethod
    def from_decimal(cls, value: str) -> "MonetaryAmount":
        return cls(ETHER.to_sub_units(value))

    @property
    def decimal(self) -> str:
        return ETHER.to_decimal_string(self.wei)

    def __str__(self) -> str:
        return f"{ETHER.format_display(self.wei)} {ETHER.symbol}"


@dataclass(frozen=True)
class FeeRate:
    """Fee per unit of gas, in wei."""

    wei_per_gas: int
    source: str
    sampled: int | None = None

    def __post_init__(self) -> None:
        _require_non_negative(self.wei_per_gas, "Fee rate")


@dataclass(frozen=True)
class ComputationBudget:
    """Gas limit derived from a simulated estimate plus a safety margin."""

    gas_limit: int
    estimate: int

    def __post_init__(self) -> None:
        _require_non_negative(self.gas_limit, "Gas limit")
        _require_non_negative(self.estimate, "Gas estimate")
        if self.gas_limit < self.estimate:
            raise MalformedInput(
                f"Gas limit {self.gas_limit} is below the simulated usage {self.estimate}"
            )


@dataclass(frozen=True)
class UnsignedTransaction:
    """Canonical legacy transaction bound to a chain id."""

    destination: str
    value: MonetaryAmount
    fee_rate: int
    gas_limit: int
    sender: str
    chain_id: int
    nonce: int = 0
    data: str = "0x"

    def to_signable(self) -> Dict[str, Any]:
        """Return the dict shape expected by ``eth_account``'s legacy signer."""

        return {
            "to": self.destination,
            "value": self.value.wei,
            "gas": self.gas_limit,
            "gasPrice": self.fee_rate,
            "nonce": self.nonce,
            "chainId": self.chain_id,
            "data": self.data,
        }

    @property
    def max_fee_wei(self) -> int:
        return self.fee_rate * self.gas_limit


@dataclass(frozen=True)
class SignedTransaction:
    unsigned: UnsignedTransaction
    raw_transaction: str
    tx_hash: str


@dataclass(frozen=True)
class TransactionReceipt:
    included: bool
    block_number: int | None = None
    status: int | None = None
    gas_used: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.included and self.status != 0


@dataclass(frozen=True)
class SubmissionResult:
    tx_hash: str
    block_number: int | None = None
    confirmations: int = 0
    gas_used: int | None = None

"""Local signing of assembled transactions."""

from __future__ import annotations

import logging

from eth_account import Account as EthAccount
from eth_utils import to_hex

from .errors import MalformedInput, SubmissionError
from .model import Account, SignedTransaction, UnsignedTransaction, parse_address

logger = logging.getLogger(__name__)


class SigningError(SubmissionError):
    stage = "sign"


def account_from_private_key(raw_key: str) -> Account:
    """Build the sender :class:`Account` from hex key material.

    Error messages never include the key.
    """

    key = raw_key.strip()
    if not key.startswith("0x"):
        key = "0x" + key
    try:
        address = EthAccount.from_key(key).address
    except (ValueError, TypeError) as exc:
        raise MalformedInput("private key is not a valid 32-byte secp256k1 key") from exc
    return Account(address=parse_address(address, label="sender address"), private_key=key)


def sign_transaction(unsigned: UnsignedTransaction, account: Account) -> SignedTransaction:
    """Sign *unsigned* with *account*'s key using EIP-155 replay protection."""

    if not account.can_sign:
        raise SigningError(f"Account {account.address} has no private key loaded")
    if parse_address(unsigned.sender) != account.address:
        raise SigningError(
            f"Transaction sender {unsigned.sender} does not match signing account {account.address}"
        )
    try:
        signed = EthAccount.sign_transaction(unsigned.to_signable(), account.private_key)
    except (ValueError, TypeError) as exc:
        raise SigningError(f"Could not sign transaction: {exc}") from exc

    tx_hash = to_hex(signed.hash)
    logger.debug("Signed transaction %s (nonce=%s chain_id=%s)", tx_hash, unsigned.nonce, unsigned.chain_id)
    return SignedTransaction(
        unsigned=unsigned,
        raw_transaction=to_hex(signed.raw_transaction),
        tx_hash=tx_hash,
    )

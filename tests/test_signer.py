from __future__ import annotations

import pytest
from eth_account import Account as EthAccount

from arbisend.errors import MalformedInput
from arbisend.model import Account, MonetaryAmount
from arbisend.signer import SigningError, account_from_private_key, sign_transaction
from arbisend.tx_builder import assemble_transaction

TEST_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
DESTINATION = "0x2222222222222222222222222222222222222222"


def _unsigned(sender: str, chain_id: int = 421614):
    return assemble_transaction(
        destination=DESTINATION,
        value=MonetaryAmount.from_decimal("0.5"),
        fee_rate=2,
        gas_limit=27_300,
        sender=sender,
        chain_id=chain_id,
        nonce=0,
    )


def test_signature_recovers_sender() -> None:
    account = account_from_private_key(TEST_KEY)
    signed = sign_transaction(_unsigned(account.address), account)

    assert signed.tx_hash.startswith("0x") and len(signed.tx_hash) == 66
    assert signed.raw_transaction.startswith("0x")
    assert EthAccount.recover_transaction(signed.raw_transaction) == account.address


def test_chain_id_changes_signature() -> None:
    account = account_from_private_key(TEST_KEY)
    first = sign_transaction(_unsigned(account.address, chain_id=421614), account)
    second = sign_transaction(_unsigned(account.address, chain_id=1), account)
    assert first.tx_hash != second.tx_hash


def test_watch_only_account_cannot_sign() -> None:
    account = Account.watch_only(DESTINATION)
    with pytest.raises(SigningError):
        sign_transaction(_unsigned(DESTINATION), account)


def test_sender_mismatch_is_rejected() -> None:
    account = account_from_private_key(TEST_KEY)
    with pytest.raises(SigningError):
        sign_transaction(_unsigned("0x3333333333333333333333333333333333333333"), account)


def test_invalid_key_is_malformed_input() -> None:
    with pytest.raises(MalformedInput) as excinfo:
        account_from_private_key("0x1234")
    assert "0x1234" not in str(excinfo.value)

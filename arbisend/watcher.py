"""Receipt polling for broadcast transactions."""

from __future__ import annotations

import logging
import time
from typing import Callable

from .errors import ConfirmationTimeout, TransactionReverted
from .model import SubmissionResult, TransactionReceipt
from .rpc_client import EthereumRPCClient, RPCError, RPCTransportError

logger = logging.getLogger(__name__)


class ConfirmationWatcher:
    """Poll ``eth_getTransactionReceipt`` until inclusion or a hard deadline.

    Running out of time raises :class:`ConfirmationTimeout`, which is not a
    rejection: the transaction may still land. A receipt with ``status == 0``
    raises :class:`TransactionReverted`. RPC errors while polling are logged
    and the loop keeps going until the deadline.
    """

    def __init__(
        self,
        rpc: EthereumRPCClient,
        *,
        timeout_seconds: float = 120.0,
        poll_interval_seconds: float = 1.0,
        required_confirmations: int = 1,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if required_confirmations < 1:
            raise ValueError("required_confirmations must be at least 1")
        self.rpc = rpc
        self.timeout_seconds = timeout_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self.required_confirmations = required_confirmations
        self._sleep = sleep
        self._clock = clock

    def poll_once(self, tx_hash: str) -> TransactionReceipt:
        return self.rpc.get_transaction_receipt(tx_hash)

    def confirmations_for(self, receipt: TransactionReceipt) -> int:
        if not receipt.included or receipt.block_number is None:
            return 0
        if self.required_confirmations == 1:
            return 1
        latest = self.rpc.block_number()
        return max(latest - receipt.block_number + 1, 0)

    def wait(self, tx_hash: str) -> SubmissionResult:
        started = self._clock()
        deadline = started + self.timeout_seconds
        attempt = 0
        while True:
            attempt += 1
            try:
                receipt = self.poll_once(tx_hash)
                confirmations = self.confirmations_for(receipt)
            except (RPCError, RPCTransportError) as exc:
                logger.warning("Receipt poll %d for %s failed: %s", attempt, tx_hash, exc)
            else:
                if receipt.included and receipt.status == 0:
                    raise TransactionReverted(tx_hash, receipt.block_number)
                if confirmations >= self.required_confirmations:
                    logger.info(
                        "Transaction %s confirmed in block %s (%d confirmation(s))",
                        tx_hash,
                        receipt.block_number,
                        confirmations,
                    )
                    return SubmissionResult(
                        tx_hash=tx_hash,
                        block_number=receipt.block_number,
                        confirmations=confirmations,
                        gas_used=receipt.gas_used,
                    )
                logger.debug(
                    "Poll %d: %s has %d/%d confirmation(s)",
                    attempt,
                    tx_hash,
                    confirmations,
                    self.required_confirmations,
                )

            now = self._clock()
            if now >= deadline:
                raise ConfirmationTimeout(tx_hash, now - started)
            self._sleep(min(self.poll_interval_seconds, deadline - now))

"""Typed JSON-RPC client for EVM-compatible nodes.

Each helper maps directly to one ``eth_*`` method and decodes hex quantities
into Python ints. No retry logic lives here: every call is a single attempt
bounded by the configured per-call timeout, and failures surface as
:class:`RPCError` (the node answered with an error object) or
:class:`RPCTransportError` (the node could not be reached or answered with
something that is not JSON-RPC).
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from typing import Any, Dict, Optional

import requests
from requests import RequestException, Response

from .config import SubmissionConfig
from .model import TransactionReceipt

logger = logging.getLogger(__name__)


class RPCError(RuntimeError):
    """Raised when the node responds with a JSON-RPC error object."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data


class RPCTransportError(RuntimeError):
    """Raised when the RPC endpoint is unreachable or returns malformed data."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def format_rpc_hint(error_obj: dict[str, Any] | RPCError | None) -> str | None:
    """Return a short remediation hint for common node rejections."""

    if error_obj is None:
        return None

    message = ""
    if isinstance(error_obj, RPCError):
        message = error_obj.message
    elif isinstance(error_obj, dict):
        message = str(error_obj.get("message", ""))
    lowered = message.lower()

    if "insufficient funds" in lowered:
        return (
            "The sender cannot cover value + gas * gasPrice. Fund the account or lower "
            "--amount / --gas-price-gwei."
        )
    if "nonce too low" in lowered or "already known" in lowered:
        return (
            "Another transaction from this account already used the nonce. Wait for it to "
            "confirm and retry; concurrent sends from one account are not coordinated."
        )
    if "replacement transaction underpriced" in lowered:
        return "A pending transaction with the same nonce pays a higher fee; raise the gas price."
    if "intrinsic gas too low" in lowered or "gas required exceeds" in lowered:
        return "The gas limit is below what the transaction needs; the node's estimate may be stale."
    if "execution reverted" in lowered:
        return "The destination contract rejected the call; a broadcast would fail on-chain."
    if "fee cap less than block base fee" in lowered or "max fee per gas less than" in lowered:
        return "The gas price is below the current base fee; omit the override to sample the network rate."
    return None


_QUANTITY_PATTERN = re.compile(r"^0[xX][0-9a-fA-F]+\Z")


def hex_to_int(value: Any, *, field: str = "quantity") -> int:
    """Decode a JSON-RPC hex quantity (``"0x1a"``) into an int."""

    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and _QUANTITY_PATTERN.match(value):
        return int(value, 16)
    raise RPCTransportError(f"Node returned a malformed {field}: {value!r}")


def int_to_hex(value: int) -> str:
    return hex(value)


class EthereumRPCClient:
    """Thin JSON-RPC client over a shared ``requests`` session."""

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_config(cls, config: SubmissionConfig) -> "EthereumRPCClient":
        return cls(config.rpc_endpoint, timeout=config.per_call_timeout)

    def call(self, method: str, params: Optional[list[Any]] = None) -> Any:
        """Perform a JSON-RPC request."""

        payload = {
            "jsonrpc": "2.0",
            "id": str(uuid.uuid4()),
            "method": method,
            "params": params or [],
        }
        logger.debug("RPC call %s params=%s", method, params)
        try:
            response = self._session.post(
                self.endpoint,
                data=json.dumps(payload),
                headers={"content-type": "application/json"},
                timeout=self.timeout,
            )
        except RequestException as exc:
            logger.error(
                "RPC connection failed: %s",
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise RPCTransportError(
                f"RPC connection to {self.endpoint} failed ({exc.__class__.__name__}). "
                "Ensure the node is reachable and ARB_RPC points to the right URL."
            ) from exc
        try:
            self._raise_for_status(response)
        except requests.HTTPError as exc:
            raise RPCTransportError(
                f"RPC server returned HTTP {response.status_code}; check the endpoint URL.",
                status_code=response.status_code,
            ) from exc
        try:
            result = response.json()
        except ValueError as exc:
            logger.debug("RPC JSON parse error: %s", response.text, exc_info=True)
            raise RPCTransportError("RPC server returned malformed JSON") from exc
        if not isinstance(result, dict):
            raise RPCTransportError("RPC server returned a non-object JSON-RPC response")
        if result.get("error"):
            error = result["error"]
            if not isinstance(error, dict):
                raise RPCError(-1, str(error))
            raise RPCError(
                error.get("code", -1), error.get("message", "unknown"), error.get("data")
            )
        return result.get("result")

    def _raise_for_status(self, response: Response) -> None:
        # JSON-RPC error objects can arrive with a 4xx/5xx status; let the
        # caller parse them instead of treating them as transport failures.
        if response.ok:
            return
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            logger.debug("RPC error body with HTTP %s: %s", response.status_code, body)
            return
        logger.error("RPC HTTP error %s from %s", response.status_code, response.url)
        response.raise_for_status()

    # Convenience wrappers -------------------------------------------------

    def chain_id(self) -> int:
        return hex_to_int(self.call("eth_chainId"), field="chain id")

    def block_number(self) -> int:
        return hex_to_int(self.call("eth_blockNumber"), field="block number")

    def get_balance(self, address: str, block: str = "latest") -> int:
        return hex_to_int(self.call("eth_getBalance", [address, block]), field="balance")

    def gas_price(self) -> int:
        return hex_to_int(self.call("eth_gasPrice"), field="gas price")

    def estimate_gas(self, skeleton: Dict[str, Any]) -> int:
        return hex_to_int(self.call("eth_estimateGas", [_encode_call(skeleton)]), field="gas estimate")

    def get_transaction_count(self, address: str, block: str = "pending") -> int:
        return hex_to_int(
            self.call("eth_getTransactionCount", [address, block]), field="transaction count"
        )

    def send_raw_transaction(self, raw_tx: str) -> str:
        return self.call("eth_sendRawTransaction", [raw_tx])

    def get_transaction_receipt(self, tx_hash: str) -> TransactionReceipt:
        receipt = self.call("eth_getTransactionReceipt", [tx_hash])
        if not receipt:
            return TransactionReceipt(included=False)
        if not isinstance(receipt, dict):
            raise RPCTransportError(f"Node returned a malformed receipt: {receipt!r}")
        block_number = receipt.get("blockNumber")
        if block_number is None:
            return TransactionReceipt(included=False)
        status = receipt.get("status")
        gas_used = receipt.get("gasUsed")
        return TransactionReceipt(
            included=True,
            block_number=hex_to_int(block_number, field="block number"),
            status=hex_to_int(status, field="status") if status is not None else None,
            gas_used=hex_to_int(gas_used, field="gas used") if gas_used is not None else None,
        )


def _encode_call(skeleton: Dict[str, Any]) -> Dict[str, Any]:
    """Hex-encode int fields of a call object for ``eth_estimateGas``."""

    encoded: Dict[str, Any] = {}
    for key, value in skeleton.items():
        if value is None:
            continue
        if isinstance(value, int) and not isinstance(value, bool):
            encoded[key] = int_to_hex(value)
        else:
            encoded[key] = value
    return encoded

"""Command-line interface for arbisend.

``send`` runs the full submission pipeline; ``balance``, ``gas`` and ``ping``
are read-only helpers that share the same RPC configuration.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Sequence

from .config import ConfigurationError, SubmissionConfig, load_sender_account, load_submission_config
from .errors import ConfirmationTimeout, MalformedInput, SubmissionError
from .fees import BASE_TRANSFER_GAS, gwei_to_wei, quote_transfer_fee
from .model import parse_address
from .pipeline import PipelineState, SubmissionPipeline
from .rpc_client import EthereumRPCClient, RPCError, RPCTransportError
from .units import ETHER

logger = logging.getLogger(__name__)

COMPACT_JSON_SEPARATORS = (",", ":")
DEFAULT_BALANCE_ADDRESS = "0xe1537a3b6d944256d7493e20669c30e5ce238912"
EXIT_FAILED = 1
EXIT_UNCONFIRMED = 2


class CLIError(RuntimeError):
    """Raised when CLI arguments are invalid."""


class SubmissionInterrupted(CLIError):
    """Raised when ``send`` is interrupted after the transaction was signed."""

    def __init__(self, tx_hash: str) -> None:
        super().__init__(f"Interrupted after signing {tx_hash}; outcome unknown")
        self.tx_hash = tx_hash


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Native-value transfers over EVM JSON-RPC")
    parser.add_argument("--config", default=None, help="Path to a YAML config file (default: ~/.arbisend.yaml)")
    parser.add_argument("--rpc-url", default=None, help="JSON-RPC endpoint (overrides ARB_RPC)")
    parser.add_argument("--rpc-timeout", type=float, default=None, help="Per-call timeout in seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    send_parser = subparsers.add_parser("send", help="transfer native value and wait for confirmation")
    send_parser.add_argument("--to", dest="to_address", default=None, help="Destination address (default: TO_ADDR)")
    send_parser.add_argument("--amount", default=None, help="Amount in ETH as a decimal string (default: 0.001)")
    fee_group = send_parser.add_mutually_exclusive_group()
    fee_group.add_argument(
        "--gas-price-wei", type=int, default=None, help="Use this gas price verbatim instead of sampling"
    )
    fee_group.add_argument(
        "--gas-price-gwei", default=None, help="Same as --gas-price-wei but in gwei (decimal allowed)"
    )
    send_parser.add_argument("--chain-id", type=int, default=None, help="Replay-protection chain id")
    send_parser.add_argument(
        "--confirmations", type=int, default=None, help="Blocks to wait for (default: 1)"
    )
    send_parser.add_argument(
        "--timeout", type=float, default=None, help="Maximum seconds to wait for confirmation"
    )
    send_parser.add_argument(
        "--skip-chain-check",
        action="store_true",
        help="Do not compare --chain-id with the node's eth_chainId before signing",
    )

    balance_parser = subparsers.add_parser("balance", help="print an address balance")
    balance_parser.add_argument("address", nargs="?", default=DEFAULT_BALANCE_ADDRESS, help="Address to query")

    gas_parser = subparsers.add_parser("gas", help="print the node's gas price and a transfer fee quote")
    gas_parser.add_argument(
        "--gas", type=int, default=BASE_TRANSFER_GAS, help="Gas units to price (default: %(default)s)"
    )

    subparsers.add_parser("ping", help="print the node's chain id and latest block number")
    return parser


def _load_config(args: argparse.Namespace, **extra: Any) -> SubmissionConfig:
    overrides: dict[str, Any] = {
        "rpc_endpoint": args.rpc_url,
        "per_call_timeout": args.rpc_timeout,
    }
    overrides.update(extra)
    return load_submission_config(config_path=args.config, overrides=overrides)


def _emit(data: dict[str, Any]) -> None:
    print(json.dumps(data, separators=COMPACT_JSON_SEPARATORS))


def _stderr_progress(state: PipelineState) -> None:
    print(f"  - {state.value}", file=sys.stderr)


def cmd_send(args: argparse.Namespace) -> None:
    override_fee_rate = args.gas_price_wei
    if args.gas_price_gwei is not None:
        try:
            override_fee_rate = gwei_to_wei(args.gas_price_gwei)
        except MalformedInput as exc:
            raise CLIError(f"invalid --gas-price-gwei: {exc.reason}") from exc
    config = _load_config(
        args,
        override_fee_rate=override_fee_rate,
        chain_id=args.chain_id,
        required_confirmations=args.confirmations,
        confirmation_timeout=args.timeout,
        verify_chain_id=False if args.skip_chain_check else None,
        destination=args.to_address,
        transfer_amount=args.amount,
    )
    account = load_sender_account()
    rpc = EthereumRPCClient.from_config(config)
    pipeline = SubmissionPipeline(rpc, config, account, on_transition=_stderr_progress)
    try:
        result = pipeline.submit()
    except KeyboardInterrupt:
        if pipeline.signed is None:
            raise
        raise SubmissionInterrupted(pipeline.signed.tx_hash) from None

    unsigned = pipeline.unsigned
    _emit(
        {
            "tx_hash": result.tx_hash,
            "block_number": result.block_number,
            "confirmations": result.confirmations,
            "from": account.address,
            "to": unsigned.destination if unsigned else None,
            "value_wei": unsigned.value.wei if unsigned else None,
            "value_eth": unsigned.value.decimal if unsigned else None,
            "gas_price_wei": unsigned.fee_rate if unsigned else None,
            "gas_limit": unsigned.gas_limit if unsigned else None,
            "gas_used": result.gas_used,
        }
    )


def cmd_balance(args: argparse.Namespace) -> None:
    address = parse_address(args.address)
    config = _load_config(args)
    rpc = EthereumRPCClient.from_config(config)
    wei = rpc.get_balance(address)
    _emit(
        {
            "address": address,
            "rpc": config.rpc_endpoint,
            "wei": wei,
            "eth": ETHER.to_decimal_string(wei),
        }
    )


def cmd_gas(args: argparse.Namespace) -> None:
    if args.gas < 0:
        raise CLIError("--gas must be non-negative")
    config = _load_config(args)
    rpc = EthereumRPCClient.from_config(config)
    _emit(quote_transfer_fee(rpc, args.gas))


def cmd_ping(args: argparse.Namespace) -> None:
    config = _load_config(args)
    rpc = EthereumRPCClient.from_config(config)
    _emit(
        {
            "rpc": config.rpc_endpoint,
            "chain_id": rpc.chain_id(),
            "block_number": rpc.block_number(),
        }
    )


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        if args.command == "send":
            cmd_send(args)
        elif args.command == "balance":
            cmd_balance(args)
        elif args.command == "gas":
            cmd_gas(args)
        elif args.command == "ping":
            cmd_ping(args)
        else:  # pragma: no cover - argparse enforces choices
            raise CLIError(f"Unknown command: {args.command}")
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        parser.exit(EXIT_FAILED, "error: interrupted\n")
    except (ConfirmationTimeout, SubmissionInterrupted) as exc:
        _emit({"tx_hash": exc.tx_hash, "status": "unconfirmed"})
        parser.exit(EXIT_UNCONFIRMED, f"error: {exc}\n")
    except (
        CLIError,
        ConfigurationError,
        SubmissionError,
        RPCError,
        RPCTransportError,
    ) as exc:
        parser.exit(EXIT_FAILED, f"error: {exc}\n")


if __name__ == "__main__":
    main(sys.argv[1:])

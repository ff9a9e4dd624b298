"""Shared configuration loader for arbisend."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml

from .errors import MalformedInput
from .model import Account
from .signer import account_from_private_key
from .units import GWEI


class ConfigurationError(RuntimeError):
    """Raised when configuration is invalid."""


DEFAULT_CONFIG_PATH = Path.home() / ".arbisend.yaml"
DEFAULT_RPC_ENDPOINT = "https://sepolia-rollup.arbitrum.io/rpc"
DEFAULT_CHAIN_ID = 421614
DEFAULT_TRANSFER_AMOUNT = "0.001"
DEFAULT_PER_CALL_TIMEOUT = 10.0
DEFAULT_CONFIRMATION_TIMEOUT = 120.0
DEFAULT_POLL_INTERVAL = 1.0

_INTEGER_PATTERN = re.compile(r"^[+-]?[0-9]+$")


@dataclass
class SubmissionConfig:
    """Everything the pipeline needs besides the signing key."""

    rpc_endpoint: str = DEFAULT_RPC_ENDPOINT
    chain_id: int = DEFAULT_CHAIN_ID
    override_fee_rate: int | None = None
    transfer_amount: str = DEFAULT_TRANSFER_AMOUNT
    destination: str | None = None
    required_confirmations: int = 1
    confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    per_call_timeout: float = DEFAULT_PER_CALL_TIMEOUT
    verify_chain_id: bool = True

    def __post_init__(self) -> None:
        if self.required_confirmations < 1:
            raise ConfigurationError("required_confirmations must be at least 1")
        if self.confirmation_timeout <= 0 or self.per_call_timeout <= 0:
            raise ConfigurationError("Timeouts must be positive")
        if self.poll_interval <= 0:
            raise ConfigurationError("poll_interval must be positive")
        if self.chain_id <= 0:
            raise ConfigurationError("chain_id must be positive")
        if self.override_fee_rate is not None and self.override_fee_rate < 0:
            raise ConfigurationError("override_fee_rate must be non-negative")


def _load_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigurationError(f"Config file not found: {path}")
        return {}

    try:
        loaded = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - delegated to PyYAML
        raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Expected {path} to contain a YAML object with 'rpc'/'tx' sections")
    return loaded


def _section(file_config: dict[str, Any], name: str, path: Path) -> dict[str, Any]:
    section = file_config.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Expected '{name}' to be a mapping in {path}")
    return section


def _coerce_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "y", "on"}:
            return True
        if normalized in {"0", "false", "no", "n", "off"}:
            return False
    return None


def _coerce_int(raw: Any, *, source: str) -> int | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    if isinstance(raw, str) and _INTEGER_PATTERN.match(raw.strip()):
        return int(raw.strip())
    raise ConfigurationError(f"Invalid integer in {source}: {raw}")


def _coerce_seconds(raw: Any, *, source: str) -> float | None:
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid duration in {source}: {raw}") from exc


def _coerce_gwei(raw: Any, *, source: str) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        return GWEI.to_sub_units(str(raw))
    except MalformedInput as exc:
        raise ConfigurationError(f"Invalid gwei fee rate in {source}: {raw}") from exc


def _first_value(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def _validate_endpoint(raw: str) -> str:
    parsed = urlparse(raw)
    if parsed.scheme.lower() not in {"http", "https"} or not parsed.hostname:
        raise ConfigurationError(f"Invalid RPC endpoint URL: {raw}")
    return raw


def load_submission_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> SubmissionConfig:
    """Load submission settings from overrides, environment and optional YAML."""

    env_map = os.environ if env is None else env
    path = Path(config_path).expanduser() if config_path is not None else DEFAULT_CONFIG_PATH
    file_config = _load_config_file(path, required=config_path is not None)
    rpc_section = _section(file_config, "rpc", path)
    tx_section = _section(file_config, "tx", path)
    override_map = {key: value for key, value in (overrides or {}).items() if value is not None}

    endpoint = _first_value(
        override_map.get("rpc_endpoint"),
        env_map.get("ARBISEND_RPC_URL") or env_map.get("ARB_RPC"),
        rpc_section.get("endpoint"),
        default=DEFAULT_RPC_ENDPOINT,
    )
    chain_id = _first_value(
        _coerce_int(override_map.get("chain_id"), source="overrides"),
        _coerce_int(env_map.get("ARBISEND_CHAIN_ID"), source="environment"),
        _coerce_int(rpc_section.get("chain_id"), source=f"{path} rpc.chain_id"),
        default=DEFAULT_CHAIN_ID,
    )
    per_call_timeout = _first_value(
        _coerce_seconds(override_map.get("per_call_timeout"), source="overrides"),
        _coerce_seconds(env_map.get("ARBISEND_RPC_TIMEOUT"), source="environment"),
        _coerce_seconds(rpc_section.get("timeout"), source=f"{path} rpc.timeout"),
        default=DEFAULT_PER_CALL_TIMEOUT,
    )
    verify_chain_id = _first_value(
        _coerce_bool(override_map.get("verify_chain_id")),
        _coerce_bool(env_map.get("ARBISEND_VERIFY_CHAIN_ID")),
        _coerce_bool(rpc_section.get("verify_chain_id")),
        default=True,
    )

    override_fee_rate = _first_value(
        _coerce_int(override_map.get("override_fee_rate"), source="overrides"),
        _coerce_int(env_map.get("ARBISEND_GAS_PRICE_WEI"), source="environment"),
        _coerce_gwei(env_map.get("GAS_PRICE_GWEI"), source="environment"),
        _coerce_int(tx_section.get("gas_price_wei"), source=f"{path} tx.gas_price_wei"),
        _coerce_gwei(tx_section.get("gas_price_gwei"), source=f"{path} tx.gas_price_gwei"),
    )
    transfer_amount = _first_value(
        override_map.get("transfer_amount"),
        env_map.get("AMOUNT") or env_map.get("ARBISEND_AMOUNT"),
        tx_section.get("amount"),
        default=DEFAULT_TRANSFER_AMOUNT,
    )
    destination = _first_value(
        override_map.get("destination"),
        env_map.get("TO_ADDR") or env_map.get("ARBISEND_TO_ADDR"),
        tx_section.get("to"),
    )
    required_confirmations = _first_value(
        _coerce_int(override_map.get("required_confirmations"), source="overrides"),
        _coerce_int(env_map.get("ARBISEND_CONFIRMATIONS"), source="environment"),
        _coerce_int(tx_section.get("confirmations"), source=f"{path} tx.confirmations"),
        default=1,
    )
    confirmation_timeout = _first_value(
        _coerce_seconds(override_map.get("confirmation_timeout"), source="overrides"),
        _coerce_seconds(env_map.get("ARBISEND_CONFIRMATION_TIMEOUT"), source="environment"),
        _coerce_seconds(tx_section.get("confirmation_timeout"), source=f"{path} tx.confirmation_timeout"),
        default=DEFAULT_CONFIRMATION_TIMEOUT,
    )
    poll_interval = _first_value(
        _coerce_seconds(override_map.get("poll_interval"), source="overrides"),
        _coerce_seconds(tx_section.get("poll_interval"), source=f"{path} tx.poll_interval"),
        default=DEFAULT_POLL_INTERVAL,
    )

    return SubmissionConfig(
        rpc_endpoint=_validate_endpoint(str(endpoint)),
        chain_id=chain_id,
        override_fee_rate=override_fee_rate,
        transfer_amount=str(transfer_amount),
        destination=str(destination) if destination is not None else None,
        required_confirmations=required_confirmations,
        confirmation_timeout=confirmation_timeout,
        poll_interval=poll_interval,
        per_call_timeout=per_call_timeout,
        verify_chain_id=bool(verify_chain_id),
    )


def load_sender_account(env: Mapping[str, str] | None = None) -> Account:
    """Read the sender's private key from the environment once at startup."""

    env_map = os.environ if env is None else env
    raw_key = env_map.get("ARBISEND_PRIVATE_KEY") or env_map.get("PRIVKEY")
    if not raw_key:
        raise ConfigurationError("Set PRIVKEY (or ARBISEND_PRIVATE_KEY) to the sender's private key")
    try:
        return account_from_private_key(raw_key)
    except MalformedInput as exc:
        raise ConfigurationError(f"PRIVKEY is invalid: {exc.reason}") from exc

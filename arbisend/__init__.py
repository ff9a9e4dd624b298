"""Transaction submission pipeline for EVM-compatible JSON-RPC nodes."""

from .balance import BalanceGuard
from .budget import BudgetEstimator, apply_gas_margin
from .config import ConfigurationError, SubmissionConfig, load_sender_account, load_submission_config
from .errors import (
    BroadcastFailed,
    ChainMismatch,
    ConfirmationTimeout,
    FeeQueryFailed,
    InsufficientFunds,
    MalformedAmount,
    MalformedInput,
    SimulationFailed,
    SubmissionError,
    TransactionReverted,
    TransportError,
)
from .fees import FeeEstimator, apply_fee_margin
from .model import (
    Account,
    ComputationBudget,
    FeeRate,
    MonetaryAmount,
    SignedTransaction,
    SubmissionResult,
    TransactionReceipt,
    UnsignedTransaction,
)
from .pipeline import PipelineState, SubmissionPipeline
from .rpc_client import EthereumRPCClient, RPCError, RPCTransportError
from .signer import sign_transaction
from .tx_builder import assemble_transaction
from .units import ETHER, GWEI, UnitConverter, to_decimal_string, to_sub_units
from .watcher import ConfirmationWatcher

__all__ = [
    "Account",
    "BalanceGuard",
    "BroadcastFailed",
    "BudgetEstimator",
    "ChainMismatch",
    "ComputationBudget",
    "ConfigurationError",
    "ConfirmationTimeout",
    "ConfirmationWatcher",
    "ETHER",
    "EthereumRPCClient",
    "FeeEstimator",
    "FeeQueryFailed",
    "FeeRate",
    "GWEI",
    "InsufficientFunds",
    "MalformedAmount",
    "MalformedInput",
    "MonetaryAmount",
    "PipelineState",
    "RPCError",
    "RPCTransportError",
    "SignedTransaction",
    "SimulationFailed",
    "SubmissionConfig",
    "SubmissionError",
    "SubmissionPipeline",
    "SubmissionResult",
    "TransactionReceipt",
    "TransactionReverted",
    "TransportError",
    "UnitConverter",
    "UnsignedTransaction",
    "apply_fee_margin",
    "apply_gas_margin",
    "assemble_transaction",
    "load_sender_account",
    "load_submission_config",
    "sign_transaction",
    "to_decimal_string",
    "to_sub_units",
]

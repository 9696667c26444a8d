"""Public API for pool_protocol."""
from __future__ import annotations

from importlib import import_module

from .controller import PoolController
from .exceptions import (
    AlreadySpent,
    DuplicateCommitment,
    InvalidAmount,
    InvalidArgument,
    InvalidProof,
    PoolError,
    TreeFull,
    UnknownRoot,
)
from .factory import get_verifier
from .feature_flags import get_verifier_type, set_verifier_type
from .interfaces import ProofVerifier
from .ledger import InMemoryLedger, Ledger
from .merkle import IncrementalMerkleTree
from .registry import CommitmentRegistry, NullifierRegistry
from .state import FileStateStore, MemoryStateStore, PoolState, StateStore
from .types import DepositEvent, WithdrawalEvent

__all__ = [
    "PoolController",
    "PoolState",
    "StateStore",
    "MemoryStateStore",
    "FileStateStore",
    "Ledger",
    "InMemoryLedger",
    "IncrementalMerkleTree",
    "CommitmentRegistry",
    "NullifierRegistry",
    "ProofVerifier",
    "get_verifier",
    "get_verifier_type",
    "set_verifier_type",
    "DepositEvent",
    "WithdrawalEvent",
    "PoolError",
    "InvalidAmount",
    "DuplicateCommitment",
    "AlreadySpent",
    "UnknownRoot",
    "InvalidProof",
    "InvalidArgument",
    "TreeFull",
    "MockVerifier",
    "ProductionVerifier",
]

# Verifier variants load on first use so importing the pool does not pull in
# the pairing backend.
_LAZY_EXPORTS = {
    "MockVerifier": "adapters.mock_adapter",
    "ProductionVerifier": "snark.backend",
}


def __getattr__(name: str):
    if name in _LAZY_EXPORTS:
        module = import_module(f"{__name__}.{_LAZY_EXPORTS[name]}")
        value = getattr(module, name)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

"""
Verifier interface for withdrawal proofs.

WARNING: The verifier is the only thing standing between a withdrawal request
and the pool's funds. Exactly two implementations exist: the Groth16
ProductionVerifier and the always-accepting MockVerifier for tests. The
variant is fixed when a pool is deployed, never chosen per call.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict


class ProofVerifier(ABC):
    """
    Predicate binding a proof blob to the withdrawal public inputs.

    Implementations must be pure: no state, no I/O, no exceptions for
    malformed proofs (return False instead), bounded running time.
    """

    #: True only for the test variant that accepts everything
    is_mock: bool = False

    @property
    @abstractmethod
    def backend_name(self) -> str:
        ...

    @abstractmethod
    def verify(
        self,
        proof: bytes,
        root: int,
        nullifier_hash: int,
        recipient: bytes,
    ) -> bool:
        """
        Return True only if ``proof`` shows knowledge of a note whose
        commitment is a leaf under ``root`` and whose nullifier hashes to
        ``nullifier_hash``, bound to ``recipient``.
        """

    def get_backend_info(self) -> Dict[str, Any]:
        return {
            "name": self.backend_name,
            "mock": self.is_mock,
        }

from __future__ import annotations

from typing import Any, Dict

from ..exceptions import ConfigurationError
from ..feature_flags import is_production
from ..interfaces import ProofVerifier


class MockVerifier(ProofVerifier):
    """
    Verifier that accepts every proof.

    Notes:
    - This is for testing the pool state machine without a prover.
    - It does NOT provide any security: anyone could drain a pool using it.
    - Construction fails when SHROUD_POOL_ENV=production.
    """

    _BACKEND_NAME = "MockVerifier"
    _BACKEND_VERSION = "0.1.0"

    is_mock = True

    def __init__(self) -> None:
        if is_production():
            raise ConfigurationError(
                "MockVerifier cannot be used in a production deployment"
            )

    @property
    def backend_name(self) -> str:
        return self._BACKEND_NAME

    @property
    def backend_version(self) -> str:
        return self._BACKEND_VERSION

    def verify(
        self,
        proof: bytes,
        root: int,
        nullifier_hash: int,
        recipient: bytes,
    ) -> bool:
        return True

    def get_backend_info(self) -> Dict[str, Any]:
        return {
            "name": self.backend_name,
            "version": self.backend_version,
            "mock": True,
            "security": "mock_only",
        }

"""
Deployment-time factory for the withdrawal verifier.

WARNING: Call this once when deploying a pool and hand the result to the
PoolController. The mock variant accepts every proof; it is refused when
SHROUD_POOL_ENV=production.
"""

from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Final

from .exceptions import ConfigurationError
from .feature_flags import get_verifier_type, is_production
from .interfaces import ProofVerifier

logger = logging.getLogger(__name__)

VERIFIER_REGISTRY: Final[dict[str, str]] = {
    "mock": "adapters.mock_adapter.MockVerifier",
    "groth16": "snark.backend.ProductionVerifier",
}

_PACKAGE: Final[str] = __package__ or "shroud_pool.pool_protocol"


def _load_verifier_class(name: str) -> type[ProofVerifier]:
    import_path = VERIFIER_REGISTRY[name]
    module_path, _, class_name = import_path.rpartition(".")
    module = importlib.import_module(f"{_PACKAGE}.{module_path}")

    try:
        verifier_cls = getattr(module, class_name)
    except AttributeError as exc:
        raise ImportError(
            f"Verifier class {class_name!r} not found in module {module.__name__!r}"
        ) from exc

    if not isinstance(verifier_cls, type) or not issubclass(verifier_cls, ProofVerifier):
        raise TypeError(f"{import_path!r} does not implement ProofVerifier")

    return verifier_cls


def get_verifier(
    *, prefer: str | None = None, vk_path: str | Path | None = None
) -> ProofVerifier:
    """
    Build the verifier for a deployment.

    Args:
        prefer: Variant fixed by deployment code; falls back to feature flags.
        vk_path: Verifying key for the groth16 variant; resolved from
            SHROUD_VK_PATH or packaged params when omitted.

    Raises:
        ValueError: If a variant name is invalid.
        ConfigurationError: If the mock is requested in production, or the
            verifying key cannot be found.
    """
    name = get_verifier_type(prefer)

    if name == "mock":
        if is_production():
            raise ConfigurationError(
                "mock verifier requested for a production deployment"
            )
        logger.warning("Deploying pool with MockVerifier: proofs are NOT checked")
        return _load_verifier_class(name)()

    from .snark.assets import resolve_vk

    try:
        path = Path(vk_path) if vk_path is not None else resolve_vk()
    except FileNotFoundError as exc:
        raise ConfigurationError(str(exc)) from exc

    logger.info("Loading withdraw verifying key from %s", path)
    verifier_cls = _load_verifier_class(name)
    return verifier_cls.from_file(path)

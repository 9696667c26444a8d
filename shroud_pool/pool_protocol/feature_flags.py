"""
Deployment flags for selecting the withdrawal verifier.

WARNING: These flags are read when a pool is deployed (the controller is
constructed), never per call. A deployment marked "production" cannot be
configured with the mock verifier.
"""

from __future__ import annotations

import os
from typing import Final

_VALID_VERIFIERS: Final[tuple[str, ...]] = ("mock", "groth16")
_DEFAULT_VERIFIER: Final[str] = "groth16"
_VERIFIER_ENV_VAR: Final[str] = "SHROUD_POOL_VERIFIER"

_VALID_ENVIRONMENTS: Final[tuple[str, ...]] = ("development", "production")
_DEFAULT_ENVIRONMENT: Final[str] = "development"
_ENVIRONMENT_ENV_VAR: Final[str] = "SHROUD_POOL_ENV"

_verifier_override: str | None = None


def _format_valid_options(options: tuple[str, ...]) -> str:
    return ", ".join(options)


def _normalize(value: str | None, options: tuple[str, ...], kind: str) -> str | None:
    if value is None:
        return None

    if not isinstance(value, str):
        raise ValueError(
            f"Invalid {kind}: {value!r}. Valid options: {_format_valid_options(options)}"
        )

    if value == "":
        return None

    if value not in options:
        raise ValueError(
            f"Invalid {kind}: {value!r}. Valid options: {_format_valid_options(options)}"
        )

    return value


def get_verifier_type(prefer: str | None = None) -> str:
    """
    Resolve verifier variant in precedence order.

    Args:
        prefer: Optional variant fixed by deployment code.

    Returns:
        Verifier variant string.

    Raises:
        ValueError: If a provided variant is invalid.
    """
    preferred = _normalize(prefer, _VALID_VERIFIERS, "verifier type")
    if preferred is not None:
        return preferred

    if _verifier_override is not None:
        return _verifier_override

    env_value = os.getenv(_VERIFIER_ENV_VAR)
    env_verifier = _normalize(env_value, _VALID_VERIFIERS, "verifier type")
    if env_verifier is not None:
        return env_verifier

    return _DEFAULT_VERIFIER


def set_verifier_type(value: str | None) -> None:
    """
    Set in-memory verifier override (testing only).

    Args:
        value: Variant to force, or None to clear the override.

    Raises:
        ValueError: If the value is invalid.
    """
    global _verifier_override
    _verifier_override = _normalize(value, _VALID_VERIFIERS, "verifier type")


def get_environment() -> str:
    env_value = os.getenv(_ENVIRONMENT_ENV_VAR)
    environment = _normalize(env_value, _VALID_ENVIRONMENTS, "environment")
    if environment is not None:
        return environment
    return _DEFAULT_ENVIRONMENT


def is_production() -> bool:
    return get_environment() == "production"

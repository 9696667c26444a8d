"""Shared fixtures: a Groth16 setup with known trapdoors for forging test proofs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import pytest
from py_ecc.optimized_bn128 import G1, G2, curve_order, multiply

from shroud_pool.pool_protocol import feature_flags
from shroud_pool.pool_protocol.snark.serialization import Groth16Proof, VerifyingKey
from shroud_pool.pool_protocol.types import recipient_to_field

_ALPHA, _BETA, _GAMMA, _DELTA = 3, 5, 7, 11
_IC = (13, 17, 19, 23)
_A, _C = 29, 31


@dataclass(frozen=True)
class TrapdoorSetup:
    vk: VerifyingKey
    prove: Callable[[int, int, bytes], bytes]


def _prove(root: int, nullifier_hash: int, recipient: bytes) -> bytes:
    r = curve_order
    inputs = (root, nullifier_hash, recipient_to_field(recipient))
    x = (_IC[0] + sum(v * k for v, k in zip(inputs, _IC[1:]))) % r
    # a * b = alpha * beta + x * gamma + c * delta
    b = (_ALPHA * _BETA + x * _GAMMA + _C * _DELTA) * pow(_A, r - 2, r) % r
    proof = Groth16Proof(a=multiply(G1, _A), b=multiply(G2, b), c=multiply(G1, _C))
    return proof.to_bytes()


@pytest.fixture(scope="session")
def trapdoor_setup() -> TrapdoorSetup:
    vk = VerifyingKey(
        alpha1=multiply(G1, _ALPHA),
        beta2=multiply(G2, _BETA),
        gamma2=multiply(G2, _GAMMA),
        delta2=multiply(G2, _DELTA),
        ic=[multiply(G1, k) for k in _IC],
    )
    return TrapdoorSetup(vk=vk, prove=_prove)


@pytest.fixture(autouse=True)
def reset_feature_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    feature_flags.set_verifier_type(None)
    monkeypatch.delenv("SHROUD_POOL_VERIFIER", raising=False)
    monkeypatch.delenv("SHROUD_POOL_ENV", raising=False)
    monkeypatch.delenv("SHROUD_VK_PATH", raising=False)
    yield
    feature_flags.set_verifier_type(None)

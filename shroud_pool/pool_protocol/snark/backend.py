"""Groth16 (BN254) verification of withdrawal proofs."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Sequence, Union

from py_ecc.optimized_bn128 import (
    FQ12,
    add,
    curve_order,
    final_exponentiate,
    multiply,
    neg,
    pairing,
)

from ..config import FIELD_MODULUS, PROOF_SIZE_BYTES, PUBLIC_INPUT_COUNT
from ..exceptions import CryptographicError
from ..interfaces import ProofVerifier
from ..types import recipient_to_field
from .serialization import G1Point, Groth16Proof, VerifyingKey, load_verifying_key

logger = logging.getLogger(__name__)

assert curve_order == FIELD_MODULUS, "py_ecc curve order disagrees with config"


def public_inputs(root: int, nullifier_hash: int, recipient: bytes) -> list[int]:
    """Public signals in circuit order: root, nullifier hash, recipient."""
    return [root, nullifier_hash, recipient_to_field(recipient)]


def _vk_x(ic: Sequence[G1Point], inputs: Sequence[int]) -> G1Point:
    # IC[0] + sum(inputs[i] * IC[i + 1])
    acc = ic[0]
    for point, value in zip(ic[1:], inputs):
        if value:
            acc = add(acc, multiply(point, value))
    return acc


class ProductionVerifier(ProofVerifier):
    """
    Verify compressed Groth16 proofs against a fixed verifying key.

    Checks e(A, B) == e(alpha1, beta2) * e(vk_x, gamma2) * e(C, delta2) as a
    single product of Miller loops with one final exponentiation.
    """

    _BACKEND_NAME = "Groth16BN254"

    def __init__(self, verifying_key: VerifyingKey) -> None:
        if len(verifying_key.ic) != PUBLIC_INPUT_COUNT + 1:
            raise ValueError(
                f"verifying key must have {PUBLIC_INPUT_COUNT} public inputs"
            )
        self._vk = verifying_key
        self._neg_alpha1 = neg(verifying_key.alpha1)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ProductionVerifier":
        return cls(load_verifying_key(path))

    @property
    def backend_name(self) -> str:
        return self._BACKEND_NAME

    @property
    def verifying_key(self) -> VerifyingKey:
        return self._vk

    def verify(
        self,
        proof: bytes,
        root: int,
        nullifier_hash: int,
        recipient: bytes,
    ) -> bool:
        if not isinstance(proof, (bytes, bytearray)) or len(proof) != PROOF_SIZE_BYTES:
            return False

        inputs = public_inputs(root, nullifier_hash, recipient)
        if any(value < 0 or value >= FIELD_MODULUS for value in inputs):
            return False

        try:
            decoded = Groth16Proof.from_bytes(bytes(proof))
        except CryptographicError as exc:
            logger.debug("Rejecting undecodable proof: %s", exc)
            return False

        vk = self._vk
        vk_x = _vk_x(vk.ic, inputs)

        # e(A, B) * e(-alpha1, beta2) * e(-vk_x, gamma2) * e(-C, delta2) == 1
        product = FQ12.one()
        for g2_point, g1_point in (
            (decoded.b, decoded.a),
            (vk.beta2, self._neg_alpha1),
            (vk.gamma2, neg(vk_x)),
            (vk.delta2, neg(decoded.c)),
        ):
            product = product * pairing(g2_point, g1_point, final_exponentiate=False)
        return final_exponentiate(product) == FQ12.one()

    def get_backend_info(self) -> Dict[str, Any]:
        return {
            "name": self.backend_name,
            "mock": False,
            "curve": "bn254",
            "proof_bytes": PROOF_SIZE_BYTES,
            "public_inputs": PUBLIC_INPUT_COUNT,
        }

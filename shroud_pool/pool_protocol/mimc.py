"""
MiMC7 hash over the BN254 scalar field.

Bit-compatible with circomlib's ``mimc7`` (and circomlibjs ``buildMimc7``),
which is what the off-chain withdrawal circuit uses for commitments,
nullifier hashes and Merkle nodes. Round constants are derived by iterated
keccak256 over the seed, so on-chain and off-chain code share them exactly.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Iterable, Tuple

from eth_utils import keccak

from .config import FIELD_MODULUS, MIMC_EXPONENT, MIMC_ROUNDS, MIMC_SEED


@lru_cache(maxsize=None)
def get_constants(
    seed: str = MIMC_SEED, rounds: int = MIMC_ROUNDS
) -> Tuple[int, ...]:
    """
    Derive the round constants.

    c[0] = 0 and c[i] = keccak256 applied i+1 times to the seed, reduced
    into the field.
    """
    constants = [0] * rounds
    digest = keccak(text=seed)
    for i in range(1, rounds):
        digest = keccak(digest)
        constants[i] = int.from_bytes(digest, "big") % FIELD_MODULUS
    return tuple(constants)


def mimc7_hash(x_in: int, key: int) -> int:
    """MiMC7 permutation of ``x_in`` under ``key``, with the key added back."""
    p = FIELD_MODULUS
    constants = get_constants()
    x_in %= p
    key %= p

    r = 0
    for i in range(MIMC_ROUNDS):
        if i == 0:
            t = (x_in + key) % p
        else:
            t = (r + key + constants[i]) % p
        r = pow(t, MIMC_EXPONENT, p)
    return (r + key) % p


def multi_hash(values: Iterable[int], key: int = 0) -> int:
    """Miyaguchi-Preneel style chaining of mimc7_hash over ``values``."""
    p = FIELD_MODULUS
    r = key % p
    for value in values:
        value %= p
        r = (r + value + mimc7_hash(value, r)) % p
    return r


def hash_pair(left: int, right: int) -> int:
    """Merkle node hash H(left, right)."""
    return multi_hash((left, right))

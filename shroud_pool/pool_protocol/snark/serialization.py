"""
BN254 point and key encodings for Groth16 withdrawal proofs.

Proofs use the arkworks compressed layout (what ``ark-serialize`` produces
with ``serialize_compressed``): a point is its x coordinate, little-endian,
with two flag bits in the most significant byte. Bit 7 marks the
lexicographically larger y, bit 6 the point at infinity. Fq2 elements are
written c0 then c1 and compared c1 first.

Verifying keys use the snarkjs JSON layout.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

from py_ecc.optimized_bn128 import (
    FQ,
    FQ2,
    Z1,
    Z2,
    b2 as _B2,
    curve_order,
    is_inf,
    is_on_curve,
    multiply,
    normalize,
)
from py_ecc.optimized_bn128 import b as _B

from ..config import (
    BASE_FIELD_MODULUS,
    G1_COMPRESSED_BYTES,
    G2_COMPRESSED_BYTES,
    PROOF_SIZE_BYTES,
    PUBLIC_INPUT_COUNT,
)
from ..exceptions import CryptographicError, ProofVerificationError

G1Point = Any
G2Point = Any
Fq2 = Tuple[int, int]

_Q = BASE_FIELD_MODULUS
_FLAG_NEGATIVE = 0x80
_FLAG_INFINITY = 0x40
_FLAG_MASK = _FLAG_NEGATIVE | _FLAG_INFINITY

_G1_B = 3
_B2_INT: Fq2 = (int(_B2.coeffs[0]), int(_B2.coeffs[1]))

# ============================================================================
# FIELD HELPERS
# ============================================================================


def _sqrt_fq(a: int) -> Optional[int]:
    # q = 3 (mod 4)
    a %= _Q
    root = pow(a, (_Q + 1) // 4, _Q)
    if root * root % _Q != a:
        return None
    return root


def _fq2_mul(a: Fq2, b: Fq2) -> Fq2:
    # i^2 = -1
    return (
        (a[0] * b[0] - a[1] * b[1]) % _Q,
        (a[0] * b[1] + a[1] * b[0]) % _Q,
    )


def _fq2_sqrt(a: Fq2) -> Optional[Fq2]:
    a0, a1 = a[0] % _Q, a[1] % _Q
    if a1 == 0:
        root = _sqrt_fq(a0)
        if root is not None:
            return (root, 0)
        root = _sqrt_fq(-a0)
        if root is None:
            return None
        return (0, root)

    alpha = _sqrt_fq(a0 * a0 + a1 * a1)
    if alpha is None:
        return None
    inv2 = pow(2, _Q - 2, _Q)
    delta = (a0 + alpha) * inv2 % _Q
    x0 = _sqrt_fq(delta)
    if x0 is None:
        delta = (a0 - alpha) * inv2 % _Q
        x0 = _sqrt_fq(delta)
        if x0 is None:
            return None
    x1 = a1 * pow(2 * x0, _Q - 2, _Q) % _Q
    candidate = (x0, x1)
    if _fq2_mul(candidate, candidate) != (a0, a1):
        return None
    return candidate


def _fq2_neg(a: Fq2) -> Fq2:
    return ((-a[0]) % _Q, (-a[1]) % _Q)


def _fq2_greater(a: Fq2, b: Fq2) -> bool:
    if a[1] != b[1]:
        return a[1] > b[1]
    return a[0] > b[0]


def _read_coordinate(data: bytes) -> int:
    value = int.from_bytes(data, "little")
    if value >= _Q:
        raise CryptographicError("coordinate is not a canonical field element")
    return value


def _split_flags(data: bytes) -> Tuple[bytes, bool, bool]:
    flags = data[-1] & _FLAG_MASK
    body = data[:-1] + bytes([data[-1] & ~_FLAG_MASK & 0xFF])
    return body, bool(flags & _FLAG_NEGATIVE), bool(flags & _FLAG_INFINITY)


# ============================================================================
# COMPRESSED POINTS
# ============================================================================


def decompress_g1(data: bytes) -> G1Point:
    """
    Decode a 32-byte compressed G1 point.

    Raises:
        CryptographicError: If the encoding is not a valid curve point.
    """
    if len(data) != G1_COMPRESSED_BYTES:
        raise CryptographicError(f"G1 point must be {G1_COMPRESSED_BYTES} bytes")
    body, greatest, infinity = _split_flags(data)
    x = _read_coordinate(body)

    if infinity:
        if x != 0 or greatest:
            raise CryptographicError("non-canonical point at infinity")
        return Z1

    y = _sqrt_fq(x * x * x + _G1_B)
    if y is None:
        raise CryptographicError("x is not on the G1 curve")
    neg_y = (-y) % _Q
    if (y > neg_y) != greatest:
        y = neg_y

    point = (FQ(x), FQ(y), FQ.one())
    if not is_on_curve(point, _B):
        raise CryptographicError("point not on G1 curve")
    return point


def decompress_g2(data: bytes) -> G2Point:
    """
    Decode a 64-byte compressed G2 point and check subgroup membership.

    Raises:
        CryptographicError: If the encoding is not a valid G2 element.
    """
    if len(data) != G2_COMPRESSED_BYTES:
        raise CryptographicError(f"G2 point must be {G2_COMPRESSED_BYTES} bytes")
    body, greatest, infinity = _split_flags(data)
    x = (_read_coordinate(body[:32]), _read_coordinate(body[32:]))

    if infinity:
        if x != (0, 0) or greatest:
            raise CryptographicError("non-canonical point at infinity")
        return Z2

    x_cubed = _fq2_mul(_fq2_mul(x, x), x)
    rhs = ((x_cubed[0] + _B2_INT[0]) % _Q, (x_cubed[1] + _B2_INT[1]) % _Q)
    y = _fq2_sqrt(rhs)
    if y is None:
        raise CryptographicError("x is not on the G2 curve")
    neg_y = _fq2_neg(y)
    if _fq2_greater(y, neg_y) != greatest:
        y = neg_y

    point = (FQ2([x[0], x[1]]), FQ2([y[0], y[1]]), FQ2.one())
    if not is_on_curve(point, _B2):
        raise CryptographicError("point not on G2 curve")
    if not is_inf(multiply(point, curve_order)):
        raise CryptographicError("G2 point outside the prime-order subgroup")
    return point


def compress_g1(point: G1Point) -> bytes:
    if is_inf(point):
        return bytes(G1_COMPRESSED_BYTES - 1) + bytes([_FLAG_INFINITY])
    x, y = normalize(point)
    x_int, y_int = int(x), int(y)
    out = bytearray(x_int.to_bytes(32, "little"))
    if y_int > (-y_int) % _Q:
        out[-1] |= _FLAG_NEGATIVE
    return bytes(out)


def compress_g2(point: G2Point) -> bytes:
    if is_inf(point):
        return bytes(G2_COMPRESSED_BYTES - 1) + bytes([_FLAG_INFINITY])
    x, y = normalize(point)
    x_int = (int(x.coeffs[0]), int(x.coeffs[1]))
    y_int = (int(y.coeffs[0]), int(y.coeffs[1]))
    out = bytearray(
        x_int[0].to_bytes(32, "little") + x_int[1].to_bytes(32, "little")
    )
    if _fq2_greater(y_int, _fq2_neg(y_int)):
        out[-1] |= _FLAG_NEGATIVE
    return bytes(out)


# ============================================================================
# PROOFS
# ============================================================================


@dataclass(frozen=True)
class Groth16Proof:
    a: G1Point
    b: G2Point
    c: G1Point

    def to_bytes(self) -> bytes:
        return compress_g1(self.a) + compress_g2(self.b) + compress_g1(self.c)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Groth16Proof":
        """
        Decode a compressed proof ``A || B || C``.

        Raises:
            CryptographicError: If the blob is malformed.
        """
        if len(data) != PROOF_SIZE_BYTES:
            raise CryptographicError(
                f"proof must be {PROOF_SIZE_BYTES} bytes, got {len(data)}"
            )
        g1 = G1_COMPRESSED_BYTES
        g2 = G2_COMPRESSED_BYTES
        return cls(
            a=decompress_g1(data[:g1]),
            b=decompress_g2(data[g1:g1 + g2]),
            c=decompress_g1(data[g1 + g2:]),
        )


# ============================================================================
# VERIFYING KEYS (snarkjs JSON)
# ============================================================================


@dataclass(frozen=True)
class VerifyingKey:
    alpha1: G1Point
    beta2: G2Point
    gamma2: G2Point
    delta2: G2Point
    ic: List[G1Point]  # [IC0, IC1, ..., ICn]


def _to_int(value: Union[int, str]) -> int:
    if isinstance(value, int):
        return value
    text = str(value).strip().lower()
    if text.startswith("0x"):
        return int(text, 16)
    return int(text)


def _g1_from_json(coords: Sequence[Any]) -> G1Point:
    x, y = _to_int(coords[0]), _to_int(coords[1])
    z = _to_int(coords[2]) if len(coords) > 2 else 1
    if z == 0:
        return Z1
    point = (FQ(x), FQ(y), FQ(z))
    if not is_on_curve(point, _B):
        raise ProofVerificationError("verifying key G1 point not on curve")
    return point


def _g2_from_json(coords: Sequence[Sequence[Any]]) -> G2Point:
    x = [_to_int(c) for c in coords[0]]
    y = [_to_int(c) for c in coords[1]]
    z = [_to_int(c) for c in coords[2]] if len(coords) > 2 else [1, 0]
    if z == [0, 0]:
        return Z2
    point = (FQ2(x), FQ2(y), FQ2(z))
    if not is_on_curve(point, _B2):
        raise ProofVerificationError("verifying key G2 point not on curve")
    return point


def _g1_to_json(point: G1Point) -> List[str]:
    if is_inf(point):
        return ["0", "1", "0"]
    x, y = normalize(point)
    return [str(int(x)), str(int(y)), "1"]


def _g2_to_json(point: G2Point) -> List[List[str]]:
    if is_inf(point):
        return [["0", "0"], ["1", "0"], ["0", "0"]]
    x, y = normalize(point)
    return [
        [str(int(c)) for c in x.coeffs],
        [str(int(c)) for c in y.coeffs],
        ["1", "0"],
    ]


def load_verifying_key(source: Union[dict, str, Path]) -> VerifyingKey:
    """
    Parse a snarkjs verification_key.json (dict or path).

    Raises:
        ProofVerificationError: If the key is malformed or has the wrong
            number of public inputs.
    """
    if isinstance(source, dict):
        data = source
    else:
        try:
            data = json.loads(Path(source).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ProofVerificationError(
                f"Unable to read verifying key {source}: {exc}"
            ) from exc

    try:
        if data.get("protocol", "groth16") != "groth16":
            raise ProofVerificationError(
                f"unsupported protocol {data.get('protocol')!r}"
            )
        vk = VerifyingKey(
            alpha1=_g1_from_json(data["vk_alpha_1"]),
            beta2=_g2_from_json(data["vk_beta_2"]),
            gamma2=_g2_from_json(data["vk_gamma_2"]),
            delta2=_g2_from_json(data["vk_delta_2"]),
            ic=[_g1_from_json(p) for p in data["IC"]],
        )
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise ProofVerificationError(f"malformed verifying key: {exc}") from exc

    if len(vk.ic) != PUBLIC_INPUT_COUNT + 1:
        raise ProofVerificationError(
            f"verifying key has {len(vk.ic) - 1} public inputs, "
            f"expected {PUBLIC_INPUT_COUNT}"
        )
    return vk


def verifying_key_to_json(vk: VerifyingKey) -> dict:
    return {
        "protocol": "groth16",
        "curve": "bn128",
        "nPublic": len(vk.ic) - 1,
        "vk_alpha_1": _g1_to_json(vk.alpha1),
        "vk_beta_2": _g2_to_json(vk.beta2),
        "vk_gamma_2": _g2_to_json(vk.gamma2),
        "vk_delta_2": _g2_to_json(vk.delta2),
        "IC": [_g1_to_json(p) for p in vk.ic],
    }

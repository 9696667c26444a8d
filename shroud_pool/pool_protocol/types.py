"""
Common types for the shielded pool.

This module provides:
1. Field element / amount / recipient decoding for call arguments
2. DepositEvent / WithdrawalEvent - records emitted on successful calls

Decoding helpers raise InvalidArgument so that malformed input is rejected
before the controller touches any pool state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Union

from .config import (
    AMOUNT_BITS,
    FIELD_ELEMENT_BYTES,
    FIELD_MODULUS,
    RECIPIENT_BYTES,
)
from .exceptions import InvalidArgument

FieldLike = Union[int, str, bytes, bytearray]
RecipientLike = Union[str, bytes, bytearray]

_ACCOUNT_HASH_PREFIX = "account-hash-"

# ============================================================================
# FIELD ELEMENTS
# ============================================================================


def to_field(value: FieldLike, label: str = "value") -> int:
    """
    Decode a field element.

    Accepts an int, a decimal or 0x-prefixed hex string, or a 32-byte
    big-endian byte string.

    Raises:
        InvalidArgument: If the value is malformed or outside the field.
    """
    if isinstance(value, bool):
        raise InvalidArgument(f"{label} must be a field element, got bool")

    if isinstance(value, (bytes, bytearray)):
        if len(value) != FIELD_ELEMENT_BYTES:
            raise InvalidArgument(
                f"{label} must be {FIELD_ELEMENT_BYTES} bytes, got {len(value)}"
            )
        number = int.from_bytes(bytes(value), "big")
    elif isinstance(value, int):
        number = value
    elif isinstance(value, str):
        text = value.strip().lower()
        try:
            number = int(text, 16) if text.startswith("0x") else int(text, 10)
        except ValueError:
            raise InvalidArgument(f"{label} is not a number: {value!r}") from None
    else:
        raise InvalidArgument(
            f"{label} must be int, str or bytes, got {type(value).__name__}"
        )

    if number < 0 or number >= FIELD_MODULUS:
        raise InvalidArgument(f"{label} is outside the scalar field")
    return number


def field_to_bytes(value: int) -> bytes:
    return value.to_bytes(FIELD_ELEMENT_BYTES, "big")


def field_from_bytes(data: bytes) -> int:
    return to_field(data)


# ============================================================================
# AMOUNTS AND RECIPIENTS
# ============================================================================


def to_amount(value: Any) -> int:
    """Decode an unsigned 512-bit amount."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"amount must be int, got {type(value).__name__}")
    if value < 0 or value >= 2**AMOUNT_BITS:
        raise InvalidArgument("amount is outside the unsigned 512-bit range")
    return value


def to_recipient(value: RecipientLike) -> bytes:
    """
    Decode a recipient account hash.

    Accepts 32 raw bytes or hex text, optionally prefixed with ``0x`` or
    ``account-hash-``.
    """
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str):
        text = value.strip().lower()
        if text.startswith(_ACCOUNT_HASH_PREFIX):
            text = text[len(_ACCOUNT_HASH_PREFIX):]
        elif text.startswith("0x"):
            text = text[2:]
        try:
            raw = bytes.fromhex(text)
        except ValueError:
            raise InvalidArgument(f"recipient is not hex: {value!r}") from None
    else:
        raise InvalidArgument(
            f"recipient must be bytes or str, got {type(value).__name__}"
        )

    if len(raw) != RECIPIENT_BYTES:
        raise InvalidArgument(
            f"recipient must be {RECIPIENT_BYTES} bytes, got {len(raw)}"
        )
    return raw


def recipient_to_field(recipient: bytes) -> int:
    """Field image of a recipient, the third public input of a withdrawal."""
    return int.from_bytes(recipient, "big") % FIELD_MODULUS


def format_recipient(recipient: bytes) -> str:
    return _ACCOUNT_HASH_PREFIX + recipient.hex()


def to_proof_bytes(value: Any) -> bytes:
    if not isinstance(value, (bytes, bytearray)):
        raise InvalidArgument(f"proof must be bytes, got {type(value).__name__}")
    return bytes(value)


# ============================================================================
# EVENTS
# ============================================================================


@dataclass(frozen=True)
class DepositEvent:
    """Emitted once per accepted deposit."""

    commitment: int
    leaf_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Deposit",
            "commitment": str(self.commitment),
            "leaf_index": self.leaf_index,
        }


@dataclass(frozen=True)
class WithdrawalEvent:
    """Emitted once per accepted withdrawal."""

    nullifier_hash: int
    recipient: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Withdrawal",
            "nullifier_hash": str(self.nullifier_hash),
            "recipient": format_recipient(self.recipient),
        }


PoolEvent = Union[DepositEvent, WithdrawalEvent]


def event_from_dict(data: Dict[str, Any]) -> PoolEvent:
    kind = data.get("event")
    if kind == "Deposit":
        return DepositEvent(
            commitment=to_field(data["commitment"], "commitment"),
            leaf_index=int(data["leaf_index"]),
        )
    if kind == "Withdrawal":
        return WithdrawalEvent(
            nullifier_hash=to_field(data["nullifier_hash"], "nullifier_hash"),
            recipient=to_recipient(data["recipient"]),
        )
    raise InvalidArgument(f"unknown event kind: {kind!r}")

"""
Custom exceptions for the shielded pool.

Pool rejections carry a stable integer ``code`` so client software can tell
failure causes apart. Every rejection is raised before the pool state is
committed, so resubmitting a corrected call is always safe.
"""


class PrivacyProtocolError(Exception):
    """Base exception for shielded pool errors."""

    pass


class ProofVerificationError(PrivacyProtocolError):
    """Error while preparing proof verification (e.g. a malformed key)."""

    pass


class ConfigurationError(PrivacyProtocolError):
    """Configuration error."""

    pass


class CryptographicError(PrivacyProtocolError):
    """Cryptographic operation error."""

    pass


class StorageError(PrivacyProtocolError):
    """Persisted pool state could not be read or written."""

    pass


class TransferError(PrivacyProtocolError):
    """The ledger refused a value transfer."""

    pass


# ============================================================================
# POOL REJECTIONS
# ============================================================================


class PoolError(PrivacyProtocolError):
    """A deposit or withdrawal was rejected. The pool state is unchanged."""

    code = 0

    def __str__(self) -> str:
        message = super().__str__()
        name = type(self).__name__
        if message:
            return f"{name} (code {self.code}): {message}"
        return f"{name} (code {self.code})"


class InvalidAmount(PoolError):
    """Attached value does not equal the pool denomination."""

    code = 1


class DuplicateCommitment(PoolError):
    """Commitment was already deposited."""

    code = 2


class AlreadySpent(PoolError):
    """Nullifier hash was already used by a withdrawal."""

    code = 3


class UnknownRoot(PoolError):
    """Root is zero or outside the recent root window."""

    code = 4


class InvalidProof(PoolError):
    """Proof does not verify against the supplied public inputs."""

    code = 5


class InvalidArgument(PoolError):
    """An argument could not be decoded into its protocol type."""

    code = 6


class TreeFull(PoolError):
    """Every leaf slot of the Merkle tree is taken."""

    code = 7


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        InvalidAmount,
        DuplicateCommitment,
        AlreadySpent,
        UnknownRoot,
        InvalidProof,
        InvalidArgument,
        TreeFull,
    )
}

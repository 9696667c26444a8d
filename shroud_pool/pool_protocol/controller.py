"""
Deposit / withdraw state machine of the shielded pool.

The controller is the only mutator of PoolState. Every call is one atomic
transition: a snapshot is loaded from the store, all checks run before any
mutation, and the snapshot is saved only if the call succeeds.

Ledger effects are queued during the call. Payouts run after the state
holding their nullifiers is saved, while receipts and events are applied
once the call has committed, so a rejected or aborted call leaves no
state, balance change or event behind.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from .config import DENOMINATION
from .exceptions import (
    AlreadySpent,
    DuplicateCommitment,
    InvalidAmount,
    InvalidArgument,
    InvalidProof,
    UnknownRoot,
)
from .interfaces import ProofVerifier
from .ledger import Ledger
from .state import PoolState, StateStore
from .types import (
    DepositEvent,
    FieldLike,
    PoolEvent,
    RecipientLike,
    WithdrawalEvent,
    format_recipient,
    to_amount,
    to_field,
    to_proof_bytes,
    to_recipient,
)

logger = logging.getLogger(__name__)


@dataclass
class _Effects:
    """Ledger effects of one transition, applied around the state commit."""

    payouts: List[Tuple[bytes, int]] = field(default_factory=list)
    receipts: List[int] = field(default_factory=list)
    events: List[PoolEvent] = field(default_factory=list)


class PoolController:
    """
    Entry points of one deployed pool.

    Args:
        store: Storage collaborator holding the PoolState.
        ledger: Ledger collaborator for value movement and events.
        verifier: Withdrawal proof verifier, fixed for the deployment.
        denomination: Value accepted per deposit and paid per withdrawal.

    Example:
        >>> pool = PoolController(MemoryStateStore(), ledger, get_verifier())
        >>> leaf_index = pool.deposit(DENOMINATION, note.commitment)
        >>> pool.withdraw(proof, root, note.nullifier_hash, recipient)
    """

    def __init__(
        self,
        store: StateStore,
        ledger: Ledger,
        verifier: ProofVerifier,
        denomination: int = DENOMINATION,
    ) -> None:
        if not isinstance(verifier, ProofVerifier):
            raise TypeError("verifier must implement ProofVerifier")
        if denomination <= 0:
            raise ValueError("denomination must be positive")
        self._store = store
        self._ledger = ledger
        self._verifier = verifier
        self._denomination = denomination
        self._active: Optional[Tuple[PoolState, _Effects]] = None

    @property
    def denomination(self) -> int:
        return self._denomination

    @property
    def verifier(self) -> ProofVerifier:
        return self._verifier

    @contextmanager
    def _transition(self) -> Iterator[Tuple[PoolState, _Effects]]:
        # A call made while another is in flight (a re-entrant call from the
        # ledger) shares the in-flight snapshot and commits with it.
        if self._active is not None:
            yield self._active
            return

        state = self._store.load()
        original = state.to_bytes()
        effects = _Effects()
        self._active = (state, effects)
        try:
            yield state, effects
            self._commit(state, effects, original)
        finally:
            self._active = None

        for amount in effects.receipts:
            self._ledger.receive(amount)
        for event in effects.events:
            self._ledger.emit(event)

    def _commit(self, state: PoolState, effects: _Effects, original: bytes) -> None:
        """
        Persist ``state`` and run the queued payouts.

        The state is saved before every payout, so a nullifier is stored
        before value leaves the pool. Payouts queued by re-entrant calls run
        in the same loop. If the first payout fails, the pre-call state is
        written back; once value has left the pool the stored nullifiers
        stay.
        """
        committed = original
        paid = False
        while True:
            blob = state.to_bytes()
            if blob != committed:
                self._store.save(state)
                committed = blob
            if not effects.payouts:
                return

            recipient, amount = effects.payouts.pop(0)
            try:
                self._ledger.transfer(recipient, amount)
            except BaseException:
                if not paid:
                    self._store.save(PoolState.from_bytes(original))
                    logger.warning("Payout failed, pool state restored")
                raise
            paid = True

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def deposit(self, amount: int, commitment: FieldLike) -> int:
        """
        Accept one denomination against ``commitment``.

        Returns:
            Leaf index assigned to the commitment.

        Raises:
            InvalidArgument, InvalidAmount, DuplicateCommitment, TreeFull
        """
        amount = to_amount(amount)
        commitment = to_field(commitment, "commitment")

        if amount != self._denomination:
            logger.warning(
                "Deposit rejected: amount %d != denomination %d",
                amount,
                self._denomination,
            )
            raise InvalidAmount(f"expected {self._denomination}, got {amount}")

        with self._transition() as (state, effects):
            if state.commitments.contains(commitment):
                logger.warning("Deposit rejected: duplicate commitment")
                raise DuplicateCommitment(f"commitment {commitment} already deposited")

            state.tree.insert(commitment)
            state.commitments.add(commitment)
            leaf_index = state.tree.next_index - 1
            effects.receipts.append(amount)
            effects.events.append(
                DepositEvent(commitment=commitment, leaf_index=leaf_index)
            )

        logger.info("Deposit accepted at leaf %d", leaf_index)
        return leaf_index

    def withdraw(
        self,
        proof: bytes,
        root: FieldLike,
        nullifier_hash: FieldLike,
        recipient: RecipientLike,
    ) -> None:
        """
        Pay one denomination to ``recipient`` against a membership proof.

        Raises:
            InvalidArgument, AlreadySpent, UnknownRoot, InvalidProof,
            TransferError
        """
        proof = to_proof_bytes(proof)
        root = to_field(root, "root")
        nullifier_hash = to_field(nullifier_hash, "nullifier_hash")
        recipient = to_recipient(recipient)

        with self._transition() as (state, effects):
            if state.nullifiers.contains(nullifier_hash):
                logger.warning("Withdrawal rejected: nullifier already spent")
                raise AlreadySpent(f"nullifier hash {nullifier_hash} already spent")

            if not state.tree.is_known_root(root):
                logger.warning("Withdrawal rejected: unknown root")
                raise UnknownRoot(f"root {root} is not in the recent root history")

            if not self._verifier.verify(proof, root, nullifier_hash, recipient):
                logger.warning("Withdrawal rejected: proof failed verification")
                raise InvalidProof("proof does not verify for these public inputs")

            # Stored before the payout runs, so re-entrant calls see it spent
            state.nullifiers.add(nullifier_hash)
            effects.payouts.append((recipient, self._denomination))
            effects.events.append(
                WithdrawalEvent(nullifier_hash=nullifier_hash, recipient=recipient)
            )

        logger.info("Withdrawal paid to %s", format_recipient(recipient))

    def fund(self, amount: int) -> None:
        """Add liquidity to the pool balance without touching pool state."""
        amount = to_amount(amount)
        if amount == 0:
            raise InvalidArgument("fund amount must be positive")
        with self._transition() as (_, effects):
            effects.receipts.append(amount)
        logger.info("Pool funded with %d", amount)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def last_root(self) -> int:
        return self._store.load().tree.last_root()

    def is_known_root(self, root: FieldLike) -> bool:
        try:
            value = to_field(root, "root")
        except InvalidArgument:
            return False
        return self._store.load().tree.is_known_root(value)

    def is_spent(self, nullifier_hash: FieldLike) -> bool:
        value = to_field(nullifier_hash, "nullifier_hash")
        return self._store.load().nullifiers.contains(value)

    def next_index(self) -> int:
        return self._store.load().tree.next_index

    def commitment_count(self) -> int:
        return len(self._store.load().commitments)

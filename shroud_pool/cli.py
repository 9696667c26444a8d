"""
Command-Line Interface for a local Shroud pool.

Runs the pool state machine against a CBOR state file and a JSON ledger
file, so deposits and withdrawals can be exercised without a chain. The
verifier variant comes from deployment configuration (SHROUD_POOL_VERIFIER,
SHROUD_VK_PATH), never from a command option.
"""

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from shroud_pool import __version__
from shroud_pool.pool_protocol.config import DENOMINATION, TREE_LEVELS
from shroud_pool.pool_protocol.controller import PoolController
from shroud_pool.pool_protocol.exceptions import PoolError, PrivacyProtocolError
from shroud_pool.pool_protocol.factory import get_verifier
from shroud_pool.pool_protocol.ledger import InMemoryLedger
from shroud_pool.pool_protocol.notes import (
    ClientMerkleTree,
    build_circuit_input,
    generate_note,
    load_note,
    save_note,
)
from shroud_pool.pool_protocol.state import FileStateStore
from shroud_pool.pool_protocol.types import format_recipient, to_field, to_recipient

DEFAULT_STATE = "shroud_pool_state.cbor"
DEFAULT_LEDGER = "shroud_pool_ledger.json"


class _Workspace:
    def __init__(self, state_path: str, ledger_path: str) -> None:
        self.store = FileStateStore(state_path)
        self.ledger_path = Path(ledger_path)

    def load_ledger(self) -> InMemoryLedger:
        if not self.ledger_path.is_file():
            return InMemoryLedger()
        data = json.loads(self.ledger_path.read_text(encoding="utf-8"))
        return InMemoryLedger.from_dict(data)

    def save_ledger(self, ledger: InMemoryLedger) -> None:
        self.ledger_path.write_text(
            json.dumps(ledger.to_dict(), indent=2), encoding="utf-8"
        )

    def require_pool(self) -> None:
        if not self.store.exists():
            raise click.ClickException(
                f"No pool at {self.store.path}. Run 'shroud-pool init' first."
            )

    def controller(self, ledger: InMemoryLedger) -> PoolController:
        self.require_pool()
        return PoolController(self.store, ledger, get_verifier())


def _fail(exc: Exception) -> None:
    click.echo(click.style(f"✗ {exc}", fg="red"), err=True)
    code = exc.code if isinstance(exc, PoolError) else 1
    sys.exit(code or 1)


@click.group()
@click.version_option(version=__version__)
@click.option(
    '--state',
    type=click.Path(dir_okay=False),
    default=DEFAULT_STATE,
    show_default=True,
    help='Pool state file (CBOR)'
)
@click.option(
    '--ledger',
    type=click.Path(dir_okay=False),
    default=DEFAULT_LEDGER,
    show_default=True,
    help='Local ledger file (JSON)'
)
@click.option('--verbose', is_flag=True, help='Enable debug logging')
@click.pass_context
def main(ctx, state, ledger, verbose):
    """
    Shroud pool - fixed-denomination shielded deposits and withdrawals.

    ⚠️  LOCAL SIMULATION - the ledger file stands in for a real chain
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = _Workspace(state, ledger)


@main.command()
@click.option(
    '--depth',
    type=click.IntRange(1, 32),
    default=TREE_LEVELS,
    show_default=True,
    help='Merkle tree depth'
)
@click.pass_obj
def init(ws, depth):
    """Create an empty pool."""
    try:
        ws.store.initialize(depth=depth)
    except PrivacyProtocolError as e:
        _fail(e)
    ws.save_ledger(InMemoryLedger())
    click.echo(click.style(f"✓ Pool created at {ws.store.path}", fg="green"))


@main.command()
@click.option(
    '--output',
    type=click.Path(dir_okay=False),
    required=True,
    help='Where to write the note file'
)
def note(output):
    """Generate a fresh deposit note (keep it secret)."""
    new_note = generate_note()
    save_note(output, new_note)
    click.echo(f"Commitment: {new_note.commitment}")
    click.echo(click.style(f"✓ Note saved to: {output}", fg="green"))


@main.command()
@click.option('--amount', type=int, required=True, help='Value to fund the pool with')
@click.pass_obj
def fund(ws, amount):
    """Add liquidity to the pool balance."""
    ledger = ws.load_ledger()
    try:
        ws.controller(ledger).fund(amount)
    except PrivacyProtocolError as e:
        _fail(e)
    ws.save_ledger(ledger)
    click.echo(click.style(f"✓ Pool balance: {ledger.pool_balance}", fg="green"))


@main.command()
@click.option(
    '--note', 'note_path',
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help='Note file produced by the note command'
)
@click.option(
    '--amount',
    type=int,
    default=DENOMINATION,
    show_default=True,
    help='Attached value'
)
@click.pass_obj
def deposit(ws, note_path, amount):
    """Deposit one denomination against a note's commitment."""
    ledger = ws.load_ledger()
    deposit_note, _ = load_note(note_path)
    try:
        leaf_index = ws.controller(ledger).deposit(amount, deposit_note.commitment)
    except PrivacyProtocolError as e:
        _fail(e)
    ws.save_ledger(ledger)
    save_note(note_path, deposit_note, leaf_index=leaf_index)
    click.echo(click.style(f"✓ Deposited at leaf {leaf_index}", fg="green"))


def _client_tree(ws, ledger) -> ClientMerkleTree:
    depth = ws.store.load().tree.depth
    return ClientMerkleTree.rebuild_from_events(ledger.events, depth=depth)


@main.command('circuit-input')
@click.option(
    '--note', 'note_path',
    type=click.Path(exists=True, dir_okay=False),
    required=True,
)
@click.option('--recipient', required=True, help='Recipient account hash (hex)')
@click.option(
    '--output',
    type=click.Path(dir_okay=False),
    required=True,
    help='Where to write the prover input JSON'
)
@click.pass_obj
def circuit_input(ws, note_path, recipient, output):
    """Write the withdrawal circuit input for an external prover."""
    ws.require_pool()
    ledger = ws.load_ledger()
    withdraw_note, _ = load_note(note_path)
    try:
        recipient_bytes = to_recipient(recipient)
        tree = _client_tree(ws, ledger)
        path = tree.path(tree.index_of(withdraw_note.commitment))
    except (PrivacyProtocolError, KeyError, ValueError) as e:
        _fail(e)
    data = build_circuit_input(withdraw_note, path, recipient_bytes)
    Path(output).write_text(json.dumps(data, indent=2), encoding="utf-8")
    click.echo(f"Root: {path.root}")
    click.echo(click.style(f"✓ Circuit input saved to: {output}", fg="green"))


@main.command()
@click.option(
    '--note', 'note_path',
    type=click.Path(exists=True, dir_okay=False),
    required=True,
)
@click.option('--recipient', required=True, help='Recipient account hash (hex)')
@click.option(
    '--proof', 'proof_path',
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help='Compressed Groth16 proof (binary)'
)
@click.option(
    '--root',
    help="Root the proof was built against (default: root after the note's deposit)"
)
@click.pass_obj
def withdraw(ws, note_path, recipient, proof_path, root):
    """Withdraw one denomination to a recipient."""
    ledger = ws.load_ledger()
    withdraw_note, _ = load_note(note_path)
    proof = Path(proof_path).read_bytes()
    try:
        pool = ws.controller(ledger)
        if root:
            target_root = to_field(root, "root")
        else:
            tree = _client_tree(ws, ledger)
            target_root = tree.path(tree.index_of(withdraw_note.commitment)).root
        pool.withdraw(proof, target_root, withdraw_note.nullifier_hash, recipient)
    except (PrivacyProtocolError, KeyError, ValueError) as e:
        _fail(e)
    ws.save_ledger(ledger)
    payee = format_recipient(to_recipient(recipient))
    click.echo(click.style(f"✓ Withdrawn to {payee}", fg="green"))


@main.command()
@click.pass_obj
def status(ws):
    """Show pool counters and balance."""
    ws.require_pool()
    state = ws.store.load()
    ledger = ws.load_ledger()

    table = Table(title="Shroud pool")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Tree depth", str(state.tree.depth))
    table.add_row("Next leaf index", str(state.tree.next_index))
    table.add_row("Last root", str(state.tree.last_root()))
    table.add_row("Known roots", str(len(state.tree.roots)))
    table.add_row("Commitments", str(len(state.commitments)))
    table.add_row("Spent nullifiers", str(len(state.nullifiers)))
    table.add_row("Pool balance", str(ledger.pool_balance))
    Console().print(table)


@main.command()
@click.pass_obj
def roots(ws):
    """List the accepted root window, oldest first."""
    ws.require_pool()
    history = ws.store.load().tree.roots
    if not history:
        click.echo("No roots yet (tree is empty)")
        return
    for position, value in enumerate(history):
        click.echo(f"{position:2d}  {value}")


if __name__ == "__main__":
    main()

"""
submission.py - Transaction Submission

The Submission collaborator takes a proposed TxInfo, decides whether
it may be accepted, runs the scripts it needs, and commits its effects to the
ledger state.

Contract (see Submitter):
    submitter(env, state) -> SubmissionResult, or raises SubmissionError.
    A submitter that raises must leave state untouched.

The default submit() implementation:
    1. Runs the stateful validation pipeline; any violation rejects.
    2. Checks every script input and minting policy has a redeemer, and every
       script input has a datum.
    3. Runs every required script from script storage.
    4. Commits: removes spent inputs and adds new outputs under (tx_id, index).
Nothing is written to state before step 4, and step 4 cannot fail.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, List, Tuple

from .core import (
    ADA_SYMBOL,
    LedgerConfig, LedgerError, LedgerState,
    Minting, Script, ScriptPurpose, Spending,
    TxId, TxInfo, TxOut, TxOutRef,
)
from .validation import InvalidTxInfoError, check_tx_info


# ============================================================================
# SUBMISSION ERRORS
# ============================================================================

class SubmissionError(LedgerError):
    """Base exception for a transaction rejected by submission."""
    pass


class InvalidTxInfo(SubmissionError):
    """The transaction failed stateful validation. Carries every violation."""

    def __init__(self, errors: List[InvalidTxInfoError]):
        self.errors = list(errors)
        super().__init__(f"Transaction failed validation with {len(self.errors)} error(s): {self.errors!r}")


class MissingRedeemer(SubmissionError):
    """A script input or minting policy has no redeemer."""

    def __init__(self, purpose: ScriptPurpose):
        self.purpose = purpose
        super().__init__(f"Unable to find redeemer for {purpose!r}")


class MissingDatum(SubmissionError):
    """A script-locked input carries no datum."""

    def __init__(self, out_ref: TxOutRef):
        self.out_ref = out_ref
        super().__init__(f"Unable to find datum for script input {out_ref!r}")


class ScriptFailure(SubmissionError):
    """A script rejected the transaction or raised while running."""

    def __init__(self, purpose: ScriptPurpose, reason: str):
        self.purpose = purpose
        self.reason = reason
        super().__init__(f"Script for {purpose!r} failed: {reason}")


class OutputRefCollision(SubmissionError):
    """
    A new output would reuse a live reference.

    Happens when two transactions are submitted at the same logical time,
    since transaction ids are derived from time.
    """

    def __init__(self, out_ref: TxOutRef):
        self.out_ref = out_ref
        super().__init__(f"Output reference {out_ref!r} is already on the ledger")


# ============================================================================
# TYPES
# ============================================================================

@dataclass(frozen=True, slots=True)
class ExBudget:
    """Execution cost reported by scripts."""
    cpu: int = 0
    memory: int = 0

    def __add__(self, other: ExBudget) -> ExBudget:
        return ExBudget(self.cpu + other.cpu, self.memory + other.memory)


@dataclass(frozen=True, slots=True)
class ScriptContext:
    """What a running script sees: the transaction and why it is being run."""
    tx_info: TxInfo
    purpose: ScriptPurpose


@dataclass(frozen=True, slots=True)
class SubmissionEnv:
    """
    Input of a submission.

    Attributes:
        tx_info: The proposed transaction
        tx_id: Id the transaction will be committed under
        config: Run configuration
    """
    tx_info: TxInfo
    tx_id: TxId
    config: LedgerConfig


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    """
    Outcome of a committed submission.

    Attributes:
        tx_id: Id the transaction was committed under
        budget: Total cost reported by the scripts that ran
        spent: References removed from the UTxO set
        created: References added to the UTxO set, in output order
    """
    tx_id: TxId
    budget: ExBudget
    spent: Tuple[TxOutRef, ...]
    created: Tuple[TxOutRef, ...]


Submitter = Callable[[SubmissionEnv, LedgerState], SubmissionResult]


# ============================================================================
# SCRIPT EVALUATION
# ============================================================================

def _run_script(script: Script, purpose: ScriptPurpose, *args: Any) -> ExBudget:
    try:
        outcome = script(*args)
    except Exception as exc:
        raise ScriptFailure(purpose, f"{type(exc).__name__}: {exc}") from exc
    if outcome is False:
        raise ScriptFailure(purpose, "script returned False")
    if isinstance(outcome, ExBudget):
        return outcome
    return ExBudget()


def evaluate_scripts(config: LedgerConfig, tx_info: TxInfo) -> ExBudget:
    """
    Run every script the transaction needs.

    Spending scripts run in input order, then minting policies in symbol
    order. Assumes tx_info passed validation, so every script is in storage.

    Returns:
        Sum of the budgets reported by the scripts

    Raises:
        MissingRedeemer: If a script purpose has no redeemer
        MissingDatum: If a script input has no datum
        ScriptFailure: If a script fails
    """
    budget = ExBudget()

    for tx_in in tx_info.inputs:
        script_hash = tx_in.resolved.address.script_hash
        if script_hash is None:
            continue
        purpose = Spending(tx_in.out_ref)
        if purpose not in tx_info.redeemers:
            raise MissingRedeemer(purpose)
        if tx_in.resolved.datum is None:
            raise MissingDatum(tx_in.out_ref)
        budget += _run_script(
            config.script_storage[script_hash], purpose,
            tx_in.resolved.datum, tx_info.redeemers[purpose], ScriptContext(tx_info, purpose),
        )

    for symbol in tx_info.mint.symbols():
        if symbol == ADA_SYMBOL:
            continue
        purpose = Minting(symbol)
        if purpose not in tx_info.redeemers:
            raise MissingRedeemer(purpose)
        budget += _run_script(
            config.script_storage[symbol], purpose,
            tx_info.redeemers[purpose], ScriptContext(tx_info, purpose),
        )

    return budget


# ============================================================================
# SUBMIT
# ============================================================================

def submit(env: SubmissionEnv, state: LedgerState) -> SubmissionResult:
    """
    Validate, run scripts and commit a transaction.

    Args:
        env: Transaction, id to commit under, and run configuration
        state: Ledger state, mutated only if every check passes

    Returns:
        SubmissionResult describing the committed effects

    Raises:
        SubmissionError: If the transaction is rejected (state unchanged)
    """
    tx_info = env.tx_info

    errors = check_tx_info(env.config, state, tx_info)
    if errors:
        raise InvalidTxInfo(errors)

    budget = evaluate_scripts(env.config, tx_info)

    # An input listed twice is spent once.
    spent = tuple(dict.fromkeys(tx_in.out_ref for tx_in in tx_info.inputs))
    new_outputs: List[Tuple[TxOutRef, TxOut]] = [
        (TxOutRef(env.tx_id, idx), out) for idx, out in enumerate(tx_info.outputs)
    ]
    for ref, _ in new_outputs:
        if ref in state.utxos:
            raise OutputRefCollision(ref)

    # Commit
    for ref in spent:
        del state.utxos[ref]
    state.utxos.update(new_outputs)

    return SubmissionResult(
        tx_id=env.tx_id,
        budget=budget,
        spent=spent,
        created=tuple(ref for ref, _ in new_outputs),
    )

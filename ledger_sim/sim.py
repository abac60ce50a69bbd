"""
sim.py - Ledger Simulation Engine

LedgerSim is the session object a simulation program runs against. It holds
the read-only LedgerConfig, the mutable LedgerState, and the Submission
collaborator, and it is the only way a program reads or changes ledger state.

Key responsibilities:
    - Read access to time, UTxOs, user state and user context
    - Advancing the logical clock
    - Submitting transactions atomically: a failed submission leaves the
      UTxO set, time and user state reference as they were
    - Deriving transaction ids from logical time

Errors are raised as LedgerSimError subclasses. A program either lets them
propagate (run_ledger_sim() then returns the error) or uses attempt() to get
the outcome of a single operation as a value and carry on.

Known shortcoming: transaction ids are derived from the current logical time,
not from the transaction body. A script comparing the transaction id against
a hash of a time in its valid range will see them coincide.

Thread Safety:
    Not thread-safe. One submission is in flight at a time, by construction.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, List, Optional, TypeVar
import hashlib

from .core import (
    Address, LedgerConfig, LedgerError, LedgerState,
    POSIXTime, TxId, TxInInfo, TxInfo, TxOut, TxOutRef,
)
from .submission import (
    SubmissionEnv, SubmissionError, SubmissionResult, Submitter, submit,
)

T = TypeVar("T")

# BLAKE2b-224, the digest size of ledger transaction ids.
TX_ID_DIGEST_SIZE = 28


# ============================================================================
# ERRORS
# ============================================================================

class LedgerSimError(LedgerError):
    """Base exception for errors surfaced by a simulation operation."""
    pass


class SubmissionFailed(LedgerSimError):
    """A submitted transaction was rejected. error holds the SubmissionError."""

    def __init__(self, error: SubmissionError):
        self.error = error
        super().__init__(f"Submission failed: {error}")


class ApplicationFailed(LedgerSimError):
    """Application-defined failure raised with LedgerSim.throw_ledger_error()."""

    def __init__(self, error: Any):
        self.error = error
        super().__init__(f"Application error: {error!r}")


# ============================================================================
# RESULTS
# ============================================================================

class SimPhase(Enum):
    """
    Submission state machine: IDLE -> VALIDATING -> (COMMITTED | REJECTED) -> IDLE.

    COMMITTED and REJECTED are only ever reported as LedgerSim.last_outcome;
    the session itself is back in IDLE as soon as submit_tx() returns.
    """
    IDLE = "idle"
    VALIDATING = "validating"
    COMMITTED = "committed"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class SimResult(Generic[T]):
    """Either the value of an operation or the LedgerSimError it raised."""
    value: Optional[T] = None
    error: Optional[LedgerSimError] = None

    @classmethod
    def ok(cls, value: T) -> SimResult[T]:
        return cls(value=value)

    @classmethod
    def err(cls, error: LedgerSimError) -> SimResult[T]:
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, or raise the error."""
        if self.error is not None:
            raise self.error
        return self.value


# ============================================================================
# TRANSACTION IDS
# ============================================================================

def _cbor_head(major: int, argument: int) -> bytes:
    if argument < 24:
        return bytes([major << 5 | argument])
    for additional, size in ((24, 1), (25, 2), (26, 4), (27, 8)):
        if argument < 1 << (8 * size):
            return bytes([major << 5 | additional]) + argument.to_bytes(size, "big")
    raise ValueError(f"CBOR argument {argument} does not fit in 64 bits")


def serialise_time(time: POSIXTime) -> bytes:
    """
    Canonical CBOR encoding of an integer time.

    Integers within 64 bits use the unsigned (major 0) or negative (major 1)
    encodings; anything larger is a bignum (tag 2 or 3 over a byte string).
    """
    if not isinstance(time, int):
        raise ValueError(f"time must be an integer, got {time!r}")
    if 0 <= time < 1 << 64:
        return _cbor_head(0, time)
    if -(1 << 64) <= time < 0:
        return _cbor_head(1, -1 - time)
    tag, magnitude = (2, time) if time > 0 else (3, -1 - time)
    payload = magnitude.to_bytes((magnitude.bit_length() + 7) // 8, "big")
    return _cbor_head(6, tag) + _cbor_head(2, len(payload)) + payload


def gen_tx_id(time: POSIXTime) -> TxId:
    """
    Derive a transaction id from a logical time.

    The id is BLAKE2b-224 over the CBOR-serialised time. Real ledgers hash the
    transaction body instead; the simulator has no body to hash.
    """
    digest = hashlib.blake2b(serialise_time(time), digest_size=TX_ID_DIGEST_SIZE).digest()
    return TxId(digest)


# ============================================================================
# SESSION
# ============================================================================

class LedgerSim:
    """
    Simulation session over one LedgerConfig and one LedgerState.

    Example:
        sim = LedgerSim(config, state)
        tx_id = sim.submit_tx(tx_info)
        sim.increment_slot()
        outcome = sim.attempt(sim.submit_tx, conflicting_tx_info)
        if not outcome.is_ok:
            print(outcome.error)
    """

    def __init__(
        self,
        config: LedgerConfig,
        state: LedgerState,
        submitter: Submitter = submit,
        verbose: bool = False,
    ):
        """
        Create a session.

        Args:
            config: Run configuration, never mutated
            state: Initial ledger state, mutated in place by this session
            submitter: Submission collaborator (default: ledger_sim.submission.submit)
            verbose: Print one line per submission and clock advance
        """
        self.config = config
        self.state = state
        self.verbose = verbose
        self._submitter = submitter
        self._phase = SimPhase.IDLE
        self.last_outcome: Optional[SimPhase] = None
        self.last_result: Optional[SubmissionResult] = None

    @property
    def phase(self) -> SimPhase:
        return self._phase

    # ========================================================================
    # READS
    # ========================================================================

    def get_current_slot(self) -> POSIXTime:
        return self.state.current_time

    def lookup_utxo(self, ref: TxOutRef) -> Optional[TxOut]:
        """Return the unspent output at ref, or None if there is none."""
        return self.state.utxos.get(ref)

    def utxos_at_address(self, address: Address) -> List[TxInInfo]:
        """All unspent outputs locked at address, ordered by reference."""
        return [
            TxInInfo(ref, out)
            for ref, out in sorted(self.state.utxos.items(), key=lambda item: item[0])
            if out.address == address
        ]

    def gets_ledger_state(self, f: Callable[[Any], T]) -> T:
        """Project the user state with f."""
        return f(self.state.user_state)

    def get_ledger_state(self) -> Any:
        return self.gets_ledger_state(lambda st: st)

    def asks_ledger_ctx(self, f: Callable[[Any], T]) -> T:
        """Project the user context with f."""
        return f(self.config.user_ctx)

    def ask_ledger_ctx(self) -> Any:
        return self.asks_ledger_ctx(lambda ctx: ctx)

    def get_tx_id(self) -> TxId:
        """Id the next transaction submitted at the current time will get."""
        return gen_tx_id(self.state.current_time)

    # ========================================================================
    # WRITES
    # ========================================================================

    def increment_slot(self) -> None:
        """Advance logical time by one."""
        self.state.current_time += 1
        if self.verbose:
            print(f"⏱  slot -> {self.state.current_time}")

    def throw_ledger_error(self, error: Any) -> None:
        """
        Abort the current operation with an application-defined error.

        Raises:
            ApplicationFailed: Always
        """
        raise ApplicationFailed(error)

    def submit_tx(self, tx_info: TxInfo) -> TxId:
        """
        Submit a transaction.

        The transaction gets the id derived from the current time. If the
        submitter fails for any reason, the UTxO set, the time and the user
        state are restored before the error is raised.

        The user state is snapshotted by reference: a submitter that replaces
        it is rolled back, a submitter that mutates it in place owns undoing
        that mutation.

        Args:
            tx_info: Proposed transaction

        Returns:
            Id the transaction was committed under

        Raises:
            SubmissionFailed: If the transaction was rejected
            LedgerError: If called while another submission is in flight, or
                if the submitter changed the logical time
        """
        if self._phase is not SimPhase.IDLE:
            raise LedgerError("A submission is already in flight")

        tx_id = self.get_tx_id()
        utxos_before = dict(self.state.utxos)
        time_before = self.state.current_time
        user_state_before = self.state.user_state

        self._phase = SimPhase.VALIDATING
        try:
            result = self._submitter(SubmissionEnv(tx_info, tx_id, self.config), self.state)
            if self.state.current_time != time_before:
                raise LedgerError(
                    f"Submitter changed the logical time from {time_before} "
                    f"to {self.state.current_time}"
                )
        except BaseException as exc:
            # Rollback: restore in place so outside references to utxos stay valid
            self.state.utxos.clear()
            self.state.utxos.update(utxos_before)
            self.state.current_time = time_before
            self.state.user_state = user_state_before
            self.last_outcome = SimPhase.REJECTED
            if self.verbose:
                print(f"✗ REJECTED at slot {time_before}: {exc}")
            if isinstance(exc, SubmissionError):
                raise SubmissionFailed(exc) from exc
            raise
        finally:
            self._phase = SimPhase.IDLE

        self.last_outcome = SimPhase.COMMITTED
        self.last_result = result
        if self.verbose:
            print(
                f"✓ APPLIED {tx_id.hex()} at slot {self.state.current_time}: "
                f"-{len(result.spent)} +{len(result.created)} utxos"
            )
        return tx_id

    # ========================================================================
    # ERROR SCOPING
    # ========================================================================

    def attempt(self, operation: Callable[..., T], *args, **kwargs) -> SimResult[T]:
        """
        Run one operation and return its outcome instead of raising.

        Lets a program decide for itself whether to continue after a failed
        submission.

        Example:
            outcome = sim.attempt(sim.submit_tx, tx_info)
            if outcome.is_ok:
                tx_id = outcome.value
        """
        try:
            return SimResult.ok(operation(*args, **kwargs))
        except LedgerSimError as exc:
            return SimResult.err(exc)


def run_ledger_sim(
    config: LedgerConfig,
    state: LedgerState,
    program: Callable[[LedgerSim], T],
    submitter: Submitter = submit,
    verbose: bool = False,
) -> SimResult[T]:
    """
    Run a simulation program to completion.

    Args:
        config: Run configuration
        state: Initial state, mutated in place as the program commits
        program: Function of the session, returning the program's result
        submitter: Submission collaborator
        verbose: Print submissions and clock advances

    Returns:
        SimResult with the program's return value, or with the first
        LedgerSimError the program did not handle. Effects committed before
        that error remain in state; the failing operation itself left none.
    """
    sim = LedgerSim(config, state, submitter=submitter, verbose=verbose)
    try:
        return SimResult.ok(program(sim))
    except LedgerSimError as exc:
        return SimResult.err(exc)

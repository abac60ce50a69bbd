"""
validation.py - Stateful Transaction Validation

Checks a proposed TxInfo against the run's LedgerConfig and the current
LedgerState. Every rule is a validator built from ledger_sim.validator, and
the top-level validate_tx_info() runs all of them, so the result lists every
violated rule rather than the first one.

Error values mirror the shape of the transaction: an unknown input at position
3 is reported as InvalidInputs(InvalidInputsError(3, NotFoundOnLedger(ref))).

Validation is read-only. Deciding that any error rejects the transaction is up
to the caller (see ledger_sim.submission).
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Tuple, Union

from .core import (
    ADA_SYMBOL,
    LedgerConfig, LedgerState, ScriptMode,
    POSIXTime, ScriptHash,
    TxInInfo, TxInfo, TxOutRef, Value,
)
from .validator import (
    Validator,
    combine,
    contramap,
    contramap_and_map_err,
    validate_foldable,
    validate_if,
    validate_list_and_annotate_err_with_idx,
    validate_optional,
    validate_with,
)


# ============================================================================
# INPUTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class NotFoundOnLedger:
    """The referenced output is not in the UTxO set (never existed or already spent)."""
    out_ref: TxOutRef


@dataclass(frozen=True, slots=True)
class ReferenceScriptNotAvailable:
    """The input publishes a reference script that is not in script storage."""
    script_hash: ScriptHash


InvalidInputError = Union[NotFoundOnLedger, ReferenceScriptNotAvailable]


def validate_input_exist(state: LedgerState) -> Validator:
    return contramap(
        lambda tx_in: tx_in.out_ref,
        validate_if(lambda ref: ref in state.utxos, NotFoundOnLedger),
    )


def validate_input_reference_script_available(config: LedgerConfig) -> Validator:
    return contramap(
        lambda tx_in: tx_in.resolved.reference_script,
        validate_optional(
            validate_if(lambda sh: sh in config.script_storage, ReferenceScriptNotAvailable)
        ),
    )


@dataclass(frozen=True, slots=True)
class InvalidInputsError:
    index: int
    error: InvalidInputError


def validate_inputs(config: LedgerConfig, state: LedgerState) -> Validator:
    return validate_list_and_annotate_err_with_idx(
        InvalidInputsError,
        combine(
            validate_input_exist(state),
            validate_input_reference_script_available(config),
        ),
    )


# ============================================================================
# REFERENCE INPUTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class InvalidReferenceInputsError:
    index: int
    error: InvalidInputError


def validate_reference_inputs(state: LedgerState) -> Validator:
    return validate_list_and_annotate_err_with_idx(
        InvalidReferenceInputsError,
        validate_input_exist(state),
    )


# ============================================================================
# VALID RANGE
# ============================================================================

@dataclass(frozen=True, slots=True)
class CurrentTimeOutOfRange:
    current_time: POSIXTime


InvalidValidRangeError = CurrentTimeOutOfRange


def validate_valid_range(state: LedgerState) -> Validator:
    current_time = state.current_time
    return validate_if(
        lambda valid_range: valid_range.member(current_time),
        lambda _: CurrentTimeOutOfRange(current_time),
    )


# ============================================================================
# REDEEMERS
# ============================================================================

class RedeemerKind(Enum):
    SPENDING = "spending"
    MINTING = "minting"


class InvalidRedeemerErrorKind(Enum):
    """
    UNKNOWN_SCRIPT: The script hash is not in script storage.
    MISSING_REFERENCE_SCRIPT: The script is stored, but script mode is
                              MUST_BE_REFERENCE and no reference input
                              publishes it.
    """
    UNKNOWN_SCRIPT = "unknown_script"
    MISSING_REFERENCE_SCRIPT = "missing_reference_script"


@dataclass(frozen=True, slots=True)
class InvalidRedeemersError:
    kind: RedeemerKind
    error_kind: InvalidRedeemerErrorKind
    script_hash: ScriptHash


def required_script_hashes(inputs: Sequence[TxInInfo], mint: Value) -> Tuple[List[ScriptHash], List[ScriptHash]]:
    """
    Script hashes a transaction needs to run.

    Returns:
        (validator hashes of script-locked inputs, in input order;
         minting policy hashes of minted symbols other than ADA_SYMBOL)
    """
    validator_hashes = [
        tx_in.resolved.address.script_hash
        for tx_in in inputs
        if tx_in.resolved.address.script_hash is not None
    ]
    minting_policy_hashes = [symbol for symbol in mint.symbols() if symbol != ADA_SYMBOL]
    return validator_hashes, minting_policy_hashes


def validate_redeemers(config: LedgerConfig, reference_inputs: Sequence[TxInInfo]) -> Validator:
    """
    Validator over (inputs, mint): every script the transaction needs must be
    resolvable under the configured script mode.
    """
    available_reference_scripts = {
        tx_in.resolved.reference_script
        for tx_in in reference_inputs
        if tx_in.resolved.reference_script is not None
    }

    def script_error(kind: RedeemerKind, script_hash: ScriptHash) -> InvalidRedeemersError:
        if script_hash not in config.script_storage:
            return InvalidRedeemersError(kind, InvalidRedeemerErrorKind.UNKNOWN_SCRIPT, script_hash)
        return InvalidRedeemersError(kind, InvalidRedeemerErrorKind.MISSING_REFERENCE_SCRIPT, script_hash)

    def resolvable(script_hash: ScriptHash) -> bool:
        if script_hash not in config.script_storage:
            return False
        if config.script_mode is ScriptMode.MUST_BE_REFERENCE:
            return script_hash in available_reference_scripts
        return True

    def validate_script_hashes(kind: RedeemerKind) -> Validator:
        return validate_foldable(
            validate_if(resolvable, lambda sh: script_error(kind, sh))
        )

    return contramap(
        lambda inputs_and_mint: required_script_hashes(*inputs_and_mint),
        combine(
            contramap(lambda hashes: hashes[0], validate_script_hashes(RedeemerKind.SPENDING)),
            contramap(lambda hashes: hashes[1], validate_script_hashes(RedeemerKind.MINTING)),
        ),
    )


# ============================================================================
# TRANSACTION INFO
# ============================================================================

@dataclass(frozen=True, slots=True)
class InvalidInputs:
    error: InvalidInputsError


@dataclass(frozen=True, slots=True)
class InvalidReferenceInputs:
    error: InvalidReferenceInputsError


@dataclass(frozen=True, slots=True)
class InvalidValidRange:
    error: InvalidValidRangeError


@dataclass(frozen=True, slots=True)
class InvalidRedeemers:
    error: InvalidRedeemersError


InvalidTxInfoError = Union[InvalidInputs, InvalidReferenceInputs, InvalidValidRange, InvalidRedeemers]


def validate_tx_info(config: LedgerConfig, state: LedgerState) -> Validator:
    """
    Full admissibility check of a TxInfo.

    Runs, in order and independently:
        1. inputs exist and their reference scripts are stored
        2. reference inputs exist
        3. current time is within the valid range
        4. every required script is resolvable under the script mode

    Args:
        config: Run configuration (script storage and mode)
        state: Current ledger state (UTxO set and time)

    Returns:
        Validator over TxInfo producing InvalidTxInfoError values
    """
    return combine(
        contramap_and_map_err(
            lambda tx_info: tx_info.inputs, InvalidInputs, validate_inputs(config, state)
        ),
        contramap_and_map_err(
            lambda tx_info: tx_info.reference_inputs, InvalidReferenceInputs,
            validate_reference_inputs(state),
        ),
        contramap_and_map_err(
            lambda tx_info: tx_info.valid_range, InvalidValidRange, validate_valid_range(state)
        ),
        validate_with(
            lambda tx_info: contramap_and_map_err(
                lambda t: (t.inputs, t.mint),
                InvalidRedeemers,
                validate_redeemers(config, tx_info.reference_inputs),
            )
        ),
    )


def check_tx_info(config: LedgerConfig, state: LedgerState, tx_info: TxInfo) -> List[InvalidTxInfoError]:
    """Validate tx_info against config and state. Empty list means admissible."""
    return validate_tx_info(config, state)(tx_info)

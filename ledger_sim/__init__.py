"""
ledger_sim - Deterministic UTxO Ledger Simulator

An in-process ledger for testing transaction-validating logic without a node.

Usage:
    from ledger_sim import (
        Address, LedgerConfig, LedgerState, TxId, TxInInfo, TxInfo, TxOut,
        TxOutRef, Interval, Value, run_ledger_sim,
    )

    alice = Address.pub_key_address("a11ce")
    genesis = TxOutRef(TxId(b"genesis"), 0)
    state = LedgerState({genesis: TxOut(alice, Value.lovelace(10))})

    def program(sim):
        tx = TxInfo(
            inputs=[TxInInfo(genesis, sim.lookup_utxo(genesis))],
            outputs=[TxOut(alice, Value.lovelace(10))],
            valid_range=Interval.interval(0, 10),
        )
        return sim.submit_tx(tx)

    result = run_ledger_sim(LedgerConfig(), state, program)
    tx_id = result.unwrap()
"""

# Core types
from .core import (
    ADA_SYMBOL,
    ADA_TOKEN,
    POSIXTime,
    POSIXTimeRange,
    ScriptHash,
    PubKeyHash,
    CurrencySymbol,
    TokenName,
    Script,
    LedgerError,
    TxId,
    TxOutRef,
    PubKeyCredential,
    ScriptCredential,
    Credential,
    Address,
    Value,
    Interval,
    TxOut,
    TxInInfo,
    Spending,
    Minting,
    ScriptPurpose,
    TxInfo,
    ScriptMode,
    LedgerConfig,
    LedgerState,
)

# Validator combinators
from .validator import (
    Validator,
    valid,
    validate_if,
    validate_optional,
    validate_foldable,
    validate_list_and_annotate_err_with_idx,
    validate_with,
    combine,
    contramap,
    map_err,
    contramap_and_map_err,
)

# Stateful validation
from .validation import (
    NotFoundOnLedger,
    ReferenceScriptNotAvailable,
    InvalidInputError,
    InvalidInputsError,
    InvalidReferenceInputsError,
    CurrentTimeOutOfRange,
    InvalidValidRangeError,
    RedeemerKind,
    InvalidRedeemerErrorKind,
    InvalidRedeemersError,
    InvalidInputs,
    InvalidReferenceInputs,
    InvalidValidRange,
    InvalidRedeemers,
    InvalidTxInfoError,
    validate_input_exist,
    validate_input_reference_script_available,
    validate_inputs,
    validate_reference_inputs,
    validate_valid_range,
    validate_redeemers,
    required_script_hashes,
    validate_tx_info,
    check_tx_info,
)

# Submission
from .submission import (
    SubmissionError,
    InvalidTxInfo,
    MissingRedeemer,
    MissingDatum,
    ScriptFailure,
    OutputRefCollision,
    ExBudget,
    ScriptContext,
    SubmissionEnv,
    SubmissionResult,
    Submitter,
    evaluate_scripts,
    submit,
)

# Simulation engine
from .sim import (
    LedgerSimError,
    SubmissionFailed,
    ApplicationFailed,
    SimPhase,
    SimResult,
    LedgerSim,
    serialise_time,
    gen_tx_id,
    run_ledger_sim,
)

__all__ = [
    # Core
    'ADA_SYMBOL', 'ADA_TOKEN',
    'POSIXTime', 'POSIXTimeRange', 'ScriptHash', 'PubKeyHash', 'CurrencySymbol',
    'TokenName', 'Script',
    'LedgerError',
    'TxId', 'TxOutRef', 'PubKeyCredential', 'ScriptCredential', 'Credential',
    'Address', 'Value', 'Interval', 'TxOut', 'TxInInfo',
    'Spending', 'Minting', 'ScriptPurpose', 'TxInfo',
    'ScriptMode', 'LedgerConfig', 'LedgerState',
    # Validator combinators
    'Validator', 'valid', 'validate_if', 'validate_optional', 'validate_foldable',
    'validate_list_and_annotate_err_with_idx', 'validate_with', 'combine',
    'contramap', 'map_err', 'contramap_and_map_err',
    # Stateful validation
    'NotFoundOnLedger', 'ReferenceScriptNotAvailable', 'InvalidInputError',
    'InvalidInputsError', 'InvalidReferenceInputsError',
    'CurrentTimeOutOfRange', 'InvalidValidRangeError',
    'RedeemerKind', 'InvalidRedeemerErrorKind', 'InvalidRedeemersError',
    'InvalidInputs', 'InvalidReferenceInputs', 'InvalidValidRange', 'InvalidRedeemers',
    'InvalidTxInfoError',
    'validate_input_exist', 'validate_input_reference_script_available',
    'validate_inputs', 'validate_reference_inputs', 'validate_valid_range',
    'validate_redeemers', 'required_script_hashes', 'validate_tx_info', 'check_tx_info',
    # Submission
    'SubmissionError', 'InvalidTxInfo', 'MissingRedeemer', 'MissingDatum',
    'ScriptFailure', 'OutputRefCollision',
    'ExBudget', 'ScriptContext', 'SubmissionEnv', 'SubmissionResult', 'Submitter',
    'evaluate_scripts', 'submit',
    # Simulation engine
    'LedgerSimError', 'SubmissionFailed', 'ApplicationFailed',
    'SimPhase', 'SimResult', 'LedgerSim',
    'serialise_time', 'gen_tx_id', 'run_ledger_sim',
]

__version__ = '0.1.0'

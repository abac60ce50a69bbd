"""
Core types for the ledger simulator.

This module provides the foundational data structures of the simulated ledger:
1. Type aliases: POSIXTime, ScriptHash, CurrencySymbol, Script, ...
2. Immutable value objects: TxId, TxOutRef, Address, Value, Interval, TxOut, TxInfo
3. Run configuration and state: ScriptMode, LedgerConfig, LedgerState
4. Exceptions: LedgerError, the base of every error raised by this package

Everything except LedgerState is immutable. LedgerState is owned by a single
LedgerSim session and only mutated through it.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import (
    Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Currency symbol of the chain's native currency. Minting it never requires
# a policy script.
ADA_SYMBOL = ""
ADA_TOKEN = ""


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Logical time of the simulator. Advanced one unit at a time.
POSIXTime = int

# Hex-encoded hashes and asset names.
ScriptHash = str
PubKeyHash = str
CurrencySymbol = str
TokenName = str

# Script content held in script storage. Spending scripts are called as
# script(datum, redeemer, ctx), minting policies as script(redeemer, ctx).
Script = Callable[..., Any]


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger simulator errors."""
    pass


# ============================================================================
# IDENTIFIERS
# ============================================================================

@dataclass(frozen=True, slots=True, order=True)
class TxId:
    """Transaction identifier (raw digest bytes)."""
    id: bytes

    def hex(self) -> str:
        return self.id.hex()

    def __repr__(self) -> str:
        return f"TxId({self.id.hex()})"


@dataclass(frozen=True, slots=True, order=True)
class TxOutRef:
    """
    Reference to a single ledger output.

    Attributes:
        tx_id: Id of the transaction that created the output.
        index: Position of the output within that transaction's outputs.
    """
    tx_id: TxId
    index: int

    def __post_init__(self):
        if self.index < 0:
            raise ValueError(f"TxOutRef index must be non-negative, got {self.index}")

    def __repr__(self) -> str:
        return f"TxOutRef({self.tx_id.hex()}#{self.index})"


# ============================================================================
# ADDRESSES
# ============================================================================

@dataclass(frozen=True, slots=True)
class PubKeyCredential:
    pub_key_hash: PubKeyHash


@dataclass(frozen=True, slots=True)
class ScriptCredential:
    script_hash: ScriptHash


Credential = Union[PubKeyCredential, ScriptCredential]


@dataclass(frozen=True, slots=True)
class Address:
    """
    Ledger address: a payment credential and an optional staking credential.

    Outputs locked by a ScriptCredential can only be spent by running the
    script with that hash.
    """
    credential: Credential
    staking_credential: Optional[Credential] = None

    @classmethod
    def pub_key_address(cls, pub_key_hash: PubKeyHash) -> Address:
        return cls(PubKeyCredential(pub_key_hash))

    @classmethod
    def script_address(cls, script_hash: ScriptHash) -> Address:
        return cls(ScriptCredential(script_hash))

    @property
    def script_hash(self) -> Optional[ScriptHash]:
        """Hash of the locking script, or None for public key addresses."""
        if isinstance(self.credential, ScriptCredential):
            return self.credential.script_hash
        return None


# ============================================================================
# VALUE
# ============================================================================

FrozenTokens = Tuple[Tuple[TokenName, int], ...]


def _freeze_value(amounts: Mapping[CurrencySymbol, Mapping[TokenName, int]]) -> Tuple[Tuple[CurrencySymbol, FrozenTokens], ...]:
    """
    Convert a nested amount mapping to the sorted frozen form used by Value.

    Zero quantities and symbols left without tokens are dropped, so two values
    holding the same assets always compare equal.
    """
    frozen = []
    for symbol in sorted(amounts):
        tokens = tuple(
            (token, qty) for token, qty in sorted(amounts[symbol].items()) if qty != 0
        )
        if tokens:
            frozen.append((symbol, tokens))
    return tuple(frozen)


@dataclass(frozen=True, slots=True)
class Value:
    """
    Multi-asset value: quantities keyed by currency symbol and token name.

    Used both for output values and for the mint field of a transaction,
    where negative quantities mean burning.
    """
    _frozen: Tuple[Tuple[CurrencySymbol, FrozenTokens], ...] = ()

    @classmethod
    def from_dict(cls, amounts: Mapping[CurrencySymbol, Mapping[TokenName, int]]) -> Value:
        return cls(_freeze_value(amounts))

    @classmethod
    def singleton(cls, symbol: CurrencySymbol, token: TokenName, quantity: int) -> Value:
        return cls.from_dict({symbol: {token: quantity}})

    @classmethod
    def lovelace(cls, quantity: int) -> Value:
        return cls.singleton(ADA_SYMBOL, ADA_TOKEN, quantity)

    def to_dict(self) -> Dict[CurrencySymbol, Dict[TokenName, int]]:
        return {symbol: dict(tokens) for symbol, tokens in self._frozen}

    def symbols(self) -> List[CurrencySymbol]:
        """Currency symbols present in this value, in sorted order."""
        return [symbol for symbol, _ in self._frozen]

    def quantity_of(self, symbol: CurrencySymbol, token: TokenName) -> int:
        for sym, tokens in self._frozen:
            if sym == symbol:
                return dict(tokens).get(token, 0)
        return 0

    def is_zero(self) -> bool:
        return not self._frozen

    def __add__(self, other: Value) -> Value:
        merged = self.to_dict()
        for symbol, tokens in other._frozen:
            bucket = merged.setdefault(symbol, {})
            for token, qty in tokens:
                bucket[token] = bucket.get(token, 0) + qty
        return Value.from_dict(merged)

    def __repr__(self) -> str:
        return f"Value({self.to_dict()})"


# ============================================================================
# TIME RANGES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Interval:
    """
    Interval over logical time.

    A bound of None is unbounded on that side. Bounds are inclusive unless the
    matching *_closed flag is False.
    """
    lower: Optional[POSIXTime] = None
    upper: Optional[POSIXTime] = None
    lower_closed: bool = True
    upper_closed: bool = True

    def __post_init__(self):
        for bound in (self.lower, self.upper):
            if bound is not None and not isinstance(bound, int):
                raise ValueError(f"Interval bounds must be integers, got {bound!r}")

    @classmethod
    def always(cls) -> Interval:
        return cls()

    @classmethod
    def never(cls) -> Interval:
        return cls(0, 0, lower_closed=False, upper_closed=False)

    @classmethod
    def interval(cls, lower: POSIXTime, upper: POSIXTime) -> Interval:
        """Closed interval [lower, upper]."""
        return cls(lower, upper)

    @classmethod
    def from_(cls, lower: POSIXTime) -> Interval:
        """Interval [lower, +inf)."""
        return cls(lower=lower)

    @classmethod
    def to(cls, upper: POSIXTime) -> Interval:
        """Interval (-inf, upper]."""
        return cls(upper=upper)

    def member(self, time: POSIXTime) -> bool:
        if self.lower is not None:
            if time < self.lower or (time == self.lower and not self.lower_closed):
                return False
        if self.upper is not None:
            if time > self.upper or (time == self.upper and not self.upper_closed):
                return False
        return True

    def __contains__(self, time: POSIXTime) -> bool:
        return self.member(time)

    def __repr__(self) -> str:
        lo = "-inf" if self.lower is None else str(self.lower)
        hi = "+inf" if self.upper is None else str(self.upper)
        left = "[" if self.lower_closed and self.lower is not None else "("
        right = "]" if self.upper_closed and self.upper is not None else ")"
        return f"Interval{left}{lo}, {hi}{right}"


# Valid range of a transaction.
POSIXTimeRange = Interval


# ============================================================================
# OUTPUTS AND INPUTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class TxOut:
    """
    A ledger output.

    Attributes:
        address: Where the output is locked.
        value: Assets held by the output.
        datum: Data attached for the locking script (script outputs only).
        reference_script: Hash of a script published by this output, if any.
    """
    address: Address
    value: Value = field(default_factory=Value)
    datum: Any = None
    reference_script: Optional[ScriptHash] = None


@dataclass(frozen=True, slots=True)
class TxInInfo:
    """An input of a transaction together with the output it resolves to."""
    out_ref: TxOutRef
    resolved: TxOut


# ============================================================================
# SCRIPT PURPOSES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Spending:
    """Redeemer key for spending a script-locked output."""
    out_ref: TxOutRef


@dataclass(frozen=True, slots=True)
class Minting:
    """Redeemer key for running a minting policy."""
    currency_symbol: CurrencySymbol


ScriptPurpose = Union[Spending, Minting]


# ============================================================================
# TRANSACTION INFO
# ============================================================================

@dataclass(frozen=True, slots=True)
class TxInfo:
    """
    A proposed transaction, as built by the caller.

    Sequences are stored as tuples and redeemers as a read-only mapping so the
    snapshot cannot change while it is being submitted.

    Attributes:
        inputs: Spent inputs, in order.
        reference_inputs: Inputs that are read but not spent.
        outputs: New outputs, in order. Output i gets reference (tx_id, i).
        mint: Minted (positive) and burned (negative) assets.
        valid_range: Logical time interval in which the transaction is timely.
        redeemers: Redeemer data keyed by script purpose.
    """
    inputs: Tuple[TxInInfo, ...] = ()
    reference_inputs: Tuple[TxInInfo, ...] = ()
    outputs: Tuple[TxOut, ...] = ()
    mint: Value = field(default_factory=Value)
    valid_range: Interval = field(default_factory=Interval.always)
    redeemers: Mapping[ScriptPurpose, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'inputs', tuple(self.inputs))
        object.__setattr__(self, 'reference_inputs', tuple(self.reference_inputs))
        object.__setattr__(self, 'outputs', tuple(self.outputs))
        object.__setattr__(self, 'redeemers', MappingProxyType(dict(self.redeemers)))

    def __hash__(self) -> int:
        return hash((self.inputs, self.reference_inputs, self.outputs, self.mint, self.valid_range))

    def __repr__(self) -> str:
        return (
            f"TxInfo({len(self.inputs)} inputs, {len(self.reference_inputs)} reference inputs, "
            f"{len(self.outputs)} outputs, valid={self.valid_range!r})"
        )


# ============================================================================
# CONFIGURATION AND STATE
# ============================================================================

class ScriptMode(Enum):
    """
    Policy for how scripts must be supplied to a transaction.

    ALLOW_WITNESS: A script may be supplied inline or referenced, as long as
                   it is present in script storage.
    MUST_BE_REFERENCE: A script must be published by one of the transaction's
                       reference inputs.
    """
    ALLOW_WITNESS = "allow_witness"
    MUST_BE_REFERENCE = "must_be_reference"


@dataclass(frozen=True, slots=True)
class LedgerConfig:
    """
    Read-only configuration of a simulation run.

    Attributes:
        user_ctx: Application context, opaque to the simulator.
        script_storage: Script content keyed by script hash.
        script_mode: How scripts must be supplied (see ScriptMode).
    """
    user_ctx: Any = None
    script_storage: Mapping[ScriptHash, Script] = field(default_factory=dict)
    script_mode: ScriptMode = ScriptMode.ALLOW_WITNESS

    def __post_init__(self):
        object.__setattr__(self, 'script_storage', MappingProxyType(dict(self.script_storage)))


@dataclass(slots=True)
class LedgerState:
    """
    Mutable ledger state of a simulation run.

    Attributes:
        utxos: Unspent outputs keyed by reference.
        current_time: Logical time. Only ever increases.
        user_state: Application state, opaque to the simulator.
    """
    utxos: Dict[TxOutRef, TxOut] = field(default_factory=dict)
    current_time: POSIXTime = 0
    user_state: Any = None

    def __post_init__(self):
        if not isinstance(self.current_time, int):
            raise ValueError(f"current_time must be an integer, got {self.current_time!r}")
        self.utxos = dict(self.utxos)

    @classmethod
    def from_outputs(
        cls,
        outputs: Iterable[Tuple[TxOutRef, TxOut]],
        current_time: POSIXTime = 0,
        user_state: Any = None,
    ) -> LedgerState:
        """
        Build an initial state from (reference, output) pairs.

        Raises:
            ValueError: If a reference appears twice
        """
        utxos: Dict[TxOutRef, TxOut] = {}
        for ref, out in outputs:
            if ref in utxos:
                raise ValueError(f"Duplicate output reference {ref!r}")
            utxos[ref] = out
        return cls(utxos=utxos, current_time=current_time, user_state=user_state)

"""
conftest.py - Shared pytest fixtures for ledger simulator tests

Provides common fixtures used across unit, conformance and functional tests:
- Configurations (no scripts, witness mode, reference mode)
- Ledger states (single wallet output, script-locked output with reference script)
- Sessions over those states
"""

import pytest

from ledger_sim import LedgerConfig, LedgerSim, LedgerState, ScriptMode

from tests.builders import ALICE, pay_to, ref, scripted_config, scripted_state


# =============================================================================
# CONFIG FIXTURES
# =============================================================================

@pytest.fixture
def empty_config():
    """No scripts stored, witness mode."""
    return LedgerConfig()


@pytest.fixture
def witness_config():
    """Scripts stored, may be supplied inline."""
    return scripted_config(ScriptMode.ALLOW_WITNESS)


@pytest.fixture
def reference_config():
    """Scripts stored, must be cited by a reference input."""
    return scripted_config(ScriptMode.MUST_BE_REFERENCE)


# =============================================================================
# STATE FIXTURES
# =============================================================================

@pytest.fixture
def basic_state():
    """Alice owns one output worth 100 at time 0."""
    return LedgerState({ref("genesis"): pay_to(ALICE, 100)}, current_time=0)


@pytest.fixture
def script_state():
    """See tests.builders.scripted_state."""
    return scripted_state()


# =============================================================================
# SESSION FIXTURES
# =============================================================================

@pytest.fixture
def basic_sim(empty_config, basic_state):
    return LedgerSim(empty_config, basic_state)


@pytest.fixture
def script_sim(witness_config, script_state):
    return LedgerSim(witness_config, script_state)

"""
test_end_to_end.py - End-to-end simulation scenario tests

Tests complete programs run through run_ledger_sim:
- Pay and double-spend
- Locking funds at a script and unlocking them with the right redeemer
- Reference scripts under MUST_BE_REFERENCE
- Minting with a policy and reported budget
- Custom submitters layered over the default one
- Multi-slot programs that recover from failures
"""

import pytest

from ledger_sim import (
    ExBudget, Interval, InvalidInputs, InvalidInputsError, InvalidRedeemerErrorKind,
    InvalidRedeemers, InvalidRedeemersError, InvalidTxInfo, LedgerConfig, LedgerSim,
    LedgerState, Minting, NotFoundOnLedger, RedeemerKind, ScriptFailure, ScriptMode,
    Spending, SubmissionFailed, TxInfo, TxOut, TxOutRef, Value, gen_tx_id,
    run_ledger_sim, submit,
)

from tests.builders import (
    ALICE, BOB, GUESS_ADDRESS, GUESS_VALIDATOR, MINT_POLICY,
    pay_to, ref, scripted_config, scripted_state, spend,
)


class TestPayAndDoubleSpend:
    """Spending a wallet output, then trying to spend it again."""

    def test_spend_then_respend(self):
        r1 = ref("r1")
        out1 = pay_to(ALICE, 10)
        out2 = pay_to(ALICE, 7)
        state = LedgerState({r1: out1}, current_time=0)
        tx = TxInfo(
            inputs=[spend(state, r1)],
            outputs=[out2],
            valid_range=Interval.interval(0, 10),
        )

        def program(sim):
            tx_id = sim.submit_tx(tx)
            second = sim.attempt(sim.submit_tx, tx)
            return tx_id, second

        tx_id, second = run_ledger_sim(LedgerConfig(), state, program).unwrap()

        assert tx_id == gen_tx_id(0)
        assert state.utxos == {TxOutRef(gen_tx_id(0), 0): out2}
        assert isinstance(second.error, SubmissionFailed)
        assert isinstance(second.error.error, InvalidTxInfo)
        assert second.error.error.errors == [
            InvalidInputs(InvalidInputsError(0, NotFoundOnLedger(r1))),
        ]

    def test_uncaught_respend_ends_program(self):
        r1 = ref("r1")
        state = LedgerState({r1: pay_to(ALICE, 10)})
        tx = TxInfo(inputs=[spend(state, r1)], outputs=[pay_to(BOB, 10)])

        def program(sim):
            sim.submit_tx(tx)
            sim.increment_slot()
            sim.submit_tx(tx)
            return "unreachable"

        result = run_ledger_sim(LedgerConfig(), state, program)

        assert isinstance(result.error, SubmissionFailed)
        assert state.current_time == 1
        assert state.utxos == {TxOutRef(gen_tx_id(0), 0): pay_to(BOB, 10)}


class TestGuessingGame:
    """Funds locked at a validator that checks redeemer == datum."""

    def lock(self, sim, source, secret):
        return sim.submit_tx(TxInfo(
            inputs=[spend(sim.state, source)],
            outputs=[TxOut(GUESS_ADDRESS, Value.lovelace(100), datum=secret)],
        ))

    def guess(self, sim, locked_ref, guess, reference_inputs=()):
        return sim.submit_tx(TxInfo(
            inputs=[spend(sim.state, locked_ref)],
            reference_inputs=list(reference_inputs),
            outputs=[pay_to(BOB, 100)],
            redeemers={Spending(locked_ref): guess},
        ))

    def test_wrong_then_right_guess(self):
        state = scripted_state()

        def program(sim):
            lock_id = self.lock(sim, ref("genesis"), secret=7)
            locked = TxOutRef(lock_id, 0)
            sim.increment_slot()
            wrong = sim.attempt(self.guess, sim, locked, 3)
            sim.increment_slot()
            right = self.guess(sim, locked, 7)
            return locked, wrong, right

        locked, wrong, right = run_ledger_sim(scripted_config(), state, program).unwrap()

        assert isinstance(wrong.error.error, ScriptFailure)
        assert wrong.error.error.purpose == Spending(locked)
        assert locked not in state.utxos
        assert state.utxos[TxOutRef(right, 0)] == pay_to(BOB, 100)

    def test_reference_mode_requires_published_script(self):
        state = scripted_state()
        published = ref("scripts", 0)

        def program(sim):
            without = sim.attempt(self.guess, sim, ref("locked"), 42)
            with_ref = self.guess(sim, ref("locked"), 42, [spend(sim.state, published)])
            return without, with_ref

        config = scripted_config(ScriptMode.MUST_BE_REFERENCE)
        without, with_ref = run_ledger_sim(config, state, program).unwrap()

        assert without.error.error.errors == [
            InvalidRedeemers(InvalidRedeemersError(
                RedeemerKind.SPENDING, InvalidRedeemerErrorKind.MISSING_REFERENCE_SCRIPT, GUESS_VALIDATOR,
            )),
        ]
        assert ref("locked") not in state.utxos
        # Reference inputs are read, not spent
        assert published in state.utxos
        assert with_ref == gen_tx_id(5)


class TestMinting:
    """Minting tokens under a policy."""

    def test_mint_records_budget(self):
        state = scripted_state()
        minted = Value.singleton(MINT_POLICY, "gold", 3)
        sim = LedgerSim(scripted_config(), state)

        tx_id = sim.submit_tx(TxInfo(
            inputs=[spend(state, ref("genesis"))],
            outputs=[TxOut(ALICE, Value.lovelace(100) + minted)],
            mint=minted,
            redeemers={Minting(MINT_POLICY): None},
        ))

        assert sim.last_result.budget == ExBudget(cpu=100, memory=10)
        holdings = sim.utxos_at_address(ALICE)
        assert TxOutRef(tx_id, 0) in [tx_in.out_ref for tx_in in holdings]
        assert sim.lookup_utxo(TxOutRef(tx_id, 0)).value.quantity_of(MINT_POLICY, "gold") == 3

    def test_native_currency_mint_needs_no_policy(self):
        state = LedgerState({ref("genesis"): pay_to(ALICE, 1)})
        sim = LedgerSim(LedgerConfig(), state)

        sim.submit_tx(TxInfo(mint=Value.lovelace(5), outputs=[pay_to(ALICE, 5)]))

        assert sim.last_result.budget == ExBudget()


class TestLayeredSubmitter:
    """A custom submitter that keeps application state alongside the ledger."""

    @staticmethod
    def counting_submitter(env, state):
        # Replaced, not mutated, so a rejected submission rolls the count back
        state.user_state = {**state.user_state, "submitted": state.user_state["submitted"] + 1}
        return submit(env, state)

    def test_counter_only_counts_commits(self):
        state = scripted_state()

        def program(sim):
            sim.attempt(sim.submit_tx, TxInfo(inputs=[spend(sim.state, ref("locked"))]))
            sim.submit_tx(TxInfo(inputs=[spend(sim.state, ref("genesis"))], outputs=[pay_to(BOB, 100)]))
            sim.increment_slot()
            sim.submit_tx(TxInfo())
            return sim.gets_ledger_state(lambda st: st["submitted"])

        result = run_ledger_sim(scripted_config(), state, program, submitter=self.counting_submitter)

        assert result.unwrap() == 2
        assert state.user_state == {"submitted": 2}


class TestApplicationErrors:

    def test_program_aborts_with_its_own_error(self):
        state = scripted_state()

        def program(sim):
            if not sim.utxos_at_address(BOB):
                sim.throw_ledger_error("bob has nothing")
            return "paid"

        result = run_ledger_sim(scripted_config(), state, program)

        with pytest.raises(Exception, match="bob has nothing"):
            result.unwrap()
        assert result.error.error == "bob has nothing"

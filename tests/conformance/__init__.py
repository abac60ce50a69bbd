"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the ledger simulator.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. atomicity.py - A rejected submission leaves no trace
2. temporal.py - Logical time only moves forward, one slot at a time
3. determinism.py - Identical programs produce identical ids and states
4. error_accumulation.py - Validation reports every violated rule, in order

These tests use hypothesis for property-based testing.
"""

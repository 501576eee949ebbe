"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the debt engine.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. atomicity.py - A failed operation changes nothing
2. solvency.py - Without price moves, every account stays at or above 1.0
3. conservation.py - Custody, supply and bookkeeping always agree
4. liquidation.py - Liquidation strictly improves the target

These tests use hypothesis for property-based testing. Random operation
sequences come from the strategies in operations.py.
"""
